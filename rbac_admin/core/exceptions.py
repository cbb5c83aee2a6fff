"""
核心异常处理配置文件
rbac_admin/core/exceptions.py
"""

from fastapi import HTTPException, status

class AppException(HTTPException):
    """基础异常类"""
    def __init__(self, status_code: int, detail: str):
        super().__init__(status_code=status_code, detail=detail)

class ResourceNotFound(AppException):
    """资源不存在异常（404）"""
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

class BadRequest(AppException):
    """参数错误/业务错误（400）"""
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class Conflict(AppException):
    """层级约束冲突/编码重复/修改不可变字段/修改系统API或超级角色（409）"""
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class PermissionDenied(AppException):
    """权限不足（403）"""
    def __init__(self, detail: str = "Not enough privileges"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

class Unauthenticated(AppException):
    """身份无法解析（401）"""
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)
        self.headers = {"WWW-Authenticate": "Bearer"}
