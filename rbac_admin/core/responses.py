"""
核心错误响应格式配置文件
rbac_admin/core/responses.py
"""
from typing import Any, Optional
from pydantic import BaseModel

class ErrorResponse(BaseModel):
    """标准化错误响应模型"""
    code: int
    message: str
    details: Optional[Any] = None
    request_id: Optional[str] = None
    timestamp: Optional[str] = None
