"""
权限枚举文件
rbac_admin/enums/sys_permissions.py
上次更新：2026/10/12（权限节点类型/来源/数据范围枚举，接口声明权限码）
"""
from enum import Enum, IntEnum


class PermissionType(str, Enum):
    """权限节点类型（闭集，创建后不可修改）"""
    DIRECTORY = "DIRECTORY"
    MENU = "MENU"
    BUTTON = "BUTTON"
    API = "API"


class PermissionOrigin(str, Enum):
    """权限来源：USER-人工维护，SYSTEM-接口自动发现"""
    USER = "USER"
    SYSTEM = "SYSTEM"


class DataScope(IntEnum):
    """角色数据范围，数值越大可见范围越大"""
    SELF = 1
    DEPARTMENT = 2
    DEPARTMENT_AND_DESCENDANTS = 3
    CUSTOM = 4
    ALL = 5


class PermissionCode(Enum):
    """
    接口声明的按钮权限码
    每个枚举值格式: (权限代码, 显示名称, 描述)
    权限代码格式：system:<菜单>:<操作>
    """

    def __new__(cls, code: str, name: str, description: str):
        obj = object.__new__(cls)
        obj._value_ = code
        obj.display_name = name
        obj.description = description
        return obj

    # 权限管理
    PERMISSION_QUERY = ("system:permission:query", "查询权限", "查看权限树与权限列表")
    PERMISSION_CREATE = ("system:permission:create", "创建权限", "新建目录/菜单/按钮权限")
    PERMISSION_UPDATE = ("system:permission:update", "更新权限", "修改目录/菜单/按钮权限")
    PERMISSION_DELETE = ("system:permission:delete", "删除权限", "级联删除权限节点")

    # 角色管理
    ROLE_QUERY = ("system:role:query", "查询角色", "查看角色列表与详情")
    ROLE_CREATE = ("system:role:create", "创建角色", "新建角色")
    ROLE_UPDATE = ("system:role:update", "更新角色", "修改角色信息与数据范围")
    ROLE_DELETE = ("system:role:delete", "删除角色", "删除角色并解除授权")
    ROLE_ASSIGN = ("system:role:assign", "分配权限", "为角色分配权限")

    # 用户管理
    USER_QUERY = ("system:user:query", "查询用户", "按数据范围查看用户列表")
    USER_CREATE = ("system:user:create", "创建用户", "新建用户")
    USER_UPDATE = ("system:user:update", "更新用户", "修改用户信息")
    USER_DELETE = ("system:user:delete", "删除用户", "逻辑删除用户")
    USER_ASSIGN = ("system:user:assign", "分配角色", "为用户分配角色")

    @classmethod
    def get_all(cls):
        """获取所有权限枚举实例"""
        return list(cls)
