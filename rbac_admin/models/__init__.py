"""
模型统一导出入口
作用：
1. 集中管理所有模型导入，避免散落在业务代码中的重复导入
2. 按SQLAlchemy依赖顺序导入，确保relationship字符串引用在映射配置前全部注册
3. 统一导出所有模型，简化业务层导入（如：from rbac_admin.models import SysUser）

rbac_admin/models/__init__.py
上次更新：2026/10/12
"""
# 1. 基础依赖：先导入所有模型的基类（无任何依赖）
from rbac_admin.models.base import Base

# 2. 核心模型：按"被依赖→依赖"顺序导入（底层→上层）
from rbac_admin.models.sys_dept import SysDept
from rbac_admin.models.sys_position import SysPosition
from rbac_admin.models.sys_permission import SysPermission
from rbac_admin.models.sys_permission_menu import SysPermissionMenu
from rbac_admin.models.sys_role import SysRole, sys_role_permission, sys_role_dept
from rbac_admin.models.sys_user import SysUser, sys_user_role, sys_user_position

# 3. 统一导出：与导入顺序严格一致
__all__ = [
    # 基础类
    'Base',
    # 核心模型（按导入顺序）
    'SysDept',
    'SysPosition',
    'SysPermission',
    'SysPermissionMenu',
    'SysRole',
    'SysUser',
    # 中间表（按所属模型顺序）
    'sys_role_permission',
    'sys_role_dept',
    'sys_user_role',
    'sys_user_position',
]
