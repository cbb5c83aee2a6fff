# 功能：统一导出所有Schema模型，对外提供一致的导入入口
# 文件相对项目根目录路径：rbac_admin/schemas/__init__.py
from rbac_admin.schemas.base import BaseSchema, TimestampSchema, IDSchema
from rbac_admin.schemas.sys_permission import (
    MenuMetaIn, MenuMetaOut, PermissionCreate, PermissionUpdate,
    PermissionOut, PermissionDetailOut, PermissionTreeNode, PermissionBatchDelete
)
from rbac_admin.schemas.sys_role import (
    RoleBase, RoleCreate, RoleUpdate, RoleOut, RoleDetailOut,
    DataScopeAssign, DataScopeOut
)
from rbac_admin.schemas.sys_user import (
    UserBase, UserCreate, UserUpdate, UserOut,
    Token, Message
)
from rbac_admin.schemas.sys_relationship import (
    UserRoleAssignment, RolePermissionAssignment
)
from rbac_admin.schemas.sys_auth import (
    Principal, PrincipalRole, PrincipalPermission, CurrentUserOut
)
from rbac_admin.schemas.sys_data_scope import DataScopePredicate, PredicateKind
from rbac_admin.schemas.api_permission import ApiPermissionReportItem, SyncStatus

__all__ = [
    # Base
    'BaseSchema', 'TimestampSchema', 'IDSchema',

    # Permission
    'MenuMetaIn', 'MenuMetaOut', 'PermissionCreate', 'PermissionUpdate',
    'PermissionOut', 'PermissionDetailOut', 'PermissionTreeNode', 'PermissionBatchDelete',

    # Role
    'RoleBase', 'RoleCreate', 'RoleUpdate', 'RoleOut', 'RoleDetailOut',
    'DataScopeAssign', 'DataScopeOut',

    # User
    'UserBase', 'UserCreate', 'UserUpdate', 'UserOut',
    'Token', 'Message',

    # Relationship
    'UserRoleAssignment', 'RolePermissionAssignment',

    # Auth / DataScope / Sync
    'Principal', 'PrincipalRole', 'PrincipalPermission', 'CurrentUserOut',
    'DataScopePredicate', 'PredicateKind',
    'ApiPermissionReportItem', 'SyncStatus',
]
