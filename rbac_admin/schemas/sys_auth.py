"""
请求期身份主体（Principal）Schemas
rbac_admin/schemas/sys_auth.py
每次请求基于数据库当前状态重新构建，不做跨请求缓存
"""
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from rbac_admin.enums.sys_permissions import DataScope, PermissionType
from rbac_admin.schemas.base import BaseSchema


class PrincipalPermission(BaseSchema):
    id: uuid.UUID
    code: str
    type: PermissionType
    deleted_at: Optional[datetime] = None


class PrincipalRole(BaseSchema):
    id: uuid.UUID
    name: str
    role_key: str
    data_scope: DataScope = DataScope.SELF
    permissions: List[PrincipalPermission] = Field(default_factory=list)


class Principal(BaseSchema):
    user_id: uuid.UUID
    username: str
    dept_id: Optional[uuid.UUID] = None
    roles: List[PrincipalRole] = Field(default_factory=list)
    is_super_admin: bool = False
    permission_codes: List[str] = Field(default_factory=list, description="超级管理员为['*:*:*']")


class CurrentUserOut(BaseSchema):
    user_id: uuid.UUID
    username: str
    dept_id: Optional[uuid.UUID] = None
    roles: List[str] = Field(default_factory=list, description="角色标识列表")
    is_super_admin: bool = False
    permission_codes: List[str] = Field(default_factory=list)
