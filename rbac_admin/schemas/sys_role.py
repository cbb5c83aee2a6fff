"""
角色相关的Pydantic Schemas
rbac_admin/schemas/sys_role.py
上次更新：2026/10/12
"""
import uuid
from typing import List, Optional

from pydantic import Field

from rbac_admin.enums.sys_permissions import DataScope
from rbac_admin.schemas.base import BaseSchema, IDSchema, TimestampSchema


class RoleBase(BaseSchema):
    name: str = Field(..., max_length=64, description="角色名称", examples=["管理员"])
    role_key: str = Field(..., max_length=64, description="角色标识", examples=["admin"])
    sort: int = Field(0, description="显示顺序")
    status: int = Field(1, description="状态(1-正常 0-停用)")
    description: Optional[str] = Field(None, max_length=255, description="角色描述")


class RoleCreate(RoleBase):
    data_scope: DataScope = Field(DataScope.SELF, description="数据范围")
    permission_ids: List[uuid.UUID] = Field(default_factory=list, description="权限ID列表")


class RoleUpdate(BaseSchema):
    name: Optional[str] = Field(None, max_length=64)
    role_key: Optional[str] = Field(None, max_length=64)
    sort: Optional[int] = None
    status: Optional[int] = None
    description: Optional[str] = Field(None, max_length=255)


class RoleOut(RoleBase, IDSchema, TimestampSchema):
    data_scope: DataScope


class RoleDetailOut(RoleOut):
    permission_ids: List[uuid.UUID] = Field(default_factory=list, description="已分配的权限ID")
    department_ids: List[uuid.UUID] = Field(default_factory=list, description="自定义数据范围部门ID")


class DataScopeAssign(BaseSchema):
    data_scope: DataScope = Field(..., description="数据范围")
    department_ids: List[uuid.UUID] = Field(default_factory=list, description="自定义数据范围部门ID（仅CUSTOM生效）")


class DataScopeOut(BaseSchema):
    role_id: uuid.UUID
    data_scope: DataScope
    department_ids: List[uuid.UUID] = Field(default_factory=list)
