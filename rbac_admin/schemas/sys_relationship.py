"""
关联关系相关的Pydantic Schemas
rbac_admin/schemas/sys_relationship.py
"""
import uuid
from typing import List

from pydantic import Field

from rbac_admin.schemas.base import BaseSchema

class UserRoleAssignment(BaseSchema):
    role_ids: List[uuid.UUID] = Field(..., description="角色ID列表（全量覆盖）")

class RolePermissionAssignment(BaseSchema):
    permission_ids: List[uuid.UUID] = Field(..., description="权限ID列表（全量覆盖）")
