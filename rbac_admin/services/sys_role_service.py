"""
角色Service层
rbac_admin/services/sys_role_service.py
上次更新：2026/10/12
"""
import logging
import uuid
from typing import List, Optional

from rbac_admin.core.constants import ReservedKeys
from rbac_admin.core.exceptions import Conflict, PermissionDenied, ResourceNotFound
from rbac_admin.core.log_config import request_id_ctx
from rbac_admin.models import SysRole
from rbac_admin.repositories.sys_permission_repository import PermissionRepository
from rbac_admin.repositories.sys_role_repository import RoleRepository
from rbac_admin.repositories.sys_user_repository import UserRepository
from rbac_admin.schemas.sys_role import RoleCreate, RoleDetailOut, RoleOut, RoleUpdate
from rbac_admin.schemas.sys_user import Message

logger = logging.getLogger(__name__)


class RoleService:
    """角色Service层：仅管业务逻辑"""
    def __init__(
            self,
            role_repository: RoleRepository,
            permission_repository: PermissionRepository,
            user_repository: UserRepository,
            reserved_keys: ReservedKeys):
        self.role_repository = role_repository
        self.permission_repository = permission_repository
        self.user_repository = user_repository
        self.reserved_keys = reserved_keys

    def _is_super_role(self, role: SysRole) -> bool:
        return role.role_key == self.reserved_keys.super_role_key

    async def _validate_permission_ids(self, permission_ids: List[uuid.UUID]) -> List[uuid.UUID]:
        """去重并校验权限存在且未被软删除"""
        unique_ids = list(dict.fromkeys(permission_ids))
        valid_ids = await self.permission_repository.get_existing_ids(unique_ids)
        invalid_ids = [str(pid) for pid in unique_ids if pid not in valid_ids]
        if invalid_ids:
            raise ResourceNotFound(detail=f"Invalid permission IDs: {', '.join(invalid_ids)}")
        return unique_ids

    # ------------------------------
    # 核心业务：创建角色
    # ------------------------------
    async def create_role(self, role_in: RoleCreate, operator_id: Optional[uuid.UUID] = None) -> RoleDetailOut:
        """创建角色（含权限分配）"""
        # 1. 超级角色标识保留
        if role_in.role_key == self.reserved_keys.super_role_key:
            raise PermissionDenied(detail=f"Role key '{role_in.role_key}' is reserved")

        # 2. 角色标识唯一性（含已逻辑删除的角色，唯一索引约束）
        if await self.role_repository.get_by_role_key(role_in.role_key):
            raise Conflict(detail=f"Role key '{role_in.role_key}' already exists")

        # 3. 权限ID有效性
        permission_ids = await self._validate_permission_ids(role_in.permission_ids)

        async with self.role_repository.transaction() as session:
            role = SysRole(
                name=role_in.name,
                role_key=role_in.role_key,
                sort=role_in.sort,
                status=role_in.status,
                data_scope=int(role_in.data_scope),
                description=role_in.description,
                create_by=operator_id,
                is_deleted=0,
            )
            role = await self.role_repository.create(role, session=session)
            await self.role_repository.replace_permissions(role.id, permission_ids, session=session)

        logger.info(f"角色创建成功 | 标识：{role.role_key}", extra={"request_id": request_id_ctx.get()})
        return await self.get_role(role.id)

    # ------------------------------
    # 基础业务：查询角色
    # ------------------------------
    async def get_role_by_id(self, role_id: uuid.UUID) -> SysRole:
        """按ID查询角色（不存在则抛异常）"""
        role = await self.role_repository.get_by_id(role_id)
        if not role:
            raise ResourceNotFound(detail=f"Role with ID '{role_id}' not found")
        return role

    async def get_role(self, role_id: uuid.UUID) -> RoleDetailOut:
        role = await self.get_role_by_id(role_id)
        detail = RoleDetailOut.model_validate(role)
        detail.permission_ids = await self.role_repository.get_permission_ids(role_id)
        detail.department_ids = await self.role_repository.get_department_ids(role_id)
        return detail

    async def list_roles(self) -> List[RoleOut]:
        roles = await self.role_repository.list_all()
        return [RoleOut.model_validate(role) for role in roles]

    # ------------------------------
    # 基础业务：更新角色
    # ------------------------------
    async def update_role(
            self,
            role_id: uuid.UUID,
            role_update: RoleUpdate,
            operator_id: Optional[uuid.UUID] = None
    ) -> RoleDetailOut:
        role = await self.get_role_by_id(role_id)
        if self._is_super_role(role):
            raise PermissionDenied(detail="The super role cannot be modified")

        values = role_update.model_dump(exclude_unset=True, exclude_none=True)
        new_key = values.get("role_key")
        if new_key and new_key != role.role_key:
            if new_key == self.reserved_keys.super_role_key:
                raise PermissionDenied(detail=f"Role key '{new_key}' is reserved")
            if await self.role_repository.get_by_role_key(new_key):
                raise Conflict(detail=f"Role key '{new_key}' already exists")
        if values:
            values["update_by"] = operator_id

        async with self.role_repository.transaction() as session:
            await self.role_repository.update_fields(role_id, values, session=session)
        return await self.get_role(role_id)

    async def assign_permissions(self, role_id: uuid.UUID, permission_ids: List[uuid.UUID]) -> Message:
        """为角色全量分配权限，超级角色隐式拥有全部权限，不允许显式分配"""
        role = await self.get_role_by_id(role_id)
        if self._is_super_role(role):
            raise Conflict(detail="The super role implicitly holds every permission and cannot be assigned explicitly")

        valid_ids = await self._validate_permission_ids(permission_ids)
        async with self.role_repository.transaction() as session:
            await self.role_repository.replace_permissions(role_id, valid_ids, session=session)

        logger.info(
            f"角色权限已分配 | 角色：{role.role_key} | 权限数：{len(valid_ids)}",
            extra={"request_id": request_id_ctx.get()}
        )
        return Message(message=f"Permissions assigned successfully to role '{role.role_key}'")

    # ------------------------------
    # 基础业务：删除角色
    # ------------------------------
    async def delete_role(self, role_id: uuid.UUID) -> Message:
        """删除角色（需校验是否被用户使用），同时解除权限和部门关联"""
        role = await self.get_role_by_id(role_id)
        if self._is_super_role(role):
            raise PermissionDenied(detail="The super role cannot be deleted")

        if await self.user_repository.check_role_in_use(role_id):
            raise Conflict(detail=f"Role '{role.role_key}' is used by users, cannot delete")

        async with self.role_repository.transaction() as session:
            await self.role_repository.delete(role_id, session=session)
        return Message(message=f"Role '{role.role_key}' deleted successfully")
