"""
数据范围解析服务
rbac_admin/services/data_scope_service.py
上次更新：2026/10/12
核心功能：
1. 取用户启用角色中data_scope最大的一个作为生效角色（并列时按 sort → create_time → id 取第一个）
2. 将生效角色的数据范围翻译为谓词：全部 / 自定义部门 / 本部门及以下 / 本部门 / 仅本人
3. 部门树一次查询加载，遍历带访问集合，脏数据成环也能终止
"""
import logging
import uuid
from typing import List, Optional

from rbac_admin.core.constants import ReservedKeys
from rbac_admin.core.exceptions import PermissionDenied, ResourceNotFound
from rbac_admin.core.log_config import request_id_ctx
from rbac_admin.enums.sys_permissions import DataScope
from rbac_admin.models import SysRole
from rbac_admin.repositories.sys_dept_repository import DeptRepository
from rbac_admin.repositories.sys_role_repository import RoleRepository
from rbac_admin.repositories.sys_user_repository import UserRepository
from rbac_admin.schemas.sys_data_scope import DataScopePredicate
from rbac_admin.schemas.sys_role import DataScopeOut
from rbac_admin.utils.tree_index import TreeIndex

logger = logging.getLogger(__name__)


def pick_effective_role(roles: List[SysRole]) -> Optional[SysRole]:
    """roles需已按确定顺序排列；取data_scope最大者，并列取先出现的"""
    effective = None
    for role in roles:
        if effective is None or (role.data_scope or 0) > (effective.data_scope or 0):
            effective = role
    return effective


class DataScopeService:
    def __init__(
            self,
            role_repository: RoleRepository,
            user_repository: UserRepository,
            dept_repository: DeptRepository,
            reserved_keys: ReservedKeys
    ):
        self.role_repository = role_repository
        self.user_repository = user_repository
        self.dept_repository = dept_repository
        self.reserved_keys = reserved_keys

    async def resolve_data_scope(self, user_id: uuid.UUID) -> DataScopePredicate:
        owner_only = DataScopePredicate.owner_equals(user_id)

        roles = await self.role_repository.list_active_roles_for_user(user_id)
        role = pick_effective_role(roles)
        if role is None:
            return owner_only

        try:
            scope = DataScope(role.data_scope)
        except ValueError:
            logger.warning(
                f"角色数据范围取值无效，按仅本人处理 | 角色：{role.role_key} | 取值：{role.data_scope}",
                extra={"request_id": request_id_ctx.get()}
            )
            scope = DataScope.SELF
        if scope == DataScope.ALL:
            return DataScopePredicate.unrestricted()

        if scope == DataScope.CUSTOM:
            dept_ids = await self.role_repository.get_department_ids(role.id)
            return DataScopePredicate.department_in(dept_ids) if dept_ids else owner_only

        if scope in (DataScope.DEPARTMENT, DataScope.DEPARTMENT_AND_DESCENDANTS):
            user = await self.user_repository.get_by_id(user_id)
            if user is None or user.dept_id is None:
                return owner_only
            if scope == DataScope.DEPARTMENT:
                return DataScopePredicate.department_in([user.dept_id])
            index = TreeIndex(await self.dept_repository.list_edges())
            if user.dept_id not in index:
                return DataScopePredicate.department_in([user.dept_id])
            return DataScopePredicate.department_in(index.descendants(user.dept_id))

        return owner_only

    # ------------------------------
    # 角色数据范围维护
    # ------------------------------
    async def get_role_data_scope(self, role_id: uuid.UUID) -> DataScopeOut:
        role = await self.role_repository.get_by_id(role_id)
        if not role:
            raise ResourceNotFound(detail=f"Role with ID '{role_id}' not found")
        dept_ids = await self.role_repository.get_department_ids(role_id)
        return DataScopeOut(role_id=role.id, data_scope=role.data_scope, department_ids=dept_ids)

    async def assign_data_scope(
            self,
            role_id: uuid.UUID,
            data_scope: DataScope,
            department_ids: Optional[List[uuid.UUID]] = None,
            operator_id: Optional[uuid.UUID] = None
    ) -> DataScopeOut:
        """设置角色数据范围，非自定义范围时清空角色部门关联"""
        role = await self.role_repository.get_by_id(role_id)
        if not role:
            raise ResourceNotFound(detail=f"Role with ID '{role_id}' not found")
        if role.role_key == self.reserved_keys.super_role_key:
            raise PermissionDenied(detail="The super role's data scope cannot be modified")

        dept_ids = list(dict.fromkeys(department_ids or [])) if data_scope == DataScope.CUSTOM else []
        if dept_ids:
            existing = await self.dept_repository.get_existing_ids(dept_ids)
            missing = [str(d) for d in dept_ids if d not in existing]
            if missing:
                raise ResourceNotFound(detail=f"Departments not found: {', '.join(missing)}")

        async with self.role_repository.transaction() as session:
            await self.role_repository.update_fields(
                role_id,
                {"data_scope": int(data_scope), "update_by": operator_id},
                session=session
            )
            await self.role_repository.replace_departments(role_id, dept_ids, session=session)

        logger.info(
            f"角色数据范围已更新 | 角色：{role.role_key} | 范围：{data_scope.name} | 部门数：{len(dept_ids)}",
            extra={"request_id": request_id_ctx.get()}
        )
        return DataScopeOut(role_id=role_id, data_scope=data_scope, department_ids=dept_ids)
