"""
用户模块业务层
rbac_admin/services/sys_user_service.py
上次更新：2026/10/12
- 超级用户（SUPER_USERNAME）只能由超级管理员维护
- 非超级管理员不能分配超级角色
- 用户列表按调用方的数据范围过滤
"""
import logging
import uuid
from typing import Collection, List, Optional

from rbac_admin.core.constants import ReservedKeys
from rbac_admin.core.exceptions import Conflict, PermissionDenied, ResourceNotFound
from rbac_admin.core.log_config import request_id_ctx
from rbac_admin.core.security import get_password_hash
from rbac_admin.models import SysUser
from rbac_admin.repositories.sys_dept_repository import DeptRepository
from rbac_admin.repositories.sys_role_repository import RoleRepository
from rbac_admin.repositories.sys_user_repository import UserRepository
from rbac_admin.schemas.sys_auth import Principal
from rbac_admin.schemas.sys_user import Message, UserCreate, UserOut, UserUpdate
from rbac_admin.services.data_scope_service import DataScopeService

logger = logging.getLogger(__name__)


class UserService:
    """用户Service层：仅管业务逻辑，事务交给Repo"""
    def __init__(
            self,
            user_repository: UserRepository,
            role_repository: RoleRepository,
            dept_repository: DeptRepository,
            data_scope_service: DataScopeService,
            reserved_keys: ReservedKeys):
        self.user_repository = user_repository
        self.role_repository = role_repository
        self.dept_repository = dept_repository
        self.data_scope_service = data_scope_service
        self.reserved_keys = reserved_keys

    # ------------------------------
    # 校验工具
    # ------------------------------
    def _guard_super_user(self, user: SysUser, caller: Principal) -> None:
        if user.username == self.reserved_keys.super_username and not caller.is_super_admin:
            raise PermissionDenied(detail="Only a super administrator can modify the super user")

    async def _validate_roles(self, role_ids: Collection[uuid.UUID], caller: Principal) -> List[uuid.UUID]:
        unique_ids = list(dict.fromkeys(role_ids))
        roles = await self.role_repository.get_existing_ids(unique_ids)
        found = {role.id for role in roles}
        missing = [str(rid) for rid in unique_ids if rid not in found]
        if missing:
            raise ResourceNotFound(detail=f"Roles not found: {', '.join(missing)}")
        if not caller.is_super_admin and any(
                role.role_key == self.reserved_keys.super_role_key for role in roles
        ):
            raise PermissionDenied(detail="Only a super administrator can assign the super role")
        return unique_ids

    async def _validate_dept(self, dept_id: Optional[uuid.UUID]) -> None:
        if dept_id is not None and not await self.dept_repository.get_by_id(dept_id):
            raise ResourceNotFound(detail=f"Department with ID '{dept_id}' not found")

    async def _validate_positions(self, position_ids: Collection[uuid.UUID]) -> List[uuid.UUID]:
        unique_ids = list(dict.fromkeys(position_ids))
        existing = await self.user_repository.get_existing_position_ids(unique_ids)
        missing = [str(pid) for pid in unique_ids if pid not in existing]
        if missing:
            raise ResourceNotFound(detail=f"Positions not found: {', '.join(missing)}")
        return unique_ids

    # ------------------------------
    # 核心业务：创建用户
    # ------------------------------
    async def create_user(self, user_in: UserCreate, caller: Principal) -> UserOut:
        """创建用户（业务校验+调用Repo），角色/岗位在同一事务内写入"""
        if user_in.username == self.reserved_keys.super_username:
            raise PermissionDenied(detail=f"Username '{user_in.username}' is reserved")
        if await self.user_repository.exists_username_or_email(user_in.username, user_in.email):
            raise Conflict(detail="Username or email already exists")

        await self._validate_dept(user_in.dept_id)
        role_ids = await self._validate_roles(user_in.role_ids, caller)
        position_ids = await self._validate_positions(user_in.position_ids)

        async with self.user_repository.transaction() as session:
            user = SysUser(
                username=user_in.username,
                nickname=user_in.nickname,
                email=user_in.email,
                mobile=user_in.mobile,
                dept_id=user_in.dept_id,
                status=user_in.status,
                password=get_password_hash(user_in.password),
                create_by=caller.user_id,
                is_deleted=0,
            )
            user = await self.user_repository.create(user, session=session)
            await self.user_repository.replace_roles(user.id, role_ids, session=session)
            await self.user_repository.replace_positions(user.id, position_ids, session=session)

        logger.info(f"用户创建成功 | 用户名：{user.username}", extra={"request_id": request_id_ctx.get()})
        return UserOut.model_validate(user)

    # ------------------------------
    # 基础业务：查询用户
    # ------------------------------
    async def get_user_by_id(self, user_id: uuid.UUID) -> SysUser:
        """按ID查询用户（不存在则抛异常）"""
        user = await self.user_repository.get_by_id(user_id)
        if not user:
            raise ResourceNotFound(detail=f"User with ID '{user_id}' not found")
        return user

    async def list_users(self, caller: Principal) -> List[UserOut]:
        """按调用方数据范围查询用户（归属人列create_by，部门列dept_id）"""
        predicate = await self.data_scope_service.resolve_data_scope(caller.user_id)
        users = await self.user_repository.list_by_clause(
            predicate.to_clause(SysUser.create_by, SysUser.dept_id)
        )
        return [UserOut.model_validate(user) for user in users]

    # ------------------------------
    # 基础业务：更新/删除用户
    # ------------------------------
    async def update_user(self, user_id: uuid.UUID, user_in: UserUpdate, caller: Principal) -> UserOut:
        user = await self.get_user_by_id(user_id)
        self._guard_super_user(user, caller)

        values = user_in.model_dump(exclude_unset=True, exclude={"position_ids"})
        if values.get("email") and values["email"] != user.email:
            if await self.user_repository.email_exists(values["email"], exclude_id=user.id):
                raise Conflict(detail=f"Email '{values['email']}' already exists")
        if "dept_id" in values:
            await self._validate_dept(values["dept_id"])
        position_ids = None
        if user_in.position_ids is not None:
            position_ids = await self._validate_positions(user_in.position_ids)
        values["update_by"] = caller.user_id

        async with self.user_repository.transaction() as session:
            await self.user_repository.update_fields(user_id, values, session=session)
            if position_ids is not None:
                await self.user_repository.replace_positions(user_id, position_ids, session=session)
        return UserOut.model_validate(await self.get_user_by_id(user_id))

    async def delete_user(self, user_id: uuid.UUID, caller: Principal) -> Message:
        user = await self.get_user_by_id(user_id)
        self._guard_super_user(user, caller)
        if user.id == caller.user_id:
            raise Conflict(detail="Users cannot delete themselves")

        async with self.user_repository.transaction() as session:
            await self.user_repository.delete(user_id, session=session)
        logger.info(f"用户已删除 | 用户名：{user.username}", extra={"request_id": request_id_ctx.get()})
        return Message(message=f"User '{user.username}' deleted successfully")

    async def assign_roles(self, user_id: uuid.UUID, role_ids: List[uuid.UUID], caller: Principal) -> Message:
        """全量覆盖用户角色"""
        user = await self.get_user_by_id(user_id)
        self._guard_super_user(user, caller)
        valid_ids = await self._validate_roles(role_ids, caller)

        async with self.user_repository.transaction() as session:
            await self.user_repository.replace_roles(user_id, valid_ids, session=session)
        return Message(message=f"Roles assigned successfully to user '{user.username}'")
