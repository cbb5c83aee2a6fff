"""
认证与当前用户聚合服务
rbac_admin/services/sys_auth_service.py
上次更新：2026/10/12
"""
import logging
import uuid
from datetime import timedelta
from typing import Optional

from jose import JWTError

from rbac_admin.core.config import settings
from rbac_admin.core.constants import ReservedKeys
from rbac_admin.core.exceptions import Unauthenticated
from rbac_admin.core.log_config import request_id_ctx
from rbac_admin.core.security import create_access_token, extract_token_subject, verify_password
from rbac_admin.models import SysUser
from rbac_admin.repositories.sys_user_repository import UserRepository
from rbac_admin.schemas.sys_auth import Principal, PrincipalPermission, PrincipalRole
from rbac_admin.schemas.sys_user import Token

logger = logging.getLogger(__name__)


class AuthService:
    """认证Service层：处理用户登录、Token校验、构建请求期Principal"""
    def __init__(self, user_repository: UserRepository, reserved_keys: ReservedKeys):
        self.user_repository = user_repository
        self.reserved_keys = reserved_keys

    # ------------------------------
    # 核心业务：用户认证（登录）
    # ------------------------------
    async def authenticate_user(self, username: str, password: str) -> Optional[SysUser]:
        """
        认证用户：
        1. 按用户名查询未删除用户
        2. 校验密码
        3. 校验用户是否启用
        认证成功返回用户，失败返回None
        """
        user = await self.user_repository.get_by_username(username)
        if not user:
            return None
        if not verify_password(password, user.password):
            return None
        if user.status != 1:
            return None
        return user

    async def login(self, username: str, password: str) -> Token:
        user = await self.authenticate_user(username, password)
        if not user:
            logger.warning(f"登录失败 | 用户名：{username}", extra={"request_id": request_id_ctx.get()})
            raise Unauthenticated(detail="Incorrect username or password")
        expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        return Token(
            access_token=create_access_token(user.id, expires_delta=expires),
            token_type="bearer",
            expires_in=int(expires.total_seconds()),
        )

    # ------------------------------
    # 核心业务：构建Principal
    # ------------------------------
    async def build_principal(self, user_id: uuid.UUID) -> Principal:
        """
        一次预加载查询 User → Roles → Permissions：
        - 用户不存在/已删除/已禁用 → 401
        - 只保留启用且未删除的角色，过滤软删除权限
        - 超级角色的有效权限码固定为 ['*:*:*']
        """
        user = await self.user_repository.get_with_permissions(user_id)
        if not user or user.status != 1:
            raise Unauthenticated(detail="User not found or disabled")

        roles = []
        codes = set()
        for role in user.roles:
            if role.is_deleted or role.status != 1:
                continue
            permissions = [
                PrincipalPermission.model_validate(perm)
                for perm in role.permissions
                if perm.deleted_at is None
            ]
            codes.update(perm.code for perm in permissions)
            roles.append(PrincipalRole(
                id=role.id,
                name=role.name,
                role_key=role.role_key,
                data_scope=role.data_scope,
                permissions=permissions,
            ))

        is_super_admin = any(role.role_key == self.reserved_keys.super_role_key for role in roles)
        return Principal(
            user_id=user.id,
            username=user.username,
            dept_id=user.dept_id,
            roles=roles,
            is_super_admin=is_super_admin,
            permission_codes=[self.reserved_keys.wildcard_code] if is_super_admin else sorted(codes),
        )

    async def get_current_principal(self, token: Optional[str]) -> Principal:
        if not token:
            raise Unauthenticated()
        try:
            subject = extract_token_subject(token)
            user_id = uuid.UUID(subject)
        except (JWTError, ValueError) as e:
            logger.warning(f"Token校验失败：{str(e)}", extra={"request_id": request_id_ctx.get()})
            raise Unauthenticated()
        return await self.build_principal(user_id)
