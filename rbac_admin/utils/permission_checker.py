"""
权限校验工具文件
rbac_admin/utils/permission_checker.py
上次更新：2026/10/12
核心功能：
1. 超级角色豁免（按role_key判断，不依赖用户字段）
2. 角色校验：未声明角色直接通过，否则用户任一角色名称命中即通过
3. 权限校验：未声明权限直接通过，否则所有声明的权限码都必须在用户有效权限并集中（AND）
4. 评估过程不向外抛异常，任何异常均按拒绝处理并记录日志；用户ID脱敏后写日志
"""
import hashlib
import logging
from typing import Iterable, Optional, Set

from rbac_admin.core.constants import ReservedKeys
from rbac_admin.core.log_config import request_id_ctx
from rbac_admin.schemas.sys_auth import Principal

logger = logging.getLogger(__name__)

__all__ = ["AccessEvaluator", "desensitize_user_id", "collect_effective_codes"]


def desensitize_user_id(user_id) -> str:
    """
    用户ID脱敏
    :param user_id: 原始用户ID
    :return: 脱敏后ID（前6位+后4位；过短时取MD5前8位）
    """
    user_id = str(user_id)
    if len(user_id) <= 10:
        return hashlib.md5(user_id.encode()).hexdigest()[:8]
    return f"{user_id[:6]}...{user_id[-4:]}"


def collect_effective_codes(principal: Principal) -> Set[str]:
    """用户全部角色下未软删除权限码的并集"""
    return {
        perm.code
        for role in principal.roles
        for perm in role.permissions
        if perm.deleted_at is None
    }


class AccessEvaluator:
    """访问评估器：纯内存判断，不访问数据库"""
    def __init__(self, reserved_keys: ReservedKeys):
        self.reserved_keys = reserved_keys

    def is_super_admin(self, principal: Principal) -> bool:
        return any(role.role_key == self.reserved_keys.super_role_key for role in principal.roles)

    def evaluate_access(
            self,
            principal: Optional[Principal],
            required_roles: Optional[Iterable[str]] = None,
            required_permission_codes: Optional[Iterable[str]] = None
    ) -> bool:
        request_id = request_id_ctx.get()
        try:
            if principal is None or principal.roles is None:
                logger.warning("访问拒绝：无法获取当前用户", extra={"request_id": request_id})
                return False

            uid = desensitize_user_id(principal.user_id)
            if self.is_super_admin(principal):
                logger.debug(
                    f"超级角色权限豁免 | 脱敏用户ID：{uid}",
                    extra={"request_id": request_id}
                )
                return True

            roles = [r for r in (required_roles or []) if r]
            if roles:
                owned = {role.name for role in principal.roles}
                if not owned.intersection(roles):
                    logger.warning(
                        f"访问拒绝：角色不满足 | 脱敏用户ID：{uid} | 所需角色：{sorted(roles)}",
                        extra={"request_id": request_id}
                    )
                    return False

            codes = [c for c in (required_permission_codes or []) if c]
            if codes:
                effective = collect_effective_codes(principal)
                missing = sorted(set(codes) - effective)
                if missing:
                    logger.warning(
                        f"访问拒绝：权限不足 | 脱敏用户ID：{uid} | 缺少权限：{missing}",
                        extra={"request_id": request_id}
                    )
                    return False
            return True
        except Exception as e:
            logger.error(
                f"权限评估异常，按拒绝处理 | 异常详情：{str(e)}",
                extra={"request_id": request_id},
                exc_info=True
            )
            return False
