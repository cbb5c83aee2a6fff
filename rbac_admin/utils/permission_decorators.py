"""
权限声明装饰器（只挂元数据，不包装函数，避免与依赖注入冲突）
rbac_admin/utils/permission_decorators.py
上次更新：2026/10/12
用法：写在 @router.xxx 之下、@inject 之上
    @router.get("/")
    @require_permissions("system:user:query")
    @inject
    async def list_users(...): ...
"""
from typing import Callable, Tuple

REQUIRED_PERMISSIONS_ATTR = "__required_permissions__"
REQUIRED_ROLES_ATTR = "__required_roles__"


def _append(func: Callable, attr: str, values: Tuple[str, ...]) -> None:
    current = tuple(getattr(func, attr, ()))
    merged = current + tuple(v for v in values if v and v not in current)
    setattr(func, attr, merged)


def require_permissions(*codes: str):
    """声明访问端点所需的全部权限码（AND语义）"""
    def decorator(func: Callable) -> Callable:
        _append(func, REQUIRED_PERMISSIONS_ATTR, codes)
        return func
    return decorator


def require_roles(*role_names: str):
    """声明允许访问端点的角色名称，持有其中任意一个即可（OR语义）"""
    def decorator(func: Callable) -> Callable:
        _append(func, REQUIRED_ROLES_ATTR, role_names)
        return func
    return decorator


def get_required_permissions(func: Callable) -> Tuple[str, ...]:
    return tuple(getattr(func, REQUIRED_PERMISSIONS_ATTR, ()))


def get_required_roles(func: Callable) -> Tuple[str, ...]:
    return tuple(getattr(func, REQUIRED_ROLES_ATTR, ()))
