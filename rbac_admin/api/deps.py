"""
API 依赖项配置文件
rbac_admin/api/deps.py
上次更新：2026/10/12
- get_current_principal：每个请求基于数据库当前状态重新构建Principal（同一请求内由FastAPI缓存）
- authorize_request：路由器级访问守卫，读取匹配端点上require_permissions/require_roles声明的元数据
"""
import logging
from typing import Annotated, Optional

from dependency_injector.wiring import inject, Provide
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.exc import SQLAlchemyError

from rbac_admin.core.exceptions import PermissionDenied
from rbac_admin.core.log_config import request_id_ctx
from rbac_admin.core.security import reusable_oauth2
from rbac_admin.di.container import Container
from rbac_admin.schemas.sys_auth import Principal
from rbac_admin.services.data_scope_service import DataScopeService
from rbac_admin.services.sys_auth_service import AuthService
from rbac_admin.services.sys_permission_service import PermissionService
from rbac_admin.services.sys_role_service import RoleService
from rbac_admin.services.sys_user_service import UserService
from rbac_admin.utils.permission_checker import AccessEvaluator
from rbac_admin.utils.permission_decorators import get_required_permissions, get_required_roles

logger = logging.getLogger(__name__)


# ------------------------------
# 认证依赖：获取当前用户Principal（OAuth2）
# ------------------------------
@inject
async def get_current_principal(
    token: Optional[str] = Depends(reusable_oauth2),
    auth_service: AuthService = Depends(Provide[Container.auth_service])
) -> Principal:
    """从Token解析用户并聚合角色/权限；存储异常按拒绝处理"""
    try:
        return await auth_service.get_current_principal(token)
    except SQLAlchemyError as e:
        logger.error(
            f"构建当前用户失败（数据库异常），按拒绝处理 | 异常详情：{str(e)}",
            extra={"request_id": request_id_ctx.get()},
            exc_info=True
        )
        raise PermissionDenied()


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


# ------------------------------
# 访问守卫（挂在APIRouter的dependencies上）
# ------------------------------
@inject
async def authorize_request(
    request: Request,
    principal: CurrentPrincipal,
    evaluator: AccessEvaluator = Depends(Provide[Container.access_evaluator])
) -> None:
    endpoint = request.scope.get("endpoint")
    required_roles = get_required_roles(endpoint) if endpoint else ()
    required_codes = get_required_permissions(endpoint) if endpoint else ()
    if not evaluator.evaluate_access(principal, required_roles, required_codes):
        raise PermissionDenied()


# ------------------------------
# 类型别名（简化API层代码）
# ------------------------------
AuthServiceDep = Annotated[AuthService, Depends(Provide[Container.auth_service])]
PermissionServiceDep = Annotated[PermissionService, Depends(Provide[Container.permission_service])]
RoleServiceDep = Annotated[RoleService, Depends(Provide[Container.role_service])]
UserServiceDep = Annotated[UserService, Depends(Provide[Container.user_service])]
DataScopeServiceDep = Annotated[DataScopeService, Depends(Provide[Container.data_scope_service])]

OAuth2FormDep = Annotated[OAuth2PasswordRequestForm, Depends()]
