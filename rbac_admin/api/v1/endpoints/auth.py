"""
认证接口
rbac_admin/api/v1/endpoints/auth.py
"""
from typing import Any

from dependency_injector.wiring import inject
from fastapi import APIRouter

from rbac_admin.api.deps import AuthServiceDep, CurrentPrincipal, OAuth2FormDep
from rbac_admin.schemas.responses import ApiResponse
from rbac_admin.schemas.sys_auth import CurrentUserOut
from rbac_admin.schemas.sys_user import Token

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=Token,
    summary="用户名密码登录",
    description="OAuth2 password模式，返回Bearer访问令牌"
)
@inject
async def login(form_data: OAuth2FormDep, auth_service: AuthServiceDep) -> Any:
    return await auth_service.login(form_data.username, form_data.password)


@router.get(
    "/me",
    response_model=ApiResponse[CurrentUserOut],
    summary="获取当前用户",
    description="返回当前用户的角色标识与有效权限码（超级管理员为*:*:*）"
)
async def read_me(principal: CurrentPrincipal) -> Any:
    data = CurrentUserOut(
        user_id=principal.user_id,
        username=principal.username,
        dept_id=principal.dept_id,
        roles=[role.role_key for role in principal.roles],
        is_super_admin=principal.is_super_admin,
        permission_codes=principal.permission_codes,
    )
    return ApiResponse.success(data=data, msg="获取用户信息成功")
