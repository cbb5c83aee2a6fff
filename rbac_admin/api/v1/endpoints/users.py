"""
用户API端点
rbac_admin/api/v1/endpoints/users.py
上次更新：2026/10/12
- 用户列表按当前用户的数据范围过滤
- 超级用户只能由超级管理员维护
"""
import uuid
from typing import Any, List

from dependency_injector.wiring import inject
from fastapi import APIRouter, Depends

from rbac_admin.api.deps import CurrentPrincipal, UserServiceDep, authorize_request
from rbac_admin.enums.sys_permissions import PermissionCode
from rbac_admin.schemas.responses import ApiResponse
from rbac_admin.schemas.sys_relationship import UserRoleAssignment
from rbac_admin.schemas.sys_user import Message, UserCreate, UserOut, UserUpdate
from rbac_admin.utils.permission_decorators import require_permissions

router = APIRouter(
    prefix="/system/users",
    tags=["users"],
    dependencies=[Depends(authorize_request)]
)


@router.get("", response_model=ApiResponse[List[UserOut]], summary="用户列表")
@require_permissions(PermissionCode.USER_QUERY.value)
@inject
async def list_users(principal: CurrentPrincipal, user_service: UserServiceDep) -> Any:
    users = await user_service.list_users(principal)
    return ApiResponse.success(data=users, msg="获取用户列表成功")


@router.post("", response_model=ApiResponse[UserOut], summary="创建用户")
@require_permissions(PermissionCode.USER_CREATE.value)
@inject
async def create_user(user_in: UserCreate, principal: CurrentPrincipal, user_service: UserServiceDep) -> Any:
    user = await user_service.create_user(user_in, principal)
    return ApiResponse.success(data=user, msg="创建用户成功")


@router.put("/{user_id}", response_model=ApiResponse[UserOut], summary="更新用户")
@require_permissions(PermissionCode.USER_UPDATE.value)
@inject
async def update_user(
        user_id: uuid.UUID,
        user_in: UserUpdate,
        principal: CurrentPrincipal,
        user_service: UserServiceDep
) -> Any:
    user = await user_service.update_user(user_id, user_in, principal)
    return ApiResponse.success(data=user, msg="更新用户成功")


@router.delete("/{user_id}", response_model=ApiResponse[Message], summary="删除用户")
@require_permissions(PermissionCode.USER_DELETE.value)
@inject
async def delete_user(user_id: uuid.UUID, principal: CurrentPrincipal, user_service: UserServiceDep) -> Any:
    return ApiResponse.success(data=await user_service.delete_user(user_id, principal))


@router.put("/{user_id}/roles", response_model=ApiResponse[Message], summary="分配角色")
@require_permissions(PermissionCode.USER_ASSIGN.value)
@inject
async def assign_roles(
        user_id: uuid.UUID,
        assignment: UserRoleAssignment,
        principal: CurrentPrincipal,
        user_service: UserServiceDep
) -> Any:
    return ApiResponse.success(data=await user_service.assign_roles(user_id, assignment.role_ids, principal))
