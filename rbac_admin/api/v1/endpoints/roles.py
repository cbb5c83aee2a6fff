"""
角色模块接口文件
rbac_admin/api/v1/endpoints/roles.py
上次更新：2026/10/12
"""
import uuid
from typing import Any, List

from dependency_injector.wiring import inject
from fastapi import APIRouter, Depends

from rbac_admin.api.deps import CurrentPrincipal, DataScopeServiceDep, RoleServiceDep, authorize_request
from rbac_admin.enums.sys_permissions import PermissionCode
from rbac_admin.schemas.responses import ApiResponse
from rbac_admin.schemas.sys_relationship import RolePermissionAssignment
from rbac_admin.schemas.sys_role import DataScopeAssign, DataScopeOut, RoleCreate, RoleDetailOut, RoleOut, RoleUpdate
from rbac_admin.schemas.sys_user import Message
from rbac_admin.utils.permission_decorators import require_permissions

router = APIRouter(
    prefix="/system/roles",
    tags=["roles"],
    dependencies=[Depends(authorize_request)]
)


@router.get("", response_model=ApiResponse[List[RoleOut]], summary="角色列表")
@require_permissions(PermissionCode.ROLE_QUERY.value)
@inject
async def list_roles(role_service: RoleServiceDep) -> Any:
    return ApiResponse.success(data=await role_service.list_roles(), msg="获取角色列表成功")


@router.get("/{role_id}", response_model=ApiResponse[RoleDetailOut], summary="角色详情")
@require_permissions(PermissionCode.ROLE_QUERY.value)
@inject
async def get_role(role_id: uuid.UUID, role_service: RoleServiceDep) -> Any:
    return ApiResponse.success(data=await role_service.get_role(role_id))


@router.post("", response_model=ApiResponse[RoleDetailOut], summary="创建角色")
@require_permissions(PermissionCode.ROLE_CREATE.value)
@inject
async def create_role(role_in: RoleCreate, principal: CurrentPrincipal, role_service: RoleServiceDep) -> Any:
    role = await role_service.create_role(role_in, operator_id=principal.user_id)
    return ApiResponse.success(data=role, msg="创建角色成功")


@router.put("/{role_id}", response_model=ApiResponse[RoleDetailOut], summary="更新角色")
@require_permissions(PermissionCode.ROLE_UPDATE.value)
@inject
async def update_role(
        role_id: uuid.UUID,
        role_in: RoleUpdate,
        principal: CurrentPrincipal,
        role_service: RoleServiceDep
) -> Any:
    role = await role_service.update_role(role_id, role_in, operator_id=principal.user_id)
    return ApiResponse.success(data=role, msg="更新角色成功")


@router.delete("/{role_id}", response_model=ApiResponse[Message], summary="删除角色")
@require_permissions(PermissionCode.ROLE_DELETE.value)
@inject
async def delete_role(role_id: uuid.UUID, role_service: RoleServiceDep) -> Any:
    return ApiResponse.success(data=await role_service.delete_role(role_id))


@router.put("/{role_id}/permissions", response_model=ApiResponse[Message], summary="分配权限")
@require_permissions(PermissionCode.ROLE_ASSIGN.value)
@inject
async def assign_permissions(
        role_id: uuid.UUID,
        assignment: RolePermissionAssignment,
        role_service: RoleServiceDep
) -> Any:
    return ApiResponse.success(data=await role_service.assign_permissions(role_id, assignment.permission_ids))


@router.get("/{role_id}/data-scope", response_model=ApiResponse[DataScopeOut], summary="角色数据范围")
@require_permissions(PermissionCode.ROLE_QUERY.value)
@inject
async def get_data_scope(role_id: uuid.UUID, data_scope_service: DataScopeServiceDep) -> Any:
    return ApiResponse.success(data=await data_scope_service.get_role_data_scope(role_id))


@router.put("/{role_id}/data-scope", response_model=ApiResponse[DataScopeOut], summary="设置角色数据范围")
@require_permissions(PermissionCode.ROLE_UPDATE.value)
@inject
async def assign_data_scope(
        role_id: uuid.UUID,
        body: DataScopeAssign,
        principal: CurrentPrincipal,
        data_scope_service: DataScopeServiceDep
) -> Any:
    result = await data_scope_service.assign_data_scope(
        role_id, body.data_scope, body.department_ids, operator_id=principal.user_id
    )
    return ApiResponse.success(data=result, msg="设置数据范围成功")
