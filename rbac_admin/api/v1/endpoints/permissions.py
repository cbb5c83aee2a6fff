"""
权限管理接口
rbac_admin/api/v1/endpoints/permissions.py
上次更新：2026/10/12
- API类型节点由启动同步维护，这里只能查看，不能增删改
- 删除为级联删除：结构节点硬删除，API节点软删除
"""
import uuid
from typing import Any, List, Optional

from dependency_injector.wiring import inject
from fastapi import APIRouter, Depends, Query

from rbac_admin.api.deps import CurrentPrincipal, PermissionServiceDep, authorize_request
from rbac_admin.enums.sys_permissions import PermissionCode, PermissionType
from rbac_admin.schemas.responses import ApiResponse
from rbac_admin.schemas.sys_permission import (
    PermissionBatchDelete,
    PermissionCreate,
    PermissionDetailOut,
    PermissionOut,
    PermissionTreeNode,
    PermissionUpdate,
)
from rbac_admin.utils.permission_decorators import require_permissions

router = APIRouter(
    prefix="/system/permissions",
    tags=["permissions"],
    dependencies=[Depends(authorize_request)]
)


@router.get("/tree", response_model=ApiResponse[List[PermissionTreeNode]], summary="权限树")
@require_permissions(PermissionCode.PERMISSION_QUERY.value)
@inject
async def get_permission_tree(permission_service: PermissionServiceDep) -> Any:
    tree = await permission_service.get_permission_tree()
    return ApiResponse.success(data=tree, msg="获取权限树成功")


@router.get("", response_model=ApiResponse[List[PermissionOut]], summary="权限列表")
@require_permissions(PermissionCode.PERMISSION_QUERY.value)
@inject
async def list_permissions(
        permission_service: PermissionServiceDep,
        type: Optional[List[PermissionType]] = Query(None, description="按节点类型筛选"),
        include_deleted: bool = Query(False, description="是否包含已软删除的API节点")
) -> Any:
    items = await permission_service.list_permissions(kinds=type, include_deleted=include_deleted)
    return ApiResponse.success(data=items, msg="获取权限列表成功")


@router.get("/{perm_id}", response_model=ApiResponse[PermissionDetailOut], summary="权限详情")
@require_permissions(PermissionCode.PERMISSION_QUERY.value)
@inject
async def get_permission(perm_id: uuid.UUID, permission_service: PermissionServiceDep) -> Any:
    return ApiResponse.success(data=await permission_service.get_permission(perm_id))


@router.post("", response_model=ApiResponse[PermissionDetailOut], summary="创建权限")
@require_permissions(PermissionCode.PERMISSION_CREATE.value)
@inject
async def create_permission(
        perm_in: PermissionCreate,
        principal: CurrentPrincipal,
        permission_service: PermissionServiceDep
) -> Any:
    node = await permission_service.create_permission(perm_in, operator_id=principal.user_id)
    return ApiResponse.success(data=node, msg="创建权限成功")


@router.put("/{perm_id}", response_model=ApiResponse[PermissionDetailOut], summary="更新权限")
@require_permissions(PermissionCode.PERMISSION_UPDATE.value)
@inject
async def update_permission(
        perm_id: uuid.UUID,
        patch: PermissionUpdate,
        principal: CurrentPrincipal,
        permission_service: PermissionServiceDep
) -> Any:
    node = await permission_service.update_permission(perm_id, patch, operator_id=principal.user_id)
    return ApiResponse.success(data=node, msg="更新权限成功")


@router.delete("/batch", response_model=ApiResponse[List[uuid.UUID]], summary="批量删除权限")
@require_permissions(PermissionCode.PERMISSION_DELETE.value)
@inject
async def batch_delete_permissions(body: PermissionBatchDelete, permission_service: PermissionServiceDep) -> Any:
    removed = await permission_service.remove_many(body.ids)
    return ApiResponse.success(data=removed, msg="批量删除权限成功")


@router.delete("/{perm_id}", response_model=ApiResponse[List[uuid.UUID]], summary="删除权限")
@require_permissions(PermissionCode.PERMISSION_DELETE.value)
@inject
async def delete_permission(perm_id: uuid.UUID, permission_service: PermissionServiceDep) -> Any:
    plan = await permission_service.cascade_remove(perm_id)
    return ApiResponse.success(data=list(plan.collected_ids), msg="删除权限成功")
