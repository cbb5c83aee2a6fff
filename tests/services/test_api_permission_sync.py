"""
测试API权限同步：操作推导、声明码解析、路由登记、对账与报告
"""
import json

import pytest
from fastapi import APIRouter, FastAPI

from rbac_admin.core.config import settings
from rbac_admin.enums.sys_permissions import PermissionOrigin, PermissionType
from rbac_admin.main import create_app
from rbac_admin.schemas.api_permission import SyncStatus
from rbac_admin.services.api_permission_sync_service import (
    ApiPermissionSyncService,
    RouteDescriptor,
    collect_route_descriptors,
    handler_path_by_convention,
    infer_action,
    module_key_of,
    parse_declared_code,
)
from rbac_admin.utils.permission_decorators import require_permissions, require_roles


# ====================== 操作推导 ======================
@pytest.mark.parametrize("path, method, expected", [
    ("/system/user/export", "GET", "export"),
    ("/system/user/import", "POST", "import"),
    ("/system/role/:id/assign", "POST", "assign"),
    ("/system/role/{role_id}/unassign", "POST", "unbind"),
    ("/system/user/unbind", "DELETE", "unbind"),
    ("/system/user/:id/enable", "PUT", "enable"),
    ("/system/user/{id}/disable", "PUT", "disable"),
    ("/system/user/download/template", "GET", "downloadTemplate"),
    ("/system/user/upload/template", "POST", "uploadTemplate"),
    ("/system/user/:id/reset/password", "PUT", "resetPassword"),
    ("/system/user/list", "GET", "query"),
    ("/system/user/:id", "GET", "get"),
    ("/system/user/{user_id}", "GET", "get"),
    ("/system/user", "POST", "create"),
    ("/system/user/:id", "PUT", "update"),
    ("/system/user/:id", "PATCH", "update"),
    ("/system/user/batch", "DELETE", "batchDelete"),
    ("/system/user/delete-many", "DELETE", "batchDelete"),
    ("/system/user/:id", "DELETE", "delete"),
    ("/system/user", "OPTIONS", "access"),
])
def test_infer_action(path, method, expected):
    assert infer_action(path, method) == expected


def test_infer_action_precedence_and_exact_segments():
    # export优先于import
    assert infer_action("/system/user/export/import", "POST") == "export"
    # 只匹配完整路径段
    assert infer_action("/system/exporter", "GET") == "query"
    # 路径参数名不参与关键字匹配
    assert infer_action("/system/user/{export}", "GET") == "get"


@pytest.mark.parametrize("code, expected", [
    ("system:user:query", ("user", "query")),
    ("system:user", ("user", "")),
    ("system:user:", ("user", "")),
    ("system:user:reset:password", ("user", "reset:password")),
    ("monitor:user:query", None),
    ("system", None),
    ("*:*:*", None),
    ("", None),
])
def test_parse_declared_code(code, expected):
    assert parse_declared_code(code) == expected


def test_module_key():
    assert module_key_of("/system/users") == "system"
    assert module_key_of("/") == "core"
    assert module_key_of("/{id}") == "core"


# ====================== 路由登记 ======================
def build_app() -> FastAPI:
    router = APIRouter(prefix="/system/user")

    @router.get("")
    @require_permissions("system:user:query")
    async def list_users():
        return []

    @router.api_route("/{user_id}", methods=["GET", "PUT"])
    @require_permissions("system:user")
    @require_roles("Admin")
    async def user_detail(user_id: str):
        return {}

    @router.get("/public")
    async def public():
        return {}

    app = FastAPI()
    app.include_router(router, prefix="/api/v1")
    return app


def test_collect_route_descriptors():
    descriptors = collect_route_descriptors(build_app().routes, "/api/v1")
    by_key = {(d.http_method, d.path_template): d for d in descriptors}

    listing = by_key[("GET", "/system/user")]
    assert listing.declared_permission_codes == ("system:user:query",)
    assert listing.handler_name == "list_users"
    assert listing.controller_name == "test_api_permission_sync"
    assert listing.handler_path == "/"

    assert ("PUT", "/system/user/{user_id}") in by_key
    assert by_key[("GET", "/system/user/{user_id}")].declared_roles == ("Admin",)
    assert by_key[("GET", "/system/user/{user_id}")].handler_path == "/{user_id}"
    assert by_key[("GET", "/system/user/public")].declared_permission_codes == ()


def test_collect_route_descriptors_of_application():
    descriptors = collect_route_descriptors(create_app().routes, settings.API_V1_STR)
    by_key = {(d.http_method, d.path_template): d for d in descriptors}

    listing = by_key[("GET", "/system/users")]
    assert listing.handler_name == "list_users"
    assert listing.controller_name == "users"
    assert listing.declared_permission_codes == ("system:user:query",)

    assert ("POST", "/system/permissions") in by_key
    assert ("GET", "/system/roles") in by_key
    assert by_key[("DELETE", "/system/permissions/batch")].handler_path == "/batch"
    assert by_key[("PUT", "/system/users/{user_id}/roles")].handler_path == "/{user_id}/roles"


def test_action_inferred_from_handler_path():
    batch_router = APIRouter(prefix="/system/batch-jobs")

    @batch_router.delete("/{job_id}")
    @require_permissions("system:job")
    async def delete_job(job_id: str):
        return {}

    tenant_router = APIRouter(prefix="/system/{tenant}")

    @tenant_router.get("/users")
    @require_permissions("system:user")
    async def tenant_users(tenant: str):
        return []

    app = FastAPI()
    app.include_router(batch_router, prefix="/api/v1")
    app.include_router(tenant_router, prefix="/api/v1")
    by_handler = {d.handler_name: d for d in collect_route_descriptors(app.routes, "/api/v1")}

    delete = by_handler["delete_job"]
    assert delete.path_template == "/system/batch-jobs/{job_id}"
    assert delete.handler_path == "/{job_id}"
    assert infer_action(delete.action_path, delete.http_method) == "delete"

    listing = by_handler["tenant_users"]
    assert listing.path_template == "/system/{tenant}/users"
    assert infer_action(listing.action_path, listing.http_method) == "query"


def test_handler_path_by_convention():
    assert handler_path_by_convention("/system/batch-jobs/{id}") == "/{id}"
    assert handler_path_by_convention("/system/users") == "/"
    assert handler_path_by_convention("/auth") == "/"


# ====================== 对账与报告 ======================
def route(method: str, path: str, *codes: str, handler: str = "handler", handler_path: str = "") -> RouteDescriptor:
    return RouteDescriptor(
        http_method=method,
        path_template=path,
        controller_name="users",
        handler_name=handler,
        declared_permission_codes=codes,
        handler_path=handler_path,
    )


@pytest.fixture
def report_path(tmp_path):
    return tmp_path / "reports" / "api-permissions.json"


@pytest.fixture
def sync_service(permission_repository, permission_service, report_path):
    return ApiPermissionSyncService(
        permission_repository,
        permission_service,
        report_path=str(report_path),
        mark_missing=True,
    )


async def test_synchronize(sync_service, permission_repository, seeder, report_path):
    menu = await seeder.permission("menu:system:user", PermissionType.MENU)
    retired = await seeder.permission(
        "api:system:user:export", PermissionType.API, origin=PermissionOrigin.SYSTEM, deleted=True
    )
    stale = await seeder.permission(
        "api:system:user:legacy", PermissionType.API, parent=menu, origin=PermissionOrigin.SYSTEM
    )
    role = await seeder.role("editor")
    await seeder.grant(role, stale)

    routes = [
        route("GET", "/system/user", "system:user:query", handler="list_users"),
        route("GET", "/system/user/{user_id}", "system:user", handler="get_user"),
        route("POST", "/system/user/export", "system:user", handler="export_users"),
        route("POST", "/system/dept", "system:dept:create"),
        route("GET", "/system/other", "monitor:x:y", "*:*:*"),
    ]
    report = await sync_service.synchronize(routes)

    statuses = {item.code: item.status for item in report}
    assert statuses == {
        "api:system:user:query": SyncStatus.CREATED,
        "api:system:user:get": SyncStatus.CREATED,
        "api:system:user:export": SyncStatus.REACTIVATED,
        "api:system:dept:create": SyncStatus.SKIPPED,
    }
    assert [item.code for item in report] == sorted(statuses)

    created = await permission_repository.get_by_code("api:system:user:get")
    assert created.type == PermissionType.API
    assert created.origin == PermissionOrigin.SYSTEM
    assert created.parent_id == menu.id
    assert created.action == "get"
    assert created.name == "GET /system/user/{user_id}"

    reactivated = await permission_repository.get_by_id(retired.id)
    assert reactivated.deleted_at is None
    assert reactivated.parent_id == menu.id

    # 未发现的系统API被软删除，但保留授权
    stale_row = await permission_repository.get_by_id(stale.id)
    assert stale_row.deleted_at is not None
    assert await permission_repository.count_role_bindings([stale.id]) == 1

    assert await permission_repository.get_by_code("api:system:dept:create") is None

    written = json.loads(report_path.read_text(encoding="utf-8"))
    assert [item["code"] for item in written] == [item.code for item in report]
    first = written[0]
    assert first["httpMethod"] == "POST"
    assert first["menuCode"] == "menu:system:dept"
    assert first["status"] == "skipped"


async def test_synchronize_is_idempotent(sync_service, seeder):
    await seeder.permission("menu:system:user", PermissionType.MENU)
    routes = [
        route("GET", "/system/user", "system:user:query"),
        route("GET", "/system/user/list", "system:user:query"),
    ]
    first = await sync_service.synchronize(routes)
    assert [item.status for item in first] == [SyncStatus.CREATED, SyncStatus.EXISTS]

    second = await sync_service.synchronize(routes)
    assert {item.status for item in second} == {SyncStatus.EXISTS}


async def test_user_origin_api_nodes_are_not_retired(sync_service, permission_repository, seeder):
    menu = await seeder.permission("menu:system:user", PermissionType.MENU)
    manual = await seeder.permission(
        "api:system:user:manual", PermissionType.API, parent=menu, origin=PermissionOrigin.USER
    )
    await sync_service.synchronize([route("GET", "/system/user", "system:user:query")])
    assert (await permission_repository.get_by_id(manual.id)).deleted_at is None


async def test_synchronize_infers_from_handler_path(sync_service, seeder):
    await seeder.permission("menu:system:job", PermissionType.MENU)
    report = await sync_service.synchronize([
        route("DELETE", "/system/batch-jobs/{job_id}", "system:job", handler_path="/{job_id}"),
    ])
    assert [item.code for item in report] == ["api:system:job:delete"]
    assert report[0].route == "/system/batch-jobs/{job_id}"


async def test_empty_scan_keeps_system_api_nodes(sync_service, permission_repository, seeder):
    menu = await seeder.permission("menu:system:user", PermissionType.MENU)
    api = await seeder.permission(
        "api:system:user:query", PermissionType.API, parent=menu, origin=PermissionOrigin.SYSTEM
    )
    report = await sync_service.synchronize([])
    assert report == []
    assert (await permission_repository.get_by_id(api.id)).deleted_at is None


async def test_report_write_failure_is_swallowed(permission_repository, permission_service, seeder, tmp_path):
    await seeder.permission("menu:system:user", PermissionType.MENU)
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    service = ApiPermissionSyncService(
        permission_repository,
        permission_service,
        report_path=str(blocker / "report.json"),
    )
    report = await service.synchronize([route("GET", "/system/user", "system:user:query")])
    assert report[0].status == SyncStatus.CREATED


async def test_concurrent_run_refused(sync_service):
    await sync_service._lock.acquire()
    try:
        with pytest.raises(RuntimeError):
            await sync_service.synchronize([])
    finally:
        sync_service._lock.release()
