"""
API权限同步服务
rbac_admin/services/api_permission_sync_service.py
上次更新：2026/10/12
核心功能：
1. 启动时枚举FastAPI已注册路由，读取require_permissions声明的按钮权限码（system:<菜单>:<操作>）
2. 推导API权限码 api:<模块>:<菜单>:<操作>，父节点为 menu:<模块>:<菜单> 菜单节点，菜单不存在则跳过
3. 与权限树对账：不存在→创建；已软删除→恢复；已存在→不变；本次未发现的系统API→软删除（可关闭）
4. 输出按 code → route → method 稳定排序的JSON报告，写文件失败只记录日志，不阻断启动
"""
import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from fastapi.routing import APIRoute

from rbac_admin.core.config import settings
from rbac_admin.core.constants import WILDCARD_PERMISSION_CODE
from rbac_admin.enums.sys_permissions import PermissionOrigin, PermissionType
from rbac_admin.repositories.sys_permission_repository import PermissionRepository
from rbac_admin.schemas.api_permission import ApiPermissionReportItem, SyncStatus
from rbac_admin.services.sys_permission_service import PermissionService
from rbac_admin.utils.permission_decorators import get_required_permissions, get_required_roles

logger = logging.getLogger(__name__)

DEFAULT_MODULE_KEY = "core"
DECLARED_CODE_PREFIX = "system"

# 按优先级排列：(需同时出现的路径段, 操作)
ACTION_KEYWORD_RULES: List[Tuple[Tuple[str, ...], str]] = [
    (("export",), "export"),
    (("import",), "import"),
    (("assign",), "assign"),
    (("unbind",), "unbind"),
    (("unassign",), "unbind"),
    (("enable",), "enable"),
    (("disable",), "disable"),
    (("download", "template"), "downloadTemplate"),
    (("upload", "template"), "uploadTemplate"),
    (("reset", "password"), "resetPassword"),
]
BATCH_SEGMENT = re.compile(r"batch|many")


@dataclass(frozen=True)
class RouteDescriptor:
    """
    路由登记表中的一条记录
    - path_template：去掉API前缀后的完整路径，用于报告和模块推导
    - handler_path：去掉控制器路由前缀后的方法路径，用于操作推导；为空时退回path_template
    """
    http_method: str
    path_template: str
    controller_name: str
    handler_name: str
    declared_permission_codes: Tuple[str, ...] = field(default_factory=tuple)
    declared_roles: Tuple[str, ...] = field(default_factory=tuple)
    handler_path: str = ""

    @property
    def action_path(self) -> str:
        return self.handler_path or self.path_template


def _is_path_param(segment: str) -> bool:
    return segment.startswith(":") or (segment.startswith("{") and segment.endswith("}"))


def infer_action(path_template: str, http_method: str) -> str:
    """根据路径段和HTTP方法推导操作名（关键字规则优先，其次按HTTP方法兜底）"""
    segments = [s for s in path_template.split("/") if s]
    lowered = [s.lower() for s in segments if not _is_path_param(s)]
    has_path_param = any(_is_path_param(s) for s in segments)

    for keywords, action in ACTION_KEYWORD_RULES:
        if all(keyword in lowered for keyword in keywords):
            return action

    method = http_method.upper()
    if method == "GET":
        return "get" if has_path_param else "query"
    if method == "POST":
        return "create"
    if method in ("PUT", "PATCH"):
        return "update"
    if method == "DELETE":
        return "batchDelete" if any(BATCH_SEGMENT.search(s) for s in lowered) else "delete"
    return "access"


def parse_declared_code(code: str) -> Optional[Tuple[str, str]]:
    """
    解析声明的按钮权限码
    :return: (菜单, 操作)，操作可能为空串（需推导）；非system前缀/段数不足/通配符返回None
    """
    if not code or code == WILDCARD_PERMISSION_CODE:
        return None
    parts = code.split(":")
    if len(parts) < 2 or parts[0] != DECLARED_CODE_PREFIX or not parts[1]:
        return None
    return parts[1], ":".join(parts[2:])


def strip_prefix(path: str, prefix: str) -> str:
    if prefix and path.startswith(prefix):
        path = path[len(prefix):]
    return "/" + path.strip("/")


def module_key_of(relative_path: str) -> str:
    segments = [s for s in relative_path.split("/") if s]
    if not segments or _is_path_param(segments[0]):
        return DEFAULT_MODULE_KEY
    return segments[0]


def handler_path_by_convention(relative_path: str) -> str:
    """路由前缀未知时，按 /<模块>/<控制器>/... 约定去掉前两段"""
    segments = [s for s in relative_path.split("/") if s]
    return "/" + "/".join(segments[2:])


def _walk_api_routes(routes: Iterable, prefix: str = "", router_prefix: Optional[str] = None):
    """
    递归展开路由表，产出 (完整路径, APIRoute, 控制器路由前缀)
    新版FastAPI的include_router不再把子路由复制到父级，而是挂一个惰性节点
    （original_router + include_context），这里沿着它向下展开
    """
    for route in routes:
        if isinstance(route, APIRoute):
            yield prefix + route.path, route, router_prefix
            continue
        included = getattr(route, "original_router", None)
        include_context = getattr(route, "include_context", None)
        if included is not None and include_context is not None:
            yield from _walk_api_routes(
                included.routes,
                prefix + getattr(include_context, "prefix", ""),
                included.prefix,
            )


def collect_route_descriptors(routes: Iterable, api_prefix: str = "") -> List[RouteDescriptor]:
    """从FastAPI路由表生成路由登记记录（只读取装饰器元数据，不做反射扫描）"""
    descriptors: List[RouteDescriptor] = []
    for full_path, route, router_prefix in _walk_api_routes(routes):
        endpoint = route.endpoint
        codes = get_required_permissions(endpoint)
        roles = get_required_roles(endpoint)
        path_template = strip_prefix(full_path, api_prefix)
        if router_prefix is None:
            handler_path = handler_path_by_convention(path_template)
        else:
            handler_path = strip_prefix(route.path, router_prefix)
        for http_method in sorted(route.methods or []):
            descriptors.append(RouteDescriptor(
                http_method=http_method,
                path_template=path_template,
                controller_name=endpoint.__module__.rsplit(".", 1)[-1],
                handler_name=endpoint.__name__,
                declared_permission_codes=codes,
                declared_roles=roles,
                handler_path=handler_path,
            ))
    return descriptors


class ApiPermissionSyncService:
    """API权限同步（进程内单例，不可重入）"""
    def __init__(
            self,
            permission_repository: PermissionRepository,
            permission_service: PermissionService,
            report_path: str = settings.API_PERMISSION_REPORT_PATH,
            mark_missing: bool = settings.API_PERMISSION_SYNC_MARK_MISSING
    ):
        self.permission_repository = permission_repository
        self.permission_service = permission_service
        self.report_path = report_path
        self.mark_missing = mark_missing
        self._lock = asyncio.Lock()

    async def synchronize(self, routes: Iterable[RouteDescriptor]) -> List[ApiPermissionReportItem]:
        if self._lock.locked():
            raise RuntimeError("API permission synchronization is already running")
        async with self._lock:
            report = await self._reconcile(list(routes))
        report.sort(key=lambda item: (item.code, item.route, item.method))
        self._write_report(report)

        counts: Dict[str, int] = {}
        for item in report:
            counts[item.status.value] = counts.get(item.status.value, 0) + 1
        logger.info(
            f"API权限同步完成 | 记录数：{len(report)} | 统计：{counts}",
            extra={"request_id": "app_startup"}
        )
        return report

    async def _reconcile(self, routes: List[RouteDescriptor]) -> List[ApiPermissionReportItem]:
        report: List[ApiPermissionReportItem] = []
        seen_codes: set = set()

        async with self.permission_repository.transaction() as session:
            menus = {
                node.code: node
                for node in await self.permission_repository.list_by_kind_and_status(
                    kinds=[PermissionType.MENU], session=session
                )
            }
            api_nodes: Dict[str, object] = {}
            for node in await self.permission_repository.list_by_kind_and_status(
                    kinds=[PermissionType.API], include_soft_deleted=True, session=session
            ):
                # 同一编码存在多条记录时优先取未删除的
                current = api_nodes.get(node.code)
                if current is None or (current.deleted_at is not None and node.deleted_at is None):
                    api_nodes[node.code] = node

            for route in routes:
                for declared in route.declared_permission_codes:
                    parsed = parse_declared_code(declared)
                    if parsed is None:
                        continue
                    menu, action = parsed
                    action = action or infer_action(route.action_path, route.http_method)
                    module = module_key_of(route.path_template)
                    api_code = f"api:{module}:{menu}:{action}"
                    menu_code = f"menu:{module}:{menu}"

                    parent = menus.get(menu_code)
                    if parent is None:
                        status = SyncStatus.SKIPPED
                        logger.warning(
                            f"API权限父菜单不存在，跳过 | 编码：{api_code} | 菜单：{menu_code}",
                            extra={"request_id": "app_startup"}
                        )
                    else:
                        seen_codes.add(api_code)
                        existing = api_nodes.get(api_code)
                        if existing is None:
                            api_nodes[api_code] = await self.permission_service.register_api_permission(
                                code=api_code,
                                name=f"{route.http_method} {route.path_template}",
                                action=action,
                                parent_id=parent.id,
                                session=session,
                                description=f"{route.controller_name}.{route.handler_name}",
                            )
                            status = SyncStatus.CREATED
                        elif existing.deleted_at is not None:
                            await self.permission_service.reactivate_api_permission(existing.id, parent.id, session=session)
                            existing.deleted_at = None
                            existing.parent_id = parent.id
                            status = SyncStatus.REACTIVATED
                        else:
                            status = SyncStatus.EXISTS

                    report.append(ApiPermissionReportItem(
                        code=api_code,
                        action=action,
                        controller=route.controller_name,
                        method=route.handler_name,
                        http_method=route.http_method,
                        route=route.path_template,
                        menu_code=menu_code,
                        status=status,
                    ))

            if self.mark_missing and not routes:
                # 一条路由都没发现时视为扫描异常，不做下线
                logger.warning(
                    "未发现任何路由，跳过下线未发现的API权限",
                    extra={"request_id": "app_startup"}
                )
            elif self.mark_missing:
                stale_ids = [
                    node.id for code, node in api_nodes.items()
                    if node.deleted_at is None
                    and node.origin == PermissionOrigin.SYSTEM
                    and code not in seen_codes
                ]
                if stale_ids:
                    await self.permission_service.retire_api_permissions(stale_ids, session=session)
                    logger.info(
                        f"下线未发现的API权限 | 数量：{len(stale_ids)}",
                        extra={"request_id": "app_startup"}
                    )
        return report

    def _write_report(self, report: List[ApiPermissionReportItem]) -> None:
        try:
            out_file = Path(self.report_path)
            out_file.parent.mkdir(parents=True, exist_ok=True)
            payload = [item.model_dump(mode="json", by_alias=True) for item in report]
            out_file.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            logger.info(f"API权限扫描报告已生成：{out_file}", extra={"request_id": "app_startup"})
        except OSError as e:
            logger.warning(f"写出API权限扫描报告失败：{e}", extra={"request_id": "app_startup"})
