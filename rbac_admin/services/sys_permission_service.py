"""
权限节点生命周期管理
rbac_admin/services/sys_permission_service.py
上次更新：2026/10/12
核心功能：
1. 创建/更新时校验权限树约束（父节点类型、编码唯一、类型不可变、API节点只读）
2. 级联删除：收集子树 → 区分API/结构节点 → 解绑角色 → API软删除 → 删除菜单元数据
   → 子节点脱钩 → 结构节点由叶到根硬删除，全部在同一事务内完成
3. 为API权限同步提供受控写入口（只有同步流程可以创建/恢复/下线API节点）
"""
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Collection, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.core.config import DEFAULT_TZ
from rbac_admin.core.constants import ReservedKeys
from rbac_admin.core.exceptions import BadRequest, Conflict, ResourceNotFound
from rbac_admin.core.log_config import request_id_ctx
from rbac_admin.enums.sys_permissions import PermissionOrigin, PermissionType
from rbac_admin.models import SysPermission
from rbac_admin.repositories.sys_permission_repository import PermissionRepository
from rbac_admin.schemas.sys_permission import (
    PermissionCreate,
    PermissionDetailOut,
    PermissionOut,
    PermissionTreeNode,
    PermissionUpdate,
)
from rbac_admin.utils.tree_index import TreeIndex

logger = logging.getLogger(__name__)

# 冒号分隔，至少两段，每段为字母/数字/下划线/中划线
CODE_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+(:[A-Za-z0-9_\-]+)+$")
API_CODE_PREFIX = "api:"
STRUCTURAL_ACTION = "access"

# 节点类型 → 允许的父节点类型（None表示允许挂在根节点）
ALLOWED_PARENT_TYPES: Dict[PermissionType, set] = {
    PermissionType.DIRECTORY: {None, PermissionType.DIRECTORY},
    PermissionType.MENU: {None, PermissionType.DIRECTORY},
    PermissionType.BUTTON: {PermissionType.MENU},
    PermissionType.API: {PermissionType.MENU},
}


# ====================== 级联删除计划 ======================
@dataclass(frozen=True)
class SoftDelete:
    """需软删除的API节点"""
    ids: Tuple[uuid.UUID, ...]


@dataclass(frozen=True)
class HardDelete:
    """需硬删除的结构节点，已按叶到根排序"""
    ordered_ids: Tuple[uuid.UUID, ...]


@dataclass(frozen=True)
class DeletionPlan:
    target_id: uuid.UUID
    collected_ids: Tuple[uuid.UUID, ...]
    soft: SoftDelete
    hard: HardDelete


def plan_cascade(nodes: Sequence, target_id: uuid.UUID) -> DeletionPlan:
    """
    基于未删除节点快照计算级联删除计划（纯函数，不访问数据库）
    :param nodes: 具备id/parent_id/type属性的节点序列
    :param target_id: 删除目标节点ID
    """
    index: TreeIndex[uuid.UUID] = TreeIndex((node.id, node.parent_id) for node in nodes)
    kinds = {node.id: node.type for node in nodes}
    collected = index.descendants(target_id)
    api_ids = tuple(node_id for node_id in collected if kinds[node_id] == PermissionType.API)
    structural = [node_id for node_id in collected if kinds[node_id] != PermissionType.API]
    # 广度优先顺序父先子后，倒序即叶到根
    return DeletionPlan(
        target_id=target_id,
        collected_ids=tuple(collected),
        soft=SoftDelete(ids=api_ids),
        hard=HardDelete(ordered_ids=tuple(reversed(structural))),
    )


class PermissionService:
    """权限Service层：权限树维护与级联删除"""
    def __init__(self, permission_repository: PermissionRepository, reserved_keys: ReservedKeys):
        self.permission_repository = permission_repository
        self.reserved_keys = reserved_keys

    # ------------------------------
    # 校验工具
    # ------------------------------
    @staticmethod
    def _validate_code(code: str) -> None:
        if not CODE_PATTERN.match(code):
            raise BadRequest(detail=f"Invalid permission code '{code}', expected colon-delimited segments")
        if code.startswith(API_CODE_PREFIX):
            raise Conflict(detail=f"Permission code prefix '{API_CODE_PREFIX}' is reserved for system API permissions")

    async def _validate_parent(
            self,
            node_type: PermissionType,
            parent_id: Optional[uuid.UUID],
            session: AsyncSession
    ) -> None:
        allowed = ALLOWED_PARENT_TYPES[node_type]
        if parent_id is None:
            if None not in allowed:
                raise Conflict(detail=f"{node_type.value} node must be attached to a MENU node")
            return
        parent = await self.permission_repository.get_by_id(parent_id, session=session)
        if not parent or parent.deleted_at is not None:
            raise ResourceNotFound(detail=f"Parent permission '{parent_id}' not found")
        if parent.type not in allowed:
            raise Conflict(
                detail=f"{node_type.value} node cannot be placed under a {parent.type.value} node"
            )

    async def _get_active(self, perm_id: uuid.UUID, session: Optional[AsyncSession] = None) -> SysPermission:
        node = await self.permission_repository.get_by_id(perm_id, session=session)
        if not node or node.deleted_at is not None:
            raise ResourceNotFound(detail=f"Permission with ID '{perm_id}' not found")
        return node

    # ------------------------------
    # 查询
    # ------------------------------
    async def get_permission(self, perm_id: uuid.UUID) -> PermissionDetailOut:
        node = await self.permission_repository.get_by_id(perm_id, with_menu_meta=True)
        if not node or node.deleted_at is not None:
            raise ResourceNotFound(detail=f"Permission with ID '{perm_id}' not found")
        return PermissionDetailOut.model_validate(node)

    async def list_permissions(
            self,
            kinds: Optional[Collection[PermissionType]] = None,
            include_deleted: bool = False
    ) -> List[PermissionOut]:
        nodes = await self.permission_repository.list_by_kind_and_status(
            kinds=kinds,
            include_soft_deleted=include_deleted
        )
        return [PermissionOut.model_validate(node) for node in nodes]

    async def get_permission_tree(self) -> List[PermissionTreeNode]:
        """一次查询构建完整权限树（排除软删除节点），同级按sort、name排序"""
        nodes = await self.permission_repository.list_all_nodes()
        index = self.permission_repository.build_index(nodes)
        tree_nodes = {node.id: PermissionTreeNode.model_validate(node) for node in nodes}

        def sort_key(node_id: uuid.UUID):
            item = tree_nodes[node_id]
            return item.sort or 0, item.name

        for node_id, item in tree_nodes.items():
            item.children = [tree_nodes[child_id] for child_id in sorted(index.children(node_id), key=sort_key)]
        return [tree_nodes[root_id] for root_id in sorted(index.roots(), key=sort_key)]

    # ------------------------------
    # 创建
    # ------------------------------
    async def create_permission(
            self,
            perm_in: PermissionCreate,
            operator_id: Optional[uuid.UUID] = None
    ) -> PermissionDetailOut:
        """创建目录/菜单/按钮节点（API节点只能由同步流程创建）"""
        if perm_in.type == PermissionType.API:
            raise Conflict(detail="API permissions are managed by the synchronizer and cannot be created manually")
        self._validate_code(perm_in.code)
        if perm_in.menu_meta is not None and perm_in.type != PermissionType.MENU:
            raise BadRequest(detail="menu_meta is only allowed on MENU nodes")

        parent_id = self.reserved_keys.normalize_parent(perm_in.parent_id)
        if perm_in.type == PermissionType.BUTTON:
            action = perm_in.action or perm_in.code.split(":")[-1]
        else:
            action = STRUCTURAL_ACTION

        async with self.permission_repository.transaction() as session:
            await self._validate_parent(perm_in.type, parent_id, session)
            if await self.permission_repository.code_exists(perm_in.code, session=session):
                raise Conflict(detail=f"Permission code '{perm_in.code}' already exists")

            node = SysPermission(
                name=perm_in.name,
                code=perm_in.code,
                type=perm_in.type,
                origin=PermissionOrigin.USER,
                parent_id=parent_id,
                action=action,
                description=perm_in.description,
                sort=perm_in.sort,
                status=perm_in.status,
                create_by=operator_id,
            )
            menu_meta = perm_in.menu_meta.model_dump() if perm_in.menu_meta is not None else None
            node = await self.permission_repository.create(node, session=session, menu_meta=menu_meta)

        logger.info(
            f"权限节点创建成功 | 类型：{node.type.value} | 编码：{node.code}",
            extra={"request_id": request_id_ctx.get()}
        )
        return await self.get_permission(node.id)

    # ------------------------------
    # 更新
    # ------------------------------
    async def update_permission(
            self,
            perm_id: uuid.UUID,
            patch: PermissionUpdate,
            operator_id: Optional[uuid.UUID] = None
    ) -> PermissionDetailOut:
        fields_set = patch.model_fields_set

        async with self.permission_repository.transaction() as session:
            node = await self._get_active(perm_id, session=session)
            if node.type == PermissionType.API:
                raise Conflict(detail="API permissions are read-only")
            if "type" in fields_set and patch.type is not None and patch.type != node.type:
                raise Conflict(detail="Permission type is immutable")
            if "menu_meta" in fields_set and patch.menu_meta is not None and node.type != PermissionType.MENU:
                raise BadRequest(detail="menu_meta is only allowed on MENU nodes")

            values: Dict = {}
            if "code" in fields_set and patch.code is not None and patch.code != node.code:
                self._validate_code(patch.code)
                if await self.permission_repository.code_exists(patch.code, exclude_id=node.id, session=session):
                    raise Conflict(detail=f"Permission code '{patch.code}' already exists")
                values["code"] = patch.code

            if "parent_id" in fields_set:
                new_parent_id = self.reserved_keys.normalize_parent(patch.parent_id)
                if new_parent_id != node.parent_id:
                    await self._validate_parent(node.type, new_parent_id, session)
                    if new_parent_id is not None:
                        nodes = await self.permission_repository.list_all_nodes(session=session)
                        index = self.permission_repository.build_index(nodes)
                        if index.is_descendant(new_parent_id, node.id):
                            raise Conflict(detail="A permission cannot be moved under itself or its descendants")
                    values["parent_id"] = new_parent_id

            for field in ("name", "sort", "status"):
                if field in fields_set and getattr(patch, field) is not None:
                    values[field] = getattr(patch, field)
            if "description" in fields_set:
                values["description"] = patch.description
            if node.type == PermissionType.BUTTON and "action" in fields_set and patch.action:
                values["action"] = patch.action
            if values:
                values["update_by"] = operator_id

            await self.permission_repository.update_fields(node.id, values, session=session)
            if "menu_meta" in fields_set and patch.menu_meta is not None:
                await self.permission_repository.upsert_menu_meta(node.id, patch.menu_meta.model_dump(), session=session)

        return await self.get_permission(perm_id)

    # ------------------------------
    # 级联删除
    # ------------------------------
    async def _execute_plan(self, plan: DeletionPlan, session: AsyncSession) -> None:
        structural_ids = plan.hard.ordered_ids
        await self.permission_repository.unbind_roles(plan.collected_ids, session=session)
        await self.permission_repository.soft_delete(plan.soft.ids, datetime.now(DEFAULT_TZ), session=session)
        await self.permission_repository.delete_menu_meta(structural_ids, session=session)
        await self.permission_repository.detach_children(structural_ids, session=session)
        for node_id in structural_ids:
            await self.permission_repository.hard_delete(node_id, session=session)

    async def _cascade_in_session(self, perm_id: uuid.UUID, session: AsyncSession) -> DeletionPlan:
        nodes = await self.permission_repository.list_all_nodes(session=session)
        plan = plan_cascade(nodes, perm_id)
        logger.info(
            f"执行级联删除 | 目标：{perm_id} | 收集节点数：{len(plan.collected_ids)} | "
            f"软删除API：{len(plan.soft.ids)} | 硬删除结构节点：{len(plan.hard.ordered_ids)}",
            extra={"request_id": request_id_ctx.get()}
        )
        await self._execute_plan(plan, session)
        return plan

    async def cascade_remove(self, perm_id: uuid.UUID) -> DeletionPlan:
        """删除节点及其子树：结构节点硬删除，API节点软删除并脱钩"""
        async with self.permission_repository.transaction() as session:
            node = await self._get_active(perm_id, session=session)
            if node.type == PermissionType.API:
                raise Conflict(detail="API permissions are managed by the synchronizer and cannot be deleted manually")
            return await self._cascade_in_session(perm_id, session)

    async def remove_many(self, perm_ids: Sequence[uuid.UUID]) -> List[uuid.UUID]:
        """批量级联删除：先整体校验，再在同一事务内逐个执行"""
        unique_ids = list(dict.fromkeys(perm_ids))
        removed: set = set()
        async with self.permission_repository.transaction() as session:
            for perm_id in unique_ids:
                node = await self._get_active(perm_id, session=session)
                if node.type == PermissionType.API:
                    raise Conflict(detail=f"Permission '{perm_id}' is a system API permission and cannot be deleted")
            for perm_id in unique_ids:
                # 已被前面的级联一并删除
                if perm_id in removed:
                    continue
                plan = await self._cascade_in_session(perm_id, session)
                removed.update(plan.collected_ids)
        return unique_ids

    # ------------------------------
    # API权限同步写入口
    # ------------------------------
    async def register_api_permission(
            self,
            code: str,
            name: str,
            action: str,
            parent_id: uuid.UUID,
            session: AsyncSession,
            description: Optional[str] = None
    ) -> SysPermission:
        await self._validate_parent(PermissionType.API, parent_id, session)
        node = SysPermission(
            name=name,
            code=code,
            type=PermissionType.API,
            origin=PermissionOrigin.SYSTEM,
            parent_id=parent_id,
            action=action,
            description=description,
        )
        return await self.permission_repository.create(node, session=session)

    async def reactivate_api_permission(self, perm_id: uuid.UUID, parent_id: uuid.UUID, session: AsyncSession) -> None:
        await self._validate_parent(PermissionType.API, parent_id, session)
        await self.permission_repository.reactivate(perm_id, parent_id, session=session)

    async def retire_api_permissions(self, perm_ids: Collection[uuid.UUID], session: AsyncSession) -> None:
        """下线本次未发现的API节点：保留角色授权，便于再次上线时恢复"""
        await self.permission_repository.soft_delete(perm_ids, datetime.now(DEFAULT_TZ), session=session)
