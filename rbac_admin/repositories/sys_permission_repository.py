"""
权限节点数据访问层（权限树存储）
rbac_admin/repositories/sys_permission_repository.py
上次更新：2026/10/12
- 查询类方法可传入外部session，与级联删除/同步共用同一事务；不传则自开事务
- 写方法统一要求传入session，由Service层控制事务边界
- 软删除节点（deleted_at非空）默认不参与任何遍历
"""
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, Collection, Dict, List, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker, selectinload
from sqlmodel import select, delete, update

from rbac_admin.enums.sys_permissions import PermissionType
from rbac_admin.models import SysPermission, SysPermissionMenu, sys_role_permission
from rbac_admin.utils.tree_index import TreeIndex

logger = logging.getLogger(__name__)


class PermissionRepository:
    """权限Repo层：标准事务上下文实现"""
    def __init__(self, async_session_factory: sessionmaker):
        self.async_session_factory = async_session_factory

    # ------------------------------
    # 标准异步事务上下文
    # ------------------------------
    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        session: AsyncSession = self.async_session_factory()
        try:
            await session.begin()
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            raise e
        finally:
            await session.close()

    @asynccontextmanager
    async def _use_session(self, session: Optional[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
        """复用调用方事务，未传入时自开事务"""
        if session is not None:
            yield session
            return
        async with self.transaction() as own_session:
            yield own_session

    # ------------------------------
    # 查询类方法
    # ------------------------------
    async def get_by_id(
            self,
            perm_id: uuid.UUID,
            session: Optional[AsyncSession] = None,
            with_menu_meta: bool = False
    ) -> Optional[SysPermission]:
        """按ID查询权限（包含已软删除的节点，由调用方判断）"""
        async with self._use_session(session) as s:
            stmt = select(SysPermission).where(SysPermission.id == perm_id)
            if with_menu_meta:
                stmt = stmt.options(selectinload(SysPermission.menu_meta))
            result = await s.execute(stmt)
            return result.scalars().first()

    async def get_by_code(self, code: str, session: Optional[AsyncSession] = None) -> Optional[SysPermission]:
        """按编码查询未删除的权限节点（编码在未删除节点中唯一）"""
        async with self._use_session(session) as s:
            stmt = select(SysPermission).where(
                SysPermission.code == code,
                SysPermission.deleted_at.is_(None)
            )
            result = await s.execute(stmt)
            return result.scalars().first()

    async def code_exists(
            self,
            code: str,
            exclude_id: Optional[uuid.UUID] = None,
            session: Optional[AsyncSession] = None
    ) -> bool:
        existing = await self.get_by_code(code, session=session)
        return existing is not None and existing.id != exclude_id

    async def get_children(
            self,
            parent_id: Optional[uuid.UUID],
            session: Optional[AsyncSession] = None
    ) -> List[SysPermission]:
        """查询直接子节点（parent_id为None时返回根节点）"""
        async with self._use_session(session) as s:
            parent_clause = (
                SysPermission.parent_id.is_(None) if parent_id is None
                else SysPermission.parent_id == parent_id
            )
            stmt = (
                select(SysPermission)
                .where(parent_clause, SysPermission.deleted_at.is_(None))
                .order_by(SysPermission.sort, SysPermission.name)
            )
            result = await s.execute(stmt)
            return list(result.scalars().all())

    async def get_ancestor_chain(self, node_id: uuid.UUID, session: Optional[AsyncSession] = None) -> List[SysPermission]:
        """由近及远返回祖先节点（不含自身），单次查询+内存遍历"""
        nodes = await self.list_all_nodes(session=session)
        by_id = {node.id: node for node in nodes}
        index = self.build_index(nodes)
        return [by_id[ancestor_id] for ancestor_id in index.ancestors(node_id)]

    async def list_by_kind_and_status(
            self,
            kinds: Optional[Collection[PermissionType]] = None,
            include_soft_deleted: bool = False,
            session: Optional[AsyncSession] = None
    ) -> List[SysPermission]:
        """按节点类型筛选，默认排除软删除节点（同一事务内批量更新后重新读取，需刷新已加载对象）"""
        async with self._use_session(session) as s:
            stmt = select(SysPermission).execution_options(populate_existing=True)
            if kinds:
                stmt = stmt.where(SysPermission.type.in_(list(kinds)))
            if not include_soft_deleted:
                stmt = stmt.where(SysPermission.deleted_at.is_(None))
            stmt = stmt.order_by(SysPermission.sort, SysPermission.code)
            result = await s.execute(stmt)
            return list(result.scalars().all())

    async def list_all_nodes(
            self,
            include_soft_deleted: bool = False,
            session: Optional[AsyncSession] = None
    ) -> List[SysPermission]:
        return await self.list_by_kind_and_status(
            kinds=None,
            include_soft_deleted=include_soft_deleted,
            session=session
        )

    async def get_existing_ids(
            self,
            permission_ids: Collection[uuid.UUID],
            session: Optional[AsyncSession] = None
    ) -> Set[uuid.UUID]:
        """校验权限ID有效性，返回存在且未删除的ID集合"""
        if not permission_ids:
            return set()
        async with self._use_session(session) as s:
            stmt = select(SysPermission.id).where(
                SysPermission.id.in_(list(permission_ids)),
                SysPermission.deleted_at.is_(None)
            )
            result = await s.execute(stmt)
            existing_ids = {row[0] for row in result.all()}

        invalid_ids = set(permission_ids) - existing_ids
        if invalid_ids:
            logger.warning(f"Invalid permission IDs: {invalid_ids}")
        return existing_ids

    async def count_role_bindings(self, permission_ids: Collection[uuid.UUID], session: Optional[AsyncSession] = None) -> int:
        if not permission_ids:
            return 0
        async with self._use_session(session) as s:
            stmt = select(sys_role_permission.c.role_id).where(
                sys_role_permission.c.permission_id.in_(list(permission_ids))
            )
            result = await s.execute(stmt)
            return len(result.all())

    @staticmethod
    def build_index(nodes: List[SysPermission]) -> TreeIndex[uuid.UUID]:
        return TreeIndex((node.id, node.parent_id) for node in nodes)

    # ------------------------------
    # 写方法（必须传入session）
    # ------------------------------
    async def create(
            self,
            node: SysPermission,
            session: AsyncSession,
            menu_meta: Optional[Dict] = None
    ) -> SysPermission:
        session.add(node)
        await session.flush()
        if menu_meta is not None:
            session.add(SysPermissionMenu(permission_id=node.id, **menu_meta))
            await session.flush()
        await session.refresh(node)
        return node

    async def update_fields(self, perm_id: uuid.UUID, values: Dict, session: AsyncSession) -> None:
        if not values:
            return
        stmt = (
            update(SysPermission)
            .where(SysPermission.id == perm_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)

    async def upsert_menu_meta(self, permission_id: uuid.UUID, values: Dict, session: AsyncSession) -> None:
        result = await session.execute(
            select(SysPermissionMenu).where(SysPermissionMenu.permission_id == permission_id)
        )
        meta = result.scalars().first()
        if meta is None:
            session.add(SysPermissionMenu(permission_id=permission_id, **values))
        else:
            for key, value in values.items():
                setattr(meta, key, value)
        await session.flush()

    async def unbind_roles(self, permission_ids: Collection[uuid.UUID], session: AsyncSession) -> int:
        """解除角色与权限的绑定（RolePermission）"""
        if not permission_ids:
            return 0
        result = await session.execute(
            delete(sys_role_permission).where(
                sys_role_permission.c.permission_id.in_(list(permission_ids))
            )
        )
        return result.rowcount or 0

    async def soft_delete(self, permission_ids: Collection[uuid.UUID], deleted_at: datetime, session: AsyncSession) -> None:
        """软删除并与父节点脱钩（parent_id置空）"""
        if not permission_ids:
            return
        stmt = (
            update(SysPermission)
            .where(SysPermission.id.in_(list(permission_ids)))
            .values(deleted_at=deleted_at, parent_id=None)
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)

    async def reactivate(self, perm_id: uuid.UUID, parent_id: uuid.UUID, session: AsyncSession) -> None:
        await self.update_fields(perm_id, {"deleted_at": None, "parent_id": parent_id}, session=session)

    async def delete_menu_meta(self, permission_ids: Collection[uuid.UUID], session: AsyncSession) -> None:
        if not permission_ids:
            return
        await session.execute(
            delete(SysPermissionMenu).where(SysPermissionMenu.permission_id.in_(list(permission_ids)))
        )

    async def detach_children(self, parent_ids: Collection[uuid.UUID], session: AsyncSession) -> int:
        """将集合外、仍指向这些父节点的节点改挂到根节点"""
        if not parent_ids:
            return 0
        ids = list(parent_ids)
        stmt = (
            update(SysPermission)
            .where(SysPermission.parent_id.in_(ids), SysPermission.id.not_in(ids))
            .values(parent_id=None)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    async def hard_delete(self, perm_id: uuid.UUID, session: AsyncSession) -> None:
        await session.execute(
            delete(SysPermission)
            .where(SysPermission.id == perm_id)
            .execution_options(synchronize_session=False)
        )
