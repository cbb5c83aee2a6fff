"""
部门数据访问层（供数据范围解析使用）
rbac_admin/repositories/sys_dept_repository.py
"""
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Collection, List, Optional, Set, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlmodel import select

from rbac_admin.models import SysDept


class DeptRepository:
    """部门Repo层：标准事务上下文实现"""
    def __init__(self, async_session_factory: sessionmaker):
        self.async_session_factory = async_session_factory

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

    async def get_by_id(self, dept_id: uuid.UUID) -> Optional[SysDept]:
        async with self.transaction() as session:
            stmt = select(SysDept).where(SysDept.id == dept_id, SysDept.is_deleted == 0)
            result = await session.execute(stmt)
            return result.scalars().first()

    async def list_edges(self) -> List[Tuple[uuid.UUID, Optional[uuid.UUID]]]:
        """一次查询全部未删除部门的(id, parent_id)"""
        async with self.transaction() as session:
            stmt = select(SysDept.id, SysDept.parent_id).where(SysDept.is_deleted == 0)
            result = await session.execute(stmt)
            return [(row[0], row[1]) for row in result.all()]

    async def get_existing_ids(self, dept_ids: Collection[uuid.UUID]) -> Set[uuid.UUID]:
        if not dept_ids:
            return set()
        async with self.transaction() as session:
            stmt = select(SysDept.id).where(SysDept.id.in_(list(dept_ids)), SysDept.is_deleted == 0)
            result = await session.execute(stmt)
            return {row[0] for row in result.all()}
