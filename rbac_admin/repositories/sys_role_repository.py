"""
角色模块数据访问层
rbac_admin/repositories/sys_role_repository.py
上次更新：2026/10/12
"""
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Collection, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlmodel import select, delete, insert, update

from rbac_admin.models import SysRole, sys_role_dept, sys_role_permission, sys_user_role


class RoleRepository:
    """角色Repo层：标准事务上下文实现"""
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

    # ------------------------------
    # 查询类方法
    # ------------------------------
    async def get_by_id(self, role_id: uuid.UUID) -> Optional[SysRole]:
        """按ID查询未删除的角色"""
        async with self.transaction() as session:
            stmt = select(SysRole).where(SysRole.id == role_id, SysRole.is_deleted == 0)
            result = await session.execute(stmt)
            return result.scalars().first()

    async def get_by_role_key(self, role_key: str) -> Optional[SysRole]:
        """按角色标识查询（标识唯一，用于创建校验）"""
        async with self.transaction() as session:
            stmt = select(SysRole).where(SysRole.role_key == role_key)
            result = await session.execute(stmt)
            return result.scalars().first()

    async def list_all(self) -> List[SysRole]:
        async with self.transaction() as session:
            stmt = (
                select(SysRole)
                .where(SysRole.is_deleted == 0)
                .order_by(SysRole.sort, SysRole.create_time, SysRole.id)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_existing_ids(self, role_ids: Collection[uuid.UUID]) -> List[SysRole]:
        """返回存在且未删除的角色"""
        if not role_ids:
            return []
        async with self.transaction() as session:
            stmt = select(SysRole).where(SysRole.id.in_(list(role_ids)), SysRole.is_deleted == 0)
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_permission_ids(self, role_id: uuid.UUID) -> List[uuid.UUID]:
        async with self.transaction() as session:
            stmt = select(sys_role_permission.c.permission_id).where(sys_role_permission.c.role_id == role_id)
            result = await session.execute(stmt)
            return [row[0] for row in result.all()]

    async def get_department_ids(self, role_id: uuid.UUID) -> List[uuid.UUID]:
        async with self.transaction() as session:
            stmt = select(sys_role_dept.c.dept_id).where(sys_role_dept.c.role_id == role_id)
            result = await session.execute(stmt)
            return [row[0] for row in result.all()]

    async def list_active_roles_for_user(self, user_id: uuid.UUID) -> List[SysRole]:
        """用户的启用角色，按(sort, create_time, id)确定顺序"""
        async with self.transaction() as session:
            stmt = (
                select(SysRole)
                .join(sys_user_role, sys_user_role.c.role_id == SysRole.id)
                .where(
                    sys_user_role.c.user_id == user_id,
                    SysRole.is_deleted == 0,
                    SysRole.status == 1
                )
                .order_by(SysRole.sort, SysRole.create_time, SysRole.id)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    # ------------------------------
    # 写方法（必须传入session）
    # ------------------------------
    async def create(self, role: SysRole, session: AsyncSession) -> SysRole:
        session.add(role)
        await session.flush()
        await session.refresh(role)
        return role

    async def update_fields(self, role_id: uuid.UUID, values: Dict, session: AsyncSession) -> None:
        if not values:
            return
        await session.execute(
            update(SysRole)
            .where(SysRole.id == role_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    async def replace_permissions(
            self,
            role_id: uuid.UUID,
            permission_ids: Collection[uuid.UUID],
            session: AsyncSession
    ) -> None:
        """全量覆盖角色权限"""
        await session.execute(delete(sys_role_permission).where(sys_role_permission.c.role_id == role_id))
        if permission_ids:
            await session.execute(
                insert(sys_role_permission),
                [{"role_id": role_id, "permission_id": pid} for pid in permission_ids]
            )

    async def replace_departments(
            self,
            role_id: uuid.UUID,
            department_ids: Collection[uuid.UUID],
            session: AsyncSession
    ) -> None:
        """全量覆盖自定义数据范围部门"""
        await session.execute(delete(sys_role_dept).where(sys_role_dept.c.role_id == role_id))
        if department_ids:
            await session.execute(
                insert(sys_role_dept),
                [{"role_id": role_id, "dept_id": dept_id} for dept_id in department_ids]
            )

    async def delete(self, role_id: uuid.UUID, session: AsyncSession) -> None:
        """逻辑删除角色并解除权限/部门/用户关联"""
        await session.execute(delete(sys_role_permission).where(sys_role_permission.c.role_id == role_id))
        await session.execute(delete(sys_role_dept).where(sys_role_dept.c.role_id == role_id))
        await session.execute(delete(sys_user_role).where(sys_user_role.c.role_id == role_id))
        await self.update_fields(role_id, {"is_deleted": 1}, session=session)
