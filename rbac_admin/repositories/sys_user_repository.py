"""
用户模块数据访问层
rbac_admin/repositories/sys_user_repository.py
上次更新：2026/10/12
"""
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Collection, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker, selectinload
from sqlmodel import select, delete, insert, update

from rbac_admin.models import SysPosition, SysRole, SysUser, sys_user_position, sys_user_role


class UserRepository:
    """
    标准Repo层实现：
    1. 注入会话工厂，自主创建事务会话
    2. 事务上下文统一管理会话生命周期（创建→提交/回滚→关闭）
    3. 纯DB操作，无业务逻辑
    """
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

    # ------------------------------
    # 查询类方法
    # ------------------------------
    async def get_by_id(self, user_id: uuid.UUID) -> Optional[SysUser]:
        """按ID查询未删除用户（预加载角色）"""
        async with self.transaction() as session:
            stmt = (
                select(SysUser)
                .options(selectinload(SysUser.roles))
                .where(SysUser.id == user_id, SysUser.is_deleted == 0)
            )
            result = await session.execute(stmt)
            return result.scalars().first()

    async def get_with_permissions(self, user_id: uuid.UUID) -> Optional[SysUser]:
        """深度预加载：User.roles → Role.permissions，一次构建Principal"""
        async with self.transaction() as session:
            stmt = (
                select(SysUser)
                .options(selectinload(SysUser.roles).selectinload(SysRole.permissions))
                .where(SysUser.id == user_id, SysUser.is_deleted == 0)
            )
            result = await session.execute(stmt)
            return result.scalars().first()

    async def get_by_username(self, username: str) -> Optional[SysUser]:
        async with self.transaction() as session:
            stmt = select(SysUser).where(SysUser.username == username, SysUser.is_deleted == 0)
            result = await session.execute(stmt)
            return result.scalars().first()

    async def exists_username_or_email(self, username: str, email: Optional[str]) -> bool:
        """用户名/邮箱唯一校验（含已逻辑删除的用户，避免唯一索引冲突）"""
        async with self.transaction() as session:
            clause = SysUser.username == username
            if email:
                clause = clause | (SysUser.email == email)
            result = await session.execute(select(SysUser.id).where(clause))
            return result.first() is not None

    async def email_exists(self, email: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
        async with self.transaction() as session:
            stmt = select(SysUser.id).where(SysUser.email == email)
            if exclude_id is not None:
                stmt = stmt.where(SysUser.id != exclude_id)
            result = await session.execute(stmt)
            return result.first() is not None

    async def list_by_clause(self, clause) -> List[SysUser]:
        """按数据范围条件查询用户列表"""
        async with self.transaction() as session:
            stmt = (
                select(SysUser)
                .where(SysUser.is_deleted == 0, clause)
                .order_by(SysUser.create_time.desc(), SysUser.username)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_existing_position_ids(self, position_ids: Collection[uuid.UUID]) -> set:
        if not position_ids:
            return set()
        async with self.transaction() as session:
            result = await session.execute(
                select(SysPosition.id).where(SysPosition.id.in_(list(position_ids)))
            )
            return {row[0] for row in result.all()}

    async def check_role_in_use(self, role_id: uuid.UUID) -> bool:
        async with self.transaction() as session:
            result = await session.execute(
                select(sys_user_role.c.user_id).where(sys_user_role.c.role_id == role_id)
            )
            return result.first() is not None

    # ------------------------------
    # 写方法（必须传入session）
    # ------------------------------
    async def create(self, user: SysUser, session: AsyncSession) -> SysUser:
        session.add(user)
        await session.flush()
        await session.refresh(user)
        return user

    async def update_fields(self, user_id: uuid.UUID, values: Dict, session: AsyncSession) -> None:
        if not values:
            return
        await session.execute(
            update(SysUser)
            .where(SysUser.id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    async def replace_roles(self, user_id: uuid.UUID, role_ids: Collection[uuid.UUID], session: AsyncSession) -> None:
        await session.execute(delete(sys_user_role).where(sys_user_role.c.user_id == user_id))
        if role_ids:
            await session.execute(
                insert(sys_user_role),
                [{"user_id": user_id, "role_id": role_id} for role_id in role_ids]
            )

    async def replace_positions(self, user_id: uuid.UUID, position_ids: Collection[uuid.UUID], session: AsyncSession) -> None:
        await session.execute(delete(sys_user_position).where(sys_user_position.c.user_id == user_id))
        if position_ids:
            await session.execute(
                insert(sys_user_position),
                [{"user_id": user_id, "position_id": pid} for pid in position_ids]
            )

    async def delete(self, user_id: uuid.UUID, session: AsyncSession) -> None:
        """逻辑删除并解除角色/岗位关联"""
        await session.execute(delete(sys_user_role).where(sys_user_role.c.user_id == user_id))
        await session.execute(delete(sys_user_position).where(sys_user_position.c.user_id == user_id))
        await self.update_fields(user_id, {"is_deleted": 1}, session=session)
