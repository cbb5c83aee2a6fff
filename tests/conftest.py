"""
测试公共夹具
tests/conftest.py
- 导入rbac_admin之前先写入环境变量（settings在导入时实例化）
- 每个测试使用独立的文件型sqlite+aiosqlite数据库，按Base.metadata建表
- Repo/Service直接构造，不经过DI容器
"""
import os

os.environ["ENV_FILE_PATH"] = "tests/.env.test-not-present"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "rbac-admin-test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["API_PERMISSION_SYNC_ENABLED"] = "false"

import uuid
from datetime import datetime
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import insert, update

from rbac_admin.core.config import DEFAULT_TZ
from rbac_admin.core.constants import build_reserved_keys
from rbac_admin.core.security import get_password_hash
from rbac_admin.enums.sys_permissions import DataScope, PermissionOrigin, PermissionType
from rbac_admin.models import (
    Base,
    SysDept,
    SysPermission,
    SysRole,
    SysUser,
    sys_role_dept,
    sys_role_permission,
    sys_user_role,
)
from rbac_admin.repositories.sys_dept_repository import DeptRepository
from rbac_admin.repositories.sys_permission_repository import PermissionRepository
from rbac_admin.repositories.sys_role_repository import RoleRepository
from rbac_admin.repositories.sys_user_repository import UserRepository
from rbac_admin.services.data_scope_service import DataScopeService
from rbac_admin.services.sys_auth_service import AuthService
from rbac_admin.services.sys_permission_service import PermissionService
from rbac_admin.services.sys_role_service import RoleService
from rbac_admin.services.sys_user_service import UserService

DEFAULT_PASSWORD = "secret123"


class Seeder:
    """直接写库的测试数据构造器（绕过Service层校验）"""
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def add(self, obj):
        async with self.session_factory() as session:
            async with session.begin():
                session.add(obj)
        return obj

    async def execute(self, stmt, params=None):
        async with self.session_factory() as session:
            async with session.begin():
                if params is None:
                    await session.execute(stmt)
                else:
                    await session.execute(stmt, params)

    async def permission(
            self,
            code: str,
            type: PermissionType,
            parent: Optional[SysPermission] = None,
            origin: PermissionOrigin = PermissionOrigin.USER,
            deleted: bool = False,
            sort: int = 0,
    ) -> SysPermission:
        action = code.split(":")[-1] if type in (PermissionType.BUTTON, PermissionType.API) else "access"
        return await self.add(SysPermission(
            id=uuid.uuid4(),
            name=code,
            code=code,
            type=type,
            origin=origin,
            parent_id=parent.id if parent is not None else None,
            action=action,
            sort=sort,
            status=1,
            deleted_at=datetime.now(DEFAULT_TZ) if deleted else None,
        ))

    async def dept(self, code: str, parent: Optional[SysDept] = None) -> SysDept:
        return await self.add(SysDept(
            id=uuid.uuid4(),
            name=code,
            code=code,
            parent_id=parent.id if parent is not None else None,
            is_deleted=0,
        ))

    async def set_dept_parent(self, dept: SysDept, parent: SysDept) -> None:
        await self.execute(update(SysDept).where(SysDept.id == dept.id).values(parent_id=parent.id))

    async def role(
            self,
            role_key: str,
            name: Optional[str] = None,
            data_scope: DataScope = DataScope.SELF,
            sort: int = 0,
            status: int = 1,
    ) -> SysRole:
        return await self.add(SysRole(
            id=uuid.uuid4(),
            name=name or role_key,
            role_key=role_key,
            data_scope=int(data_scope),
            sort=sort,
            status=status,
            is_deleted=0,
        ))

    async def user(
            self,
            username: str,
            dept: Optional[SysDept] = None,
            status: int = 1,
            create_by: Optional[uuid.UUID] = None,
    ) -> SysUser:
        return await self.add(SysUser(
            id=uuid.uuid4(),
            username=username,
            nickname=username,
            password=get_password_hash(DEFAULT_PASSWORD),
            dept_id=dept.id if dept is not None else None,
            status=status,
            create_by=create_by,
            is_deleted=0,
        ))

    async def grant(self, role: SysRole, *permissions: SysPermission) -> None:
        await self.execute(
            insert(sys_role_permission),
            [{"role_id": role.id, "permission_id": perm.id} for perm in permissions]
        )

    async def bind(self, user: SysUser, *roles: SysRole) -> None:
        await self.execute(
            insert(sys_user_role),
            [{"user_id": user.id, "role_id": role.id} for role in roles]
        )

    async def role_depts(self, role: SysRole, *depts: SysDept) -> None:
        await self.execute(
            insert(sys_role_dept),
            [{"role_id": role.id, "dept_id": dept.id} for dept in depts]
        )


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'rbac.sqlite'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    await engine.dispose()


@pytest.fixture
def seeder(session_factory) -> Seeder:
    return Seeder(session_factory)


@pytest.fixture
def reserved_keys():
    return build_reserved_keys()


@pytest.fixture
def permission_repository(session_factory) -> PermissionRepository:
    return PermissionRepository(session_factory)


@pytest.fixture
def role_repository(session_factory) -> RoleRepository:
    return RoleRepository(session_factory)


@pytest.fixture
def user_repository(session_factory) -> UserRepository:
    return UserRepository(session_factory)


@pytest.fixture
def dept_repository(session_factory) -> DeptRepository:
    return DeptRepository(session_factory)


@pytest.fixture
def permission_service(permission_repository, reserved_keys) -> PermissionService:
    return PermissionService(permission_repository, reserved_keys)


@pytest.fixture
def auth_service(user_repository, reserved_keys) -> AuthService:
    return AuthService(user_repository, reserved_keys)


@pytest.fixture
def data_scope_service(role_repository, user_repository, dept_repository, reserved_keys) -> DataScopeService:
    return DataScopeService(role_repository, user_repository, dept_repository, reserved_keys)


@pytest.fixture
def role_service(role_repository, permission_repository, user_repository, reserved_keys) -> RoleService:
    return RoleService(role_repository, permission_repository, user_repository, reserved_keys)


@pytest.fixture
def user_service(user_repository, role_repository, dept_repository, data_scope_service, reserved_keys) -> UserService:
    return UserService(user_repository, role_repository, dept_repository, data_scope_service, reserved_keys)
