"""
DI容器
项目核心框架文件
rbac_admin/di/container.py
"""
from dependency_injector import containers, providers
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from rbac_admin.core.config import settings
from rbac_admin.core.constants import build_reserved_keys
from rbac_admin.repositories.sys_dept_repository import DeptRepository
from rbac_admin.repositories.sys_permission_repository import PermissionRepository
from rbac_admin.repositories.sys_role_repository import RoleRepository
from rbac_admin.repositories.sys_user_repository import UserRepository
from rbac_admin.services.api_permission_sync_service import ApiPermissionSyncService
from rbac_admin.services.data_scope_service import DataScopeService
from rbac_admin.services.sys_auth_service import AuthService
from rbac_admin.services.sys_permission_service import PermissionService
from rbac_admin.services.sys_role_service import RoleService
from rbac_admin.services.sys_user_service import UserService
from rbac_admin.utils.permission_checker import AccessEvaluator


def engine_options() -> dict:
    """SQLite不支持连接池参数"""
    if settings.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": settings.DB_POOL_PRE_PING,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_recycle": settings.DB_POOL_RECYCLE,
    }


class Container(containers.DeclarativeContainer):
    # 1. 底层：数据库引擎（单例，全局唯一）
    async_engine = providers.Singleton(
        create_async_engine,
        settings.SQLALCHEMY_DATABASE_URI,
        echo=False,
        **engine_options(),
    )

    # 2. 中层：会话工厂（单例，全局唯一）
    async_session_factory = providers.Singleton(
        sessionmaker,
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )

    # 保留常量（超级角色/超级用户/根节点哨兵）
    reserved_keys = providers.Singleton(build_reserved_keys)

    # 3. Repo层：注入会话工厂
    user_repository = providers.Factory(
        UserRepository,
        async_session_factory=async_session_factory
    )
    permission_repository = providers.Factory(
        PermissionRepository,
        async_session_factory=async_session_factory
    )
    role_repository = providers.Factory(
        RoleRepository,
        async_session_factory=async_session_factory
    )
    dept_repository = providers.Factory(
        DeptRepository,
        async_session_factory=async_session_factory
    )

    # 4. Service层：注入Repo和保留常量
    permission_service = providers.Factory(
        PermissionService,
        permission_repository=permission_repository,
        reserved_keys=reserved_keys
    )
    auth_service = providers.Factory(
        AuthService,
        user_repository=user_repository,
        reserved_keys=reserved_keys
    )
    role_service = providers.Factory(
        RoleService,
        role_repository=role_repository,
        permission_repository=permission_repository,
        user_repository=user_repository,
        reserved_keys=reserved_keys
    )
    data_scope_service = providers.Factory(
        DataScopeService,
        role_repository=role_repository,
        user_repository=user_repository,
        dept_repository=dept_repository,
        reserved_keys=reserved_keys
    )
    user_service = providers.Factory(
        UserService,
        user_repository=user_repository,
        role_repository=role_repository,
        dept_repository=dept_repository,
        data_scope_service=data_scope_service,
        reserved_keys=reserved_keys
    )

    # API权限同步：进程内单例（持有互斥锁）
    api_permission_sync_service = providers.Singleton(
        ApiPermissionSyncService,
        permission_repository=permission_repository,
        permission_service=permission_service,
        report_path=settings.API_PERMISSION_REPORT_PATH,
        mark_missing=settings.API_PERMISSION_SYNC_MARK_MISSING
    )

    # 访问评估器：无状态单例
    access_evaluator = providers.Singleton(
        AccessEvaluator,
        reserved_keys=reserved_keys
    )

    # 5. 模块扫描：API端点模块
    wiring_config = containers.WiringConfiguration(
        modules=[
            "rbac_admin.api.deps",
            "rbac_admin.api.v1.endpoints.auth",
            "rbac_admin.api.v1.endpoints.permissions",
            "rbac_admin.api.v1.endpoints.roles",
            "rbac_admin.api.v1.endpoints.users",
        ]
    )
