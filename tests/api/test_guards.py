"""
测试路由器级访问守卫（TestClient走完整的中间件/依赖注入链路）
- 数据库使用NullPool的文件型sqlite，避免连接跨事件循环复用
- 覆盖容器的会话工厂，不触发lifespan（不做API权限同步）
"""
import asyncio

import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from rbac_admin.core.config import settings
from rbac_admin.enums.sys_permissions import PermissionType
from rbac_admin.main import create_app
from rbac_admin.models import Base
from tests.conftest import DEFAULT_PASSWORD, Seeder

API = settings.API_V1_STR


async def seed(engine, factory) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    seeder = Seeder(factory)

    menu = await seeder.permission("menu:system:user", PermissionType.MENU)
    query = await seeder.permission("system:user:query", PermissionType.BUTTON, parent=menu)

    super_role = await seeder.role(settings.SUPER_ROLE_KEY)
    viewer_role = await seeder.role("viewer", name="Viewer")
    await seeder.grant(viewer_role, query)

    root = await seeder.user("root")
    viewer = await seeder.user("viewer")
    await seeder.user("nobody")
    await seeder.bind(root, super_role)
    await seeder.bind(viewer, viewer_role)


@pytest.fixture
def client(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'api.sqlite'}", poolclass=NullPool)
    factory = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    asyncio.run(seed(engine, factory))

    app = create_app()
    container = app.state.container
    container.async_session_factory.override(providers.Object(factory))
    yield TestClient(app)
    container.async_session_factory.reset_override()


def login(client: TestClient, username: str) -> dict:
    response = client.post(f"{API}/auth/login", data={"username": username, "password": DEFAULT_PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def test_login_failure(client):
    response = client.post(f"{API}/auth/login", data={"username": "viewer", "password": "wrong"})
    assert response.status_code == 401
    assert response.json()["code"] == 401
    assert "X-Request-ID" in response.headers


def test_missing_token_is_unauthenticated(client):
    response = client.get(f"{API}/system/users")
    assert response.status_code == 401
    assert response.headers.get("WWW-Authenticate") == "Bearer"

    response = client.get(f"{API}/system/users", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


def test_declared_permission_allows(client):
    response = client.get(f"{API}/system/users", headers=login(client, "viewer"))
    assert response.status_code == 200, response.text
    assert response.json()["code"] == "00000"


def test_missing_permission_forbidden(client):
    viewer = login(client, "viewer")
    response = client.post(
        f"{API}/system/users",
        json={"username": "carol", "password": "secret123"},
        headers=viewer,
    )
    assert response.status_code == 403
    assert response.json()["request_id"]

    response = client.get(f"{API}/system/users", headers=login(client, "nobody"))
    assert response.status_code == 403


def test_super_admin_passes_every_guard(client):
    root = login(client, "root")
    response = client.post(
        f"{API}/system/users",
        json={"username": "carol", "password": "secret123"},
        headers=root,
    )
    assert response.status_code == 200, response.text
    assert response.json()["data"]["username"] == "carol"

    response = client.get(f"{API}/system/permissions/tree", headers=root)
    assert response.status_code == 200
    assert [node["code"] for node in response.json()["data"]] == ["menu:system:user"]


def test_read_me(client):
    response = client.get(f"{API}/auth/me", headers=login(client, "viewer"))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["username"] == "viewer"
    assert data["roles"] == ["viewer"]
    assert data["permission_codes"] == ["system:user:query"]
    assert data["is_super_admin"] is False

    response = client.get(f"{API}/auth/me", headers=login(client, "root"))
    assert response.json()["data"]["permission_codes"] == ["*:*:*"]
