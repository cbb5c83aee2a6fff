"""
测试认证与Principal构建
"""
import uuid
from datetime import timedelta

import pytest

from rbac_admin.core.exceptions import Unauthenticated
from rbac_admin.core.security import create_access_token
from rbac_admin.enums.sys_permissions import PermissionType
from tests.conftest import DEFAULT_PASSWORD

pytestmark = pytest.mark.asyncio


async def test_super_admin_principal_has_wildcard(auth_service, seeder, reserved_keys):
    user = await seeder.user("root")
    await seeder.bind(user, await seeder.role(reserved_keys.super_role_key))

    principal = await auth_service.build_principal(user.id)
    assert principal.is_super_admin
    assert principal.permission_codes == ["*:*:*"]


async def test_principal_codes_filtered_and_sorted(auth_service, seeder):
    menu = await seeder.permission("menu:system:user", PermissionType.MENU)
    query = await seeder.permission("system:user:query", PermissionType.BUTTON, parent=menu)
    add = await seeder.permission("system:user:add", PermissionType.BUTTON, parent=menu)
    gone = await seeder.permission("api:system:user:export", PermissionType.API, deleted=True)
    hidden = await seeder.permission("system:user:delete", PermissionType.BUTTON, parent=menu)

    editor = await seeder.role("editor", name="Editor")
    disabled = await seeder.role("disabled", status=0)
    await seeder.grant(editor, query, add, gone)
    await seeder.grant(disabled, hidden)

    user = await seeder.user("alice")
    await seeder.bind(user, editor, disabled)

    principal = await auth_service.build_principal(user.id)
    assert not principal.is_super_admin
    assert principal.permission_codes == ["system:user:add", "system:user:query"]
    assert [role.role_key for role in principal.roles] == ["editor"]
    assert {perm.code for perm in principal.roles[0].permissions} == {"system:user:add", "system:user:query"}


async def test_disabled_or_missing_user_is_unauthenticated(auth_service, seeder):
    disabled = await seeder.user("bob", status=0)
    with pytest.raises(Unauthenticated):
        await auth_service.build_principal(disabled.id)
    with pytest.raises(Unauthenticated):
        await auth_service.build_principal(uuid.uuid4())


async def test_get_current_principal_rejects_bad_tokens(auth_service, seeder):
    with pytest.raises(Unauthenticated):
        await auth_service.get_current_principal(None)
    with pytest.raises(Unauthenticated):
        await auth_service.get_current_principal("not-a-jwt")
    with pytest.raises(Unauthenticated):
        await auth_service.get_current_principal(create_access_token("not-a-uuid"))
    expired = create_access_token(uuid.uuid4(), expires_delta=timedelta(minutes=-1))
    with pytest.raises(Unauthenticated):
        await auth_service.get_current_principal(expired)


async def test_login_and_resolve(auth_service, seeder):
    user = await seeder.user("alice")
    token = await auth_service.login("alice", DEFAULT_PASSWORD)
    assert token.token_type == "bearer"
    assert token.expires_in > 0

    principal = await auth_service.get_current_principal(token.access_token)
    assert principal.user_id == user.id
    assert principal.username == "alice"
    assert principal.roles == []


async def test_authenticate_user(auth_service, seeder):
    await seeder.user("alice")
    await seeder.user("frozen", status=0)
    assert await auth_service.authenticate_user("alice", DEFAULT_PASSWORD) is not None
    assert await auth_service.authenticate_user("alice", "wrong") is None
    assert await auth_service.authenticate_user("frozen", DEFAULT_PASSWORD) is None
    assert await auth_service.authenticate_user("nobody", DEFAULT_PASSWORD) is None
    with pytest.raises(Unauthenticated):
        await auth_service.login("alice", "wrong")
