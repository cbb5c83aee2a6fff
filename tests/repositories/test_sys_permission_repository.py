"""
测试权限树存储的读取：直接子节点、祖先链
"""
import pytest
from sqlmodel import update

from rbac_admin.enums.sys_permissions import PermissionType
from rbac_admin.models import SysPermission

pytestmark = pytest.mark.asyncio


async def test_get_children(permission_repository, seeder):
    directory = await seeder.permission("dir:system", PermissionType.DIRECTORY, sort=1)
    await seeder.permission("dir:monitor", PermissionType.DIRECTORY, sort=2)
    await seeder.permission("dir:gone", PermissionType.DIRECTORY, deleted=True)
    menu = await seeder.permission("menu:system:user", PermissionType.MENU, parent=directory)
    await seeder.permission("menu:system:role", PermissionType.MENU, parent=directory, deleted=True)

    roots = await permission_repository.get_children(None)
    assert [node.code for node in roots] == ["dir:system", "dir:monitor"]

    children = await permission_repository.get_children(directory.id)
    assert [node.id for node in children] == [menu.id]
    assert await permission_repository.get_children(menu.id) == []


async def test_get_ancestor_chain_nearest_first(permission_repository, seeder):
    directory = await seeder.permission("dir:system", PermissionType.DIRECTORY)
    menu = await seeder.permission("menu:system:user", PermissionType.MENU, parent=directory)
    button = await seeder.permission("system:user:query", PermissionType.BUTTON, parent=menu)

    chain = await permission_repository.get_ancestor_chain(button.id)
    assert [node.id for node in chain] == [menu.id, directory.id]
    assert await permission_repository.get_ancestor_chain(directory.id) == []


async def test_get_ancestor_chain_stops_on_cycle(permission_repository, seeder):
    directory = await seeder.permission("dir:system", PermissionType.DIRECTORY)
    menu = await seeder.permission("menu:system:user", PermissionType.MENU, parent=directory)
    button = await seeder.permission("system:user:query", PermissionType.BUTTON, parent=menu)
    # 人为制造 directory -> button -> menu -> directory 的环
    await seeder.execute(
        update(SysPermission).where(SysPermission.id == directory.id).values(parent_id=button.id)
    )

    chain = await permission_repository.get_ancestor_chain(button.id)
    assert [node.id for node in chain] == [menu.id, directory.id]
