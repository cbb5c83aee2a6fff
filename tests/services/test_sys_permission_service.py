"""
测试权限节点生命周期：创建/更新约束、级联删除、批量删除
"""
import uuid
from types import SimpleNamespace

import pytest

from rbac_admin.core.config import settings
from rbac_admin.core.exceptions import BadRequest, Conflict, ResourceNotFound
from rbac_admin.enums.sys_permissions import PermissionOrigin, PermissionType
from rbac_admin.schemas.sys_permission import MenuMetaIn, PermissionCreate, PermissionUpdate
from rbac_admin.services.sys_permission_service import plan_cascade

ROOT = uuid.UUID(settings.ROOT_PARENT_ID)


# ====================== 纯函数：删除计划 ======================
def node(node_id, parent_id, type):
    return SimpleNamespace(id=node_id, parent_id=parent_id, type=type)


def test_plan_cascade_partitions_and_orders_leaf_to_root():
    d, m, b, a, other = (uuid.uuid4() for _ in range(5))
    nodes = [
        node(d, None, PermissionType.DIRECTORY),
        node(m, d, PermissionType.MENU),
        node(b, m, PermissionType.BUTTON),
        node(a, m, PermissionType.API),
        node(other, None, PermissionType.MENU),
    ]
    plan = plan_cascade(nodes, d)
    assert set(plan.collected_ids) == {d, m, b, a}
    assert plan.soft.ids == (a,)
    hard = list(plan.hard.ordered_ids)
    assert set(hard) == {d, m, b}
    assert hard.index(b) < hard.index(m) < hard.index(d)


def test_plan_cascade_single_leaf():
    m, b = uuid.uuid4(), uuid.uuid4()
    plan = plan_cascade([node(m, None, PermissionType.MENU), node(b, m, PermissionType.BUTTON)], b)
    assert plan.collected_ids == (b,)
    assert plan.hard.ordered_ids == (b,)
    assert plan.soft.ids == ()


# ====================== 创建 ======================
async def create_tree(permission_service):
    directory = await permission_service.create_permission(PermissionCreate(
        name="系统管理", code="dir:system", type=PermissionType.DIRECTORY, parent_id=ROOT
    ))
    menu = await permission_service.create_permission(PermissionCreate(
        name="用户管理", code="menu:system:user", type=PermissionType.MENU, parent_id=directory.id,
        menu_meta=MenuMetaIn(route_path="/system/user", component="system/user/index")
    ))
    button = await permission_service.create_permission(PermissionCreate(
        name="查询用户", code="system:user:query", type=PermissionType.BUTTON, parent_id=menu.id
    ))
    return directory, menu, button


async def test_create_tree_and_defaults(permission_service):
    directory, menu, button = await create_tree(permission_service)
    assert directory.parent_id == ROOT
    assert directory.action == "access"
    assert menu.action == "access"
    assert menu.menu_meta is not None and menu.menu_meta.route_path == "/system/user"
    assert button.action == "query"
    assert button.parent_id == menu.id
    assert button.origin == PermissionOrigin.USER


@pytest.mark.parametrize("parent_kind, child_type", [
    ("directory", PermissionType.BUTTON),
    ("root", PermissionType.BUTTON),
    ("menu", PermissionType.MENU),
    ("menu", PermissionType.DIRECTORY),
])
async def test_create_rejects_wrong_parent_type(permission_service, parent_kind, child_type):
    directory, menu, _ = await create_tree(permission_service)
    parent_id = {"directory": directory.id, "menu": menu.id, "root": None}[parent_kind]
    with pytest.raises(Conflict):
        await permission_service.create_permission(PermissionCreate(
            name="x", code="x:y:z", type=child_type, parent_id=parent_id
        ))


async def test_create_rejects_api_type_and_prefix(permission_service):
    _, menu, _ = await create_tree(permission_service)
    with pytest.raises(Conflict):
        await permission_service.create_permission(PermissionCreate(
            name="x", code="system:user:x", type=PermissionType.API, parent_id=menu.id
        ))
    with pytest.raises(Conflict):
        await permission_service.create_permission(PermissionCreate(
            name="x", code="api:system:user:x", type=PermissionType.BUTTON, parent_id=menu.id
        ))


async def test_create_validation_errors(permission_service):
    _, menu, _ = await create_tree(permission_service)
    with pytest.raises(BadRequest):
        await permission_service.create_permission(PermissionCreate(
            name="x", code="nocolon", type=PermissionType.BUTTON, parent_id=menu.id
        ))
    with pytest.raises(BadRequest):
        await permission_service.create_permission(PermissionCreate(
            name="x", code="system:user:add", type=PermissionType.BUTTON, parent_id=menu.id,
            menu_meta=MenuMetaIn(route_path="/x")
        ))
    with pytest.raises(Conflict):
        await permission_service.create_permission(PermissionCreate(
            name="dup", code="system:user:query", type=PermissionType.BUTTON, parent_id=menu.id
        ))
    with pytest.raises(ResourceNotFound):
        await permission_service.create_permission(PermissionCreate(
            name="x", code="system:user:add", type=PermissionType.BUTTON, parent_id=uuid.uuid4()
        ))


# ====================== 更新 ======================
async def test_update_rejects_type_change_and_cycles(permission_service):
    directory, menu, button = await create_tree(permission_service)
    child_dir = await permission_service.create_permission(PermissionCreate(
        name="子目录", code="dir:system:sub", type=PermissionType.DIRECTORY, parent_id=directory.id
    ))
    with pytest.raises(Conflict):
        await permission_service.update_permission(button.id, PermissionUpdate(type=PermissionType.MENU))
    with pytest.raises(Conflict):
        await permission_service.update_permission(directory.id, PermissionUpdate(parent_id=child_dir.id))
    with pytest.raises(Conflict):
        await permission_service.update_permission(directory.id, PermissionUpdate(parent_id=directory.id))
    with pytest.raises(Conflict):
        await permission_service.update_permission(button.id, PermissionUpdate(parent_id=directory.id))


async def test_update_code_and_move_to_root(permission_service):
    directory, menu, button = await create_tree(permission_service)
    updated = await permission_service.update_permission(
        menu.id, PermissionUpdate(code="menu:system:member", parent_id=None, name="成员管理")
    )
    assert updated.code == "menu:system:member"
    assert updated.parent_id == ROOT
    assert updated.name == "成员管理"

    with pytest.raises(Conflict):
        await permission_service.update_permission(button.id, PermissionUpdate(code="menu:system:member"))


async def test_update_menu_meta(permission_service):
    _, menu, _ = await create_tree(permission_service)
    updated = await permission_service.update_permission(
        menu.id, PermissionUpdate(menu_meta=MenuMetaIn(route_path="/system/members", icon="user"))
    )
    assert updated.menu_meta.route_path == "/system/members"
    assert updated.menu_meta.icon == "user"


async def test_api_nodes_are_read_only(permission_service, seeder):
    _, menu, _ = await create_tree(permission_service)
    api = await seeder.permission(
        "api:system:user:query", PermissionType.API, parent=menu, origin=PermissionOrigin.SYSTEM
    )
    with pytest.raises(Conflict):
        await permission_service.update_permission(api.id, PermissionUpdate(name="renamed"))
    with pytest.raises(Conflict):
        await permission_service.cascade_remove(api.id)


# ====================== 级联删除 ======================
async def test_cascade_remove_directory(permission_service, permission_repository, seeder):
    directory, menu, button = await create_tree(permission_service)
    api = await seeder.permission(
        "api:system:user:query", PermissionType.API, parent=menu, origin=PermissionOrigin.SYSTEM
    )
    role = await seeder.role("editor")
    await seeder.grant(role, button, api)

    plan = await permission_service.cascade_remove(directory.id)

    assert set(plan.collected_ids) == {directory.id, menu.id, button.id, api.id}
    for structural_id in (directory.id, menu.id, button.id):
        assert await permission_repository.get_by_id(structural_id) is None
    api_row = await permission_repository.get_by_id(api.id)
    assert api_row is not None
    assert api_row.deleted_at is not None
    assert api_row.parent_id is None
    assert await permission_repository.count_role_bindings(plan.collected_ids) == 0
    assert await permission_service.get_permission_tree() == []


async def test_cascade_remove_menu(permission_service, permission_repository, seeder):
    directory, menu, button = await create_tree(permission_service)
    api = await seeder.permission(
        "api:system:user:query", PermissionType.API, parent=menu, origin=PermissionOrigin.SYSTEM
    )
    # 早先已下线但仍挂在菜单下的API节点
    legacy = await seeder.permission(
        "api:system:user:export", PermissionType.API, parent=menu,
        origin=PermissionOrigin.SYSTEM, deleted=True
    )

    await permission_service.cascade_remove(menu.id)

    assert await permission_repository.get_by_id(menu.id) is None
    assert await permission_repository.get_by_id(button.id) is None
    api_row = await permission_repository.get_by_id(api.id)
    assert api_row.deleted_at is not None
    assert api_row.parent_id is None
    legacy_row = await permission_repository.get_by_id(legacy.id)
    assert legacy_row.deleted_at is not None
    assert legacy_row.parent_id is None

    surviving = await permission_repository.get_by_id(directory.id)
    assert surviving is not None and surviving.deleted_at is None
    assert [n.code for n in await permission_service.get_permission_tree()] == ["dir:system"]


async def test_cascade_remove_missing(permission_service):
    with pytest.raises(ResourceNotFound):
        await permission_service.cascade_remove(uuid.uuid4())


async def test_remove_many(permission_service, permission_repository):
    directory, menu, button = await create_tree(permission_service)
    other = await permission_service.create_permission(PermissionCreate(
        name="其他", code="dir:other", type=PermissionType.DIRECTORY
    ))
    # menu已在directory的级联中被删除，需跳过
    removed = await permission_service.remove_many([directory.id, menu.id, other.id])
    assert removed == [directory.id, menu.id, other.id]
    assert await permission_repository.list_all_nodes() == []


async def test_remove_many_validates_before_mutation(permission_service, permission_repository, seeder):
    directory, menu, button = await create_tree(permission_service)
    api = await seeder.permission(
        "api:system:user:query", PermissionType.API, parent=menu, origin=PermissionOrigin.SYSTEM
    )
    with pytest.raises(Conflict):
        await permission_service.remove_many([button.id, api.id])
    with pytest.raises(ResourceNotFound):
        await permission_service.remove_many([button.id, uuid.uuid4()])
    # 校验失败时不做任何修改
    assert await permission_repository.get_by_id(button.id) is not None


async def test_permission_tree_ordering(permission_service):
    directory, menu, button = await create_tree(permission_service)
    await permission_service.create_permission(PermissionCreate(
        name="A-目录", code="dir:a", type=PermissionType.DIRECTORY, sort=-1
    ))
    tree = await permission_service.get_permission_tree()
    assert [n.code for n in tree] == ["dir:a", "dir:system"]
    system = tree[1]
    assert system.children[0].id == menu.id
    assert system.children[0].children[0].id == button.id
