"""
权限节点相关的Pydantic Schemas
rbac_admin/schemas/sys_permission.py
上次更新：2026/10/12
- parent_id入参可传None或根哨兵值，均表示挂在根节点下
- 出参parent_id为空时统一输出根哨兵值
"""
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from rbac_admin.core.constants import build_reserved_keys
from rbac_admin.enums.sys_permissions import PermissionOrigin, PermissionType
from rbac_admin.schemas.base import BaseSchema, IDSchema, TimestampSchema


class MenuMetaIn(BaseSchema):
    route_path: Optional[str] = Field(None, description="路由路径", examples=["/system/user"])
    component: Optional[str] = Field(None, description="组件路径", examples=["system/user/index"])
    icon: Optional[str] = Field(None, description="菜单图标")
    visible: int = Field(1, description="显示状态（1-显示 0-隐藏）")
    sort: int = Field(0, description="排序")
    keep_alive: int = Field(0, description="是否缓存页面（1-是 0-否）")
    redirect: Optional[str] = Field(None, description="跳转路径")


class MenuMetaOut(MenuMetaIn):
    pass


class PermissionCreate(BaseSchema):
    name: str = Field(..., max_length=64, description="权限名称", examples=["用户管理"])
    code: str = Field(..., max_length=128, description="权限编码", examples=["menu:system:user"])
    type: PermissionType = Field(..., description="节点类型")
    parent_id: Optional[uuid.UUID] = Field(None, description="父节点ID（空或根哨兵值表示根节点）")
    action: Optional[str] = Field(None, max_length=64, description="操作动词，按钮缺省取编码最后一段")
    description: Optional[str] = Field(None, max_length=255, description="描述")
    sort: int = Field(0, description="显示顺序")
    status: int = Field(1, description="状态(1-正常 0-停用)")
    menu_meta: Optional[MenuMetaIn] = Field(None, description="菜单展示元数据（仅MENU）")


class PermissionUpdate(BaseSchema):
    """未传字段保持不变；显式传parent_id=None表示移动到根节点"""
    name: Optional[str] = Field(None, max_length=64)
    code: Optional[str] = Field(None, max_length=128)
    type: Optional[PermissionType] = None
    parent_id: Optional[uuid.UUID] = None
    action: Optional[str] = Field(None, max_length=64)
    description: Optional[str] = Field(None, max_length=255)
    sort: Optional[int] = None
    status: Optional[int] = None
    menu_meta: Optional[MenuMetaIn] = None


class PermissionOut(IDSchema, TimestampSchema):
    name: str
    code: str
    type: PermissionType
    origin: PermissionOrigin
    parent_id: uuid.UUID
    action: Optional[str] = None
    description: Optional[str] = None
    sort: Optional[int] = 0
    status: Optional[int] = 1
    deleted_at: Optional[datetime] = None

    @field_validator("parent_id", mode="before")
    @classmethod
    def _root_sentinel(cls, v):
        return v if v is not None else build_reserved_keys().root_parent_id


class PermissionDetailOut(PermissionOut):
    menu_meta: Optional[MenuMetaOut] = None


class PermissionTreeNode(PermissionOut):
    children: List["PermissionTreeNode"] = Field(default_factory=list)


class PermissionBatchDelete(BaseSchema):
    ids: List[uuid.UUID] = Field(..., min_length=1, description="待删除的权限ID列表")
