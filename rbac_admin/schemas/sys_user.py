"""
用户相关的Pydantic Schemas
rbac_admin/schemas/sys_user.py
"""
import uuid
from typing import List, Optional

from pydantic import EmailStr, Field

from rbac_admin.schemas.base import BaseSchema, IDSchema, TimestampSchema


class UserBase(BaseSchema):
    username: str = Field(..., min_length=2, max_length=64, description="用户名", examples=["john_doe"])
    nickname: Optional[str] = Field(None, max_length=64, description="昵称")
    email: Optional[EmailStr] = Field(None, description="邮箱地址", examples=["john@example.com"])
    mobile: Optional[str] = Field(None, max_length=20, description="联系方式")
    dept_id: Optional[uuid.UUID] = Field(None, description="所属部门ID")
    status: int = Field(1, description="状态(1-正常 0-禁用)")


class UserCreate(UserBase):
    password: str = Field(..., min_length=6, description="密码")
    role_ids: List[uuid.UUID] = Field(default_factory=list, description="角色ID列表")
    position_ids: List[uuid.UUID] = Field(default_factory=list, description="岗位ID列表")


class UserUpdate(BaseSchema):
    nickname: Optional[str] = Field(None, max_length=64)
    email: Optional[EmailStr] = None
    mobile: Optional[str] = Field(None, max_length=20)
    dept_id: Optional[uuid.UUID] = None
    status: Optional[int] = None
    position_ids: Optional[List[uuid.UUID]] = None


class UserOut(UserBase, IDSchema, TimestampSchema):
    pass


class Token(BaseSchema):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class Message(BaseSchema):
    message: str
