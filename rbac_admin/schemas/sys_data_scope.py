"""
数据范围谓词
rbac_admin/schemas/sys_data_scope.py
谓词本身只是数据：不限制 / 仅本人 / 所属部门在集合内
to_clause负责把谓词翻译成SQLAlchemy条件，由查询层按自己的列调用
"""
import uuid
from enum import Enum
from typing import List, Optional

from pydantic import Field
from sqlalchemy import false, true

from rbac_admin.schemas.base import BaseSchema


class PredicateKind(str, Enum):
    UNRESTRICTED = "unrestricted"
    OWNER_EQUALS = "owner_equals"
    DEPARTMENT_IN = "department_in"


class DataScopePredicate(BaseSchema):
    kind: PredicateKind
    user_id: Optional[uuid.UUID] = None
    department_ids: List[uuid.UUID] = Field(default_factory=list)

    @classmethod
    def unrestricted(cls) -> "DataScopePredicate":
        return cls(kind=PredicateKind.UNRESTRICTED)

    @classmethod
    def owner_equals(cls, user_id: uuid.UUID) -> "DataScopePredicate":
        return cls(kind=PredicateKind.OWNER_EQUALS, user_id=user_id)

    @classmethod
    def department_in(cls, department_ids: List[uuid.UUID]) -> "DataScopePredicate":
        return cls(kind=PredicateKind.DEPARTMENT_IN, department_ids=sorted(set(department_ids), key=str))

    @property
    def is_unrestricted(self) -> bool:
        return self.kind == PredicateKind.UNRESTRICTED

    def to_clause(self, owner_column, department_column):
        """
        生成where条件
        :param owner_column: 行归属人列（如SysUser.create_by）
        :param department_column: 行归属部门列（如SysUser.dept_id）
        """
        if self.kind == PredicateKind.UNRESTRICTED:
            return true()
        if self.kind == PredicateKind.OWNER_EQUALS:
            return owner_column == self.user_id
        if not self.department_ids:
            return false()
        return department_column.in_(self.department_ids)
