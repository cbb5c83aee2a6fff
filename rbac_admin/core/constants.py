"""
权限引擎保留常量
rbac_admin/core/constants.py
由DI容器基于settings构造后注入到Service层和访问守卫，业务代码不直接引用魔法字符串
"""
import uuid
from dataclasses import dataclass
from typing import Optional, Union

from rbac_admin.core.config import settings

WILDCARD_PERMISSION_CODE = "*:*:*"


@dataclass(frozen=True)
class ReservedKeys:
    super_role_key: str
    super_username: str
    root_parent_id: uuid.UUID
    wildcard_code: str = WILDCARD_PERMISSION_CODE

    def is_root(self, parent_id: Optional[Union[str, uuid.UUID]]) -> bool:
        """父ID为空或等于根哨兵值时视为根节点"""
        if parent_id is None or parent_id == "":
            return True
        return uuid.UUID(str(parent_id)) == self.root_parent_id

    def normalize_parent(self, parent_id: Optional[Union[str, uuid.UUID]]) -> Optional[uuid.UUID]:
        """入库前将根哨兵值转换为NULL"""
        if self.is_root(parent_id):
            return None
        return uuid.UUID(str(parent_id))


def build_reserved_keys() -> ReservedKeys:
    return ReservedKeys(
        super_role_key=settings.SUPER_ROLE_KEY,
        super_username=settings.SUPER_USERNAME,
        root_parent_id=uuid.UUID(settings.ROOT_PARENT_ID),
    )
