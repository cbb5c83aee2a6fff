"""
SQLAlchemy Declarative Base
rbac_admin/models/base.py
"""
from sqlalchemy import Column, Uuid
from sqlalchemy.orm import declarative_base
import uuid

# 创建DeclarativeBase实例
Base = declarative_base()

# 通用UUID类型（PostgreSQL原生UUID，其他方言CHAR(32)）
def uuid_column(*args, **kwargs):
    """生成普通UUID列的辅助函数（位置参数透传ForeignKey等）"""
    return Column(Uuid(as_uuid=True), *args, **kwargs)

def uuid_pk_column():
    """生成UUID主键列的辅助函数"""
    return Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        nullable=False
    )

__all__ = ['Base', 'uuid_column', 'uuid_pk_column']
