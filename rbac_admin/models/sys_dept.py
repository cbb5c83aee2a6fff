"""
部门模型（数据范围解析只读取 id / parent_id / is_deleted）
rbac_admin/models/sys_dept.py
parent_id仅做自关联引用，历史数据中可能存在环，遍历方需自行防环
"""
from sqlalchemy import Column, String, SmallInteger, DateTime, ForeignKey, text

from rbac_admin.models.base import Base, uuid_column, uuid_pk_column


class SysDept(Base):
    __tablename__ = 'sys_dept'
    __table_args__ = {'comment': '部门表（数据范围的组织维度）'}

    id = uuid_pk_column()
    name = Column(String(100), nullable=False, comment='部门名称')
    code = Column(String(100), nullable=False, unique=True, comment='部门编号')
    parent_id = uuid_column(
        ForeignKey('sys_dept.id', ondelete='SET NULL'),
        nullable=True,
        index=True,
        comment='上级部门ID，NULL为顶级部门'
    )
    sort = Column(SmallInteger, default=0, comment='同级排序')
    create_time = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'), comment='创建时间')
    is_deleted = Column(SmallInteger, default=0, comment='逻辑删除标识(1-已删除 0-未删除)')

    def __repr__(self):
        return f"<SysDept(id={self.id}, code={self.code}, parent_id={self.parent_id})>"
