"""
岗位模型
rbac_admin/models/sys_position.py
"""
from sqlalchemy import Column, String, SmallInteger, DateTime, ForeignKey, text

from rbac_admin.models.base import Base, uuid_column, uuid_pk_column


class SysPosition(Base):
    __tablename__ = 'sys_position'
    __table_args__ = {'comment': '岗位表'}

    id = uuid_pk_column()
    name = Column(String(64), nullable=False, comment='岗位名称')
    code = Column(String(64), nullable=False, unique=True, comment='岗位编码')
    dept_id = uuid_column(ForeignKey('sys_dept.id', ondelete='SET NULL'), nullable=True, comment='所属部门ID')
    sort = Column(SmallInteger, default=0, comment='显示顺序')
    status = Column(SmallInteger, default=1, comment='状态(1-正常 0-停用)')
    create_time = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'), comment='创建时间')

    def __repr__(self):
        return f"<SysPosition(id={self.id}, name={self.name}, code={self.code})>"
