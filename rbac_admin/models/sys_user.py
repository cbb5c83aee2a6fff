"""
系统用户模型
rbac_admin/models/sys_user.py
"""
from sqlalchemy import Column, String, SmallInteger, DateTime, ForeignKey, Table, Uuid, text
from sqlalchemy.orm import relationship

from rbac_admin.models.base import Base, uuid_column, uuid_pk_column

class SysUser(Base):
    __tablename__ = 'sys_user'
    __table_args__ = {'comment': '系统用户表'}

    # 使用UUID主键
    id = uuid_pk_column()
    username = Column(String(64), unique=True, index=True, nullable=False, comment='用户名')
    nickname = Column(String(64), comment='昵称')
    password = Column(String(100), nullable=False, comment='密码')

    # 所属部门（一个用户只归属一个部门）
    dept_id = uuid_column(ForeignKey('sys_dept.id', ondelete='SET NULL'), nullable=True, comment='部门ID')

    mobile = Column(String(20), comment='联系方式')
    status = Column(SmallInteger, default=1, comment='状态(1-正常 0-禁用)')
    email = Column(String(128), unique=True, nullable=True, comment='用户邮箱')

    # 时间戳和审计字段
    create_time = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'), comment='创建时间')
    create_by = uuid_column(nullable=True, comment='创建人ID')
    update_time = Column(
        DateTime,
        server_default=text('CURRENT_TIMESTAMP'),
        onupdate=text('CURRENT_TIMESTAMP'),
        comment='更新时间'
    )
    update_by = uuid_column(nullable=True, comment='修改人ID')
    is_deleted = Column(SmallInteger, default=0, comment='逻辑删除标识(0-未删除 1-已删除)')

    # 与角色/岗位的多对多关系
    roles = relationship('SysRole', secondary='sys_user_role', back_populates='users')
    positions = relationship('SysPosition', secondary='sys_user_position')

    def __repr__(self):
        return f"<SysUser(id={self.id}, username={self.username}, nickname={self.nickname})>"


# 用户角色关联表（多对多）
sys_user_role = Table(
    'sys_user_role',
    Base.metadata,
    Column('user_id', Uuid(as_uuid=True), ForeignKey('sys_user.id'), primary_key=True, comment='用户ID'),
    Column('role_id', Uuid(as_uuid=True), ForeignKey('sys_role.id'), primary_key=True, comment='角色ID'),
    comment='用户角色关联表'
)

# 用户岗位关联表（多对多）
sys_user_position = Table(
    'sys_user_position',
    Base.metadata,
    Column('user_id', Uuid(as_uuid=True), ForeignKey('sys_user.id'), primary_key=True, comment='用户ID'),
    Column('position_id', Uuid(as_uuid=True), ForeignKey('sys_position.id'), primary_key=True, comment='岗位ID'),
    comment='用户岗位关联表'
)
