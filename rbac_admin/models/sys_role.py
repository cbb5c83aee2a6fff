"""
系统角色模型
rbac_admin/models/sys_role.py
上次更新：2026/10/12
- data_scope取值见DataScope枚举（1-本人 2-本部门 3-本部门及以下 4-自定义 5-全部）
- sys_role_dept仅在data_scope=CUSTOM时有数据
"""
from sqlalchemy import Column, String, SmallInteger, DateTime, ForeignKey, Table, Uuid, text
from sqlalchemy.orm import relationship

from rbac_admin.enums.sys_permissions import DataScope
from rbac_admin.models.base import Base, uuid_column, uuid_pk_column

class SysRole(Base):
    __tablename__ = 'sys_role'
    __table_args__ = {'comment': '系统角色表'}

    # 使用UUID主键
    id = uuid_pk_column()
    name = Column(String(64), nullable=False, comment='角色名称')
    role_key = Column(String(64), nullable=False, unique=True, comment='角色标识')
    sort = Column(SmallInteger, default=0, comment='显示顺序')
    status = Column(SmallInteger, default=1, comment='角色状态(1-正常 0-停用)')
    data_scope = Column(
        SmallInteger,
        nullable=False,
        default=int(DataScope.SELF),
        comment='数据权限(1-本人 2-本部门 3-本部门及以下 4-自定义 5-全部)'
    )
    description = Column(String(255), nullable=True, comment='角色描述')

    # 审计字段
    create_by = uuid_column(nullable=True, comment='创建人 ID')
    create_time = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'), comment='创建时间')
    update_by = uuid_column(nullable=True, comment='更新人ID')
    update_time = Column(
        DateTime,
        server_default=text('CURRENT_TIMESTAMP'),
        onupdate=text('CURRENT_TIMESTAMP'),
        comment='更新时间'
    )
    is_deleted = Column(SmallInteger, default=0, comment='逻辑删除标识(0-未删除 1-已删除)')

    # 关系定义
    users = relationship('SysUser', secondary='sys_user_role', back_populates='roles')
    permissions = relationship("SysPermission", secondary="sys_role_permission", back_populates="roles")
    departments = relationship("SysDept", secondary="sys_role_dept")

    def __repr__(self):
        return f"<SysRole(id={self.id}, name={self.name}, role_key={self.role_key})>"


# 角色权限关联表（多对多）
sys_role_permission = Table(
    'sys_role_permission',
    Base.metadata,
    Column('role_id', Uuid(as_uuid=True), ForeignKey('sys_role.id'), primary_key=True, comment='角色ID'),
    Column('permission_id', Uuid(as_uuid=True), ForeignKey('sys_permission.id'), primary_key=True, comment='权限ID'),
    comment='角色权限关联表'
)

# 角色自定义数据范围部门关联表（多对多）
sys_role_dept = Table(
    'sys_role_dept',
    Base.metadata,
    Column('role_id', Uuid(as_uuid=True), ForeignKey('sys_role.id'), primary_key=True, comment='角色ID'),
    Column('dept_id', Uuid(as_uuid=True), ForeignKey('sys_dept.id'), primary_key=True, comment='部门ID'),
    comment='角色数据范围部门关联表'
)
