"""
菜单节点展示元数据模型（仅MENU类型权限节点拥有）
rbac_admin/models/sys_permission_menu.py
"""
from sqlalchemy import Column, String, SmallInteger, DateTime, ForeignKey, text
from sqlalchemy.orm import relationship

from rbac_admin.models.base import Base, uuid_column, uuid_pk_column


class SysPermissionMenu(Base):
    __tablename__ = 'sys_permission_menu'
    __table_args__ = {'comment': '菜单展示元数据表'}

    # 使用UUID主键
    id = uuid_pk_column()
    permission_id = uuid_column(
        ForeignKey('sys_permission.id'),
        nullable=False,
        unique=True,
        comment='所属菜单权限节点ID'
    )
    route_path = Column(String(128), nullable=True, comment='路由路径（前端路由中定义的 URL 路径）')
    component = Column(String(128), nullable=True, comment='组件路径（组件页面完整路径，相对于 src/views/）')
    icon = Column(String(64), nullable=True, comment='菜单图标')
    visible = Column(SmallInteger, default=1, comment='显示状态（1-显示 0-隐藏）')
    sort = Column(SmallInteger, default=0, comment='排序')
    keep_alive = Column(SmallInteger, default=0, comment='是否开启页面缓存（1-是 0-否）')
    redirect = Column(String(128), nullable=True, comment='跳转路径')

    create_time = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'), comment='创建时间')
    update_time = Column(
        DateTime,
        server_default=text('CURRENT_TIMESTAMP'),
        onupdate=text('CURRENT_TIMESTAMP'),
        comment='更新时间'
    )

    permission = relationship('SysPermission', back_populates='menu_meta')

    def __repr__(self):
        return f"<SysPermissionMenu(permission_id={self.permission_id}, route_path={self.route_path})>"
