"""
系统权限节点模型（目录/菜单/按钮/接口四类节点组成的权限树）
rbac_admin/models/sys_permission.py
上次更新：2026/10/12
- parent_id为空表示根节点（对外输出为ROOT_PARENT_ID哨兵值）
- code仅在未删除节点中唯一，由Service层校验；软删除的API节点保留原编码
- deleted_at只会出现在API节点上
"""
from sqlalchemy import Column, String, SmallInteger, DateTime, ForeignKey, text, Enum as SAEnum
from sqlalchemy.orm import relationship

from rbac_admin.enums.sys_permissions import PermissionType, PermissionOrigin
from rbac_admin.models.base import Base, uuid_column, uuid_pk_column


class SysPermission(Base):
    __tablename__ = "sys_permission"
    __table_args__ = {'comment': '系统权限节点表'}

    # 使用UUID主键
    id = uuid_pk_column()
    name = Column(String(64), nullable=False, comment='权限名称')
    code = Column(String(128), nullable=False, index=True, comment='权限编码（冒号分隔）')
    type = Column(
        SAEnum(PermissionType, name='permission_type', native_enum=False, length=16),
        nullable=False,
        comment='节点类型(DIRECTORY/MENU/BUTTON/API)'
    )
    origin = Column(
        SAEnum(PermissionOrigin, name='permission_origin', native_enum=False, length=16),
        nullable=False,
        default=PermissionOrigin.USER,
        comment='来源(USER-人工维护 SYSTEM-接口自动发现)'
    )
    parent_id = uuid_column(
        ForeignKey('sys_permission.id'),
        nullable=True,
        comment='父节点ID（NULL表示根节点）'
    )
    action = Column(String(64), nullable=True, comment='操作动词（菜单/目录固定为access）')
    description = Column(String(255), nullable=True, comment='描述')
    sort = Column(SmallInteger, default=0, comment='显示顺序')
    status = Column(SmallInteger, default=1, comment='状态(1-正常 0-停用)')

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
    deleted_at = Column(DateTime(timezone=True), nullable=True, comment='软删除时间（仅API节点）')

    # 关系定义
    roles = relationship("SysRole", secondary="sys_role_permission", back_populates="permissions")
    menu_meta = relationship("SysPermissionMenu", uselist=False, back_populates="permission")

    def __repr__(self):
        return f"<SysPermission(id={self.id}, type={self.type}, code={self.code})>"
