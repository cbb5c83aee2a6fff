"""
API权限同步报告Schemas
rbac_admin/schemas/api_permission.py
报告字段以驼峰别名输出，供离线导入工具消费
"""
from enum import Enum

from pydantic import Field

from rbac_admin.schemas.base import BaseSchema


class SyncStatus(str, Enum):
    CREATED = "created"
    EXISTS = "exists"
    REACTIVATED = "reactivated"
    SKIPPED = "skipped"


class ApiPermissionReportItem(BaseSchema):
    code: str = Field(..., description="API权限编码 api:<模块>:<菜单>:<操作>")
    action: str
    controller: str
    method: str = Field(..., description="处理函数名")
    http_method: str = Field(..., alias="httpMethod")
    route: str
    menu_code: str = Field(..., alias="menuCode")
    status: SyncStatus
