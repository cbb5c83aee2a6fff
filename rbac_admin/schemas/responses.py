"""
统一成功响应模型
rbac_admin/schemas/responses.py
错误响应由main.py的异常处理器统一输出core/responses.py的ErrorResponse
"""
from datetime import datetime
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field, field_serializer

T = TypeVar('T')

SUCCESS_CODE = "00000"


class ApiResponse(BaseModel, Generic[T]):
    code: str = Field(default=SUCCESS_CODE, description="业务响应码，成功为00000")
    data: Optional[T] = Field(default=None, description="响应数据")
    msg: str = Field(default="操作成功", description="响应消息")
    timestamp: datetime = Field(default_factory=datetime.now, description="响应时间")

    @field_serializer("timestamp")
    def _format_timestamp(self, v: datetime) -> str:
        return v.strftime('%Y-%m-%d %H:%M:%S')

    @classmethod
    def success(cls, data: T = None, msg: str = "操作成功") -> 'ApiResponse[T]':
        return cls(code=SUCCESS_CODE, data=data, msg=msg)
