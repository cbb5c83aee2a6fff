"""
base类
rbac_admin/schemas/base.py
"""
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

class TimestampSchema(BaseSchema):
    create_time: Optional[datetime] = None
    update_time: Optional[datetime] = None

class IDSchema(BaseSchema):
    id: uuid.UUID
