import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class RolePermission(BaseModel):
    id: uuid.UUID
    role: str
    resource: str
    can_create: bool
    can_read: bool
    can_update: bool
    can_delete: bool
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class RolePermissionUpdate(BaseModel):
    can_create: Optional[bool] = None
    can_read: Optional[bool] = None
    can_update: Optional[bool] = None
    can_delete: Optional[bool] = None
