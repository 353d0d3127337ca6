import uuid
from datetime import datetime
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, ConfigDict


class AuditLogCreate(BaseModel):
    action: str
    table_name: str
    record_id: Optional[str] = None
    old_data: Optional[Dict[str, Any]] = None
    new_data: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class AuditLog(AuditLogCreate):
    id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ChangedField(BaseModel):
    field: str
    old_value: Any = None
    new_value: Any = None


class AuditLogDetail(AuditLog):
    changed_fields: List[ChangedField] = []
