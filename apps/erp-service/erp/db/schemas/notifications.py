import uuid
from datetime import datetime
from typing import Optional, Dict, List
from pydantic import BaseModel, ConfigDict


class UserNotificationPreferenceUpdate(BaseModel):
    email_enabled: Optional[bool] = None
    in_app_enabled: Optional[bool] = None


class UserNotificationPreference(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    notification_type: str
    email_enabled: bool
    in_app_enabled: bool
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class Notification(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    task_id: Optional[uuid.UUID] = None
    type: str
    title: str
    message: str
    is_read: bool
    read_at: Optional[datetime]
    created_at: datetime
    expires_at: Optional[datetime]
    model_config = ConfigDict(from_attributes=True)


class EmailNotificationLog(BaseModel):
    id: uuid.UUID
    notification_id: Optional[uuid.UUID] = None
    task_id: Optional[uuid.UUID] = None
    user_id: uuid.UUID
    email_address: str
    notification_type: str
    subject: str
    status: str
    provider_message_id: Optional[str]
    error_message: Optional[str]
    sent_at: Optional[datetime]
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    notifications: List[Notification]
    unread_count: int
    total_count: int


class NotificationStatsResponse(BaseModel):
    unread_count: int
    total_notifications: int


class MarkAllReadResponse(BaseModel):
    updated: int


class NotificationPreferencesResponse(BaseModel):
    preferences: Dict[str, Dict[str, bool]]
