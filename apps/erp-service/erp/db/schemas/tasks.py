import uuid
from datetime import datetime
from typing import Literal, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import reject_null

TaskStatus = Literal['pending', 'in_progress', 'completed', 'cancelled']
AssignmentStatus = Literal['pending', 'accepted', 'rejected', 'completed']


class TaskBase(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: str | None = None
    priority: int = Field(default=2, ge=1, le=5)
    due_date: datetime | None = None
    production_order_id: uuid.UUID | None = None
    production_process_id: uuid.UUID | None = None


class TaskCreate(TaskBase):
    assignee_ids: List[uuid.UUID] = []
    send_email: bool = True


class TaskUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = None
    status: Optional[TaskStatus] = None
    priority: int | None = Field(default=None, ge=1, le=5)
    due_date: datetime | None = None
    production_order_id: uuid.UUID | None = None
    production_process_id: uuid.UUID | None = None

    @field_validator("title", "status", "priority")
    @classmethod
    def _required(cls, v):
        return reject_null(v)


class TaskAssignment(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    assigned_to: uuid.UUID
    assignee_name: str | None = None
    assignee_email: str | None = None
    assigned_by: uuid.UUID | None = None
    assigned_at: datetime
    accepted_at: datetime | None = None
    declined_at: datetime | None = None
    completed_at: datetime | None = None
    status: str
    rejection_reason: str | None = None
    notes: str | None = None
    model_config = ConfigDict(from_attributes=True)


class Task(TaskBase):
    id: uuid.UUID
    status: str
    created_by: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class TaskDetail(Task):
    assignments: List[TaskAssignment] = []


class EmailDispatchResult(BaseModel):
    sent: int = 0
    failed: int = 0


class TaskCreateResponse(BaseModel):
    task: TaskDetail
    email: EmailDispatchResult | None = None


class AssigneeAdd(BaseModel):
    user_id: uuid.UUID


class AssignmentDecline(BaseModel):
    reason: str | None = None


class MyAssignmentUpdate(BaseModel):
    status: Optional[AssignmentStatus] = None
    notes: str | None = None
    rejection_reason: str | None = None


class TaskEmailRequest(BaseModel):
    task_id: uuid.UUID
    assignee_ids: List[uuid.UUID] = Field(min_length=1)
