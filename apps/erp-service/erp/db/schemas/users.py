import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from erp.utils.role_permissions import RoleEnum

from .common import reject_null


class UserBase(BaseModel):
    email: str
    full_name: str | None = None
    phone: str | None = None
    avatar_url: str | None = None


class UserProfileUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=120)
    phone: str | None = Field(default=None, max_length=40)
    avatar_url: str | None = Field(default=None, max_length=500)


class User(UserBase):
    id: uuid.UUID
    department_id: uuid.UUID | None = None
    department_name: str | None = None
    role: str | None = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class UserRoleUpdate(BaseModel):
    role: RoleEnum


class UserDepartmentUpdate(BaseModel):
    department_id: Optional[uuid.UUID] = None


class DepartmentBase(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str | None = None
    manager_id: uuid.UUID | None = None


class DepartmentCreate(DepartmentBase):
    pass


class DepartmentUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None
    manager_id: uuid.UUID | None = None

    @field_validator("name")
    @classmethod
    def _required(cls, v):
        return reject_null(v)


class Department(DepartmentBase):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)
