from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ProjectCreate(BaseModel):
    """Схема для создания проекта"""
    name: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = None


class ProjectUpdate(BaseModel):
    """Схема для частичного обновления проекта"""
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = None
    is_archived: Optional[bool] = Field(None, alias="isArchived")

    model_config = ConfigDict(populate_by_name=True)


class ArchiveRequest(BaseModel):
    is_archived: bool = Field(False, alias="isArchived")

    model_config = ConfigDict(populate_by_name=True)


class LinkAccessUpdate(BaseModel):
    link_access: Optional[Literal["none", "read", "write"]] = Field(None, alias="linkAccess")
    regenerate: bool = False

    model_config = ConfigDict(populate_by_name=True)


class LinkAccessResponse(BaseModel):
    link_access: str = Field(..., serialization_alias="linkAccess")
    link_token: Optional[str] = Field(None, serialization_alias="linkToken")


class PermissionResponse(BaseModel):
    user_id: str = Field(..., serialization_alias="userId")
    permission: str


class PermissionUpsert(BaseModel):
    """Выдача права по email пользователя"""
    email: EmailStr
    permission: Literal["read", "write"]


class ProjectResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    owner_id: str = Field(..., serialization_alias="ownerId")
    is_archived: bool = Field(..., serialization_alias="isArchived")
    locked_by_id: Optional[str] = Field(None, serialization_alias="lockedById")
    locked_at: Optional[datetime] = Field(None, serialization_alias="lockedAt")
    link_access: str = Field(..., serialization_alias="linkAccess")
    created_at: datetime = Field(..., serialization_alias="createdAt")
    updated_at: datetime = Field(..., serialization_alias="updatedAt")
    permissions: List[PermissionResponse] = []


class VersionCreate(BaseModel):
    comment: Optional[str] = None
    snapshot: Any


class VersionResponse(BaseModel):
    id: str
    project_id: str = Field(..., serialization_alias="projectId")
    created_by_id: str = Field(..., serialization_alias="createdById")
    created_at: datetime = Field(..., serialization_alias="createdAt")
    comment: Optional[str] = None
    snapshot: Any


class LockResponse(BaseModel):
    is_locked: bool = Field(..., serialization_alias="isLocked")
    locked_by_id: Optional[str] = Field(None, serialization_alias="lockedById")
