from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class PageCreate(BaseModel):
    """Создание страницы через HTTP"""
    project_id: str = Field(..., alias="projectId", min_length=1)
    client_id: str = Field(..., alias="clientId", min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    html: Optional[str] = None
    css: Optional[str] = None
    components: Any = None
    is_default: bool = Field(False, alias="isDefault")

    model_config = ConfigDict(populate_by_name=True)


class PageUpdate(BaseModel):
    """Частичное обновление: применяются только переданные поля"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    html: Optional[str] = None
    css: Optional[str] = None
    components: Any = None
    is_default: Optional[bool] = Field(None, alias="isDefault")

    model_config = ConfigDict(populate_by_name=True)

    def changes(self):
        return {
            name: getattr(self, name)
            for name in ("html", "css", "components", "is_default")
            if name in self.model_fields_set
        }


class PageResponse(BaseModel):
    id: str
    client_id: str = Field(..., serialization_alias="clientId")
    project_id: str = Field(..., serialization_alias="projectId")
    name: str
    html: Optional[str] = None
    css: Optional[str] = None
    components: Any = None
    is_default: bool = Field(..., serialization_alias="isDefault")
    is_deleted: bool = Field(..., serialization_alias="isDeleted")
    created_at: datetime = Field(..., serialization_alias="createdAt")
    updated_at: datetime = Field(..., serialization_alias="updatedAt")

    model_config = ConfigDict(from_attributes=True)
