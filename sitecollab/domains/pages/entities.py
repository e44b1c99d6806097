from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sitecollab.db.base import new_id


class Page:
    """Страница проекта (мягкое удаление через ``is_deleted``)"""

    def __init__(
        self,
        id: str,
        client_id: str,
        project_id: str,
        name: str,
        html: Optional[str] = None,
        css: Optional[str] = None,
        components: Any = None,
        is_default: bool = False,
        is_deleted: bool = False,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.client_id = client_id
        self.project_id = project_id
        self.name = name
        self.html = html
        self.css = css
        self.components = components
        self.is_default = is_default
        self.is_deleted = is_deleted
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)

    @classmethod
    def create_page(
        cls,
        project_id: str,
        client_id: str,
        name: str,
        html: Optional[str] = None,
        css: Optional[str] = None,
        components: Any = None,
        is_default: bool = False,
    ) -> "Page":
        return cls(
            id=new_id(),
            client_id=client_id,
            project_id=project_id,
            name=name,
            html=html,
            css=css,
            components=components,
            is_default=is_default,
        )

    def to_sync_payload(self) -> Dict[str, Any]:
        """Формат страницы для ``page:full-sync``: id - это clientId"""
        return {
            "id": self.client_id,
            "name": self.name,
            "html": self.html,
            "css": self.css,
            "components": self.components,
            "isDefault": self.is_default,
        }

    def __repr__(self) -> str:
        return (
            f"Page(client_id={self.client_id}, project_id={self.project_id}, "
            f"is_default={self.is_default}, is_deleted={self.is_deleted})"
        )
