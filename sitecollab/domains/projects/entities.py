import secrets
from datetime import datetime, timezone
from typing import Any, List, Optional

from sitecollab.core.exceptions import ConflictError
from sitecollab.db.base import new_id
from sitecollab.db.models.project import LinkAccess, PermissionLevel


def generate_link_token() -> str:
    """Непрозрачный токен для доступа по ссылке"""
    return secrets.token_urlsafe(18)


class ProjectPermission:
    """Право пользователя на проект (не более одного на пару проект/пользователь)"""

    def __init__(self, id: str, project_id: str, user_id: str, permission: str):
        self.id = id
        self.project_id = project_id
        self.user_id = user_id
        self.permission = PermissionLevel(permission)

    @property
    def grants_write(self) -> bool:
        return self.permission is PermissionLevel.WRITE

    def __repr__(self) -> str:
        return f"ProjectPermission(project_id={self.project_id}, user_id={self.user_id}, permission={self.permission.value})"


class Project:
    """Проект: владелец, права, доступ по ссылке и эксклюзивная блокировка"""

    def __init__(
        self,
        id: str,
        name: str,
        owner_id: str,
        description: Optional[str] = None,
        is_archived: bool = False,
        locked_by_id: Optional[str] = None,
        locked_at: Optional[datetime] = None,
        link_access: str = LinkAccess.NONE.value,
        link_token: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        permissions: Optional[List[ProjectPermission]] = None,
    ):
        self.id = id
        self.name = name
        self.owner_id = owner_id
        self.description = description
        self.is_archived = is_archived
        self.locked_by_id = locked_by_id
        self.locked_at = locked_at
        self.link_access = LinkAccess(link_access)
        self.link_token = link_token
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)
        self.permissions = permissions or []

    @classmethod
    def create_project(cls, name: str, owner_id: str, description: Optional[str] = None) -> "Project":
        return cls(id=new_id(), name=name, owner_id=owner_id, description=description)

    @property
    def is_locked(self) -> bool:
        return self.locked_by_id is not None

    def is_owner(self, user_id: str) -> bool:
        return self.owner_id == user_id

    def lock(self, user_id: str) -> None:
        """Захват блокировки; повторный захват владельцем обновляет время"""
        if self.locked_by_id and self.locked_by_id != user_id:
            raise ConflictError("Project is already locked by another user")
        self.locked_by_id = user_id
        self.locked_at = datetime.now(timezone.utc)

    def unlock(self, user_id: str) -> None:
        if not self.locked_by_id or self.locked_by_id != user_id:
            raise ConflictError("You do not hold the lock")
        self.locked_by_id = None
        self.locked_at = None

    def configure_link_access(self, link_access: Optional[str] = None, regenerate: bool = False) -> None:
        if link_access is not None:
            self.link_access = LinkAccess(link_access)
        if regenerate or not self.link_token:
            self.link_token = generate_link_token()

    def __repr__(self) -> str:
        return f"Project(id={self.id}, name={self.name}, owner_id={self.owner_id})"


class ProjectVersion:
    """Неизменяемый снимок содержимого проекта"""

    def __init__(
        self,
        id: str,
        project_id: str,
        created_by_id: str,
        snapshot: Any,
        comment: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.project_id = project_id
        self.created_by_id = created_by_id
        self.snapshot = snapshot
        self.comment = comment
        self.created_at = created_at or datetime.now(timezone.utc)

    @classmethod
    def create_version(
        cls, project_id: str, created_by_id: str, snapshot: Any, comment: Optional[str] = None
    ) -> "ProjectVersion":
        return cls(
            id=new_id(),
            project_id=project_id,
            created_by_id=created_by_id,
            snapshot=snapshot,
            comment=comment,
        )

    def restored_copy(self, restored_by_id: str) -> "ProjectVersion":
        """Восстановление создает новую версию, история не меняется"""
        return ProjectVersion.create_version(
            project_id=self.project_id,
            created_by_id=restored_by_id,
            snapshot=self.snapshot,
            comment=f"Restored from version {self.id}",
        )
