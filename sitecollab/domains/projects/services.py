import logging
from typing import Any, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from sitecollab.core.exceptions import ForbiddenError, NotFoundError, ValidationFailed
from sitecollab.db.repositories.project_repository import (
    ProjectPermissionRepository, ProjectRepository, ProjectVersionRepository
)
from sitecollab.db.repositories.user_repository import UserRepository
from sitecollab.domains.projects.access import can_read, can_write
from sitecollab.domains.projects.entities import Project, ProjectPermission, ProjectVersion
from sitecollab.domains.projects.schemas import ProjectCreate, ProjectUpdate

logger = logging.getLogger(__name__)


class ProjectService:
    """Сервис проектов: CRUD, доступ по ссылке и блокировка"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.project_repository = ProjectRepository(session)

    async def create_project(self, owner_id: str, data: ProjectCreate) -> Project:
        project = Project.create_project(name=data.name, owner_id=owner_id, description=data.description)
        project = await self.project_repository.create(project)
        logger.info("Project created", extra={"project_id": project.id, "user_id": owner_id})
        return project

    async def list_projects(self, user_id: str) -> List[Project]:
        return await self.project_repository.list_for_user(user_id)

    async def get_project(self, project_id: str) -> Project:
        project = await self.project_repository.get_by_id(project_id)
        if not project:
            raise NotFoundError("Project not found")
        return project

    async def get_readable(self, project_id: str, user_id: str, link_token: Optional[str] = None) -> Project:
        project = await self.get_project(project_id)
        if not can_read(project, user_id, link_token):
            raise ForbiddenError("Forbidden")
        return project

    async def get_writable(self, project_id: str, user_id: str, link_token: Optional[str] = None) -> Project:
        project = await self.get_project(project_id)
        if not can_write(project, user_id, link_token):
            raise ForbiddenError("Forbidden")
        return project

    async def get_owned(self, project_id: str, user_id: str) -> Project:
        project = await self.get_project(project_id)
        if not project.is_owner(user_id):
            raise ForbiddenError("Forbidden: only the project owner can do this")
        return project

    async def update_project(self, project_id: str, user_id: str, data: ProjectUpdate) -> Project:
        project = await self.get_writable(project_id, user_id)
        if data.name is not None:
            project.name = data.name
        if data.description is not None:
            project.description = data.description
        if data.is_archived is not None:
            project.is_archived = data.is_archived
        return await self.project_repository.update(project)

    async def set_archived(self, project_id: str, user_id: str, is_archived: bool) -> Project:
        project = await self.get_owned(project_id, user_id)
        project.is_archived = bool(is_archived)
        return await self.project_repository.update(project)

    async def delete_project(self, project_id: str, user_id: str) -> None:
        await self.get_owned(project_id, user_id)
        await self.project_repository.delete(project_id)
        logger.info("Project deleted", extra={"project_id": project_id, "user_id": user_id})

    async def configure_link_access(
        self, project_id: str, user_id: str, link_access: Optional[str] = None, regenerate: bool = False
    ) -> Project:
        project = await self.get_owned(project_id, user_id)
        project.configure_link_access(link_access, regenerate)
        return await self.project_repository.update(project)

    async def lock(self, project_id: str, user_id: str) -> Project:
        project = await self.get_writable(project_id, user_id)
        project.lock(user_id)
        project = await self.project_repository.update(project)
        logger.info("Project locked", extra={"project_id": project_id, "user_id": user_id})
        return project

    async def unlock(self, project_id: str, user_id: str) -> Project:
        project = await self.get_writable(project_id, user_id)
        project.unlock(user_id)
        project = await self.project_repository.update(project)
        logger.info("Project unlocked", extra={"project_id": project_id, "user_id": user_id})
        return project


class PermissionService:
    """Управление правами на проект (только владелец)"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.projects = ProjectService(session)
        self.permission_repository = ProjectPermissionRepository(session)
        self.user_repository = UserRepository(session)

    async def grant(self, project_id: str, owner_id: str, email: str, permission: str) -> ProjectPermission:
        await self.projects.get_owned(project_id, owner_id)

        target = await self.user_repository.get_by_email(email)
        if not target:
            raise NotFoundError(f"User with email {email} not found")
        if target.id == owner_id:
            raise ValidationFailed("Cannot manage owner permissions through this route")

        granted = await self.permission_repository.upsert(project_id, target.id, permission)
        logger.info(
            "Permission %s granted",
            permission,
            extra={"project_id": project_id, "user_id": target.id},
        )
        return granted

    async def list_permissions(self, project_id: str, user_id: str) -> List[ProjectPermission]:
        await self.projects.get_readable(project_id, user_id)
        return await self.permission_repository.list_by_project(project_id)

    async def revoke(self, project_id: str, owner_id: str, target_user_id: str) -> None:
        await self.projects.get_owned(project_id, owner_id)
        await self.permission_repository.delete(project_id, target_user_id)


class VersionService:
    """Версии проекта: только добавление, восстановление создает копию"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.projects = ProjectService(session)
        self.version_repository = ProjectVersionRepository(session)

    async def list_versions(self, project_id: str, user_id: str) -> List[ProjectVersion]:
        await self.projects.get_readable(project_id, user_id)
        return await self.version_repository.list_by_project(project_id)

    async def create_version(
        self, project_id: str, user_id: str, snapshot: Any, comment: Optional[str] = None
    ) -> ProjectVersion:
        await self.projects.get_writable(project_id, user_id)
        version = ProjectVersion.create_version(project_id, user_id, snapshot, comment)
        return await self.version_repository.create(version)

    async def get_version(self, project_id: str, version_id: str, user_id: str) -> ProjectVersion:
        await self.projects.get_readable(project_id, user_id)
        return await self._load(project_id, version_id)

    async def restore_version(self, project_id: str, version_id: str, user_id: str) -> ProjectVersion:
        await self.projects.get_writable(project_id, user_id)
        version = await self._load(project_id, version_id)
        restored = await self.version_repository.create(version.restored_copy(user_id))
        logger.info(
            "Version %s restored as %s",
            version_id,
            restored.id,
            extra={"project_id": project_id, "user_id": user_id},
        )
        return restored

    async def _load(self, project_id: str, version_id: str) -> ProjectVersion:
        version = await self.version_repository.get_by_id(version_id)
        if not version or version.project_id != project_id:
            raise NotFoundError("Version not found")
        return version
