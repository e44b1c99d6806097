from typing import Optional, List

from sqlalchemy import select, update, delete, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sitecollab.core.exceptions import NotFoundError
from sitecollab.db.models.page import Page as PageModel
from sitecollab.db.models.project import (
    Project as ProjectModel,
    ProjectPermission as ProjectPermissionModel,
    ProjectVersion as ProjectVersionModel,
    PermissionLevel,
)
from sitecollab.domains.projects.entities import Project, ProjectPermission, ProjectVersion


def _permission_to_domain(db_permission: ProjectPermissionModel) -> ProjectPermission:
    return ProjectPermission(
        id=db_permission.id,
        project_id=db_permission.project_id,
        user_id=db_permission.user_id,
        permission=db_permission.permission,
    )


class ProjectRepository:
    """Репозиторий для работы с проектами"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, project: Project) -> Project:
        """Создание проекта; владелец сразу получает право записи"""
        db_project = ProjectModel(
            id=project.id,
            name=project.name,
            description=project.description,
            owner_id=project.owner_id,
            is_archived=project.is_archived,
            link_access=project.link_access.value,
            link_token=project.link_token,
        )
        db_project.permissions.append(
            ProjectPermissionModel(user_id=project.owner_id, permission=PermissionLevel.WRITE.value)
        )

        self.session.add(db_project)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise NotFoundError("Owner not found")
        return await self.get_by_id(project.id)

    async def get_by_id(self, project_id: str, with_permissions: bool = True) -> Optional[Project]:
        """Получение проекта по id"""
        query = (
            select(ProjectModel)
            .where(ProjectModel.id == project_id)
            .execution_options(populate_existing=True)
        )
        if with_permissions:
            query = query.options(selectinload(ProjectModel.permissions))
        result = await self.session.execute(query)
        db_project = result.scalar_one_or_none()
        return self._to_domain(db_project, with_permissions) if db_project else None

    async def list_for_user(self, user_id: str) -> List[Project]:
        """Проекты, которыми пользователь владеет или которые ему открыты"""
        shared = select(ProjectPermissionModel.project_id).where(ProjectPermissionModel.user_id == user_id)
        result = await self.session.execute(
            select(ProjectModel)
            .where(or_(ProjectModel.owner_id == user_id, ProjectModel.id.in_(shared)))
            .options(selectinload(ProjectModel.permissions))
            .order_by(ProjectModel.updated_at.desc())
        )
        return [self._to_domain(db_project) for db_project in result.scalars().all()]

    async def update(self, project: Project) -> Project:
        """Обновление проекта (последняя запись побеждает)"""
        stmt = (
            update(ProjectModel)
            .where(ProjectModel.id == project.id)
            .values(
                name=project.name,
                description=project.description,
                is_archived=project.is_archived,
                locked_by_id=project.locked_by_id,
                locked_at=project.locked_at,
                link_access=project.link_access.value,
                link_token=project.link_token,
            )
        )

        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            await self.session.rollback()
            raise NotFoundError("Project not found")
        await self.session.commit()

        return await self.get_by_id(project.id)

    async def delete(self, project_id: str) -> bool:
        """Удаление проекта вместе с правами, версиями и страницами"""
        await self.session.execute(delete(PageModel).where(PageModel.project_id == project_id))
        await self.session.execute(
            delete(ProjectVersionModel).where(ProjectVersionModel.project_id == project_id)
        )
        await self.session.execute(
            delete(ProjectPermissionModel).where(ProjectPermissionModel.project_id == project_id)
        )
        result = await self.session.execute(delete(ProjectModel).where(ProjectModel.id == project_id))
        await self.session.commit()
        return result.rowcount > 0

    def _to_domain(self, db_project: ProjectModel, with_permissions: bool = True) -> Project:
        """Преобразование модели БД в доменную сущность"""
        permissions = (
            [_permission_to_domain(p) for p in db_project.permissions] if with_permissions else []
        )
        return Project(
            id=db_project.id,
            name=db_project.name,
            owner_id=db_project.owner_id,
            description=db_project.description,
            is_archived=db_project.is_archived,
            locked_by_id=db_project.locked_by_id,
            locked_at=db_project.locked_at,
            link_access=db_project.link_access,
            link_token=db_project.link_token,
            created_at=db_project.created_at,
            updated_at=db_project.updated_at,
            permissions=permissions,
        )


class ProjectPermissionRepository:
    """Репозиторий для работы с правами на проекты"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_for_user(self, project_id: str, user_id: str) -> Optional[ProjectPermission]:
        result = await self.session.execute(
            select(ProjectPermissionModel).where(
                ProjectPermissionModel.project_id == project_id,
                ProjectPermissionModel.user_id == user_id,
            )
            .execution_options(populate_existing=True)
        )
        db_permission = result.scalar_one_or_none()
        return _permission_to_domain(db_permission) if db_permission else None

    async def list_by_project(self, project_id: str) -> List[ProjectPermission]:
        result = await self.session.execute(
            select(ProjectPermissionModel).where(ProjectPermissionModel.project_id == project_id)
        )
        return [_permission_to_domain(p) for p in result.scalars().all()]

    async def upsert(self, project_id: str, user_id: str, permission: str) -> ProjectPermission:
        """Создание или обновление права (уникально по проекту и пользователю)"""
        stmt = (
            update(ProjectPermissionModel)
            .where(
                ProjectPermissionModel.project_id == project_id,
                ProjectPermissionModel.user_id == user_id,
            )
            .values(permission=permission)
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            self.session.add(
                ProjectPermissionModel(project_id=project_id, user_id=user_id, permission=permission)
            )
            try:
                await self.session.commit()
            except IntegrityError:
                # Параллельная вставка той же пары: повторяем как обновление
                await self.session.rollback()
                await self.session.execute(stmt)
                await self.session.commit()
        else:
            await self.session.commit()

        return await self.get_for_user(project_id, user_id)

    async def delete(self, project_id: str, user_id: str) -> bool:
        result = await self.session.execute(
            delete(ProjectPermissionModel).where(
                ProjectPermissionModel.project_id == project_id,
                ProjectPermissionModel.user_id == user_id,
            )
        )
        await self.session.commit()
        return result.rowcount > 0


class ProjectVersionRepository:
    """Репозиторий версий; версии только добавляются"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, version: ProjectVersion) -> ProjectVersion:
        db_version = ProjectVersionModel(
            id=version.id,
            project_id=version.project_id,
            created_by_id=version.created_by_id,
            comment=version.comment,
            snapshot=version.snapshot,
        )
        self.session.add(db_version)
        await self.session.commit()
        await self.session.refresh(db_version)
        return self._to_domain(db_version)

    async def get_by_id(self, version_id: str) -> Optional[ProjectVersion]:
        result = await self.session.execute(
            select(ProjectVersionModel).where(ProjectVersionModel.id == version_id)
        )
        db_version = result.scalar_one_or_none()
        return self._to_domain(db_version) if db_version else None

    async def list_by_project(self, project_id: str) -> List[ProjectVersion]:
        result = await self.session.execute(
            select(ProjectVersionModel)
            .where(ProjectVersionModel.project_id == project_id)
            .order_by(ProjectVersionModel.created_at.desc())
        )
        return [self._to_domain(v) for v in result.scalars().all()]

    def _to_domain(self, db_version: ProjectVersionModel) -> ProjectVersion:
        return ProjectVersion(
            id=db_version.id,
            project_id=db_version.project_id,
            created_by_id=db_version.created_by_id,
            snapshot=db_version.snapshot,
            comment=db_version.comment,
            created_at=db_version.created_at,
        )
