from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from sitecollab.api.http.auth import get_current_user
from sitecollab.core.db import get_db
from sitecollab.domains.identity.entities import User
from sitecollab.domains.projects.entities import Project, ProjectPermission, ProjectVersion
from sitecollab.domains.projects.schemas import (
    ArchiveRequest, LinkAccessResponse, LinkAccessUpdate, LockResponse, PermissionResponse,
    PermissionUpsert, ProjectCreate, ProjectResponse, ProjectUpdate, VersionCreate, VersionResponse
)
from sitecollab.domains.projects.services import PermissionService, ProjectService, VersionService

router = APIRouter(prefix="/projects", tags=["projects"])


def to_permission_response(permission: ProjectPermission) -> PermissionResponse:
    return PermissionResponse(user_id=permission.user_id, permission=permission.permission)


def to_project_response(project: Project) -> ProjectResponse:
    return ProjectResponse(
        id=project.id,
        name=project.name,
        description=project.description,
        owner_id=project.owner_id,
        is_archived=project.is_archived,
        locked_by_id=project.locked_by_id,
        locked_at=project.locked_at,
        link_access=project.link_access.value,
        created_at=project.created_at,
        updated_at=project.updated_at,
        permissions=[to_permission_response(p) for p in project.permissions],
    )


def to_version_response(version: ProjectVersion) -> VersionResponse:
    return VersionResponse(
        id=version.id,
        project_id=version.project_id,
        created_by_id=version.created_by_id,
        created_at=version.created_at,
        comment=version.comment,
        snapshot=version.snapshot,
    )


def to_lock_response(project: Project) -> LockResponse:
    return LockResponse(is_locked=project.is_locked, locked_by_id=project.locked_by_id)


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Создание проекта; владелец получает право на запись"""
    project = await ProjectService(db).create_project(current_user.id, project_data)
    return to_project_response(project)


@router.get("", response_model=List[ProjectResponse])
async def list_projects(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Проекты пользователя: собственные и доступные по правам"""
    projects = await ProjectService(db).list_projects(current_user.id)
    return [to_project_response(project) for project in projects]


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    link_token: Optional[str] = Query(None, alias="linkToken"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    project = await ProjectService(db).get_readable(project_id, current_user.id, link_token)
    return to_project_response(project)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    update_data: ProjectUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    project = await ProjectService(db).update_project(project_id, current_user.id, update_data)
    return to_project_response(project)


@router.patch("/{project_id}/archive", response_model=ProjectResponse)
async def archive_project(
    project_id: str,
    archive_data: ArchiveRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Архивирование или возврат из архива (только владелец)"""
    project = await ProjectService(db).set_archived(project_id, current_user.id, archive_data.is_archived)
    return to_project_response(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await ProjectService(db).delete_project(project_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Доступ по ссылке

@router.patch("/{project_id}/link-access", response_model=LinkAccessResponse)
async def configure_link_access(
    project_id: str,
    link_data: LinkAccessUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    project = await ProjectService(db).configure_link_access(
        project_id, current_user.id, link_data.link_access, link_data.regenerate
    )
    return LinkAccessResponse(link_access=project.link_access.value, link_token=project.link_token)


# Права

@router.get("/{project_id}/permissions", response_model=List[PermissionResponse])
async def list_permissions(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    permissions = await PermissionService(db).list_permissions(project_id, current_user.id)
    return [to_permission_response(p) for p in permissions]


@router.post("/{project_id}/permissions", response_model=PermissionResponse)
async def grant_permission(
    project_id: str,
    permission_data: PermissionUpsert,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Выдача или изменение права по email (только владелец)"""
    permission = await PermissionService(db).grant(
        project_id, current_user.id, permission_data.email, permission_data.permission
    )
    return to_permission_response(permission)


@router.delete("/{project_id}/permissions/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_permission(
    project_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await PermissionService(db).revoke(project_id, current_user.id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Версии

@router.get("/{project_id}/versions", response_model=List[VersionResponse])
async def list_versions(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    versions = await VersionService(db).list_versions(project_id, current_user.id)
    return [to_version_response(v) for v in versions]


@router.post("/{project_id}/versions", response_model=VersionResponse, status_code=status.HTTP_201_CREATED)
async def create_version(
    project_id: str,
    version_data: VersionCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    version = await VersionService(db).create_version(
        project_id, current_user.id, version_data.snapshot, version_data.comment
    )
    return to_version_response(version)


@router.get("/{project_id}/versions/{version_id}", response_model=VersionResponse)
async def get_version(
    project_id: str,
    version_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    version = await VersionService(db).get_version(project_id, version_id, current_user.id)
    return to_version_response(version)


@router.post(
    "/{project_id}/versions/{version_id}/restore",
    response_model=VersionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def restore_version(
    project_id: str,
    version_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Восстановление версии: создается новая версия с тем же снимком"""
    version = await VersionService(db).restore_version(project_id, version_id, current_user.id)
    return to_version_response(version)


# Блокировка

@router.post("/{project_id}/locking/lock", response_model=LockResponse)
async def lock_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    project = await ProjectService(db).lock(project_id, current_user.id)
    return to_lock_response(project)


@router.post("/{project_id}/locking/unlock", response_model=LockResponse)
async def unlock_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    project = await ProjectService(db).unlock(project_id, current_user.id)
    return to_lock_response(project)
