from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sitecollab.api.http.auth import get_current_user
from sitecollab.core.db import get_db
from sitecollab.domains.identity.entities import User
from sitecollab.domains.pages.entities import Page
from sitecollab.domains.pages.schemas import PageCreate, PageResponse, PageUpdate
from sitecollab.domains.pages.services import PageService
from sitecollab.domains.projects.services import ProjectService

router = APIRouter(prefix="/pages", tags=["pages"])


def to_page_response(page: Page) -> PageResponse:
    return PageResponse.model_validate(page)


@router.get("", response_model=List[PageResponse])
async def list_pages(
    project_id: str = Query(..., alias="projectId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Неудаленные страницы проекта в порядке создания"""
    await ProjectService(db).get_readable(project_id, current_user.id)
    pages = await PageService(db).list_pages(project_id)
    return [to_page_response(page) for page in pages]


@router.get("/by-client-id/{client_id}", response_model=PageResponse)
async def get_page_by_client_id(
    client_id: str,
    project_id: str = Query(..., alias="projectId"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await ProjectService(db).get_readable(project_id, current_user.id)
    page = await PageService(db).get_by_client_id(project_id, client_id)
    return to_page_response(page)


@router.get("/{page_id}", response_model=PageResponse)
async def get_page(
    page_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    page = await PageService(db).get_page(page_id)
    await ProjectService(db).get_readable(page.project_id, current_user.id)
    return to_page_response(page)


@router.post("", response_model=PageResponse, status_code=status.HTTP_201_CREATED)
async def create_page(
    page_data: PageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await ProjectService(db).get_writable(page_data.project_id, current_user.id)
    page, _ = await PageService(db).add_page(
        project_id=page_data.project_id,
        client_id=page_data.client_id,
        name=page_data.name,
        html=page_data.html,
        css=page_data.css,
        components=page_data.components,
        is_default=page_data.is_default,
        reject_duplicates=True,
    )
    return to_page_response(page)


@router.put("/{page_id}", response_model=PageResponse)
async def update_page(
    page_id: str,
    page_data: PageUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = PageService(db)
    page = await service.get_page(page_id)
    await ProjectService(db).get_writable(page.project_id, current_user.id)
    page = await service.update_page_by_id(page_id, name=page_data.name, changes=page_data.changes())
    return to_page_response(page)


@router.delete("/{page_id}", response_model=PageResponse)
async def delete_page(
    page_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Мягкое удаление; последнюю страницу проекта удалить нельзя"""
    service = PageService(db)
    page = await service.get_page(page_id)
    await ProjectService(db).get_writable(page.project_id, current_user.id)
    page = await service.remove_page_by_id(page_id)
    return to_page_response(page)


@router.post("/restore/{page_id}", response_model=PageResponse)
async def restore_page(
    page_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = PageService(db)
    page = await service.get_page(page_id)
    await ProjectService(db).get_writable(page.project_id, current_user.id)
    page = await service.restore_page(page_id)
    return to_page_response(page)
