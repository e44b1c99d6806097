import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from sitecollab.core.exceptions import ConflictError, InvariantViolation, NotFoundError
from sitecollab.db.repositories.page_repository import PageRepository
from sitecollab.domains.pages.entities import Page

logger = logging.getLogger(__name__)

LAST_PAGE_MESSAGE = "Cannot delete the only page in the project"

_CONTENT_FIELDS = ("html", "css", "components")


class PageService:
    """Жизненный цикл страниц проекта и его инварианты.

    Все изменения страниц (ретранслятор и HTTP) проходят через этот сервис.
    После каждой операции среди неудаленных страниц проекта ровно одна
    страница по умолчанию, если есть хотя бы одна страница; последнюю
    неудаленную страницу удалить нельзя.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.page_repository = PageRepository(session)

    async def list_pages(self, project_id: str) -> List[Page]:
        return await self.page_repository.list_live(project_id)

    async def sync_payload(self, project_id: str) -> List[Dict[str, Any]]:
        """Все неудаленные страницы в формате ``page:full-sync``"""
        pages = await self.page_repository.list_live(project_id)
        return [page.to_sync_payload() for page in pages]

    async def get_page(self, page_id: str) -> Page:
        page = await self.page_repository.get_by_id(page_id)
        if not page:
            raise NotFoundError("Page not found")
        return page

    async def get_by_client_id(self, project_id: str, client_id: str) -> Page:
        page = await self.page_repository.get_by_client_id(project_id, client_id)
        if not page:
            raise NotFoundError("Page not found")
        return page

    async def add_page(
        self,
        project_id: str,
        client_id: str,
        name: str,
        html: Optional[str] = None,
        css: Optional[str] = None,
        components: Any = None,
        is_default: bool = False,
        reject_duplicates: bool = False,
    ) -> Tuple[Page, bool]:
        """Добавление страницы по clientId.

        Возвращает страницу и признак того, что она была создана или
        восстановлена. Живой дубликат clientId оставляется без изменений
        (или приводит к ``ConflictError`` при ``reject_duplicates``);
        мягко удаленная страница с тем же clientId восстанавливается.
        """
        async with self._transaction():
            existing = await self.page_repository.get_by_client_id(
                project_id, client_id, include_deleted=True
            )

            if existing and not existing.is_deleted:
                if reject_duplicates:
                    raise ConflictError("A page with this id already exists in the project")
                logger.debug(
                    "Page already exists, nothing to add",
                    extra={"project_id": project_id, "page_id": client_id},
                )
                return existing, False

            live_count = await self.page_repository.count_live(project_id)
            make_default = bool(is_default) or live_count == 0
            if make_default:
                await self.page_repository.clear_default(project_id)

            if existing:
                await self.page_repository.update_fields(existing.id, {
                    "is_deleted": False,
                    "name": name,
                    "html": html or existing.html,
                    "css": css or existing.css,
                    "components": components or existing.components,
                    "is_default": make_default,
                })
                page_id = existing.id
                logger.info("Page restored", extra={"project_id": project_id, "page_id": client_id})
            else:
                page = await self.page_repository.create(Page.create_page(
                    project_id=project_id,
                    client_id=client_id,
                    name=name,
                    html=html or None,
                    css=css or None,
                    components=components or None,
                    is_default=make_default,
                ))
                page_id = page.id
                logger.info("Page created", extra={"project_id": project_id, "page_id": client_id})

            await self._enforce_default_invariant(project_id, preferred_page_id=page_id if make_default else None)

        return await self.page_repository.get_by_id(page_id), True

    async def remove_page(self, project_id: str, client_id: str) -> Optional[Page]:
        """Мягкое удаление страницы по clientId; ``None``, если живой страницы нет"""
        async with self._transaction():
            page = await self.page_repository.get_by_client_id(project_id, client_id)
            if not page:
                logger.info(
                    "Page to remove not found",
                    extra={"project_id": project_id, "page_id": client_id},
                )
                return None
            await self._soft_delete(page)

        return await self.page_repository.get_by_id(page.id)

    async def remove_page_by_id(self, page_id: str) -> Page:
        async with self._transaction():
            page = await self.page_repository.get_by_id(page_id)
            if not page or page.is_deleted:
                raise NotFoundError("Page not found")
            await self._soft_delete(page)

        return await self.page_repository.get_by_id(page_id)

    async def update_page(
        self,
        project_id: str,
        client_id: str,
        name: Optional[str] = None,
        changes: Optional[Dict[str, Any]] = None,
    ) -> Optional[Page]:
        """Частичное обновление живой страницы по clientId; ``None``, если ее нет"""
        async with self._transaction():
            page = await self.page_repository.get_by_client_id(project_id, client_id)
            if not page:
                logger.info(
                    "Page to update not found",
                    extra={"project_id": project_id, "page_id": client_id},
                )
                return None
            await self._apply_update(page, name, changes or {})

        return await self.page_repository.get_by_id(page.id)

    async def update_page_by_id(
        self, page_id: str, name: Optional[str] = None, changes: Optional[Dict[str, Any]] = None
    ) -> Page:
        async with self._transaction():
            page = await self.page_repository.get_by_id(page_id)
            if not page or page.is_deleted:
                raise NotFoundError("Page not found")
            await self._apply_update(page, name, changes or {})

        return await self.page_repository.get_by_id(page_id)

    async def restore_page(self, page_id: str) -> Page:
        """Восстановление мягко удаленной страницы по ее id"""
        async with self._transaction():
            page = await self.page_repository.get_by_id(page_id)
            if not page:
                raise NotFoundError("Page not found")
            if page.is_deleted:
                await self.page_repository.update_fields(page.id, {"is_deleted": False, "is_default": False})
                await self._enforce_default_invariant(page.project_id)
                logger.info("Page restored", extra={"project_id": page.project_id, "page_id": page.client_id})

        return await self.page_repository.get_by_id(page_id)

    async def _soft_delete(self, page: Page) -> None:
        live_count = await self.page_repository.count_live(page.project_id)
        if live_count <= 1:
            raise InvariantViolation(LAST_PAGE_MESSAGE)

        await self.page_repository.update_fields(page.id, {"is_deleted": True, "is_default": False})
        logger.info(
            "Page marked as deleted",
            extra={"project_id": page.project_id, "page_id": page.client_id},
        )

        if page.is_default:
            replacement = await self.page_repository.first_live(page.project_id, exclude_page_id=page.id)
            if replacement:
                await self.page_repository.update_fields(replacement.id, {"is_default": True})
                logger.info(
                    "New default page %s",
                    replacement.client_id,
                    extra={"project_id": page.project_id, "page_id": replacement.client_id},
                )

        await self._enforce_default_invariant(page.project_id)

    async def _apply_update(self, page: Page, name: Optional[str], changes: Dict[str, Any]) -> None:
        values: Dict[str, Any] = {}
        if name:
            values["name"] = name
        for field in _CONTENT_FIELDS:
            if field in changes:
                values[field] = changes[field]

        is_default = changes.get("is_default")
        if is_default:
            await self.page_repository.clear_default(page.project_id, except_page_id=page.id)
            values["is_default"] = True
        elif is_default is False and page.is_default:
            # Снять флаг можно только назначив по умолчанию другую страницу
            logger.debug(
                "Ignoring attempt to unset the default page",
                extra={"project_id": page.project_id, "page_id": page.client_id},
            )

        await self.page_repository.update_fields(page.id, values)
        logger.info("Page updated", extra={"project_id": page.project_id, "page_id": page.client_id})

        await self._enforce_default_invariant(
            page.project_id, preferred_page_id=page.id if is_default else None
        )

    async def _enforce_default_invariant(self, project_id: str, preferred_page_id: Optional[str] = None) -> None:
        """Ровно одна страница по умолчанию среди неудаленных, если они есть"""
        pages = await self.page_repository.list_live(project_id)
        if not pages:
            return

        defaults = [page for page in pages if page.is_default]
        if len(defaults) == 1 and (preferred_page_id is None or defaults[0].id == preferred_page_id):
            return

        keep = None
        if preferred_page_id is not None:
            keep = next((page for page in pages if page.id == preferred_page_id), None)
        if keep is None:
            keep = defaults[0] if defaults else pages[0]

        await self.page_repository.clear_default(project_id, except_page_id=keep.id)
        if not keep.is_default:
            await self.page_repository.update_fields(keep.id, {"is_default": True})

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        """Commit при успехе, rollback при любой ошибке"""
        try:
            yield self.session
        except Exception:
            await self.session.rollback()
            raise
        await self.session.commit()
