from typing import Any, Dict, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from sitecollab.db.models.page import Page as PageModel
from sitecollab.domains.pages.entities import Page


class PageRepository:
    """Репозиторий страниц.

    Методы не фиксируют транзакцию: сервис страниц выполняет несколько
    операций и коммитит их вместе, чтобы инварианты проверялись и
    применялись в одной транзакции.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, page: Page) -> Page:
        db_page = PageModel(
            id=page.id,
            client_id=page.client_id,
            project_id=page.project_id,
            name=page.name,
            html=page.html,
            css=page.css,
            components=page.components,
            is_default=page.is_default,
            is_deleted=page.is_deleted,
        )
        self.session.add(db_page)
        await self.session.flush()
        return self._to_domain(db_page)

    async def get_by_id(self, page_id: str) -> Optional[Page]:
        result = await self.session.execute(
            select(PageModel).where(PageModel.id == page_id).execution_options(populate_existing=True)
        )
        db_page = result.scalar_one_or_none()
        return self._to_domain(db_page) if db_page else None

    async def get_by_client_id(
        self, project_id: str, client_id: str, include_deleted: bool = False
    ) -> Optional[Page]:
        """Страница по clientId (уникален в проекте, в том числе среди удаленных)"""
        query = select(PageModel).where(
            PageModel.project_id == project_id,
            PageModel.client_id == client_id,
        )
        if not include_deleted:
            query = query.where(PageModel.is_deleted.is_(False))
        result = await self.session.execute(query.execution_options(populate_existing=True))
        db_page = result.scalar_one_or_none()
        return self._to_domain(db_page) if db_page else None

    async def list_live(self, project_id: str) -> List[Page]:
        """Неудаленные страницы проекта в порядке создания"""
        result = await self.session.execute(
            select(PageModel)
            .where(PageModel.project_id == project_id, PageModel.is_deleted.is_(False))
            .order_by(PageModel.created_at.asc(), PageModel.id.asc())
            .execution_options(populate_existing=True)
        )
        return [self._to_domain(db_page) for db_page in result.scalars().all()]

    async def count_live(self, project_id: str) -> int:
        result = await self.session.execute(
            select(func.count(PageModel.id)).where(
                PageModel.project_id == project_id,
                PageModel.is_deleted.is_(False),
            )
        )
        return result.scalar_one()

    async def first_live(self, project_id: str, exclude_page_id: Optional[str] = None) -> Optional[Page]:
        query = select(PageModel).where(
            PageModel.project_id == project_id,
            PageModel.is_deleted.is_(False),
        )
        if exclude_page_id:
            query = query.where(PageModel.id != exclude_page_id)
        result = await self.session.execute(
            query.order_by(PageModel.created_at.asc(), PageModel.id.asc()).limit(1)
        )
        db_page = result.scalars().first()
        return self._to_domain(db_page) if db_page else None

    async def update_fields(self, page_id: str, values: Dict[str, Any]) -> None:
        if not values:
            return
        await self.session.execute(
            update(PageModel)
            .where(PageModel.id == page_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    async def clear_default(self, project_id: str, except_page_id: Optional[str] = None) -> int:
        """Снимает флаг по умолчанию со всех неудаленных страниц проекта одним запросом"""
        stmt = update(PageModel).where(
            PageModel.project_id == project_id,
            PageModel.is_default.is_(True),
            PageModel.is_deleted.is_(False),
        )
        if except_page_id:
            stmt = stmt.where(PageModel.id != except_page_id)
        result = await self.session.execute(
            stmt.values(is_default=False).execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _to_domain(self, db_page: PageModel) -> Page:
        return Page(
            id=db_page.id,
            client_id=db_page.client_id,
            project_id=db_page.project_id,
            name=db_page.name,
            html=db_page.html,
            css=db_page.css,
            components=db_page.components,
            is_default=db_page.is_default,
            is_deleted=db_page.is_deleted,
            created_at=db_page.created_at,
            updated_at=db_page.updated_at,
        )
