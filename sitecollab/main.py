import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sitecollab.api.http.auth import router as auth_router
from sitecollab.api.http.errors import register_exception_handlers
from sitecollab.api.http.health import router as health_router
from sitecollab.api.http.pages import router as pages_router
from sitecollab.api.http.projects import router as projects_router
from sitecollab.api.http.users import router as users_router
from sitecollab.api.ws.sync import router as websocket_router
from sitecollab.config import Settings, get_settings
from sitecollab.core.db import build_engine, build_session_factory, create_schema
from sitecollab.core.logging_config import configure_logging
from sitecollab.core.security import TokenService
from sitecollab.domains.collaboration.connections import ConnectionManager
from sitecollab.domains.collaboration.gatekeeper import ConnectionGatekeeper
from sitecollab.domains.collaboration.presence import PresenceTracker
from sitecollab.domains.collaboration.services import CollaborationEventRouter

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        engine = build_engine(settings)
        if settings.create_schema_on_startup:
            await create_schema(engine)

        session_factory = build_session_factory(engine)
        token_service = TokenService(settings)
        presence = PresenceTracker()
        connections = ConnectionManager()

        app.state.settings = settings
        app.state.engine = engine
        app.state.session_factory = session_factory
        app.state.token_service = token_service
        app.state.presence = presence
        app.state.connections = connections
        app.state.gatekeeper = ConnectionGatekeeper(
            session_factory, token_service, require_link_token=settings.collab_require_link_token
        )
        app.state.collaboration = CollaborationEventRouter(
            presence, connections, session_factory, enforce_write_access=settings.collab_enforce_write_access
        )
        logger.info("SiteCollab started")
        try:
            yield
        finally:
            presence.clear()
            await engine.dispose()
            logger.info("SiteCollab stopped")

    app = FastAPI(
        title="SiteCollab",
        description="Сервер совместного редактирования проектов сайтов",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Настройка CORS для работы с frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Подключаем роутеры
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(projects_router)
    app.include_router(pages_router)
    app.include_router(websocket_router)

    @app.get("/")
    async def root():
        """Корневой эндпоинт"""
        return {
            "message": "SiteCollab API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()
