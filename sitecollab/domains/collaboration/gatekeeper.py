"""Рукопожатие постоянного соединения: аутентификация и авторизация.

PENDING -> AUTHENTICATED -> AUTHORIZED -> ESTABLISHED, либо REJECTED на любом шаге.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from sitecollab.core.exceptions import HandshakeRejected
from sitecollab.core.security import TokenService
from sitecollab.db.repositories.project_repository import ProjectPermissionRepository, ProjectRepository
from sitecollab.domains.projects.access import AccessLevel, resolve_access

logger = logging.getLogger(__name__)

# Коды закрытия WebSocket для отказа в рукопожатии
CLOSE_BAD_REQUEST = 4400
CLOSE_UNAUTHORIZED = 4401
CLOSE_FORBIDDEN = 4403
CLOSE_NOT_FOUND = 4404

NO_TOKEN = "no token"
NO_PROJECT_ID = "no project id"
AUTHENTICATION_FAILED = "authentication failed"
PROJECT_NOT_FOUND = "project not found"
FORBIDDEN = "forbidden"


class HandshakeState(enum.Enum):
    PENDING = "pending"
    AUTHENTICATED = "authenticated"
    AUTHORIZED = "authorized"
    ESTABLISHED = "established"
    REJECTED = "rejected"


@dataclass(frozen=True)
class SessionContext:
    """Данные соединения на все время его жизни"""
    user_id: str
    email: str
    display_name: str
    project_id: str
    access: AccessLevel

    @property
    def can_write(self) -> bool:
        return self.access >= AccessLevel.WRITE


class Handshake:
    """Одна попытка подключения"""

    def __init__(self, token: Optional[str], project_id: Optional[str], link_token: Optional[str] = None):
        self.token = (token or "").strip()
        self.project_id = (project_id or "").strip()
        self.link_token = link_token or None
        self.state = HandshakeState.PENDING
        self.context: Optional[SessionContext] = None

    def establish(self) -> SessionContext:
        if self.state is not HandshakeState.AUTHORIZED or self.context is None:
            raise RuntimeError(f"Cannot establish handshake in state {self.state.value}")
        self.state = HandshakeState.ESTABLISHED
        return self.context

    def reject(self, reason: str, close_code: int) -> HandshakeRejected:
        self.state = HandshakeState.REJECTED
        return HandshakeRejected(reason, close_code)


class ConnectionGatekeeper:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        token_service: TokenService,
        require_link_token: bool = False,
    ):
        self.session_factory = session_factory
        self.token_service = token_service
        self.require_link_token = require_link_token

    async def admit(self, handshake: Handshake) -> SessionContext:
        """Проверяет попытку подключения и возвращает контекст сессии.

        Выполняет не более одного запроса проекта и одного запроса права.
        Бросает ``HandshakeRejected`` с причиной и кодом закрытия.
        """
        if not handshake.token:
            logger.warning("Connection rejected: no token provided")
            raise handshake.reject(NO_TOKEN, CLOSE_BAD_REQUEST)
        if not handshake.project_id:
            logger.warning("Connection rejected: no project id provided")
            raise handshake.reject(NO_PROJECT_ID, CLOSE_BAD_REQUEST)

        claims = self.token_service.verify_token(handshake.token)
        if claims is None:
            logger.warning("Connection rejected: authentication failed", extra={"project_id": handshake.project_id})
            raise handshake.reject(AUTHENTICATION_FAILED, CLOSE_UNAUTHORIZED)
        handshake.state = HandshakeState.AUTHENTICATED

        log_extra = {"project_id": handshake.project_id, "user_id": claims.user_id}
        try:
            async with self.session_factory() as session:
                project = await ProjectRepository(session).get_by_id(handshake.project_id, with_permissions=False)
                if project is None:
                    logger.warning("Connection rejected: project not found", extra=log_extra)
                    raise handshake.reject(PROJECT_NOT_FOUND, CLOSE_NOT_FOUND)
                permission = await ProjectPermissionRepository(session).get_for_user(project.id, claims.user_id)
        except HandshakeRejected:
            raise
        except Exception:
            logger.exception("Connection rejected: error while checking project access", extra=log_extra)
            raise handshake.reject(AUTHENTICATION_FAILED, CLOSE_UNAUTHORIZED)

        access = resolve_access(
            project,
            claims.user_id,
            link_token=handshake.link_token,
            permissions=[permission] if permission else [],
            verify_link_token=self.require_link_token,
        )
        if access is AccessLevel.NONE:
            logger.warning(
                "Connection rejected: no access to project (link access %s)",
                project.link_access.value,
                extra=log_extra,
            )
            raise handshake.reject(FORBIDDEN, CLOSE_FORBIDDEN)

        handshake.context = SessionContext(
            user_id=claims.user_id,
            email=claims.email,
            display_name=claims.name,
            project_id=project.id,
            access=access,
        )
        handshake.state = HandshakeState.AUTHORIZED
        logger.info(
            "Socket authentication succeeded (owner=%s, access=%s)",
            project.is_owner(claims.user_id),
            access.name.lower(),
            extra=log_extra,
        )
        return handshake.context
