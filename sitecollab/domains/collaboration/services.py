import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from sitecollab.core.exceptions import DomainError, ForbiddenError
from sitecollab.domains.collaboration import schemas
from sitecollab.domains.collaboration.connections import CollabConnection, ConnectionManager
from sitecollab.domains.collaboration.presence import PresenceTracker
from sitecollab.domains.pages.services import PageService

logger = logging.getLogger(__name__)

# События, изменяющие документ или страницы
MUTATING_EVENTS = frozenset({
    "editor:full-update", "editor:change", "page:add", "page:remove", "page:update",
})

# Сообщения для сбоев хранилища
_PERSISTENCE_ERROR_MESSAGES = {
    "page:add": "Error adding page",
    "page:remove": "Error removing page",
    "page:update": "Error updating page",
    "page:request-sync": "Error syncing pages",
}

Handler = Callable[[CollabConnection, Any, Dict[str, Any]], Awaitable[None]]


def now_ms() -> int:
    return int(time.time() * 1000)


class CollaborationEventRouter:
    """Маршрутизация событий соединения в комнату проекта.

    Обработчики одного соединения выполняются по порядку поступления.
    Любая ошибка обработчика превращается в событие ``error`` только для
    отправителя; соединение и остальные участники не затрагиваются.
    """

    def __init__(
        self,
        presence: PresenceTracker,
        connections: ConnectionManager,
        session_factory: async_sessionmaker,
        enforce_write_access: bool = True,
    ):
        self.presence = presence
        self.connections = connections
        self.session_factory = session_factory
        self.enforce_write_access = enforce_write_access
        self._handlers: Dict[str, Handler] = {
            "user-join": self._on_join,
            "user-leave": self._on_leave,
            "ping": self._on_ping,
            "editor:full-update": self._on_full_update,
            "editor:change": self._on_change,
            "cursor:move": self._on_cursor_move,
            "chat:message": self._on_chat_message,
            "page:add": self._on_page_add,
            "page:remove": self._on_page_remove,
            "page:update": self._on_page_update,
            "page:select": self._on_page_select,
            "page:request-sync": self._on_request_sync,
        }

    async def dispatch(self, connection: CollabConnection, message: str) -> None:
        """Граница обработки одного входящего кадра"""
        event_type = None
        try:
            frame = schemas.parse_envelope(message)
            event_type = frame["type"]
            event = schemas.validate_event(frame)
            self._authorize(connection, event_type)
            await self._handlers[event_type](connection, event, frame.get("data"))
        except DomainError as e:
            logger.info(
                "Event refused: %s",
                e.message,
                extra=self._log_extra(connection, event_type),
            )
            await self._send_error(connection, e.message)
        except SQLAlchemyError:
            logger.exception("Database error while handling event", extra=self._log_extra(connection, event_type))
            await self._send_error(
                connection, _PERSISTENCE_ERROR_MESSAGES.get(event_type, "Database error")
            )
        except Exception:
            logger.exception("Unexpected error while handling event", extra=self._log_extra(connection, event_type))
            await self._send_error(connection, f"Error processing {event_type or 'message'}")

    async def disconnect(self, connection: CollabConnection) -> None:
        """Очистка при разрыве соединения.

        Присутствие снимается до первой точки ожидания; запоздавшие
        обработчики видят ``closed`` и не регистрируют пользователя заново.
        """
        if connection.closed:
            return
        connection.closed = True
        was_in_room = self.connections.remove(connection)
        left = self.presence.leave(connection.project_id, connection.user_id, connection.id)
        logger.info("Client disconnected", extra=self._log_extra(connection))

        # Соединение могло быть уже убрано из комнаты после сбоя отправки,
        # но список присутствия все равно изменился
        if was_in_room or left:
            # Рассылка завершается даже при отмене задачи соединения
            await asyncio.shield(self._broadcast_presence(connection.project_id))

    def _authorize(self, connection: CollabConnection, event_type: str) -> None:
        if (
            self.enforce_write_access
            and event_type in MUTATING_EVENTS
            and not connection.context.can_write
        ):
            raise ForbiddenError("Forbidden: read-only access to this project")

    @staticmethod
    def _require_own_project(connection: CollabConnection, project_id: str) -> None:
        if project_id != connection.project_id:
            raise ForbiddenError("Forbidden: event targets another project")

    # Присутствие

    async def _on_join(self, connection: CollabConnection, event, raw: Any) -> None:
        if connection.closed:
            return
        ctx = connection.context
        self.presence.join(ctx.project_id, ctx.user_id, ctx.display_name, connection.id)
        self.connections.add(connection)
        logger.info("User joined project room", extra=self._log_extra(connection, "user-join"))
        await self._broadcast_presence(ctx.project_id)

    async def _on_leave(self, connection: CollabConnection, event, raw: Any) -> None:
        was_in_room = self.connections.remove(connection)
        left = self.presence.leave(connection.project_id, connection.user_id, connection.id)
        if not (was_in_room or left):
            return
        logger.info("User left project room", extra=self._log_extra(connection, "user-leave"))
        await self._broadcast_presence(connection.project_id)

    async def _on_ping(self, connection: CollabConnection, event, raw: Any) -> None:
        await connection.send(schemas.PONG, None)

    # Редактор и чат: без сохранения

    async def _on_full_update(self, connection: CollabConnection, event, raw: Any) -> None:
        logger.debug(
            "Full editor update received (components=%s, styles=%s)",
            "components" in event.data,
            "styles" in event.data,
            extra=self._log_extra(connection, event.type),
        )
        await self._relay_enriched(connection, event.type, raw)

    async def _on_change(self, connection: CollabConnection, event, raw: Any) -> None:
        await self._relay_enriched(connection, event.type, raw)

    async def _on_cursor_move(self, connection: CollabConnection, event, raw: Any) -> None:
        await self._relay_enriched(connection, event.type, raw)

    async def _on_chat_message(self, connection: CollabConnection, event, raw: Any) -> None:
        ctx = connection.context
        message = event.data.message
        logger.info(
            "Chat message received: %s",
            message[:20] + ("..." if len(message) > 20 else ""),
            extra=self._log_extra(connection, event.type),
        )
        # Чат возвращается и отправителю
        await self.connections.broadcast(ctx.project_id, event.type, {
            "userId": ctx.user_id,
            "userName": ctx.display_name,
            "message": message,
            "timestamp": event.data.timestamp or now_ms(),
        })

    # Страницы: изменения сохраняются, событие ретранслируется как есть

    async def _on_page_add(self, connection: CollabConnection, event, raw: Any) -> None:
        data = event.data
        self._require_own_project(connection, data.project_id)
        changes = data.changes()
        async with self.session_factory() as session:
            await PageService(session).add_page(
                project_id=data.project_id,
                client_id=data.page_id,
                name=data.page_name,
                html=changes.get("html"),
                css=changes.get("css"),
                components=changes.get("components"),
                is_default=bool(changes.get("is_default")),
            )
        await self.connections.broadcast(connection.project_id, event.type, raw, exclude=connection)

    async def _on_page_remove(self, connection: CollabConnection, event, raw: Any) -> None:
        data = event.data
        self._require_own_project(connection, data.project_id)
        async with self.session_factory() as session:
            await PageService(session).remove_page(data.project_id, data.page_id)
        await self.connections.broadcast(connection.project_id, event.type, raw, exclude=connection)

    async def _on_page_update(self, connection: CollabConnection, event, raw: Any) -> None:
        data = event.data
        self._require_own_project(connection, data.project_id)
        async with self.session_factory() as session:
            await PageService(session).update_page(
                data.project_id, data.page_id, name=data.page_name, changes=data.changes()
            )
        await self.connections.broadcast(connection.project_id, event.type, raw, exclude=connection)

    async def _on_page_select(self, connection: CollabConnection, event, raw: Any) -> None:
        self._require_own_project(connection, event.data.project_id)
        await self.connections.broadcast(connection.project_id, event.type, raw, exclude=connection)

    async def _on_request_sync(self, connection: CollabConnection, event, raw: Any) -> None:
        self._require_own_project(connection, event.data.project_id)
        async with self.session_factory() as session:
            pages = await PageService(session).sync_payload(connection.project_id)
        logger.info("Sending full page sync: %d pages", len(pages), extra=self._log_extra(connection, event.type))
        await connection.send(schemas.PAGE_FULL_SYNC, {"pages": pages})

    # Вспомогательные

    async def _relay_enriched(self, connection: CollabConnection, event_type: str, raw: Any) -> None:
        ctx = connection.context
        await self.connections.broadcast(ctx.project_id, event_type, {
            "userId": ctx.user_id,
            "userName": ctx.display_name,
            "data": raw,
            "timestamp": now_ms(),
        }, exclude=connection)

    async def _broadcast_presence(self, project_id: str) -> None:
        roster = [entry.to_wire() for entry in self.presence.snapshot(project_id)]
        await self.connections.broadcast(project_id, schemas.PRESENCE_UPDATE, roster)
        logger.debug("Presence update sent (%d active)", len(roster), extra={"project_id": project_id})

    async def _send_error(self, connection: CollabConnection, message: str) -> None:
        if connection.closed:
            return
        try:
            await connection.send(schemas.ERROR, {"message": message})
        except Exception:
            logger.warning("Could not deliver error event", exc_info=True, extra=self._log_extra(connection))

    @staticmethod
    def _log_extra(connection: CollabConnection, event_type: str = None) -> Dict[str, Any]:
        return {
            "project_id": connection.project_id,
            "user_id": connection.user_id,
            "connection_id": connection.id,
            "event_type": event_type,
        }
