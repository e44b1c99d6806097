import logging
import uuid
from typing import Any, Dict, List, Optional, Protocol

from sitecollab.domains.collaboration.gatekeeper import SessionContext
from sitecollab.domains.collaboration.schemas import encode_frame

logger = logging.getLogger(__name__)


class TextSocket(Protocol):
    async def send_text(self, data: str) -> None: ...


class CollabConnection:
    """Установленное соединение участника с комнатой проекта"""

    def __init__(self, socket: TextSocket, context: SessionContext):
        self.id = uuid.uuid4().hex
        self.socket = socket
        self.context = context
        self.closed = False

    @property
    def project_id(self) -> str:
        return self.context.project_id

    @property
    def user_id(self) -> str:
        return self.context.user_id

    async def send(self, event_type: str, data: Any) -> None:
        await self.socket.send_text(encode_frame(event_type, data))

    def __repr__(self) -> str:
        return f"CollabConnection(id={self.id}, user_id={self.user_id}, project_id={self.project_id})"


class ConnectionManager:
    """Комнаты: {project_id: {connection_id: connection}}"""

    def __init__(self):
        self.rooms: Dict[str, Dict[str, CollabConnection]] = {}

    def add(self, connection: CollabConnection) -> None:
        self.rooms.setdefault(connection.project_id, {})[connection.id] = connection

    def remove(self, connection: CollabConnection) -> bool:
        room = self.rooms.get(connection.project_id)
        if not room or connection.id not in room:
            return False
        del room[connection.id]
        # Если нет больше подключений к проекту, очищаем комнату
        if not room:
            del self.rooms[connection.project_id]
        return True

    def members(self, project_id: str) -> List[CollabConnection]:
        return list(self.rooms.get(project_id, {}).values())

    async def broadcast(
        self, project_id: str, event_type: str, data: Any, exclude: Optional[CollabConnection] = None
    ) -> int:
        """Рассылка события всем соединениям комнаты; возвращает число доставок"""
        delivered = 0
        broken: List[CollabConnection] = []

        for connection in self.members(project_id):
            if exclude is not None and connection.id == exclude.id:
                continue
            if connection.closed:
                continue
            try:
                await connection.send(event_type, data)
                delivered += 1
            except Exception:
                logger.warning(
                    "Failed to deliver %s, dropping connection from room",
                    event_type,
                    exc_info=True,
                    extra={"project_id": project_id, "connection_id": connection.id},
                )
                broken.append(connection)

        # Соединение само уберет присутствие в своем цикле приема
        for connection in broken:
            self.remove(connection)

        return delivered
