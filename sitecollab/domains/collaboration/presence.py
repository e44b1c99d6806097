"""Список присутствующих пользователей по проектам.

Живое представление в памяти процесса: не сохраняется и строится заново
после перезапуска. Изменяется только из цикла событий, без точек ожидания
внутри методов, поэтому блокировка не нужна.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PresenceEntry:
    user_id: str
    display_name: str

    def to_wire(self) -> Dict[str, str]:
        return {"id": self.user_id, "name": self.display_name}


@dataclass
class _RosterSlot:
    display_name: str
    connections: Set[str] = field(default_factory=set)


class PresenceTracker:
    def __init__(self):
        # {project_id: {user_id: slot}}; порядок вставки сохраняется
        self._rosters: Dict[str, Dict[str, _RosterSlot]] = {}

    def join(self, project_id: str, user_id: str, display_name: str, connection_id: Optional[str] = None) -> None:
        """Регистрирует пользователя; повторный вызов обновляет имя, не дублируя запись"""
        roster = self._rosters.setdefault(project_id, {})
        slot = roster.get(user_id)
        if slot is None:
            slot = roster[user_id] = _RosterSlot(display_name=display_name)
        else:
            slot.display_name = display_name
        if connection_id:
            slot.connections.add(connection_id)

    def leave(self, project_id: str, user_id: str, connection_id: Optional[str] = None) -> bool:
        """Убирает пользователя (или одно его соединение).

        Пользователь с несколькими соединениями остается в списке, пока не
        закрыто последнее. Пустой список проекта удаляется целиком.
        Возвращает True, если пользователь исчез из списка.
        """
        roster = self._rosters.get(project_id)
        if not roster or user_id not in roster:
            return False

        slot = roster[user_id]
        if connection_id is not None:
            slot.connections.discard(connection_id)
            if slot.connections:
                return False

        del roster[user_id]
        if not roster:
            del self._rosters[project_id]
            logger.debug("Project has no active users, roster dropped", extra={"project_id": project_id})
        return True

    def snapshot(self, project_id: str) -> List[PresenceEntry]:
        roster = self._rosters.get(project_id, {})
        return [PresenceEntry(user_id, slot.display_name) for user_id, slot in roster.items()]

    def is_present(self, project_id: str, user_id: str) -> bool:
        return user_id in self._rosters.get(project_id, {})

    def has_roster(self, project_id: str) -> bool:
        return project_id in self._rosters

    def active_projects(self) -> List[str]:
        return list(self._rosters)

    def clear(self) -> None:
        self._rosters.clear()
