"""Схемы событий постоянного соединения.

Каждый кадр - JSON-конверт ``{"type": ..., "data": ...}``. Входящие события
описаны размеченным объединением по полю ``type`` и проверяются до
передачи обработчику.
"""

import json
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from sitecollab.core.exceptions import ValidationFailed

# Исходящие события
PRESENCE_UPDATE = "presence-update"
ERROR = "error"
PONG = "pong"
PAGE_FULL_SYNC = "page:full-sync"


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class ChangePayload(_Payload):
    type: str = Field(..., min_length=1)


class ChatPayload(_Payload):
    message: str = Field(..., min_length=1)
    timestamp: Optional[Union[int, float]] = None


class PageData(_Payload):
    html: Optional[str] = None
    css: Optional[str] = None
    components: Any = None
    is_default: Optional[bool] = Field(None, alias="isDefault")


class PageEventPayload(_Payload):
    project_id: str = Field(..., alias="projectId", min_length=1)
    page_id: str = Field(..., alias="pageId", min_length=1)
    page_name: Optional[str] = Field(None, alias="pageName")
    user_id: Optional[str] = Field(None, alias="userId")
    timestamp: Optional[Union[int, float]] = None
    page_data: Optional[PageData] = Field(None, alias="pageData")

    def changes(self) -> Dict[str, Any]:
        """Только явно переданные поля pageData"""
        if self.page_data is None:
            return {}
        return {
            name: getattr(self.page_data, name)
            for name in ("html", "css", "components", "is_default")
            if name in self.page_data.model_fields_set
        }


class PageAddPayload(PageEventPayload):
    page_name: str = Field(..., alias="pageName", min_length=1)


class ProjectScopedPayload(_Payload):
    project_id: str = Field(..., alias="projectId", min_length=1)
    user_id: Optional[str] = Field(None, alias="userId")


class _Event(BaseModel):
    model_config = ConfigDict(extra="ignore")


class UserJoinEvent(_Event):
    type: Literal["user-join"]
    data: Any = None


class UserLeaveEvent(_Event):
    type: Literal["user-leave"]
    data: Any = None


class PingEvent(_Event):
    type: Literal["ping"]
    data: Any = None


class FullUpdateEvent(_Event):
    type: Literal["editor:full-update"]
    data: Dict[str, Any]


class ChangeEvent(_Event):
    type: Literal["editor:change"]
    data: ChangePayload


class CursorMoveEvent(_Event):
    type: Literal["cursor:move"]
    data: Any = None


class ChatMessageEvent(_Event):
    type: Literal["chat:message"]
    data: ChatPayload


class PageAddEvent(_Event):
    type: Literal["page:add"]
    data: PageAddPayload


class PageRemoveEvent(_Event):
    type: Literal["page:remove"]
    data: PageEventPayload


class PageUpdateEvent(_Event):
    type: Literal["page:update"]
    data: PageEventPayload


class PageSelectEvent(_Event):
    type: Literal["page:select"]
    data: ProjectScopedPayload


class PageSyncRequestEvent(_Event):
    type: Literal["page:request-sync"]
    data: ProjectScopedPayload


InboundEvent = Annotated[
    Union[
        UserJoinEvent,
        UserLeaveEvent,
        PingEvent,
        FullUpdateEvent,
        ChangeEvent,
        CursorMoveEvent,
        ChatMessageEvent,
        PageAddEvent,
        PageRemoveEvent,
        PageUpdateEvent,
        PageSelectEvent,
        PageSyncRequestEvent,
    ],
    Field(discriminator="type"),
]

inbound_event_adapter = TypeAdapter(InboundEvent)

EVENT_TYPES = frozenset({
    "user-join", "user-leave", "ping",
    "editor:full-update", "editor:change", "cursor:move", "chat:message",
    "page:add", "page:remove", "page:update", "page:select", "page:request-sync",
})

# Сообщения об ошибке для неполных данных
_INVALID_PAYLOAD_MESSAGES = {
    "page:add": "Incomplete data to add page",
    "page:remove": "Incomplete data to remove page",
    "page:update": "Incomplete data to update page",
    "page:select": "Incomplete data to select page",
    "page:request-sync": "projectId is required",
    "chat:message": "Chat message is empty",
}


def parse_envelope(message: str) -> Dict[str, Any]:
    """Разбор JSON-кадра в конверт с полями type и data"""
    try:
        frame = json.loads(message)
    except (TypeError, ValueError):
        raise ValidationFailed("Malformed message")
    if not isinstance(frame, dict) or not isinstance(frame.get("type"), str):
        raise ValidationFailed("Malformed message")
    return frame


def validate_event(frame: Dict[str, Any]):
    """Проверка конверта по схеме его типа"""
    event_type = frame["type"]
    if event_type not in EVENT_TYPES:
        raise ValidationFailed(f"Unknown event type: {event_type}")
    try:
        return inbound_event_adapter.validate_python(frame)
    except ValidationError:
        raise ValidationFailed(_INVALID_PAYLOAD_MESSAGES.get(event_type, f"Invalid payload for {event_type}"))


def encode_frame(event_type: str, data: Any) -> str:
    return json.dumps({"type": event_type, "data": data}, default=str)
