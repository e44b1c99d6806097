import json
import logging
from datetime import timedelta

from sitecollab.core.logging_config import JSONFormatter, ReadableFormatter
from sitecollab.core.security import (
    TokenClaims, extract_token_from_header, get_password_hash, verify_password,
)
from sitecollab.domains.collaboration.connections import CollabConnection, ConnectionManager
from sitecollab.domains.collaboration.gatekeeper import SessionContext
from sitecollab.domains.collaboration.presence import PresenceTracker
from sitecollab.domains.collaboration.services import CollaborationEventRouter
from sitecollab.domains.projects.access import AccessLevel


def test_token_round_trip_and_rejection(token_service) -> None:
    token = token_service.create_access_token(TokenClaims("u1", "a@sitecollab.io", "Alice"))
    assert token_service.verify_token(token) == TokenClaims("u1", "a@sitecollab.io", "Alice")

    expired = token_service.create_access_token(TokenClaims("u1", "", ""), expires_delta=timedelta(seconds=-1))
    assert token_service.verify_token(expired) is None
    assert token_service.verify_token(token + "x") is None


def test_password_hashing() -> None:
    hashed = get_password_hash("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)


def test_extract_token_from_header() -> None:
    assert extract_token_from_header("Bearer abc") == "abc"
    assert extract_token_from_header("bearer abc") == "abc"
    assert extract_token_from_header("Basic abc") is None
    assert extract_token_from_header(None) is None


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("sitecollab.test", logging.INFO, __file__, 1, "Page %s", ("created",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_context_fields() -> None:
    entry = json.loads(JSONFormatter().format(_record(project_id="p1", event_type="page:add")))
    assert entry["message"] == "Page created"
    assert entry["project_id"] == "p1"
    assert entry["event_type"] == "page:add"
    assert "user_id" not in entry


def test_readable_formatter_appends_context() -> None:
    line = ReadableFormatter().format(_record(user_id="u1"))
    assert "Page created" in line
    assert "[user_id=u1]" in line


class _FakeSocket:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("socket is gone")
        self.sent.append(json.loads(data))


def _connection(socket, user_id: str) -> CollabConnection:
    context = SessionContext(user_id, f"{user_id}@sitecollab.io", user_id, "proj1", AccessLevel.WRITE)
    return CollabConnection(socket, context)


async def test_broadcast_skips_sender_and_drops_broken_connections() -> None:
    manager = ConnectionManager()
    sender = _connection(_FakeSocket(), "a")
    receiver = _connection(_FakeSocket(), "b")
    broken = _connection(_FakeSocket(fail=True), "c")
    for connection in (sender, receiver, broken):
        manager.add(connection)

    delivered = await manager.broadcast("proj1", "cursor:move", {"x": 1}, exclude=sender)

    assert delivered == 1
    assert receiver.socket.sent == [{"type": "cursor:move", "data": {"x": 1}}]
    assert sender.socket.sent == []
    assert [c.id for c in manager.members("proj1")] == [sender.id, receiver.id]

    manager.remove(sender)
    manager.remove(receiver)
    assert manager.rooms == {}


def _router() -> CollaborationEventRouter:
    return CollaborationEventRouter(PresenceTracker(), ConnectionManager(), session_factory=None)


async def test_disconnect_after_failed_send_still_updates_presence() -> None:
    router = _router()
    alice = _connection(_FakeSocket(), "a")
    bob = _connection(_FakeSocket(), "b")
    await router.dispatch(alice, json.dumps({"type": "user-join"}))
    await router.dispatch(bob, json.dumps({"type": "user-join"}))

    # Сокет Боба ломается, рассылка чата убирает его из комнаты
    bob.socket.fail = True
    await router.dispatch(alice, json.dumps({"type": "chat:message", "data": {"message": "hi", "timestamp": 1}}))
    assert [c.id for c in router.connections.members("proj1")] == [alice.id]

    await router.disconnect(bob)

    assert alice.socket.sent[-1] == {"type": "presence-update", "data": [{"id": "a", "name": "a"}]}
    assert [entry.user_id for entry in router.presence.snapshot("proj1")] == ["a"]


async def test_leave_without_join_sends_nothing() -> None:
    router = _router()
    alice = _connection(_FakeSocket(), "a")
    stranger = _connection(_FakeSocket(), "b")
    await router.dispatch(alice, json.dumps({"type": "user-join"}))
    frames_before = len(alice.socket.sent)

    await router.dispatch(stranger, json.dumps({"type": "user-leave"}))

    assert len(alice.socket.sent) == frames_before
    assert stranger.socket.sent == []
    assert [entry.user_id for entry in router.presence.snapshot("proj1")] == ["a"]
