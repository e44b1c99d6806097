from sitecollab.domains.collaboration.presence import PresenceTracker


def test_join_is_idempotent_and_preserves_order() -> None:
    tracker = PresenceTracker()
    tracker.join("p1", "u1", "Alice")
    tracker.join("p1", "u2", "Bob")
    tracker.join("p1", "u1", "Alice")

    assert [entry.to_wire() for entry in tracker.snapshot("p1")] == [
        {"id": "u1", "name": "Alice"},
        {"id": "u2", "name": "Bob"},
    ]


def test_rejoin_updates_display_name() -> None:
    tracker = PresenceTracker()
    tracker.join("p1", "u1", "Alice")
    tracker.join("p1", "u1", "Alice Cooper")

    assert tracker.snapshot("p1")[0].display_name == "Alice Cooper"


def test_leave_removes_user_and_drops_empty_roster() -> None:
    tracker = PresenceTracker()
    tracker.join("p1", "u1", "Alice")

    assert tracker.leave("p1", "u1") is True
    assert tracker.snapshot("p1") == []
    assert not tracker.has_roster("p1")
    assert tracker.active_projects() == []


def test_leave_unknown_user_is_noop() -> None:
    tracker = PresenceTracker()
    tracker.join("p1", "u1", "Alice")

    assert tracker.leave("p1", "ghost") is False
    assert tracker.leave("missing", "u1") is False
    assert tracker.is_present("p1", "u1")


def test_user_stays_present_until_last_connection_leaves() -> None:
    tracker = PresenceTracker()
    tracker.join("p1", "u1", "Alice", connection_id="c1")
    tracker.join("p1", "u1", "Alice", connection_id="c2")

    assert tracker.leave("p1", "u1", connection_id="c1") is False
    assert tracker.is_present("p1", "u1")

    assert tracker.leave("p1", "u1", connection_id="c2") is True
    assert not tracker.is_present("p1", "u1")


def test_projects_are_isolated() -> None:
    tracker = PresenceTracker()
    tracker.join("p1", "u1", "Alice")
    tracker.join("p2", "u2", "Bob")

    tracker.leave("p1", "u1")

    assert tracker.snapshot("p2")[0].user_id == "u2"
    assert tracker.active_projects() == ["p2"]
