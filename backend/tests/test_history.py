"""Tests for the bounded per-room message history."""
from models.models import ChatMessage
from services.history import MessageHistory


def _msg(n: int, room_id: str = "general") -> ChatMessage:
    return ChatMessage(id=str(n), room_id=room_id, sender="alice", content=f"m{n}")


def test_recent_returns_suffix_in_order():
    history = MessageHistory()
    for n in range(10):
        history.append("general", _msg(n))

    recent = history.recent("general", 3)

    assert [m.content for m in recent] == ["m7", "m8", "m9"]


def test_recent_with_count_larger_than_history():
    history = MessageHistory()
    history.append("general", _msg(1))
    history.append("general", _msg(2))

    assert [m.content for m in history.recent("general", 50)] == ["m1", "m2"]


def test_recent_with_non_positive_count_is_empty():
    history = MessageHistory()
    history.append("general", _msg(1))

    assert history.recent("general", 0) == []
    assert history.recent("general", -5) == []


def test_unknown_room_is_empty():
    history = MessageHistory()
    assert history.recent("missing", 10) == []
    assert history.size("missing") == 0


def test_retention_drops_oldest():
    history = MessageHistory(retention=5)
    for n in range(8):
        history.append("general", _msg(n))

    assert history.size("general") == 5
    assert [m.content for m in history.recent("general", 50)] == ["m3", "m4", "m5", "m6", "m7"]


def test_rooms_are_isolated():
    history = MessageHistory()
    history.append("a", _msg(1, "a"))
    history.append("b", _msg(2, "b"))

    assert [m.content for m in history.recent("a", 10)] == ["m1"]
    assert [m.content for m in history.recent("b", 10)] == ["m2"]


def test_sequence_lock_is_reentrant_with_append():
    history = MessageHistory()
    with history.sequence("general"):
        history.append("general", _msg(1))
        assert history.size("general") == 1


def test_recent_returns_copies():
    history = MessageHistory()
    history.append("general", _msg(1))

    history.recent("general", 1)[0].content = "changed"

    assert history.recent("general", 1)[0].content == "m1"
