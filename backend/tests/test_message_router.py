"""Tests for broadcast/private routing and history reads."""
from concurrent.futures import ThreadPoolExecutor

from models.models import ChatMessage, MessageType
from services.message_router import MessageRouter
from services.metrics import ChatMetrics
from services.room_registry import RoomRegistry


def _router(sink, retention=1000):
    metrics = ChatMetrics()
    return MessageRouter(RoomRegistry(history_retention=retention), sink, metrics), metrics


def test_broadcast_stamps_id_stores_and_publishes(sink):
    router, metrics = _router(sink)
    message = ChatMessage(room_id="general", sender="alice", content="hi")

    routed = router.broadcast(message)

    assert routed is not None
    assert routed.id
    assert [m.id for m in sink.to_room("general")] == [routed.id]
    assert [m.id for m in router.history("general", 50)] == [routed.id]
    assert metrics.room_messages == 1


def test_broadcast_overwrites_caller_supplied_id(sink):
    router, _ = _router(sink)
    routed = router.broadcast(ChatMessage(id="client-id", room_id="general", sender="a", content="x"))
    assert routed.id != "client-id"


def test_broadcast_result_does_not_alias_history(sink):
    router, _ = _router(sink)
    routed = router.broadcast(ChatMessage(room_id="general", sender="alice", content="hi"))

    routed.content = "edited"

    assert [m.content for m in router.history("general", 50)] == ["hi"]


def test_broadcast_to_unknown_room_is_dropped(sink):
    router, metrics = _router(sink)

    result = router.broadcast(ChatMessage(room_id="nowhere", sender="alice", content="hi"))

    assert result is None
    assert sink.deliveries == []
    assert router.history("nowhere", 50) == []
    assert metrics.dropped() == {"broadcast": 1}


def test_broadcast_without_room_id_is_dropped(sink):
    router, metrics = _router(sink)
    assert router.broadcast(ChatMessage(sender="alice", content="hi")) is None
    assert sink.deliveries == []
    assert metrics.dropped() == {"broadcast": 1}


def test_send_private_publishes_to_recipient_then_sender(sink):
    router, metrics = _router(sink)
    message = ChatMessage(sender="alice", recipient="bob", content="psst", type=MessageType.CHAT)

    routed = router.send_private(message)

    assert routed.type == MessageType.PRIVATE
    assert routed.id
    assert [(kind, target) for kind, target, _ in sink.deliveries] == [("user", "bob"), ("user", "alice")]
    assert all(m.id == routed.id for _, _, m in sink.deliveries)
    assert metrics.private_messages == 1


def test_send_private_never_touches_history(sink):
    router, _ = _router(sink)
    router.send_private(ChatMessage(room_id="general", sender="alice", recipient="bob", content="x"))
    assert router.history("general", 50) == []


def test_send_private_ids_are_unique(sink):
    router, _ = _router(sink)
    ids = {router.send_private(ChatMessage(sender="a", recipient="b", content=str(n))).id for n in range(20)}
    assert len(ids) == 20


def test_history_is_bounded_suffix_in_order(sink):
    router, _ = _router(sink)
    sent = [
        router.broadcast(ChatMessage(room_id="general", sender="alice", content=str(n))).id
        for n in range(30)
    ]

    for n in (0, 1, 5, 30, 100):
        recent = [m.id for m in router.history("general", n)]
        assert len(recent) <= n
        assert recent == sent[len(sent) - len(recent):]


def test_history_unknown_room_is_empty(sink):
    router, _ = _router(sink)
    assert router.history("missing", 10) == []


def test_history_respects_retention(sink):
    router, _ = _router(sink, retention=3)
    for n in range(5):
        router.broadcast(ChatMessage(room_id="general", sender="alice", content=str(n)))

    assert [m.content for m in router.history("general", 50)] == ["2", "3", "4"]


def test_concurrent_broadcasts_keep_history_and_delivery_order(sink):
    router, _ = _router(sink)
    senders = [f"user{n}" for n in range(40)]

    def send(sender):
        return router.broadcast(ChatMessage(room_id="general", sender=sender, content="hello")).id

    with ThreadPoolExecutor(max_workers=8) as pool:
        ids = list(pool.map(send, senders))

    history_ids = [m.id for m in router.history("general", 1000)]
    delivered_ids = [m.id for m in sink.to_room("general")]

    assert len(set(ids)) == len(senders)
    assert sorted(history_ids) == sorted(ids)
    assert len(history_ids) == len(set(history_ids))
    # Append + publish happen under one per-room lock
    assert delivered_ids == history_ids
