"""End-to-end behaviour of the chat core through its command surface."""
from concurrent.futures import ThreadPoolExecutor

from core.config import Settings
from models.models import MessageType
from services.chat_service import ChatService


def test_register_auto_joins_default_room(chat, sink):
    user = chat.register("alice", "s1")

    assert user.online is True
    assert user.session_id == "s1"
    assert user.rooms == {"general"}
    assert chat.get_room("general").users == {"alice"}
    [notice] = sink.to_room("general")
    assert notice.type == MessageType.JOIN


def test_register_twice_rebinds_session_and_keeps_rooms(chat):
    dev = chat.create_room("Dev")
    chat.register("alice", "s1")
    chat.join_room("alice", dev.id)

    user = chat.register("alice", "s2")

    assert len(chat.users) == 1
    assert user.session_id == "s2"
    assert user.rooms == {"general", dev.id}


def test_room_message_scenario(chat):
    chat.register("alice", "s1")
    chat.join_room("alice", "general")
    chat.send_room_message("general", "alice", "hi")

    history = chat.get_room_history("general", 50)

    last = history[-1]
    assert last.type == MessageType.CHAT
    assert (last.sender, last.content, last.room_id) == ("alice", "hi", "general")
    previous = history[-2]
    assert previous.type == MessageType.JOIN
    assert previous.content == "alice has joined the room"


def test_history_default_limit(chat):
    chat.register("alice", "s1")
    for n in range(60):
        chat.send_room_message("general", "alice", str(n))

    history = chat.get_room_history("general")

    assert len(history) == 50
    assert history[-1].content == "59"
    assert history[0].content == "10"


def test_create_room_scenario(chat):
    chat.register("alice", "s1")

    room = chat.create_room("Dev")

    assert room.id != "general"
    assert room.name == "Dev"
    assert chat.get_room_history(room.id) == []

    chat.join_room("alice", room.id)
    listed = {r.id: r for r in chat.list_rooms()}
    assert listed[room.id].users == {"alice"}


def test_create_room_joins_creator(chat, sink):
    chat.register("alice", "s1")
    sink.clear()

    room = chat.create_room("Dev", created_by="alice")

    assert room.users == {"alice"}
    assert room.id in chat.get_user("alice").rooms
    assert [m.type for m in sink.to_room(room.id)] == [MessageType.JOIN]


def test_disconnect_scenario(chat, sink):
    dev = chat.create_room("dev")
    chat.register("alice", "s1")
    chat.register("bob", "s2")
    chat.join_room("alice", dev.id)
    sink.clear()

    chat.disconnect("alice")

    leaves = [(target, m.content) for kind, target, m in sink.deliveries if m.type == MessageType.LEAVE]
    assert sorted(leaves) == sorted([
        ("general", "alice has left the room"),
        (dev.id, "alice has left the room"),
    ])
    assert len(sink.deliveries) == 2
    assert [u.username for u in chat.list_online_users()] == ["bob"]


def test_disconnect_then_reconnect(chat, sink):
    dev = chat.create_room("dev")
    chat.register("alice", "s1")
    chat.join_room("alice", dev.id)
    chat.disconnect("alice")
    sink.clear()

    user = chat.register("alice", "s2")

    assert user.online is True
    assert user.rooms == {"general", dev.id}
    # Only the default room is re-joined (and re-announced)
    assert chat.get_room("general").users == {"alice"}
    assert chat.get_room(dev.id).users == set()
    assert [(k, t) for k, t, _ in sink.deliveries] == [("room", "general")]


def test_disconnect_unknown_user_is_noop(chat, sink):
    chat.disconnect("ghost")
    assert sink.deliveries == []
    assert chat.metrics.dropped() == {"disconnect": 1}


def test_private_message_always_two_deliveries(chat, sink):
    message = chat.send_private_message("nobody", "also-nobody", "hello?")

    assert message.type == MessageType.PRIVATE
    assert [(k, t) for k, t, _ in sink.deliveries] == [("user", "also-nobody"), ("user", "nobody")]


def test_room_message_to_unknown_room_is_dropped(chat, sink):
    chat.register("alice", "s1")
    sink.clear()

    assert chat.send_room_message("nope", "alice", "hi") is None
    assert sink.deliveries == []
    assert chat.metrics.dropped() == {"broadcast": 1}


def test_concurrent_senders_to_one_room(chat):
    senders = [f"user{n}" for n in range(25)]
    for name in senders:
        chat.register(name, name)

    def send(name):
        return chat.send_room_message("general", name, f"hello from {name}").id

    with ThreadPoolExecutor(max_workers=10) as pool:
        ids = list(pool.map(send, senders))

    chats = [m for m in chat.get_room_history("general", 1000) if m.type == MessageType.CHAT]
    assert len(chats) == len(senders)
    assert sorted(m.id for m in chats) == sorted(ids)
    assert {m.sender for m in chats} == set(senders)


def test_concurrent_disconnects_settle_consistently(chat):
    names = [f"user{n}" for n in range(20)]
    for name in names:
        chat.register(name, name)

    with ThreadPoolExecutor(max_workers=10) as pool:
        list(pool.map(chat.disconnect, names))

    assert chat.list_online_users() == []
    assert chat.get_room("general").users == set()
    for name in names:
        assert chat.get_user(name).rooms == {"general"}


def test_from_settings(monkeypatch, sink):
    monkeypatch.setenv("DEFAULT_ROOM_ID", "lobby")
    monkeypatch.setenv("DEFAULT_ROOM_NAME", "Lobby")
    monkeypatch.setenv("HISTORY_PAGE_SIZE", "5")
    monkeypatch.setenv("HISTORY_RETENTION", "10")

    chat = ChatService.from_settings(Settings(), sink)
    user = chat.register("alice", "s1")
    for n in range(20):
        chat.send_room_message("lobby", "alice", str(n))

    assert user.rooms == {"lobby"}
    assert [m.content for m in chat.get_room_history("lobby")] == ["15", "16", "17", "18", "19"]
    assert len(chat.get_room_history("lobby", 100)) == 10
