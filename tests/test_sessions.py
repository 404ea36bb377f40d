import asyncio
import datetime

from leafnet.agents.chat import GREETING, ChatSessionStore
from leafnet.agents.diagnosis import DiagnosisSessionStore, DiagnosisState

START = datetime.datetime(2024, 6, 1, 8, 0)


class FakeClock:
    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += datetime.timedelta(**kwargs)


class EchoAPI:
    async def chat(self, message, context=""):
        return f"echo: {message}"


def test_store_is_capped_by_least_recent_use():
    store = ChatSessionStore(max_sessions=3)
    for session_id in ("a", "b", "c"):
        store.get(session_id)

    store.get("a")
    store.get("d")

    assert len(store) == 3
    assert "b" not in store
    assert all(session_id in store for session_id in ("a", "c", "d"))


def test_many_sessions_stay_bounded():
    chats = ChatSessionStore(max_sessions=50)
    diagnoses = DiagnosisSessionStore(max_sessions=50)

    for i in range(10_000):
        chats.get(f"chat-{i}")
        diagnoses.get(f"diag-{i}").select_image(b"x" * 1024, "image/png")

    assert len(chats) == 50
    assert len(diagnoses) == 50
    assert "chat-9999" in chats


def test_idle_sessions_expire():
    clock = FakeClock()
    store = ChatSessionStore(ttl=datetime.timedelta(hours=1), clock=clock)
    store.get("old")
    clock.advance(minutes=50)
    store.get("fresh")

    clock.advance(minutes=20)

    assert store.find("old") is None
    assert store.find("fresh") is not None
    assert len(store) == 1


def test_activity_keeps_a_session_alive():
    clock = FakeClock()
    store = ChatSessionStore(ttl=datetime.timedelta(hours=1), clock=clock)
    asyncio.run(store.ask(EchoAPI(), "farm-1", "hi", ""))

    for _ in range(3):
        clock.advance(minutes=45)
        assert store.find("farm-1") is not None

    assert store.find("farm-1").last_active == clock.now
    assert [m.role for m in store.get("farm-1").messages] == ["ai", "user", "ai"]


def test_find_never_creates():
    chats = ChatSessionStore()
    diagnoses = DiagnosisSessionStore()

    assert chats.find("nobody") is None
    assert diagnoses.find("nobody") is None
    assert len(chats) == 0
    assert len(diagnoses) == 0


def test_expired_session_starts_over():
    clock = FakeClock()
    store = DiagnosisSessionStore(ttl=datetime.timedelta(days=7), clock=clock)
    store.get("s1").select_image(b"leaf", "image/png")

    clock.advance(days=8)
    session = store.get("s1")

    assert session.state == DiagnosisState.IDLE
    assert session.image is None


def test_chat_clear_does_not_store_an_entry():
    store = ChatSessionStore()
    exchange = store.clear("never-seen")

    assert [m.text for m in exchange.messages] == [GREETING]
    assert "never-seen" not in store
