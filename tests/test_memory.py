import asyncio
import gc

from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from app.core.session import InMemorySessionStore, SessionLocks, SqlSessionStore
from app.models.domain_models import Role
from app.services.memory_service import ConversationMemory, session_key


def test_session_is_created_lazily():
    store = InMemorySessionStore()
    memory = ConversationMemory(store, "lazy")

    assert not memory.exists
    assert memory.get_messages() == []
    assert store.get(session_key("lazy")) is None

    memory.set_context("inEligibilityFlow", True)
    assert memory.exists
    assert store.get("conversationMemory_lazy")["context"] == {"inEligibilityFlow": True}


def test_every_mutation_is_written_through():
    store = InMemorySessionStore()
    memory = ConversationMemory(store, "s1")
    memory.add_message(Role.USER, "hi")
    memory.update_slots({"monthly_income": 50000})

    reloaded = ConversationMemory(store, "s1")
    assert [m.content for m in reloaded.get_messages()] == ["hi"]
    assert reloaded.get_slots() == {"monthly_income": 50000}
    assert store.get(session_key("s1"))["collectedData"] == {"monthly_income": 50000}


def test_update_slots_keeps_only_valid_values():
    memory = ConversationMemory(InMemorySessionStore(), "s2")
    accepted = memory.update_slots({
        "credit_score": 1200,
        "age": 30,
        "favourite_colour": "blue",
        "job_type": None,
    })
    assert accepted == {"age": 30}
    assert memory.get_slots() == {"age": 30}


def test_recent_messages_window():
    memory = ConversationMemory(InMemorySessionStore(), "s3")
    for i in range(5):
        memory.add_message(Role.USER, f"m{i}")
    assert [m.content for m in memory.recent_messages(2)] == ["m3", "m4"]
    assert memory.recent_messages(0) == []


def test_reset_deletes_session():
    store = InMemorySessionStore()
    memory = ConversationMemory(store, "s4")
    memory.add_message(Role.USER, "hello")
    memory.reset()

    assert not memory.exists
    assert store.get(session_key("s4")) is None
    assert memory.snapshot()["messages"] == []


def test_create_persists_empty_session():
    store = InMemorySessionStore()
    ConversationMemory(store, "s5").create()
    assert ConversationMemory(store, "s5").exists


def test_sql_store_round_trip():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    store = SqlSessionStore(engine)

    memory = ConversationMemory(store, "sql-1")
    memory.add_message(Role.USER, "नमस्ते")
    memory.update_slots({"credit_score": 750})
    memory.add_message(Role.ASSISTANT, "hello")

    reloaded = ConversationMemory(store, "sql-1")
    assert [m.role for m in reloaded.get_messages()] == [Role.USER, Role.ASSISTANT]
    assert reloaded.get_messages()[0].content == "नमस्ते"
    assert reloaded.get_slots() == {"credit_score": 750}

    reloaded.reset()
    assert store.get(session_key("sql-1")) is None


def test_session_locks_are_per_session():
    locks = SessionLocks()
    assert locks.for_session("a") is locks.for_session("a")
    assert locks.for_session("a") is not locks.for_session("b")

    async def hold():
        async with locks.for_session("a"):
            return locks.for_session("a").locked()

    assert asyncio.run(hold()) is True


def test_session_locks_are_released_after_use():
    locks = SessionLocks()

    async def turn(session_id):
        async with locks.for_session(session_id):
            assert locks.for_session(session_id).locked()

    for n in range(50):
        asyncio.run(turn(f"session-{n}"))
    gc.collect()

    assert len(locks) == 0
