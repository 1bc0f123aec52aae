"""
Pytest configuration and fixtures for the Aether backend tests.
"""

from pathlib import Path

import pytest

from classes.backend import Backend
from classes.chat_store import ChatStore
from classes.db_connection import create_session_factory, get_db_engine
from classes.expiring_cache import ExpiringCache
from classes.rate_limiter import FixedWindowLimiter
from classes.request_gate import (
    API_LIMITER,
    AUTH_LIMITER,
    CONVERSATIONS_CACHE,
    MODEL_LIMITER,
    SETTINGS_CACHE,
    USER_CACHE,
    RequestGate,
)
from classes.response_pipeline import ResponsePipeline


FULL_RESPONSE = """
GOALS:
- Understand web development fundamentals
- Learn modern frameworks
- Build practical applications

CONSTRAINTS:
- Limited time for learning
- Need practical experience
- Must use current technologies

OUTPUT:
A comprehensive guide with examples

FORMULA:
Theory + Practice = Mastery

PROCESS:
1. Learn HTML/CSS basics
2. Study JavaScript
3. Choose a framework
4. Build projects
5. Deploy applications
"""


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeChatLlm:
    """Model collaborator double recording every call."""

    def __init__(self, content: str = FULL_RESPONSE, error: Exception | None = None, payload=None):
        self.content = content
        self.error = error
        self.payload = payload
        self.calls: list[dict] = []

    def invoke(self, messages, *, temperature=None, max_tokens=None):
        self.calls.append(
            {"messages": messages, "temperature": temperature, "max_tokens": max_tokens}
        )
        if self.error is not None:
            raise self.error
        if self.payload is not None:
            return self.payload
        return {"choices": [{"message": {"role": "assistant", "content": self.content}}]}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_llm() -> FakeChatLlm:
    return FakeChatLlm()


@pytest.fixture
def store(tmp_path: Path) -> ChatStore:
    """ChatStore on a fresh SQLite database under tmp_path."""
    engine = get_db_engine(f"sqlite:///{tmp_path / 'test.db'}")
    chat_store = ChatStore(create_session_factory(engine))
    chat_store.create_schema()
    yield chat_store
    engine.dispose()


@pytest.fixture
def gate() -> RequestGate:
    return RequestGate(
        caches={
            USER_CACHE: ExpiringCache(100, 300, name=USER_CACHE),
            SETTINGS_CACHE: ExpiringCache(100, 600, name=SETTINGS_CACHE),
            CONVERSATIONS_CACHE: ExpiringCache(100, 120, name=CONVERSATIONS_CACHE),
        },
        limiters={
            API_LIMITER: FixedWindowLimiter(100, 60, name=API_LIMITER),
            MODEL_LIMITER: FixedWindowLimiter(3, 60, name=MODEL_LIMITER),
            AUTH_LIMITER: FixedWindowLimiter(2, 60, name=AUTH_LIMITER),
        },
    )


@pytest.fixture
def backend(store: ChatStore, gate: RequestGate, fake_llm: FakeChatLlm) -> Backend:
    return Backend(store=store, gate=gate, pipeline=ResponsePipeline(fake_llm))


@pytest.fixture
def user(store: ChatStore) -> dict:
    return store.upsert_user("open-ada", name="Ada", email="ada@example.com", login_method="oauth")
