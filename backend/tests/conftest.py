"""
WriteUp Backend: Test Configuration (conftest.py)
=================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (stub adapters, in-memory
       config store, SQLite session, API client).
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── stub_adapter / stub_chat_adapter: Factories for instrumented adapters
    ├── build_orchestrator: Wires adapters + descriptors into a FallbackOrchestrator
    ├── db_session: AsyncSession on a private in-memory SQLite database
    ├── session_factory: async_sessionmaker on the same kind of database
    └── test_client: HTTPX AsyncClient for API endpoint testing
"""

import asyncio
import os
import tempfile
from typing import Callable, List, Optional

# Override settings for testing BEFORE any writeup imports
# Why: settings and the engine are created at import time
os.environ["DATABASE_URL"] = (
    "sqlite+aiosqlite:///" + os.path.join(tempfile.mkdtemp(prefix="writeup_test_"), "test.db")
)
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests
os.environ["ENABLE_HISTORY"] = "true"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from writeup.database import Base
from writeup.models import app_setting, history, provider  # noqa: F401
from writeup.schemas.chat import ChatCompletion, ChatMessage, ChatOptions
from writeup.schemas.enhancement import EnhancementOptions, EnhancementResult, Suggestion
from writeup.schemas.provider import ProviderDescriptor
from writeup.services.config_store import InMemoryConfigStore
from writeup.services.orchestrator import FallbackOrchestrator
from writeup.services.providers import ChatProviderAdapter, ProviderAdapter
from writeup.services.registry import ProviderRegistry


# ══════════════════════════════════════════════════════════════════════════
# Stub Adapters
# ══════════════════════════════════════════════════════════════════════════

class StubAdapter(ProviderAdapter):
    """
    Completion-only adapter with call-count instrumentation.

    reply:    text of the single suggestion returned on success
    error:    exception raised from enhance() instead of replying
    delay:    seconds to sleep before replying (simulates a hung backend)
    """

    TEMPLATES = {"rephrase": "Rephrase the text."}

    def __init__(
        self,
        name: str,
        reply: str = "Enhanced text",
        error: Optional[Exception] = None,
        delay: float = 0.0,
        needs_key: bool = True,
    ) -> None:
        self.name = name
        super().__init__()
        self.reply = reply
        self.error = error
        self.delay = delay
        self.needs_key = needs_key
        self.calls: List[tuple] = []
        self.configured_with: List[tuple] = []

    def configure(self, api_key: str, model: Optional[str] = None) -> None:
        self.configured_with.append((api_key, model))
        super().configure(api_key, model)

    def is_configured(self) -> bool:
        return True if not self.needs_key else super().is_configured()

    async def test_connection(self) -> bool:
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.error is None

    async def _respond(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    async def enhance(self, text: str, options: EnhancementOptions) -> EnhancementResult:
        self.calls.append(("enhance", text, options))
        await self._respond()
        return EnhancementResult(
            original=text,
            suggestions=[Suggestion(text=self.reply, type=options.type, confidence=0.9)],
            provider=self.name,
            tokens_used=12,
            processing_time=1.0,
        )


class StubChatAdapter(StubAdapter, ChatProviderAdapter):
    """StubAdapter that also answers full conversations."""

    async def enhance_chat(
        self,
        messages: List[ChatMessage],
        options: ChatOptions,
    ) -> ChatCompletion:
        self.calls.append(("chat", messages, options))
        await self._respond()
        return ChatCompletion(text=self.reply, tokens_used=30, finish_reason="stop", model="stub")


# ══════════════════════════════════════════════════════════════════════════
# Orchestration Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def stub_adapter() -> Callable[..., StubAdapter]:
    return StubAdapter


@pytest.fixture
def stub_chat_adapter() -> Callable[..., StubChatAdapter]:
    return StubChatAdapter


def descriptor(name: str, priority: int = 1, enabled: bool = True, api_key: str = "key") -> ProviderDescriptor:
    return ProviderDescriptor(name=name, priority=priority, enabled=enabled, api_key=api_key, model="m")


@pytest.fixture
def make_descriptor() -> Callable[..., ProviderDescriptor]:
    """
    Provides a ProviderDescriptor factory.

    Usage:
        make_descriptor("A", priority=2, api_key="")
    """
    return descriptor


@pytest.fixture
def build_orchestrator():
    """
    Wires stub adapters and descriptors into a FallbackOrchestrator.

    Returns (orchestrator, registry, store). The timeout is short so hung
    stubs fail fast.

    Usage:
        orchestrator, registry, store = build_orchestrator(
            [StubAdapter("A")], [make_descriptor("A")]
        )
    """

    def _build(
        adapters: List[ProviderAdapter],
        descriptors: List[ProviderDescriptor],
        timeout_seconds: float = 0.2,
    ):
        store = InMemoryConfigStore(descriptors)
        registry = ProviderRegistry(store, adapters)
        return FallbackOrchestrator(registry, store, timeout_seconds=timeout_seconds), registry, store

    return _build


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def session_factory():
    """
    Provides an async_sessionmaker bound to a private in-memory SQLite database.

    StaticPool keeps a single connection, so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    """A session on the in-memory database; uncommitted work is rolled back."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# ══════════════════════════════════════════════════════════════════════════
# API Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    Provides an async HTTP test client for endpoint testing.

    What:    HTTPX AsyncClient configured to talk to our FastAPI app.
    How:     Uses ASGITransport to route requests directly to the app. The
             request-scoped DB session is swapped for one on the in-memory
             database. The lifespan does not run under ASGITransport.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from writeup.database import get_db_session
    from writeup.main import app

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
