"""Pytest fixtures and shared test configuration.

Provides reusable fixtures for unit and integration tests.

Fixtures:
    - chat_id, token: Consistent identifiers for assertions
    - client_config: Config pointing at the in-process backend
    - backend: Scripted FastAPI chat backend
    - http_client: HTTPX client wired to the backend through ASGITransport
    - session_factory: Builds sessions on that client and tears them down

Implements async fixtures with proper cleanup.
"""

from collections.abc import AsyncGenerator, Callable

import pytest
from httpx import ASGITransport, AsyncClient

from chatstream.config import ClientConfig
from chatstream.session import ChatStreamingSession
from tests.fake_backend import FakeChatBackend


@pytest.fixture
def chat_id() -> str:
    """Return a consistent conversation id."""
    return "chat-12345"


@pytest.fixture
def token() -> str:
    """Return the bearer token the fake backend accepts."""
    return "test-token"


@pytest.fixture
def client_config() -> ClientConfig:
    """Config for the in-process backend with a short flush delay.

    Returns:
        ClientConfig whose URLs resolve against the ASGI test transport.
    """
    return ClientConfig(base_url="http://test", api_prefix="/api/v1", flush_delay=0.01)


@pytest.fixture
def backend(token: str) -> FakeChatBackend:
    """Create a scripted chat backend."""
    return FakeChatBackend(token=token)


@pytest.fixture
async def http_client(backend: FakeChatBackend) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for the fake backend.

    Yields:
        Configured AsyncClient for making test requests.
    """
    transport = ASGITransport(app=backend.app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def session_factory(
    chat_id: str,
    token: str,
    client_config: ClientConfig,
    http_client: AsyncClient,
) -> AsyncGenerator[Callable[..., ChatStreamingSession], None]:
    """Build sessions against the fake backend; close them after the test.

    Yields:
        Factory accepting ChatStreamingSession keyword overrides.
    """
    sessions: list[ChatStreamingSession] = []

    def factory(**kwargs) -> ChatStreamingSession:
        kwargs.setdefault("config", client_config)
        kwargs.setdefault("http_client", http_client)
        session = ChatStreamingSession(kwargs.pop("chat_id", chat_id), kwargs.pop("token", token), **kwargs)
        sessions.append(session)
        return session

    yield factory

    for session in sessions:
        await session.aclose()
