"""Pytest configuration and shared fixtures"""

import asyncio
import os
from datetime import UTC, datetime, timedelta

import httpx
import pytest
import pytest_asyncio

from gcs_client.client import StorageClient
from gcs_client.config import Config
from gcs_client.models import Token

# Configure pytest-asyncio
pytest_plugins = ("pytest_asyncio",)

TEST_URL = "https://storage.test/storage/v1/b/bucket/o/object"


def expired_token(access_token: str = "expired") -> Token:
    """A token whose expiry is already in the past"""
    return Token(
        access_token=access_token,
        expires_at=datetime.now(UTC) - timedelta(minutes=5),
    )


class RecordingTokenGenerator:
    """Token generator that numbers and remembers every token it mints"""

    def __init__(self, expires_in: int = 3600, pause: bool = False):
        self.expires_in = expires_in
        self.pause = pause
        self.minted: list[Token] = []

    @property
    def calls(self) -> int:
        return len(self.minted)

    async def get(self, http_client: httpx.AsyncClient) -> Token:
        if self.pause:
            # Let other tasks run while "on the network"
            await asyncio.sleep(0)
        token = Token(
            access_token=f"token-{self.calls + 1}",
            expires_at=datetime.now(UTC) + timedelta(seconds=self.expires_in),
        )
        self.minted.append(token)
        return token


class ChunkedStream(httpx.AsyncByteStream):
    """Response body delivered in fixed chunks, optionally failing on one"""

    def __init__(self, chunks: list[bytes], fail_at: int | None = None):
        self.chunks = chunks
        self.fail_at = fail_at
        self.closed = False

    async def __aiter__(self):
        for position, chunk in enumerate(self.chunks, start=1):
            if position == self.fail_at:
                raise httpx.ReadError("connection reset by peer")
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def token_generator():
    """Token generator fixture"""
    return RecordingTokenGenerator()


@pytest.fixture
def generator_factory():
    """RecordingTokenGenerator class, for tests needing custom settings"""
    return RecordingTokenGenerator


@pytest.fixture
def stale_token():
    """Factory for already expired tokens"""
    return expired_token


@pytest.fixture
def chunked_stream():
    """ChunkedStream class for building streamed response bodies"""
    return ChunkedStream


@pytest_asyncio.fixture
async def make_client(token_generator):
    """Factory building a StorageClient over an httpx.MockTransport handler"""
    http_clients = []

    async def _make(handler) -> StorageClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        http_clients.append(http_client)
        return await StorageClient.create(token_generator, http_client=http_client)

    yield _make

    for http_client in http_clients:
        await http_client.aclose()


@pytest.fixture
def clean_env():
    """Fixture that temporarily clears GCSCLIENT_* environment variables.

    This ensures Config tests see the true defaults without interference
    from environment variables that might be set in the user's shell.
    """
    gcs_vars = {
        key: value for key, value in os.environ.items() if key.startswith("GCSCLIENT_")
    }

    for key in gcs_vars:
        os.environ.pop(key, None)

    try:
        yield
    finally:
        for key, value in gcs_vars.items():
            os.environ[key] = value


@pytest.fixture
def clean_config(clean_env):
    """Fixture that provides a Config instance with clean environment."""
    return Config()
