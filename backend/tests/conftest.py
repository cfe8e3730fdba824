"""
Shared test fixtures and configuration.
"""

import asyncio
import os
from typing import List, Optional

import pytest

# Set test environment variables before importing app modules
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/greenius_test_data")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_CONSOLE_ENABLED", "false")
os.environ.pop("LLM_API_KEY", None)
os.environ.pop("SYSTEM_PROMPT", None)

from greenius.core import ChatStore  # noqa: E402
from greenius.llm.base import LLMProvider, LLMResponse  # noqa: E402
from greenius.llm.transport import ChatTransport  # noqa: E402


class ScriptedProvider(LLMProvider):
    """
    Provider double: streams ``chunks`` then optionally waits on ``gate`` and
    raises ``error``. Non-streaming calls return ``reply``.
    """

    def __init__(self, chunks: Optional[List[str]] = None, error: Optional[Exception] = None,
                 reply: str = "", gate: Optional[asyncio.Event] = None):
        super().__init__(api_key="test-key", model="test-model")
        self.chunks = list(chunks or [])
        self.error = error
        self.reply = reply
        self.gate = gate
        self.stream_calls = []
        self.completion_calls = []

    async def chat_completion(self, messages, temperature=None, max_tokens=None, **kwargs):
        self.completion_calls.append({"messages": messages, **kwargs})
        if self.error:
            raise self.error
        return LLMResponse(content=self.reply, model=self.model)

    async def chat_completion_stream(self, messages, temperature=None, max_tokens=None, **kwargs):
        self.stream_calls.append({"messages": messages, "temperature": temperature,
                                  "max_tokens": max_tokens, **kwargs})
        for chunk in self.chunks:
            yield chunk
        if self.gate is not None:
            await self.gate.wait()
        if self.error:
            raise self.error


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    """Store whose requests fail immediately (no provider)."""
    return ChatStore(transport=ChatTransport(), clock=clock)


def make_store(provider: Optional[LLMProvider] = None, **kwargs) -> ChatStore:
    return ChatStore(transport=ChatTransport(provider), **kwargs)
