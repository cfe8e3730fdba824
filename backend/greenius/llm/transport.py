"""
Chat Transport - callback-driven streaming requests on top of an LLMProvider.

``submit`` returns immediately with a cancellable ``StreamHandle``; the request
runs as an asyncio task and reports progress through two callbacks:

- ``on_message(content_so_far, done)``: zero or more partial events followed by
  exactly one ``done=True`` event on success.
- ``on_error(error, status_code)``: the terminal event on failure.

Cancelling a handle stops callback delivery; no terminal event follows it.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from .base import LLMError, LLMMessage, LLMProvider

logger = logging.getLogger(__name__)

OnMessage = Callable[[str, bool], None]
OnError = Callable[[LLMError, Optional[int]], None]


@dataclass
class RequestOptions:
    """Per-request model parameters."""
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    presence_penalty: Optional[float] = None
    include_assistant_turns: bool = True

    @classmethod
    def from_model_config(cls, model_config: Any, include_assistant_turns: bool = True) -> "RequestOptions":
        return cls(
            model=model_config.model,
            temperature=model_config.temperature,
            max_tokens=model_config.max_tokens,
            presence_penalty=model_config.presence_penalty,
            include_assistant_turns=include_assistant_turns,
        )


class StreamHandle:
    """Cancellation capability for one in-flight streaming request."""

    def __init__(self, task: "asyncio.Task[None]"):
        self._task = task
        self.cancelled = False

    @property
    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        """Stop delivering events. Safe to call more than once."""
        self.cancelled = True
        if not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        """Wait until the request finished, failed or was cancelled."""
        await asyncio.wait({self._task})


class ChatTransport:
    """
    Sends ordered role-tagged messages to the configured provider.
    A transport without a provider fails every request with an error event.
    """

    def __init__(self, provider: Optional[LLMProvider] = None):
        self.provider = provider

    @staticmethod
    def _to_llm_messages(messages: Sequence[Any], include_assistant_turns: bool) -> List[LLMMessage]:
        return [
            LLMMessage.text(m.role, m.content)
            for m in messages
            if include_assistant_turns or m.role != "assistant"
        ]

    def submit(
        self,
        messages: Sequence[Any],
        options: RequestOptions,
        on_message: OnMessage,
        on_error: OnError,
    ) -> StreamHandle:
        """Start a streaming request. Must be called from a running event loop."""
        llm_messages = self._to_llm_messages(messages, options.include_assistant_turns)
        task = asyncio.create_task(self._run(llm_messages, options, on_message, on_error))
        return StreamHandle(task)

    async def _run(
        self,
        messages: List[LLMMessage],
        options: RequestOptions,
        on_message: OnMessage,
        on_error: OnError,
    ) -> None:
        if self.provider is None:
            on_error(LLMError("LLM provider is not configured"), None)
            return

        content = ""
        try:
            async for delta in self.provider.chat_completion_stream(
                messages,
                temperature=options.temperature,
                max_tokens=options.max_tokens,
                model=options.model,
                presence_penalty=options.presence_penalty,
            ):
                content += delta
                on_message(content, False)
        except LLMError as e:
            on_error(e, e.status_code)
            return
        except Exception as e:
            logger.error(f"Streaming request failed: {e}", exc_info=True)
            on_error(LLMError(str(e)), None)
            return

        on_message(content, True)

    async def request_with_prompt(
        self,
        messages: Sequence[Any],
        prompt: str,
        options: Optional[RequestOptions] = None,
    ) -> str:
        """
        Non-streaming request with ``prompt`` appended as a user message.

        Returns:
            The first choice's text, or "" when the API returned none

        Raises:
            LLMError: when the request fails or no provider is configured
        """
        if self.provider is None:
            raise LLMError("LLM provider is not configured")

        options = options or RequestOptions()
        llm_messages = self._to_llm_messages(messages, True)
        llm_messages.append(LLMMessage.text("user", prompt))

        response = await self.provider.chat_completion(
            llm_messages,
            temperature=options.temperature,
            max_tokens=options.max_tokens,
            model=options.model,
            presence_penalty=options.presence_penalty,
        )
        return response.content or ""
