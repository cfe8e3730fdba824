"""
Streaming response handling for one submitted user message.

A ``ChatRequest`` never holds message objects. It keeps the session id and
the two message ids and re-resolves them through the store on every
mutation, so it stays correct when sessions are reordered or removed while
the response streams.
"""

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, AsyncGenerator, Dict, Optional, Sequence

from ..llm.base import LLMError
from ..llm.transport import ChatTransport, RequestOptions, StreamHandle
from ..prompts import CANCELLED_NOTICE, ERROR_SUFFIX, UNAUTHORIZED_NOTICE

if TYPE_CHECKING:
    from .chat_store import ChatStore

logger = logging.getLogger(__name__)


class ResponseState(str, Enum):
    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"
    CANCELLED = "cancelled"


TERMINAL_STATES = {ResponseState.COMPLETED, ResponseState.ERRORED, ResponseState.CANCELLED}


class ChatRequest:
    """Drives one assistant response from submission to a terminal state."""

    def __init__(
        self,
        store: "ChatStore",
        session_id: int,
        session_index: int,
        user_message_id: int,
        bot_message_id: int,
    ):
        self.store = store
        self.session_id = session_id
        self.session_index = session_index
        self.user_message_id = user_message_id
        self.bot_message_id = bot_message_id
        self.state = ResponseState.PENDING
        self.content = ""
        self._handle: Optional[StreamHandle] = None
        self._finished = asyncio.Event()
        # Content is cumulative, so only the newest unread event is kept
        self._latest_event: Optional[Dict[str, Any]] = None
        self._event_ready = asyncio.Event()

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def start(self, transport: ChatTransport, messages: Sequence[Any], options: RequestOptions) -> None:
        """Dispatch the request and register it as the cancellable controller."""
        self._handle = transport.submit(messages, options, self.on_message, self.on_error)
        self.store.controllers.add_controller(self.session_index, self.bot_message_id, self)

    def on_message(self, content: str, done: bool) -> None:
        if self.finished:
            return

        self.content = content
        if done:
            self.state = ResponseState.COMPLETED

            def finalize(message):
                message.streaming = False
                message.content = content

            message = self.store.update_message_by_id(self.session_id, self.bot_message_id, finalize)
            if message is not None:
                self.store.on_new_message(message, session_id=self.session_id)
            self._finish({"type": "done", "content": content})
        else:
            self.state = ResponseState.STREAMING

            def stream(message):
                message.content = content

            self.store.update_message_by_id(self.session_id, self.bot_message_id, stream)
            self._emit({"type": "content", "content": content})

    def on_error(self, error: LLMError, status_code: Optional[int] = None) -> None:
        if self.finished:
            return

        logger.warning(
            f"Chat request failed: {error}",
            extra={"extra_fields": {
                "session_id": self.session_id,
                "message_id": self.bot_message_id,
                "status_code": status_code,
            }}
        )
        self.state = ResponseState.ERRORED
        if status_code == 401:
            self._fail(lambda content: UNAUTHORIZED_NOTICE)
        else:
            self._fail(lambda content: content + "\n\n" + ERROR_SUFFIX)
        self._finish({"type": "error", "content": self.content, "status_code": status_code})

    def cancel(self) -> None:
        """User-initiated stop; the transport will not send a terminal event."""
        if self._handle is not None:
            self._handle.cancel()
        if self.finished:
            return

        logger.info(f"Chat request cancelled: session={self.session_id}, message={self.bot_message_id}")
        self.state = ResponseState.CANCELLED
        self._fail(lambda content: content + "\n\n" + CANCELLED_NOTICE)
        self._finish({"type": "cancelled", "content": self.content})

    def _fail(self, notice) -> None:
        def mark_bot(message):
            message.content = notice(message.content)
            message.streaming = False
            message.is_error = True

        def mark_user(message):
            message.is_error = True

        self.store.update_message_by_id(self.session_id, self.user_message_id, mark_user)
        message = self.store.update_message_by_id(self.session_id, self.bot_message_id, mark_bot)
        if message is not None:
            self.content = message.content

    def _finish(self, event: Dict[str, Any]) -> None:
        self.store.controllers.remove(self.session_index, self.bot_message_id, self)
        self._emit(event)
        self._finished.set()

    def _emit(self, event: Dict[str, Any]) -> None:
        self._latest_event = event
        self._event_ready.set()

    async def wait(self) -> ResponseState:
        """Wait for a terminal state."""
        await self._finished.wait()
        return self.state

    async def events(self) -> AsyncGenerator[Dict[str, Any], None]:
        """
        Yield content/terminal events until the request finishes. Partial
        updates that arrive faster than they are read collapse into the newest.
        """
        while True:
            await self._event_ready.wait()
            self._event_ready.clear()
            event = self._latest_event
            yield event
            if event["type"] != "content":
                return
