"""
Chat Store - exclusive owner of the session collection, the current-session
pointer and the global chat configuration.

Every structural change to ``sessions`` goes through this class. Observers
registered with ``subscribe`` are notified after each change, including each
partial update of a streaming response.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..llm.base import LLMError
from ..llm.transport import ChatTransport, RequestOptions
from ..models import (
    ChatConfig,
    ChatSession,
    Message,
    create_empty_session,
    create_message,
)
from ..prompts import DEFAULT_TOPIC, ERROR_SUFFIX, SUMMARIZE_PROMPT, TOPIC_PROMPT, trim_topic
from .context import (
    ContextAssembler,
    count_messages,
    effective_token_budget,
    get_memory_prompt,
    trailing_window,
)
from .controller_pool import ControllerPool
from .stream_handler import ChatRequest

logger = logging.getLogger(__name__)

# Topic is generated once the conversation has at least this many characters
SUMMARIZE_MIN_LEN = 50

Listener = Callable[["ChatStore"], None]


@dataclass
class DeletedSession:
    """A removed session that can still be put back."""
    session: ChatSession
    index: int
    was_last: bool
    deadline: float


class ChatStore:
    """State-management object for all chat sessions."""

    def __init__(
        self,
        transport: Optional[ChatTransport] = None,
        sessions: Optional[List[ChatSession]] = None,
        current_session_index: int = 0,
        config: Optional[ChatConfig] = None,
        system_prompt: Optional[str] = None,
        revert_window: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.transport = transport or ChatTransport()
        self.sessions: List[ChatSession] = sessions or [create_empty_session()]
        self.current_session_index = current_session_index
        self.config = config or ChatConfig()
        self.assembler = ContextAssembler(system_prompt)
        self.controllers = ControllerPool()
        self.revert_window = revert_window
        self._clock = clock
        self._pending_revert: Optional[DeletedSession] = None
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"Store listener failed: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Session collection
    # ------------------------------------------------------------------

    def clear_sessions(self) -> None:
        self.sessions = [create_empty_session()]
        self.current_session_index = 0
        self._pending_revert = None
        self._publish()

    def select_session(self, index: int) -> None:
        """Point at ``index``; an invalid index is clamped on the next read."""
        self.current_session_index = index
        self._publish()

    def new_session(self) -> ChatSession:
        session = create_empty_session()
        self.sessions.insert(0, session)
        self.current_session_index = 0
        self._publish()
        return session

    def remove_session(self, index: int) -> None:
        self._pending_revert = None

        if len(self.sessions) == 1:
            self.sessions = [create_empty_session()]
            self.current_session_index = 0
            self._publish()
            return

        del self.sessions[index]
        next_index = self.current_session_index
        if next_index == index:
            next_index -= 1
        self.current_session_index = max(0, next_index)
        self._publish()

    def move_session(self, from_index: int, to_index: int) -> None:
        """Move one session, keeping the current pointer on the same session."""
        old_index = self.current_session_index
        sessions = list(self.sessions)
        session = sessions.pop(from_index)
        sessions.insert(to_index, session)

        new_index = to_index if old_index == from_index else old_index
        if from_index < old_index <= to_index:
            new_index -= 1
        elif to_index <= old_index < from_index:
            new_index += 1

        self.sessions = sessions
        self.current_session_index = new_index
        self._publish()

    def delete_session(self, confirm: Optional[Callable[[], bool]] = None) -> bool:
        """
        Remove the current session and keep it around for ``revert_delete``.

        Args:
            confirm: Optional confirmation gate; the session is kept when it
                returns False

        Returns:
            True if the session was removed
        """
        deleted = self.current_session()
        index = self.current_session_index
        was_last = len(self.sessions) == 1

        if confirm is not None and not confirm():
            return False

        self.remove_session(index)
        self._pending_revert = DeletedSession(
            session=deleted,
            index=index,
            was_last=was_last,
            deadline=self._clock() + self.revert_window,
        )
        logger.info(f"Deleted session {deleted.id} at index {index}")
        return True

    def can_revert(self) -> bool:
        pending = self._pending_revert
        return pending is not None and self._clock() <= pending.deadline

    def revert_delete(self) -> bool:
        """Put the last deleted session back at its old index, if still allowed."""
        if not self.can_revert():
            self._pending_revert = None
            return False

        pending = self._pending_revert
        self._pending_revert = None
        self.sessions = (
            self.sessions[:pending.index]
            + [pending.session]
            + self.sessions[pending.index + int(pending.was_last):]
        )
        self.current_session_index = pending.index
        logger.info(f"Restored session {pending.session.id} at index {pending.index}")
        self._publish()
        return True

    def current_session(self) -> ChatSession:
        index = self.current_session_index
        if index < 0 or index >= len(self.sessions):
            index = min(len(self.sessions) - 1, max(0, index))
            self.current_session_index = index
        return self.sessions[index]

    def find_session(self, session_id: int) -> Optional[ChatSession]:
        for session in self.sessions:
            if session.id == session_id:
                return session
        return None

    # ------------------------------------------------------------------
    # Controlled updaters
    # ------------------------------------------------------------------

    def update_current_session(self, updater: Callable[[ChatSession], Any]) -> None:
        updater(self.current_session())
        self._publish()

    def update_session(self, session_id: int, updater: Callable[[ChatSession], Any]) -> Optional[ChatSession]:
        """Apply ``updater`` to the session with ``session_id``; no-op if it is gone."""
        session = self.find_session(session_id)
        if session is None:
            return None
        updater(session)
        self._publish()
        return session

    def update_message(
        self,
        session_index: int,
        message_index: int,
        updater: Callable[[Optional[Message]], Any],
    ) -> None:
        """Apply ``updater`` to a message by position; it receives None if absent."""
        message = None
        if -len(self.sessions) <= session_index < len(self.sessions):
            messages = self.sessions[session_index].messages
            if -len(messages) <= message_index < len(messages):
                message = messages[message_index]
        updater(message)
        self._publish()

    def update_message_by_id(
        self,
        session_id: int,
        message_id: int,
        updater: Callable[[Message], Any],
    ) -> Optional[Message]:
        """Resolve a message by identity and mutate it. Returns None if it is gone."""
        session = self.find_session(session_id)
        message = session.find_message(message_id) if session else None
        if message is None:
            logger.debug(f"Message {message_id} of session {session_id} no longer exists")
            return None
        updater(message)
        self._publish()
        return message

    def reset_session(self) -> None:
        def reset(session: ChatSession) -> None:
            session.messages = []
            session.memory_prompt = ""

        self.update_current_session(reset)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def on_new_message(self, message: Message, session_id: Optional[int] = None) -> None:
        logger.debug(f"New message {message.id} ({len(message.content)} chars)")

        def touch(session: ChatSession) -> None:
            session.last_update = datetime.now().strftime("%Y/%m/%d %H:%M:%S")

        if session_id is None:
            self.update_current_session(touch)
        else:
            self.update_session(session_id, touch)

    def update_stat(self, message: Message) -> None:
        def count(session: ChatSession) -> None:
            session.stat.char_count += len(message.content)
            session.stat.word_count += len(message.content.split())

        self.update_current_session(count)

    def get_memory_prompt(self) -> Message:
        return get_memory_prompt(self.current_session())

    def get_messages_with_memory(self) -> List[Message]:
        return self.assembler.build(self.current_session(), self.config)

    def on_user_input(self, content: str) -> ChatRequest:
        """
        Append the user's message and a streaming placeholder reply to the
        current session, then start the request. Must run inside an event loop.
        """
        user_message = create_message(role="user", content=content)
        bot_message = create_message(role="assistant", streaming=True)

        send_messages = self.get_messages_with_memory() + [user_message]
        session = self.current_session()
        session_index = self.current_session_index

        def append(s: ChatSession) -> None:
            s.messages.append(user_message)
            s.messages.append(bot_message)

        self.update_current_session(append)

        logger.info(
            "User input submitted",
            extra={"extra_fields": {
                "session_id": session.id,
                "message_id": bot_message.id,
                "context_messages": len(send_messages),
            }}
        )

        request = ChatRequest(self, session.id, session_index, user_message.id, bot_message.id)
        request.start(
            self.transport,
            send_messages,
            RequestOptions.from_model_config(
                self.config.model_settings,
                include_assistant_turns=self.config.send_bot_messages,
            ),
        )
        return request

    def stop_response(self, session_index: int, message_id: int) -> bool:
        return self.controllers.stop(session_index, message_id)

    def stop_all(self) -> int:
        return self.controllers.stop_all()

    # ------------------------------------------------------------------
    # Summarization
    # ------------------------------------------------------------------

    async def summarize_session(self) -> None:
        """
        Generate a topic for a fresh conversation and fold unsummarized
        history into the memory prompt. Failures are logged and leave the
        previous topic/memory untouched.
        """
        session = self.current_session()
        jobs = []

        messages = [m for m in session.messages if not m.is_error]
        if session.topic == DEFAULT_TOPIC and count_messages(messages) >= SUMMARIZE_MIN_LEN:
            jobs.append(self._summarize_topic(session.id, messages))

        config = self.config
        to_be_summarized = [
            m for m in session.messages[session.last_summarize_index:] if not m.is_error
        ]
        history_length = count_messages(to_be_summarized)

        if history_length > effective_token_budget(config):
            to_be_summarized = trailing_window(to_be_summarized, config.history_message_count)

        to_be_summarized.insert(0, get_memory_prompt(session))
        last_summarize_index = len(session.messages)

        logger.debug(
            f"Chat history for session {session.id}: {len(to_be_summarized)} messages, "
            f"{history_length} chars, threshold {config.compress_message_length_threshold}"
        )

        if history_length > config.compress_message_length_threshold:
            jobs.append(self._compress_memory(session.id, to_be_summarized, last_summarize_index))

        if jobs:
            results = await asyncio.gather(*jobs, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error(f"Summarization of session {session.id} failed: {result}", exc_info=result)

    async def _summarize_topic(self, session_id: int, messages: List[Message]) -> None:
        try:
            result = await self.transport.request_with_prompt(
                messages,
                TOPIC_PROMPT,
                RequestOptions.from_model_config(self.config.model_settings),
            )
        except LLMError as e:
            logger.error(f"[Topic] summarize failed: {e}")
            return

        topic = trim_topic(result) if result else ""

        def set_topic(session: ChatSession) -> None:
            session.topic = topic or DEFAULT_TOPIC

        self.update_session(session_id, set_topic)

    async def _compress_memory(
        self,
        session_id: int,
        messages: List[Message],
        last_summarize_index: int,
    ) -> None:
        def on_message(content: str, done: bool) -> None:
            def write(session: ChatSession) -> None:
                session.memory_prompt = content
                if done:
                    session.last_summarize_index = last_summarize_index

            self.update_session(session_id, write)
            if done:
                logger.info(f"[Memory] session {session_id} summarized up to {last_summarize_index}")

        def on_error(error: LLMError, status_code: Optional[int] = None) -> None:
            logger.error(f"[Summarize] session {session_id} failed: {error} (status={status_code})")

        summarize = create_message(role="system", content=SUMMARIZE_PROMPT, date="")
        handle = self.transport.submit(
            messages + [summarize],
            RequestOptions.from_model_config(self.config.model_settings, include_assistant_turns=True),
            on_message,
            on_error,
        )
        await handle.wait()

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------

    def get_config(self) -> ChatConfig:
        return self.config

    def update_config(self, updater: Callable[[ChatConfig], Any]) -> ChatConfig:
        """Mutate the config, then re-validate it so model parameters stay in bounds."""
        config = self.config.model_copy(deep=True)
        updater(config)
        self.config = ChatConfig.model_validate(config.model_dump(by_alias=True))
        self._publish()
        return self.config

    def reset_config(self) -> None:
        self.config = ChatConfig()
        self._publish()

    def clear_all_data(self) -> None:
        self.stop_all()
        self.sessions = [create_empty_session()]
        self.current_session_index = 0
        self.config = ChatConfig()
        self._pending_revert = None
        self._publish()

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data view of the whole state, as persisted."""
        return {
            "sessions": [s.model_dump(by_alias=True, mode="json") for s in self.sessions],
            "currentSessionIndex": self.current_session_index,
            "config": self.config.model_dump(by_alias=True, mode="json"),
        }

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any], **kwargs: Any) -> "ChatStore":
        sessions = [ChatSession.model_validate(s) for s in data.get("sessions") or []]
        for session in sessions:
            _fail_interrupted(session)

        config = ChatConfig.model_validate(data["config"]) if data.get("config") else None
        return cls(
            sessions=sessions or None,
            current_session_index=int(data.get("currentSessionIndex", 0)),
            config=config,
            **kwargs,
        )


def _fail_interrupted(session: ChatSession) -> None:
    """
    A message saved while still streaming belongs to a request that died with
    the process. Flag it and the user message it answered as errored.
    """
    for i, message in enumerate(session.messages):
        if not message.streaming:
            continue
        message.streaming = False
        message.is_error = True
        message.content = message.content + "\n\n" + ERROR_SUFFIX
        if i > 0 and session.messages[i - 1].role == "user":
            session.messages[i - 1].is_error = True
        logger.warning(f"Marked interrupted reply {message.id} in session {session.id} as failed")
