"""
Context assembly - builds the ordered message list sent with each request.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from ..models import ChatConfig, ChatSession, Message, create_message
from ..prompts import EXAMPLE_MESSAGES, history_prompt

DEFAULT_TOKEN_BUDGET = 4000


def count_messages(messages: Sequence[Message]) -> int:
    """Combined character length of the messages' content."""
    return sum(len(m.content) for m in messages)


def trailing_window(messages: Sequence[Message], count: int) -> List[Message]:
    """The last ``count`` messages in order; all of them when ``count`` is negative."""
    if count < 0:
        return list(messages)
    if count == 0:
        return []
    return list(messages[-count:])


def effective_token_budget(config: ChatConfig) -> int:
    max_tokens = config.model_settings.max_tokens
    if isinstance(max_tokens, (int, float)) and not isinstance(max_tokens, bool):
        return max_tokens
    return DEFAULT_TOKEN_BUDGET


def get_memory_prompt(session: ChatSession) -> Message:
    """System message carrying the session's memory summary."""
    return create_message(role="system", content=history_prompt(session.memory_prompt), date="")


def example_messages() -> List[Message]:
    """Fresh copies of the few-shot block; never stored in a session."""
    date = datetime.now(timezone.utc).isoformat()
    return [create_message(role=m["role"], content=m["content"], date=date) for m in EXAMPLE_MESSAGES]


class ContextAssembler:
    """
    Produces the outbound context for a session:

    1. optional system prompt override
    2. the session's pinned context
    3. the memory prompt, if memory is enabled and non-empty
    4. the few-shot examples
    5. the last ``historyMessageCount`` non-error messages
    """

    def __init__(self, system_prompt: Optional[str] = None, include_examples: bool = True):
        self.system_prompt = system_prompt
        self.include_examples = include_examples

    def build(self, session: ChatSession, config: ChatConfig) -> List[Message]:
        messages = [m for m in session.messages if not m.is_error]

        context = list(session.context)
        if session.send_memory and session.memory_prompt:
            context.append(get_memory_prompt(session))

        if self.include_examples:
            context.extend(example_messages())

        context.extend(trailing_window(messages, config.history_message_count))

        if self.system_prompt is not None:
            context.insert(0, create_message(role="system", content=self.system_prompt, date=""))

        return context
