"""
Unit tests for context assembly.
"""

import pytest

from greenius.core.context import (
    ContextAssembler,
    count_messages,
    effective_token_budget,
    get_memory_prompt,
    trailing_window,
)
from greenius.models import ChatConfig, ChatSession, create_message
from greenius.prompts import EXAMPLE_MESSAGES, history_prompt

N_EXAMPLES = len(EXAMPLE_MESSAGES)


def _session(n, errors=()):
    session = ChatSession()
    for i in range(n):
        role = "user" if i % 2 == 0 else "assistant"
        session.messages.append(create_message(role=role, content=f"m{i}", is_error=i in errors))
    return session


def _tail(result, session, config):
    """The transcript part of an assembled context."""
    return result[N_EXAMPLES:] if not session.memory_prompt else result[N_EXAMPLES + 1:]


class TestTrailingWindow:

    @pytest.mark.parametrize("k", [0, 1, 2, 5, 8, 20])
    def test_window_size_and_order(self, k):
        session = _session(8)
        config = ChatConfig(history_message_count=k)
        result = ContextAssembler().build(session, config)
        tail = _tail(result, session, config)
        expected = session.messages[len(session.messages) - min(k, 8):]
        assert len(tail) == min(k, 8)
        assert [m.id for m in tail] == [m.id for m in expected]

    def test_negative_count_keeps_everything(self):
        session = _session(6, errors={1, 4})
        config = ChatConfig(history_message_count=-1)
        tail = _tail(ContextAssembler().build(session, config), session, config)
        assert [m.content for m in tail] == ["m0", "m2", "m3", "m5"]

    def test_error_messages_are_excluded_before_slicing(self):
        session = _session(6, errors={4, 5})
        config = ChatConfig(history_message_count=2)
        tail = _tail(ContextAssembler().build(session, config), session, config)
        assert [m.content for m in tail] == ["m2", "m3"]

    def test_helper_zero(self):
        assert trailing_window(_session(3).messages, 0) == []


class TestContextAssembler:

    def test_empty_session_has_only_examples(self):
        result = ContextAssembler().build(ChatSession(), ChatConfig())
        assert len(result) == N_EXAMPLES
        assert result[0].content == EXAMPLE_MESSAGES[0]["content"]

    def test_pinned_context_comes_first(self):
        session = _session(2)
        pinned = create_message(role="system", content="You are an agronomist.")
        session.context.append(pinned)
        result = ContextAssembler().build(session, ChatConfig())
        assert result[0] is pinned
        assert session.context == [pinned]

    def test_memory_prompt_injected(self):
        session = _session(2)
        session.memory_prompt = "User grows tomatoes."
        result = ContextAssembler().build(session, ChatConfig())
        assert result[0].role == "system"
        assert result[0].content == history_prompt("User grows tomatoes.")

    def test_memory_prompt_skipped_when_disabled(self):
        session = _session(2)
        session.memory_prompt = "User grows tomatoes."
        session.send_memory = False
        result = ContextAssembler().build(session, ChatConfig())
        assert all("recap" not in m.content for m in result)

    def test_memory_prompt_skipped_when_empty(self):
        result = ContextAssembler().build(_session(2), ChatConfig())
        assert len(result) == N_EXAMPLES + 2

    def test_system_prompt_override_is_first(self):
        session = _session(2)
        session.context.append(create_message(role="system", content="pinned"))
        result = ContextAssembler(system_prompt="Be concise.").build(session, ChatConfig())
        assert result[0].content == "Be concise."
        assert result[1].content == "pinned"

    def test_examples_not_persisted(self):
        session = _session(2)
        ContextAssembler().build(session, ChatConfig())
        assert len(session.messages) == 2
        assert session.context == []

    def test_examples_can_be_disabled(self):
        result = ContextAssembler(include_examples=False).build(_session(3), ChatConfig())
        assert [m.content for m in result] == ["m0", "m1", "m2"]


class TestHelpers:

    def test_count_messages(self):
        assert count_messages(_session(3).messages) == 6

    def test_memory_prompt_message(self):
        session = ChatSession(memory_prompt="summary")
        msg = get_memory_prompt(session)
        assert msg.role == "system"
        assert msg.content.endswith("summary")
        assert msg.date == ""

    def test_budget_uses_max_tokens(self):
        config = ChatConfig()
        config.model_settings.max_tokens = 1200
        assert effective_token_budget(config) == 1200

    def test_budget_zero_is_respected(self):
        config = ChatConfig()
        config.model_settings.max_tokens = 0
        assert effective_token_budget(config) == 0
