"""
Tests for the streaming response state machine and session summarization.
"""

import asyncio
from unittest.mock import MagicMock, patch

import httpx
import pytest

from conftest import ScriptedProvider, make_store
from greenius.core import ChatStore, ResponseState
from greenius.llm.base import LLMError
from greenius.llm.openai_provider import OpenAIProvider
from greenius.llm.transport import ChatTransport
from greenius.models import create_message
from greenius.prompts import (
    CANCELLED_NOTICE,
    DEFAULT_TOPIC,
    ERROR_SUFFIX,
    SUMMARIZE_PROMPT,
    TOPIC_PROMPT,
    UNAUTHORIZED_NOTICE,
)


def _manual_store():
    """Store whose transport never calls back on its own."""
    transport = MagicMock(spec=ChatTransport)
    transport.submit.return_value = MagicMock()
    return ChatStore(transport=transport)


def _messages(store, request):
    session = store.find_session(request.session_id)
    return session.find_message(request.user_message_id), session.find_message(request.bot_message_id)


class TestSubmission:

    @pytest.mark.asyncio
    async def test_appends_user_and_placeholder(self):
        store = _manual_store()
        request = store.on_user_input("My tomato leaves are yellow")

        session = store.current_session()
        assert [m.role for m in session.messages] == ["user", "assistant"]
        user, bot = session.messages
        assert user.content == "My tomato leaves are yellow"
        assert bot.streaming is True
        assert bot.content == ""
        assert request.state == ResponseState.PENDING
        assert (0, bot.id) in store.controllers

    @pytest.mark.asyncio
    async def test_sent_context_ends_with_user_message(self):
        store = _manual_store()
        store.on_user_input("hello")
        sent = store.transport.submit.call_args[0][0]
        assert sent[-1].role == "user"
        assert sent[-1].content == "hello"
        # The placeholder reply is never part of the outbound context
        assert all(not m.streaming for m in sent)

    @pytest.mark.asyncio
    async def test_options_follow_config(self):
        store = _manual_store()
        store.update_config(lambda c: setattr(c, "send_bot_messages", False))
        store.update_config(lambda c: setattr(c.model_settings, "model", "gpt-4"))
        store.on_user_input("hello")
        options = store.transport.submit.call_args[0][1]
        assert options.include_assistant_turns is False
        assert options.model == "gpt-4"


class TestStreamingStates:

    @pytest.mark.asyncio
    async def test_partial_then_final(self):
        store = _manual_store()
        seen = []
        request = store.on_user_input("hi")
        store.subscribe(lambda s: seen.append(s.current_session().messages[-1].content))

        request.on_message("A", False)
        assert request.state == ResponseState.STREAMING
        request.on_message("AB", False)
        request.on_message("ABC", True)

        _, bot = _messages(store, request)
        assert bot.content == "ABC"
        assert bot.streaming is False
        assert bot.is_error is False
        assert request.state == ResponseState.COMPLETED
        assert (0, bot.id) not in store.controllers
        assert seen[:2] == ["A", "AB"]
        assert await request.wait() == ResponseState.COMPLETED

    @pytest.mark.asyncio
    async def test_unauthorized_error(self):
        store = _manual_store()
        request = store.on_user_input("hi")
        request.on_message("par", False)
        request.on_error(LLMError("401"), 401)

        user, bot = _messages(store, request)
        assert bot.content == UNAUTHORIZED_NOTICE
        assert user.is_error is True
        assert bot.is_error is True
        assert bot.streaming is False
        assert (0, bot.id) not in store.controllers

    @pytest.mark.asyncio
    async def test_generic_error_keeps_partial(self):
        store = _manual_store()
        request = store.on_user_input("hi")
        request.on_message("partial", False)
        request.on_error(LLMError("boom"), 500)

        user, bot = _messages(store, request)
        assert bot.content == "partial\n\n" + ERROR_SUFFIX
        assert user.is_error and bot.is_error
        assert request.state == ResponseState.ERRORED

    @pytest.mark.asyncio
    async def test_errored_exchange_left_out_of_next_context(self):
        store = _manual_store()
        store.update_config(lambda c: setattr(c, "history_message_count", -1))
        request = store.on_user_input("first")
        request.on_error(LLMError("down"), None)

        context = store.get_messages_with_memory()
        assert all(m.id not in (request.user_message_id, request.bot_message_id) for m in context)

    @pytest.mark.asyncio
    async def test_stop_marks_cancelled(self):
        store = _manual_store()
        request = store.on_user_input("hi")
        handle = store.transport.submit.return_value
        request.on_message("half", False)

        assert store.stop_response(0, request.bot_message_id) is True
        handle.cancel.assert_called_once()

        user, bot = _messages(store, request)
        assert bot.streaming is False
        assert bot.content == "half\n\n" + CANCELLED_NOTICE
        assert user.is_error and bot.is_error
        assert request.state == ResponseState.CANCELLED

    @pytest.mark.asyncio
    async def test_terminal_event_after_cancel_is_ignored(self):
        store = _manual_store()
        request = store.on_user_input("hi")
        store.stop_all()
        request.on_message("late", True)
        request.on_error(LLMError("late"), 401)

        _, bot = _messages(store, request)
        assert bot.content.endswith(CANCELLED_NOTICE)
        assert request.state == ResponseState.CANCELLED

    @pytest.mark.asyncio
    async def test_unread_partials_collapse_into_terminal_event(self):
        store = _manual_store()
        request = store.on_user_input("hi")
        request.on_message("A", False)
        request.on_message("AB", True)

        events = [event async for event in request.events()]
        assert events == [{"type": "done", "content": "AB"}]

    @pytest.mark.asyncio
    async def test_events_keep_only_newest_partial(self):
        store = _manual_store()
        request = store.on_user_input("hi")
        request.on_message("A", False)
        request.on_message("AB", False)

        events = request.events()
        assert await events.__anext__() == {"type": "content", "content": "AB"}
        request.on_message("ABC", False)
        assert await events.__anext__() == {"type": "content", "content": "ABC"}
        request.on_error(LLMError("down"), 500)
        last = await events.__anext__()
        assert last["type"] == "error"
        assert last["content"].startswith("ABC")

    @pytest.mark.asyncio
    async def test_updates_follow_session_after_reorder(self):
        store = _manual_store()
        request = store.on_user_input("hi")
        store.new_session()
        store.new_session()
        request.on_message("answer", True)

        _, bot = _messages(store, request)
        assert bot.content == "answer"
        assert store.sessions[2].messages[-1] is bot

    @pytest.mark.asyncio
    async def test_session_removed_while_streaming(self):
        store = _manual_store()
        request = store.on_user_input("hi")
        store.new_session()
        store.remove_session(1)
        request.on_message("answer", True)
        assert request.state == ResponseState.COMPLETED


class TestWithTransport:

    @pytest.mark.asyncio
    async def test_streams_to_completion(self):
        provider = ScriptedProvider(chunks=["Use ", "drip ", "irrigation."])
        store = make_store(provider)
        request = store.on_user_input("How should I water?")

        assert await request.wait() == ResponseState.COMPLETED
        _, bot = _messages(store, request)
        assert bot.content == "Use drip irrigation."
        assert bot.streaming is False
        assert len(store.controllers) == 0

    @pytest.mark.asyncio
    async def test_http_401(self):
        provider = ScriptedProvider(error=LLMError("Unauthorized", status_code=401))
        store = make_store(provider)
        request = store.on_user_input("hi")

        assert await request.wait() == ResponseState.ERRORED
        _, bot = _messages(store, request)
        assert bot.content == UNAUTHORIZED_NOTICE

    @pytest.mark.asyncio
    async def test_no_provider_errors(self):
        store = make_store(None)
        request = store.on_user_input("hi")
        assert await request.wait() == ResponseState.ERRORED
        _, bot = _messages(store, request)
        assert bot.content == "\n\n" + ERROR_SUFFIX

    @pytest.mark.asyncio
    async def test_stop_mid_stream(self):
        gate = asyncio.Event()
        provider = ScriptedProvider(chunks=["Tuta ", "absoluta"], gate=gate)
        store = make_store(provider)
        request = store.on_user_input("What pest is this?")

        for _ in range(10):
            await asyncio.sleep(0)
            if request.content == "Tuta absoluta":
                break
        assert request.state == ResponseState.STREAMING

        store.stop_response(0, request.bot_message_id)
        assert await request.wait() == ResponseState.CANCELLED
        _, bot = _messages(store, request)
        assert bot.content == "Tuta absoluta\n\n" + CANCELLED_NOTICE
        assert bot.streaming is False

    @pytest.mark.asyncio
    async def test_independent_sessions_stream_concurrently(self):
        provider = ScriptedProvider(chunks=["ok"])
        store = make_store(provider)
        first = store.on_user_input("one")
        store.new_session()
        second = store.on_user_input("two")

        await asyncio.gather(first.wait(), second.wait())
        assert first.session_id != second.session_id
        assert _messages(store, first)[1].content == "ok"
        assert _messages(store, second)[1].content == "ok"


def _long_session(store, n=6, size=40):
    session = store.current_session()
    for i in range(n):
        role = "user" if i % 2 == 0 else "assistant"
        session.messages.append(create_message(role=role, content=chr(ord("a") + i) * size))
    return session


class TestSummarize:

    @pytest.mark.asyncio
    async def test_compresses_long_history(self):
        provider = ScriptedProvider(chunks=["Grows ", "tomatoes."])
        store = make_store(provider)
        store.update_config(lambda c: setattr(c, "compress_message_length_threshold", 100))
        session = _long_session(store)
        session.topic = "Tomatoes"

        await store.summarize_session()

        assert session.memory_prompt == "Grows tomatoes."
        assert session.last_summarize_index == 6
        sent = provider.stream_calls[0]["messages"]
        assert sent[0].role == "system"
        assert "recap" in sent[0].content
        assert sent[-1].content == SUMMARIZE_PROMPT
        assert len(sent) == 8

    @pytest.mark.asyncio
    async def test_below_threshold_does_nothing(self):
        provider = ScriptedProvider(chunks=["x"])
        store = make_store(provider)
        session = _long_session(store, n=2, size=10)

        await store.summarize_session()

        assert provider.stream_calls == []
        assert provider.completion_calls == []
        assert session.last_summarize_index == 0

    @pytest.mark.asyncio
    async def test_only_unsummarized_slice_counts(self):
        provider = ScriptedProvider(chunks=["x"])
        store = make_store(provider)
        store.update_config(lambda c: setattr(c, "compress_message_length_threshold", 100))
        session = _long_session(store)
        session.topic = "Tomatoes"
        session.last_summarize_index = 4

        await store.summarize_session()
        assert provider.stream_calls == []

    @pytest.mark.asyncio
    async def test_zero_token_budget_truncates(self):
        provider = ScriptedProvider(chunks=["short"])
        store = make_store(provider)

        def update(config):
            config.compress_message_length_threshold = 10
            config.history_message_count = 2
            config.model_settings.max_tokens = 0

        store.update_config(update)
        session = _long_session(store)
        session.topic = "Tomatoes"

        await store.summarize_session()

        sent = provider.stream_calls[0]["messages"]
        # memory prompt + last two messages + summarize instruction
        assert len(sent) == 4
        assert sent[1].content == "e" * 40
        assert session.last_summarize_index == 6

    @pytest.mark.asyncio
    async def test_failure_does_not_advance_index(self):
        provider = ScriptedProvider(chunks=["new"], error=LLMError("down", 503))
        store = make_store(provider)
        store.update_config(lambda c: setattr(c, "compress_message_length_threshold", 100))
        session = _long_session(store)
        session.topic = "Tomatoes"
        session.memory_prompt = "old summary"

        await store.summarize_session()

        assert session.last_summarize_index == 0
        assert session.memory_prompt == "new"

    @pytest.mark.asyncio
    async def test_topic_assigned(self):
        provider = ScriptedProvider(reply='"Yellow Tomato Leaves."')
        store = make_store(provider)
        session = _long_session(store, n=2, size=30)

        await store.summarize_session()

        assert session.topic == "Yellow Tomato Leaves"
        prompt = provider.completion_calls[0]["messages"][-1]
        assert prompt.role == "user"
        assert prompt.content == TOPIC_PROMPT

    @pytest.mark.asyncio
    async def test_topic_not_requested_for_short_chat(self):
        provider = ScriptedProvider(reply="Topic")
        store = make_store(provider)
        session = _long_session(store, n=2, size=10)

        await store.summarize_session()
        assert provider.completion_calls == []
        assert session.topic == DEFAULT_TOPIC

    @pytest.mark.asyncio
    async def test_topic_failure_keeps_default(self):
        provider = ScriptedProvider(error=LLMError("down"))
        store = make_store(provider)
        session = _long_session(store, n=2, size=30)

        await store.summarize_session()
        assert session.topic == DEFAULT_TOPIC

    @pytest.mark.asyncio
    async def test_topic_job_crash_does_not_stop_compression(self):
        provider = ScriptedProvider(chunks=["Grows tomatoes."])
        provider.chat_completion = MagicMock(side_effect=RuntimeError("unexpected"))
        store = make_store(provider)
        store.update_config(lambda c: setattr(c, "compress_message_length_threshold", 100))
        session = _long_session(store)

        await store.summarize_session()

        assert session.topic == DEFAULT_TOPIC
        assert session.memory_prompt == "Grows tomatoes."
        assert session.last_summarize_index == 6

    @pytest.mark.asyncio
    async def test_non_json_topic_reply_is_dropped(self):
        real_client = httpx.AsyncClient

        def gateway_page(**kwargs):
            transport = httpx.MockTransport(
                lambda request: httpx.Response(200, text="<html>gateway</html>")
            )
            return real_client(transport=transport, **kwargs)

        store = make_store(OpenAIProvider(api_key="test-key"))
        session = _long_session(store, n=2, size=30)

        with patch("httpx.AsyncClient", side_effect=gateway_page):
            await store.summarize_session()

        assert session.topic == DEFAULT_TOPIC
