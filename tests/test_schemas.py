"""Tests for streamchat.schemas: transcript, streaming, session, config."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from streamchat.schemas.config import ModelConfig, SessionConfig
from streamchat.schemas.session import SessionResult, SessionState
from streamchat.schemas.streaming import (
    ContentDelta,
    PendingToolCall,
    StreamDone,
    StreamEvent,
    ToolCallDelta,
)
from streamchat.schemas.tools import ToolSpec
from streamchat.schemas.transcript import FunctionCall, Message, Role, ToolCall, Transcript

# ── Transcript ────────────────────────────────────────────────


class TestMessage:
    def test_null_content_becomes_empty(self):
        assert Message(role="assistant", content=None).content == ""

    def test_unknown_role_rejected(self):
        with pytest.raises(ValidationError):
            Message(role="narrator", content="x")

    def test_to_api_plain(self):
        assert Message(role=Role.USER, content="hi").to_api() == {
            "role": "user", "content": "hi",
        }

    def test_to_api_with_tool_calls(self):
        call = ToolCall(id="c1", function=FunctionCall(name="f", arguments="{}"))
        payload = Message(role=Role.ASSISTANT, tool_calls=[call]).to_api()
        assert payload == {
            "role": "assistant",
            "content": "",
            "tool_calls": [{
                "id": "c1", "type": "function",
                "function": {"name": "f", "arguments": "{}"},
            }],
        }

    def test_to_api_tool_message(self):
        payload = Message(role=Role.TOOL, content="ok", tool_call_id="c1").to_api()
        assert payload == {"role": "tool", "content": "ok", "tool_call_id": "c1"}


class TestTranscript:
    def test_document_omits_absent_optionals(self):
        transcript = Transcript(messages=[Message(role=Role.SYSTEM, content="s")])
        assert transcript.to_document() == {
            "messages": [{"role": "system", "content": "s"}],
        }

    def test_extra_keys_preserved(self):
        transcript = Transcript.model_validate({
            "title": "T", "folder": "work",
            "messages": [{"role": "user", "content": "u", "pinned": True}],
        })
        document = transcript.to_document()
        assert document["folder"] == "work"
        assert document["messages"][0]["pinned"] is True


# ── Streaming ─────────────────────────────────────────────────


class TestStreamEvents:
    def test_discriminated_union(self):
        adapter = TypeAdapter(StreamEvent)
        assert isinstance(adapter.validate_python({"kind": "content", "text": "x"}), ContentDelta)
        assert isinstance(
            adapter.validate_python({"kind": "tool_call", "index": 2}), ToolCallDelta,
        )
        assert isinstance(adapter.validate_python({"kind": "done"}), StreamDone)

    def test_negative_index_rejected(self):
        with pytest.raises(ValidationError):
            ToolCallDelta(index=-1)


class TestPendingToolCall:
    def test_absorb_concatenates_arguments(self):
        pending = PendingToolCall(index=0)
        pending.absorb(ToolCallDelta(index=0, id="c1", name="get_weather", arguments='{"a"'))
        pending.absorb(ToolCallDelta(index=0, arguments=": 1}"))
        assert pending.call_id == "c1"
        assert pending.name == "get_weather"
        assert pending.arguments == '{"a": 1}'

    def test_first_id_and_name_win(self):
        pending = PendingToolCall(index=0)
        pending.absorb(ToolCallDelta(index=0, id="c1", name="first"))
        pending.absorb(ToolCallDelta(index=0, id="c2", name="second"))
        assert pending.call_id == "c1"
        assert pending.name == "first"

    def test_to_tool_call(self):
        pending = PendingToolCall(index=3, call_id="c", name="f", arguments="{}")
        call = pending.to_tool_call()
        assert call == ToolCall(id="c", function=FunctionCall(name="f", arguments="{}"))


# ── Session and config ────────────────────────────────────────


class TestSessionSchemas:
    @pytest.mark.parametrize(("state", "terminal"), [
        (SessionState.IDLE, False),
        (SessionState.STREAMING, False),
        (SessionState.FINALIZING, False),
        (SessionState.COMPLETED, True),
        (SessionState.FAILED, True),
        (SessionState.CANCELLED, True),
    ])
    def test_is_terminal(self, state, terminal):
        assert state.is_terminal is terminal

    def test_result_defaults(self):
        result = SessionResult(success=True, state=SessionState.COMPLETED, identifier="a.json")
        assert result.new_identifier is None
        assert result.tool_results == []
        assert result.persist_error is None


class TestConfigSchemas:
    def test_defaults(self):
        config = SessionConfig()
        assert config.checkpoint_interval_ms == 3000
        assert config.feed_tool_results is False
        assert config.max_tool_rounds == 5
        assert ModelConfig().model == "gpt-4"

    def test_bounds(self):
        with pytest.raises(ValidationError):
            SessionConfig(checkpoint_interval_ms=0)
        with pytest.raises(ValidationError):
            SessionConfig(max_tool_rounds=0)

    def test_tool_spec_requires_name(self):
        with pytest.raises(ValidationError):
            ToolSpec(name="")
