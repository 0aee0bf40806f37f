"""Tests for the streamchat CLI via CliRunner.

The model is never called: LiteLLMProvider is patched with a scripted
provider and STREAMCHAT_HOME points at a temporary directory.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from streamchat import __version__
from streamchat.cli import app
from streamchat.errors import AdapterError
from streamchat.providers.base import CompletionProvider
from streamchat.schemas.streaming import ContentDelta, StreamDone, ToolCallDelta

# NO_COLOR=1 prevents Rich from injecting ANSI codes inside output,
# COLUMNS=200 prevents wrapping that could split a path across lines.
runner = CliRunner(env={"NO_COLOR": "1", "COLUMNS": "200"})


# ── Factories ──────────────────────────────────────────────────────


def _provider_with(*events):
    """Build a provider class that replays ``events`` on every request."""

    class _ScriptedProvider(CompletionProvider):
        def __init__(self, config) -> None:
            super().__init__(config)

        async def stream(self, messages, tools=None):
            for event in events:
                if isinstance(event, Exception):
                    raise event
                yield event

    return _ScriptedProvider


@pytest.fixture
def home(tmp_path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path / "home"


def _invoke(home: Path, args: list[str], **kwargs):
    return runner.invoke(app, args, env={"STREAMCHAT_HOME": str(home)}, **kwargs)


def _write_chat(home: Path, name: str, document: dict) -> Path:
    path = home / "chats" / f"{name}.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


# ── Basics ─────────────────────────────────────────────────────────


class TestBasics:
    def test_version(self, home):
        result = _invoke(home, ["--version"])
        assert result.exit_code == 0
        assert f"streamchat {__version__}" in result.output

    def test_help_lists_commands(self, home):
        result = _invoke(home, ["--help"])
        assert result.exit_code == 0
        for command in ("list", "show", "new", "send", "delete", "watch"):
            assert command in result.output

    def test_list_empty(self, home):
        result = _invoke(home, ["list"])
        assert result.exit_code == 0
        assert "No chats found." in result.output

    def test_list_shows_titles(self, home):
        _write_chat(home, "trip", {"title": "Trip planning", "messages": []})
        _write_chat(home, "untitled", {"messages": []})
        result = _invoke(home, ["list"])
        assert result.exit_code == 0
        assert "Trip planning" in result.output
        assert "untitled" in result.output
        assert "Chats (2)" in result.output

    def test_new_creates_template(self, home):
        result = _invoke(home, ["new"])
        assert result.exit_code == 0
        template = home / "config" / "default.json"
        document = json.loads(template.read_text(encoding="utf-8"))
        assert document["title"] == "New Chat"
        assert document["messages"] == [
            {"role": "system", "content": "You are a helpful assistant."},
        ]


# ── show ───────────────────────────────────────────────────────────


class TestShow:
    def test_show_transcript(self, home):
        _write_chat(home, "trip", {
            "title": "Trip planning",
            "messages": [
                {"role": "system", "content": "Be brief."},
                {"role": "user", "content": "Where to?"},
                {"role": "assistant", "content": "Lisbon."},
            ],
        })
        result = _invoke(home, ["show", "trip"])
        assert result.exit_code == 0
        assert "Trip planning" in result.output
        assert "Be brief." in result.output
        assert "Where to?" in result.output
        assert "Lisbon." in result.output

    def test_show_hide_system(self, home):
        _write_chat(home, "trip", {"messages": [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Where to?"},
        ]})
        result = _invoke(home, ["show", "trip", "--hide-system"])
        assert result.exit_code == 0
        assert "Be brief." not in result.output
        assert "Where to?" in result.output

    def test_show_missing_renders_error_transcript(self, home):
        result = _invoke(home, ["show", "nope"])
        assert result.exit_code == 0
        assert "Error loading file" in result.output

    def test_show_corrupt_renders_error_transcript(self, home):
        path = home / "chats" / "bad.json"
        path.parent.mkdir(parents=True)
        path.write_text("{nope", encoding="utf-8")
        result = _invoke(home, ["show", "bad"])
        assert result.exit_code == 0
        assert "Error loading file" in result.output


# ── send ───────────────────────────────────────────────────────────


class TestSend:
    def test_send_streams_reply(self, home):
        path = _write_chat(home, "trip", {
            "title": "Trip",
            "messages": [{"role": "system", "content": "Be brief."}],
        })
        provider = _provider_with(
            ContentDelta(text="Hello"), ContentDelta(text=" world"), StreamDone(),
        )
        with patch("streamchat.cli.LiteLLMProvider", provider):
            result = _invoke(home, ["send", "trip", "-m", "Hi"])

        assert result.exit_code == 0, result.output
        assert "Hello world" in result.output
        messages = json.loads(path.read_text(encoding="utf-8"))["messages"]
        assert messages[1:] == [
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello world"},
        ]

    def test_send_default_forks_new_chat(self, home):
        provider = _provider_with(ContentDelta(text="Hi there"))
        with patch("streamchat.cli.LiteLLMProvider", provider):
            result = _invoke(home, ["send", "-m", "Hello"])

        assert result.exit_code == 0, result.output
        chats = list((home / "chats").glob("chat_*.json"))
        assert len(chats) == 1
        document = json.loads(chats[0].read_text(encoding="utf-8"))
        assert [m["role"] for m in document["messages"]] == ["system", "user", "assistant"]
        assert document["messages"][-1]["content"] == "Hi there"

        template = json.loads((home / "config" / "default.json").read_text(encoding="utf-8"))
        assert len(template["messages"]) == 1

    def test_send_prints_tool_results(self, home):
        _write_chat(home, "w", {"messages": [{"role": "user", "content": "Weather?"}]})
        provider = _provider_with(
            ToolCallDelta(index=0, id="c1", name="get_weather",
                          arguments='{"location": "Paris"}'),
            StreamDone(finish_reason="tool_calls"),
        )
        with patch("streamchat.cli.LiteLLMProvider", provider):
            result = _invoke(home, ["send", "w"])

        assert result.exit_code == 0, result.output
        assert "Tornado watch!" in result.output

    def test_send_failure_exits_nonzero(self, home):
        path = _write_chat(home, "trip", {"messages": [{"role": "user", "content": "Hi"}]})
        provider = _provider_with(
            ContentDelta(text="par"), AdapterError("Streaming call failed: timeout", "timeout"),
        )
        with patch("streamchat.cli.LiteLLMProvider", provider):
            result = _invoke(home, ["send", "trip"])

        assert result.exit_code == 1
        assert "Session failed" in result.output
        messages = json.loads(path.read_text(encoding="utf-8"))["messages"]
        assert messages[-1] == {"role": "assistant", "content": "par"}

    def test_send_missing_chat(self, home):
        with patch("streamchat.cli.LiteLLMProvider", _provider_with(StreamDone())):
            result = _invoke(home, ["send", "nope", "-m", "Hi"])
        assert result.exit_code == 1
        assert "Transcript not found" in result.output


# ── delete ─────────────────────────────────────────────────────────


class TestDelete:
    def test_delete_with_yes(self, home):
        path = _write_chat(home, "old", {"messages": []})
        result = _invoke(home, ["delete", "old", "-y"])
        assert result.exit_code == 0
        assert "Deleted" in result.output
        assert not path.exists()

    def test_delete_declined(self, home):
        path = _write_chat(home, "old", {"messages": []})
        result = _invoke(home, ["delete", "old"], input="n\n")
        assert result.exit_code == 0
        assert path.exists()

    def test_delete_missing(self, home):
        result = _invoke(home, ["delete", "nope", "-y"])
        assert result.exit_code == 1
        assert "Transcript not found" in result.output
