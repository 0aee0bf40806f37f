"""Tests for streamchat.settings and streamchat.keys."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from streamchat.keys import has_key, load_keys_env
from streamchat.settings import HOME_ENV, app_home, load_config


class TestAppHome:
    def test_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv(HOME_ENV, str(tmp_path))
        assert app_home() == tmp_path

    def test_default(self, monkeypatch):
        monkeypatch.delenv(HOME_ENV, raising=False)
        assert app_home() == Path.home() / ".streamchat"


class TestLoadConfig:
    def test_shipped_defaults(self, tmp_path):
        config = load_config(home=tmp_path)
        assert config.home == tmp_path
        assert config.model.model == "gpt-4"
        assert config.model.api_key_env == "OPENAI_API_KEY"
        assert config.storage.chats_dir == tmp_path / "chats"
        assert config.storage.default_template == tmp_path / "config" / "default.json"
        assert config.session.checkpoint_interval_ms == 3000
        assert config.session.feed_tool_results is False

    def test_user_config_overlays_sections(self, tmp_path):
        (tmp_path / "config.toml").write_text(
            '[model]\nmodel = "anthropic/claude-sonnet"\n'
            "[session]\nfeed_tool_results = true\ncheckpoint_interval_ms = 500\n",
            encoding="utf-8",
        )
        config = load_config(home=tmp_path)
        assert config.model.model == "anthropic/claude-sonnet"
        assert config.model.display_name == "GPT-4"
        assert config.session.feed_tool_results is True
        assert config.session.checkpoint_interval_ms == 500
        assert config.session.max_tool_rounds == 5

    def test_absolute_storage_paths_kept(self, tmp_path):
        chats = tmp_path / "elsewhere"
        user = tmp_path / "user.toml"
        user.write_text(f'[storage]\nchats_dir = "{chats.as_posix()}"\n', encoding="utf-8")
        config = load_config(home=tmp_path / "home", user_config=user)
        assert config.storage.chats_dir == chats

    def test_missing_defaults(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.toml", home=tmp_path)

    def test_section_must_be_table(self, tmp_path):
        defaults = tmp_path / "defaults.toml"
        defaults.write_text('session = "fast"\n', encoding="utf-8")
        with pytest.raises(ValueError, match=r"\[session\] must be a table"):
            load_config(defaults, home=tmp_path)

    def test_invalid_value(self, tmp_path):
        (tmp_path / "config.toml").write_text(
            "[session]\nmax_tool_rounds = 0\n", encoding="utf-8",
        )
        with pytest.raises(ValueError):
            load_config(home=tmp_path)


class TestKeys:
    def test_loads_keys_env_without_overwriting(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("STREAMCHAT_EXISTING", "from-shell")
        monkeypatch.delenv("STREAMCHAT_NEW", raising=False)
        monkeypatch.delenv("STREAMCHAT_EXPORTED", raising=False)
        (tmp_path / "keys.env").write_text(
            "# comment\n"
            "STREAMCHAT_EXISTING=from-file\n"
            "STREAMCHAT_NEW='quoted'\n"
            "export STREAMCHAT_EXPORTED=yes\n"
            "garbage line\n",
            encoding="utf-8",
        )

        load_keys_env(tmp_path)

        assert os.environ["STREAMCHAT_EXISTING"] == "from-shell"
        assert os.environ["STREAMCHAT_NEW"] == "quoted"
        assert os.environ["STREAMCHAT_EXPORTED"] == "yes"

    def test_keys_env_wins_over_dotenv(self, monkeypatch, tmp_path):
        home = tmp_path / "home"
        home.mkdir()
        project = tmp_path / "project"
        project.mkdir()
        monkeypatch.chdir(project)
        monkeypatch.delenv("STREAMCHAT_ORDER", raising=False)
        (home / "keys.env").write_text("STREAMCHAT_ORDER=home\n", encoding="utf-8")
        (project / ".env").write_text("STREAMCHAT_ORDER=project\n", encoding="utf-8")

        load_keys_env(home)

        assert os.environ["STREAMCHAT_ORDER"] == "home"

    def test_has_key(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv(HOME_ENV, str(tmp_path))
        monkeypatch.setenv("STREAMCHAT_SET", "x")
        monkeypatch.delenv("STREAMCHAT_UNSET", raising=False)
        assert has_key("STREAMCHAT_SET") is True
        assert has_key("STREAMCHAT_UNSET") is False
