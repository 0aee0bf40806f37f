"""TOML configuration loader.

Loads the shipped defaults from streamchat/config/defaults.toml, overlays
the user's <home>/config.toml section by section, and validates the
result into an AppConfig.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from streamchat.schemas.config import AppConfig, ModelConfig, SessionConfig, StorageConfig

logger = logging.getLogger(__name__)

# Default config directory relative to the streamchat package
_CONFIG_DIR = Path(__file__).parent / "config"

HOME_ENV = "STREAMCHAT_HOME"

_SECTIONS = ("model", "storage", "session")


def app_home() -> Path:
    """Application home: $STREAMCHAT_HOME, else ~/.streamchat."""
    override = os.environ.get(HOME_ENV)
    return Path(override).expanduser() if override else Path.home() / ".streamchat"


def _read_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _resolve(home: Path, value: str | Path) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else home / path


def load_config(
    config_path: Path | None = None,
    *,
    home: Path | None = None,
    user_config: Path | None = None,
) -> AppConfig:
    """Load application configuration.

    Args:
        config_path: Defaults file. Defaults to streamchat/config/defaults.toml.
        home: Application home. Defaults to app_home().
        user_config: Override file. Defaults to <home>/config.toml; skipped
                     when it does not exist.

    Returns:
        The validated AppConfig.

    Raises:
        FileNotFoundError: If the defaults file does not exist.
        ValueError: If a section is not a table or a value is invalid.
    """
    path = config_path or _CONFIG_DIR / "defaults.toml"
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    raw = _read_toml(path)
    home = home or app_home()

    override_path = user_config or home / "config.toml"
    if override_path.is_file():
        logger.debug("Applying user config %s", override_path)
        overrides = _read_toml(override_path)
        for section in _SECTIONS:
            if section in overrides:
                raw.setdefault(section, {}).update(overrides[section])

    for section in _SECTIONS:
        if not isinstance(raw.get(section, {}), dict):
            raise ValueError(f"[{section}] must be a table in {path}")

    storage = dict(raw.get("storage", {}))
    storage["chats_dir"] = _resolve(home, storage.get("chats_dir", "chats"))
    storage["default_template"] = _resolve(
        home, storage.get("default_template", "config/default.json"),
    )

    return AppConfig(
        home=home,
        model=ModelConfig(**raw.get("model", {})),
        storage=StorageConfig(**storage),
        session=SessionConfig(**raw.get("session", {})),
    )
