"""API key loading for streamchat.

Keys are read with this priority:
  1. Environment variables (highest, already set in shell)
  2. <home>/keys.env (user-level keys)
  3. .env in current directory (project-level)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from streamchat.settings import app_home

logger = logging.getLogger(__name__)


def load_keys_env(home: Path | None = None) -> None:
    """Load API keys from <home>/keys.env and .env into os.environ.

    Existing env vars are NOT overwritten, and earlier files win over
    later ones.
    """
    files = [(home or app_home()) / "keys.env", Path.cwd() / ".env"]
    for env_file in files:
        if env_file.is_file():
            _load_env_file(env_file)


def _load_env_file(path: Path) -> None:
    """Parse a simple KEY=VALUE .env file and set vars that aren't already set."""
    try:
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            if key.startswith("export "):
                key = key[len("export "):].strip()
            value = value.strip().strip("'\"")
            # Don't overwrite existing env vars
            if key and not os.environ.get(key):
                os.environ[key] = value
                logger.debug("Loaded %s from %s", key, path)
    except OSError:
        logger.debug("Could not read %s", path)


def has_key(env_var: str) -> bool:
    """Whether the given API key variable is set after loading key files."""
    load_keys_env()
    return bool(os.environ.get(env_var))
