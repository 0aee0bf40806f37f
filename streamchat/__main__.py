"""Allow ``python -m streamchat``."""

from streamchat.cli import app

app()
