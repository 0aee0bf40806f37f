"""streamchat: local chat transcripts with streamed model replies."""

__version__ = "0.1.0"
