"""streamchat provider layer.

The provider layer is the only way the model API is called. All
streaming completions go through LiteLLMProvider via the
CompletionProvider interface.
"""

from streamchat.providers.base import CompletionProvider
from streamchat.providers.litellm_provider import LiteLLMProvider

__all__ = [
    "CompletionProvider",
    "LiteLLMProvider",
]
