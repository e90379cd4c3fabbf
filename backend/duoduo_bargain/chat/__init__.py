"""Chat-completion client layer."""

from .types import (
    ChatMessage,
    ChatContext,
    ChatResult,
    ChatClientError,
    CredentialExpiredError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    ProviderResponseError,
)
from .provider import ChatCompletionClient
from .provider_factory import get_chat_client, close_chat_client, reset_chat_client

__all__ = [
    "ChatMessage",
    "ChatContext",
    "ChatResult",
    "ChatClientError",
    "CredentialExpiredError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "ProviderResponseError",
    "ChatCompletionClient",
    "get_chat_client",
    "close_chat_client",
    "reset_chat_client",
]
