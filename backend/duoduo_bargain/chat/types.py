"""
Chat-completion types, dataclasses, and exceptions.

WHAT: Standard type definitions for persona chat calls
WHY: Keep a single contract between the orchestrator and the remote chat endpoint
HOW: TypedDict for messages, dataclass for context, exception hierarchy for failures
"""

from typing import TypedDict, Literal
from dataclasses import dataclass

from ..models.bargain import SenderRole


# Message format accepted by the SecondMe chat endpoint
ChatMessage = TypedDict(
    "ChatMessage",
    {"role": Literal["user", "assistant"], "content": str}
)


@dataclass(frozen=True)
class ChatContext:
    """What a persona needs to know about the negotiation it speaks in."""
    product_name: str
    publish_price: float
    target_price: float
    role: SenderRole


@dataclass
class ChatResult:
    """Complete chat-completion result."""
    text: str
    model: str | None = None


class ChatClientError(Exception):
    """Base class for every chat-completion failure."""
    pass


class CredentialExpiredError(ChatClientError):
    """Remote endpoint rejected the access token (HTTP 401)."""
    pass


class ProviderTimeoutError(ChatClientError):
    """Request to the chat endpoint timed out."""
    pass


class ProviderUnavailableError(ChatClientError):
    """Chat endpoint is not reachable."""
    pass


class ProviderResponseError(ChatClientError):
    """Chat endpoint returned a non-2xx status or a malformed body."""
    pass
