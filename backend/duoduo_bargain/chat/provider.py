"""
Chat-completion client protocol definition.

WHAT: Abstract interface for the persona chat endpoint
WHY: Decouple the orchestrator from the HTTP client so tests can script replies
HOW: Use Protocol to define the async send method
"""

from typing import Protocol

from .types import ChatMessage, ChatContext


class ChatCompletionClient(Protocol):
    """Protocol every chat-completion client must implement."""

    async def send_message(
        self,
        access_token: str,
        message: str,
        context: ChatContext | None = None,
        history: list[ChatMessage] | None = None,
    ) -> str:
        """
        Send one utterance as a persona and return the reply text.

        Raises:
            CredentialExpiredError: Endpoint answered 401
            ChatClientError: Any other failure
        """
        ...
