"""
Chat client factory with singleton pattern.

WHAT: Factory to get the configured chat-completion client
WHY: Share one HTTP connection pool across all negotiation runs
HOW: Lazily build a SecondMeChatClient from settings, cache it, allow reset
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .provider import ChatCompletionClient

# Singleton instance
_client_instance: "ChatCompletionClient | None" = None


def get_chat_client() -> "ChatCompletionClient":
    """
    Get the configured chat client singleton.

    Returns:
        ChatCompletionClient talking to settings.CHAT_API_BASE
    """
    global _client_instance

    if _client_instance is None:
        # Import here to avoid circular dependencies
        from .secondme import SecondMeChatClient
        from ..utils.logger import get_logger

        _client_instance = SecondMeChatClient()
        get_logger(__name__).info("Chat client initialized")

    return _client_instance


async def close_chat_client() -> None:
    """Close and drop the singleton (application shutdown)."""
    global _client_instance

    if _client_instance is not None and hasattr(_client_instance, "close"):
        await _client_instance.close()
    _client_instance = None


def reset_chat_client() -> None:
    """Reset the client singleton (useful for testing)."""
    global _client_instance
    _client_instance = None
