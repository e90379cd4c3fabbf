"""
SecondMe chat client implementation.

WHAT: Sends persona prompts plus history to the SecondMe chat endpoint
WHY: Each side of a bargain speaks through its owner's SecondMe AI
HOW: httpx AsyncClient, per-call bearer token, one attempt per call (no retry)
"""

import json

import httpx

from .types import (
    ChatMessage,
    ChatContext,
    ChatResult,
    CredentialExpiredError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    ProviderResponseError,
)
from ..agents.prompts import build_chat_messages
from ..core.config import settings
from ..utils.logger import get_logger, mask_token

logger = get_logger(__name__)


class SecondMeChatClient:
    """Chat-completion client for the SecondMe API."""

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: API base (defaults to settings.CHAT_API_BASE)
            model: Model name sent in the body (defaults to settings.CHAT_MODEL)
            timeout: Read timeout in seconds (defaults to settings.CHAT_TIMEOUT)
            client: Pre-built httpx client (tests)
        """
        self.base_url = (base_url or settings.CHAT_API_BASE).rstrip("/")
        self.model = model or settings.CHAT_MODEL
        read_timeout = timeout if timeout is not None else settings.CHAT_TIMEOUT

        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(5.0, read=read_timeout),
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
        )
        logger.info(f"SecondMe chat client initialized (base: {self.base_url}, model: {self.model})")

    @property
    def chat_url(self) -> str:
        return f"{self.base_url}/api/chat"

    async def complete(
        self,
        access_token: str,
        message: str,
        context: ChatContext | None = None,
        history: list[ChatMessage] | None = None,
    ) -> ChatResult:
        """
        Send one utterance and return the full result.

        Args:
            access_token: Bearer token of the speaking participant
            message: New utterance
            context: Persona context used to build the instruction
            history: Prior turns, forwarded verbatim

        Returns:
            ChatResult with the reply text

        Raises:
            CredentialExpiredError: Endpoint answered 401
            ProviderTimeoutError: Request timed out
            ProviderUnavailableError: Endpoint not reachable
            ProviderResponseError: Non-2xx status or malformed body
        """
        payload = {
            "messages": build_chat_messages(message, context, history),
            "model": self.model,
        }
        role = context.role.value if context else "assistant"

        try:
            response = await self.client.post(
                self.chat_url,
                json=payload,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.TimeoutException as e:
            logger.error(f"Chat request timed out (role: {role})")
            raise ProviderTimeoutError("Chat request timed out") from e
        except httpx.ConnectError as e:
            logger.error(f"Chat endpoint not reachable (role: {role})")
            raise ProviderUnavailableError(f"Chat endpoint not reachable: {self.base_url}") from e
        except httpx.HTTPError as e:
            logger.error(f"Chat transport error (role: {role}): {e}")
            raise ProviderResponseError(f"Transport error: {e}") from e

        if response.status_code == 401:
            logger.warning(f"Chat credential expired (role: {role}, token: {mask_token(access_token)})")
            raise CredentialExpiredError("TOKEN_EXPIRED")

        if response.is_error:
            logger.error(f"Chat endpoint returned HTTP {response.status_code} (role: {role})")
            raise ProviderResponseError(f"SecondMe API error: {response.status_code}")

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            logger.error(f"Chat endpoint returned non-JSON body (role: {role})")
            raise ProviderResponseError(f"Invalid response format: {e}") from e

        text = _extract_reply(data)
        if text is None:
            logger.error(f"Chat response has no reply content (role: {role})")
            raise ProviderResponseError("Invalid response format: no reply content")

        logger.info(f"Chat reply received (role: {role}, chars: {len(text)})")
        return ChatResult(text=text, model=data.get("model", self.model))

    async def send_message(
        self,
        access_token: str,
        message: str,
        context: ChatContext | None = None,
        history: list[ChatMessage] | None = None,
    ) -> str:
        """Send one utterance and return only the reply text."""
        result = await self.complete(access_token, message, context, history)
        return result.text

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()


def _extract_reply(data) -> str | None:
    """Reply text from an OpenAI-style body, falling back to a top-level `message`."""
    if not isinstance(data, dict):
        return None

    choices = data.get("choices")
    if isinstance(choices, list) and choices:
        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str) and content:
                return content

    message = data.get("message")
    if isinstance(message, str):
        return message
    return None
