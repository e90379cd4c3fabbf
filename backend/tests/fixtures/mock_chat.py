"""
Mock chat-completion client for deterministic testing.

WHAT: Fake persona client that returns scripted replies per side
WHY: Test the orchestrator without the remote chat endpoint
HOW: Implement ChatCompletionClient with canned replies, failure injection and call recording
"""

import asyncio
from typing import Callable, Dict, List

from duoduo_bargain.chat.types import ChatContext, ChatMessage, ProviderResponseError
from duoduo_bargain.models.bargain import SenderRole


class MockChatClient:
    """
    Mock chat client with scripted replies for each negotiation side.

    Replies are consumed in order; the last one repeats once a script runs out.
    """

    def __init__(
        self,
        bargainer_replies: List[str] | None = None,
        publisher_replies: List[str] | None = None,
        fail_on: Dict[SenderRole, int] | None = None,
        on_call: Callable[[int], None] | None = None,
    ):
        """
        Initialize mock client.

        Args:
            bargainer_replies: Replies returned when the bargainer persona speaks
            publisher_replies: Replies returned when the publisher persona speaks
            fail_on: Role -> 1-based call number of that role that raises
            on_call: Hook called with the total call count before each reply
        """
        self.replies = {
            SenderRole.BARGAINER: bargainer_replies or ["我想再便宜一点。"],
            SenderRole.PUBLISHER: publisher_replies or ["这个价格已经很低了。"],
        }
        self.fail_on = fail_on or {}
        self.on_call = on_call
        self.role_counts = {SenderRole.BARGAINER: 0, SenderRole.PUBLISHER: 0}
        self.calls: List[Dict] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def roles(self) -> List[SenderRole]:
        return [call["role"] for call in self.calls]

    async def send_message(
        self,
        access_token: str,
        message: str,
        context: ChatContext | None = None,
        history: List[ChatMessage] | None = None,
    ) -> str:
        """Mock send_message."""
        role = context.role if context else SenderRole.BARGAINER
        self.role_counts[role] += 1
        self.calls.append({
            "access_token": access_token,
            "message": message,
            "context": context,
            "history": list(history or []),
            "role": role,
        })

        if self.on_call is not None:
            self.on_call(self.call_count)

        # Let concurrent runs interleave
        await asyncio.sleep(0)

        if self.fail_on.get(role) == self.role_counts[role]:
            raise ProviderResponseError("Mock chat error")

        script = self.replies[role]
        index = min(self.role_counts[role], len(script)) - 1
        return script[index]
