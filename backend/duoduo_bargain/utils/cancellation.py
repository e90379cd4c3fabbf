"""
Cancellation token shared by a stream and its negotiation run.

WHAT: One-shot flag with a cancellable sleep
WHY: A disconnected client must stop further chat calls and pending pauses
HOW: Wrap asyncio.Event; sleep waits on the event with a timeout
"""

import asyncio


class CancellationToken:
    """Set once when the consumer of a negotiation goes away."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def sleep(self, seconds: float) -> bool:
        """
        Pause for `seconds` unless cancelled first.

        Returns:
            True if the token was cancelled before or during the pause
        """
        if self.cancelled:
            return True
        if seconds <= 0:
            await asyncio.sleep(0)
            return self.cancelled

        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
