"""
Server-sent event publisher for negotiation runs.

WHAT: Adapt orchestrator events into SSE frames
WHY: The client needs ordered events and a stream that ends on the first terminal event
HOW: Async generator yielding sse-starlette dicts; cancels the run token on every exit
"""

import asyncio
from typing import AsyncIterator

from pydantic import BaseModel

from ..models.events import ErrorEvent, is_terminal, serialize_event
from ..utils.cancellation import CancellationToken
from ..utils.logger import get_logger

logger = get_logger(__name__)


def frame_event(event: BaseModel) -> dict:
    """One SSE frame: a single data line holding the type-tagged JSON event."""
    return {"data": serialize_event(event)}


async def publish_events(
    events: AsyncIterator[BaseModel],
    *,
    session_id: str,
    cancel_token: CancellationToken,
) -> AsyncIterator[dict]:
    """
    Relay negotiation events to the transport.

    Events are forwarded in emission order. The stream ends right after the
    first `complete` or `error` event; an exception from the run becomes a
    single `error` frame. A transport cancellation (client disconnect) sets
    the cancel token so the run stops issuing chat calls.

    Args:
        events: Orchestrator event iterator
        session_id: Session being streamed (for logging)
        cancel_token: Token shared with the orchestrator run

    Yields:
        Dicts accepted by EventSourceResponse
    """
    logger.info(f"Starting SSE stream for session {session_id}")
    terminal_sent = False

    try:
        async for event in events:
            yield frame_event(event)
            if is_terminal(event):
                terminal_sent = True
                logger.info(f"Terminal '{event.type}' event sent for session {session_id}")
                break

        if not terminal_sent and not cancel_token.cancelled:
            logger.error(f"Negotiation for session {session_id} ended without a terminal event")
            terminal_sent = True
            yield frame_event(ErrorEvent.with_message("Negotiation ended unexpectedly"))

    except asyncio.CancelledError:
        logger.info(f"Client disconnected from session {session_id} stream")
        cancel_token.cancel()
        raise

    except Exception as e:
        logger.error(f"Error in SSE stream for session {session_id}: {e}", exc_info=True)
        if not terminal_sent:
            terminal_sent = True
            yield frame_event(ErrorEvent.with_message(str(e) or "Unknown error"))

    finally:
        cancel_token.cancel()
        aclose = getattr(events, "aclose", None)
        if aclose is not None:
            await aclose()
        logger.info(f"SSE stream ended for session {session_id}")
