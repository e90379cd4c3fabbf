"""
SSE streaming endpoint for bargain negotiations.

WHAT: Server-Sent Events stream driving and relaying a negotiation run
WHY: The client watches the two personas bargain in real time
HOW: EventSourceResponse wrapping BargainGraph.run via the stream publisher
"""

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from ...deps import store_dependency, bargain_graph_dependency
from ....agents.bargain_graph import BargainGraph
from ....core.config import settings
from ....core.store import BargainStore
from ....services.stream_publisher import publish_events
from ....utils.cancellation import CancellationToken
from ....utils.exceptions import SessionNotFoundException, NegotiationNotActiveException
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("/bargain/{session_id}/stream")
async def stream_bargain(
    session_id: str,
    store: BargainStore = Depends(store_dependency),
    graph: BargainGraph = Depends(bargain_graph_dependency),
):
    """
    Stream a negotiation via SSE.

    WHAT: Open the event stream and start the turn loop for a session
    WHY: The stream's lifetime is the negotiation's lifetime
    HOW: Validate the session, then hand the run to EventSourceResponse

    Raises:
        SessionNotFoundException: Unknown session id (404)
        NegotiationNotActiveException: Session already completed or failed (409)
    """
    logger.info(f"SSE stream requested for session {session_id}")

    session = await store.get_session(session_id, include_messages=False)
    if session is None:
        raise SessionNotFoundException(session_id)
    if session.status.is_terminal:
        raise NegotiationNotActiveException(session_id, session.status.value)

    cancel_token = CancellationToken()
    events = graph.run(session_id, cancel_token)

    return EventSourceResponse(
        publish_events(events, session_id=session_id, cancel_token=cancel_token),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
        ping=settings.SSE_PING_INTERVAL,
    )
