"""
Bargain session endpoints.

WHAT: Create and read bargain sessions, list a bargainer's purchases
WHY: The client opens a session before streaming its negotiation
HOW: FastAPI router over the injected BargainStore
"""

from fastapi import APIRouter, Depends, Query, status

from ...deps import store_dependency
from ....core.store import BargainStore
from ....models.api_schemas import (
    CreateBargainRequest,
    CreateBargainResponse,
    BargainSessionResponse,
    PurchaseItem,
    PurchasesResponse,
)
from ....utils.exceptions import SessionNotFoundException
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/bargain",
    response_model=CreateBargainResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_bargain(
    request: CreateBargainRequest,
    store: BargainStore = Depends(store_dependency),
):
    """
    Open a bargain session.

    WHAT: Persist a new session in negotiating status
    WHY: Entry point before the negotiation stream is opened
    HOW: current_price starts at publish_price
    """
    logger.info(
        f"Creating bargain session for product {request.product_id} "
        f"(bargainer={request.bargainer_id}, publisher={request.publisher_id})"
    )
    session = await store.create_session(request)
    return CreateBargainResponse(session_id=session.id, session=session)


@router.get("/bargain/{session_id}", response_model=BargainSessionResponse)
async def get_bargain(
    session_id: str,
    store: BargainStore = Depends(store_dependency),
):
    """
    Get a bargain session with its message log.

    Raises:
        SessionNotFoundException: If the id is unknown
    """
    session = await store.get_session(session_id, include_messages=True)
    if session is None:
        raise SessionNotFoundException(session_id)
    return BargainSessionResponse(session=session)


@router.get("/bargains/my-purchases", response_model=PurchasesResponse)
async def list_my_purchases(
    bargainer_id: str = Query(..., alias="bargainerId", min_length=1),
    store: BargainStore = Depends(store_dependency),
):
    """Completed sessions of a bargainer, most recent first."""
    sessions = await store.list_purchases(bargainer_id)
    logger.info(f"Found {len(sessions)} purchases for bargainer {bargainer_id}")
    return PurchasesResponse(purchases=[PurchaseItem.from_session(s) for s in sessions])
