"""
Participant credential endpoints.

WHAT: Register and inspect the chat credential of a negotiation participant
WHY: The orchestrator authenticates each persona call with its owner's token
HOW: Upsert through the BargainStore; tokens are masked on the way out
"""

from fastapi import APIRouter, Depends

from ...deps import store_dependency
from ....core.store import BargainStore
from ....models.api_schemas import ParticipantCredentialRequest, ParticipantResponse
from ....models.bargain import ParticipantRecord
from ....utils.exceptions import ParticipantNotFoundException
from ....utils.logger import get_logger, mask_token

logger = get_logger(__name__)

router = APIRouter()


def _to_response(record: ParticipantRecord) -> ParticipantResponse:
    masked = mask_token(record.access_token)
    return ParticipantResponse(
        participant_id=record.participant_id,
        name=record.name,
        access_token=masked,
        has_refresh_token=bool(record.refresh_token),
    )


@router.put("/participants/{participant_id}", response_model=ParticipantResponse)
async def put_participant(
    participant_id: str,
    request: ParticipantCredentialRequest,
    store: BargainStore = Depends(store_dependency),
):
    """Create or replace a participant's chat credential."""
    record = await store.upsert_participant(ParticipantRecord(
        participant_id=participant_id,
        name=request.name,
        access_token=request.access_token,
        refresh_token=request.refresh_token,
    ))
    return _to_response(record)


@router.get("/participants/{participant_id}", response_model=ParticipantResponse)
async def get_participant(
    participant_id: str,
    store: BargainStore = Depends(store_dependency),
):
    """
    Get a participant with its token masked.

    Raises:
        ParticipantNotFoundException: If no credential is stored
    """
    record = await store.get_participant(participant_id)
    if record is None:
        raise ParticipantNotFoundException(participant_id)
    return _to_response(record)
