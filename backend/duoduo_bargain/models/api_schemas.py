"""
Pydantic API schemas for the bargain endpoints.

WHAT: Request and response models for FastAPI
WHY: Type-safe validation and serialization matching the web client (camelCase)
HOW: Pydantic v2 models reusing the domain records
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .bargain import BargainSessionRecord, CreateBargainInput


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ========== Bargain sessions ==========

class CreateBargainRequest(CreateBargainInput):
    """Request to open a bargain session."""
    pass


class CreateBargainResponse(_CamelModel):
    """Response after creating a session."""
    session_id: str
    session: BargainSessionRecord


class BargainSessionResponse(_CamelModel):
    """Full session record with its message log."""
    session: BargainSessionRecord


class PurchaseItem(_CamelModel):
    """A completed bargain as seen by its bargainer."""
    id: str
    product_id: str
    product_name: str | None = None
    final_price: float
    completed_at: datetime | None = None
    publisher_id: str

    @classmethod
    def from_session(cls, session: BargainSessionRecord) -> "PurchaseItem":
        return cls(
            id=session.id,
            product_id=session.product_id,
            product_name=session.product_name,
            final_price=session.final_price,
            completed_at=session.completed_at,
            publisher_id=session.publisher_id,
        )


class PurchasesResponse(_CamelModel):
    purchases: list[PurchaseItem]


# ========== Participants ==========

class ParticipantCredentialRequest(_CamelModel):
    """Register or replace the chat credential of a participant."""
    name: str = Field(default="", max_length=100)
    access_token: str = Field(..., min_length=1)
    refresh_token: str | None = None


class ParticipantResponse(_CamelModel):
    """Participant with its token masked."""
    participant_id: str
    name: str
    access_token: str
    has_refresh_token: bool
