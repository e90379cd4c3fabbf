"""
Bargain domain models.

WHAT: Status enums, session/message/participant records, status transitions
WHY: One typed vocabulary shared by the store, the orchestrator and the API
HOW: Pydantic v2 models (camelCase aliases on the wire) plus a pure transition function
"""

import enum
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops the offset on storage)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def to_iso_z(value: datetime) -> str:
    """ISO 8601 in UTC with millisecond precision and a trailing Z."""
    return as_utc(value).astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class BargainStatus(str, enum.Enum):
    """Bargain session status values. COMPLETED and FAILED are terminal."""
    NEGOTIATING = "negotiating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not BargainStatus.NEGOTIATING


class SenderRole(str, enum.Enum):
    """Which side of the negotiation produced a message."""
    PUBLISHER = "publisher"
    BARGAINER = "bargainer"


class RunOutcome(str, enum.Enum):
    """How a negotiation run ended."""
    AGREED = "agreed"            # publisher signalled acceptance
    EXHAUSTED = "exhausted"      # exchange budget used up
    CHAT_FAILED = "chat_failed"  # a chat-completion call failed
    CRASHED = "crashed"          # unexpected exception in the loop


def resolve_transition(current: BargainStatus, outcome: RunOutcome) -> BargainStatus:
    """
    Map a run outcome to the session's next status.

    Agreement and exhaustion both complete the session; only errors fail it.

    Raises:
        ValueError: If the session is already terminal
    """
    if current.is_terminal:
        raise ValueError(f"Session status {current.value} is terminal")

    if outcome in (RunOutcome.AGREED, RunOutcome.EXHAUSTED):
        return BargainStatus.COMPLETED
    return BargainStatus.FAILED


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ParticipantRecord(_CamelModel):
    """Credential of one negotiation side."""

    participant_id: str = Field(min_length=1, max_length=100)
    name: str = Field(default="", max_length=100)
    access_token: str = Field(min_length=1)
    refresh_token: str | None = None


class CreateBargainInput(_CamelModel):
    """Validated input for opening a bargain session."""

    product_id: str = Field(min_length=1, max_length=100)
    product_name: str | None = Field(default=None, max_length=200)
    publisher_id: str = Field(min_length=1, max_length=100)
    bargainer_id: str = Field(min_length=1, max_length=100)
    publish_price: float = Field(gt=0)
    target_price: float = Field(gt=0)

    @model_validator(mode="after")
    def validate_price_range(self):
        """The bargainer aims at or below the listed price."""
        if self.target_price > self.publish_price:
            raise ValueError(
                f"target_price ({self.target_price}) must not exceed publish_price ({self.publish_price})"
            )
        return self


class BargainMessageRecord(_CamelModel):
    """One persisted utterance."""

    id: str
    session_id: str
    sender_id: str
    sender_role: SenderRole
    content: str
    timestamp: datetime
    is_from_ai: bool = Field(default=True, alias="isFromAI")

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        return as_utc(v)


class BargainSessionRecord(_CamelModel):
    """A bargain session, optionally with its ordered message log."""

    id: str
    product_id: str
    product_name: str | None = None
    publisher_id: str
    bargainer_id: str
    publish_price: float
    current_price: float
    target_price: float
    status: BargainStatus = BargainStatus.NEGOTIATING
    final_price: float | None = None
    created_at: datetime
    completed_at: datetime | None = None
    messages: list[BargainMessageRecord] = Field(default_factory=list)

    @field_validator("created_at", "completed_at")
    @classmethod
    def validate_utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v)

    @model_validator(mode="after")
    def validate_final_price(self):
        """final_price is set exactly when the session completed."""
        if (self.final_price is not None) != (self.status is BargainStatus.COMPLETED):
            raise ValueError(
                f"final_price must be set iff status is completed (status={self.status.value})"
            )
        return self

    @property
    def product_label(self) -> str:
        """Name shown to the chat personas."""
        return self.product_name or self.product_id
