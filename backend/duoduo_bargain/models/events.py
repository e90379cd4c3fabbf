"""
Stream event models.

WHAT: Tagged union of the four events a negotiation stream carries
WHY: The client switches on `type`; payload shape must match the tag
HOW: Pydantic discriminated union on the `type` literal
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from .bargain import BargainMessageRecord, BargainStatus, SenderRole, to_iso_z


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessagePayload(_Payload):
    id: str
    sender_id: str
    sender_role: SenderRole
    content: str
    timestamp: str


class StatusPayload(_Payload):
    status: BargainStatus


class ErrorPayload(_Payload):
    error: str


class CompletePayload(_Payload):
    status: BargainStatus = BargainStatus.COMPLETED
    final_price: float


class MessageEvent(BaseModel):
    type: Literal["message"] = "message"
    data: MessagePayload

    @classmethod
    def from_record(cls, message: BargainMessageRecord) -> "MessageEvent":
        return cls(data=MessagePayload(
            id=message.id,
            sender_id=message.sender_id,
            sender_role=message.sender_role,
            content=message.content,
            timestamp=to_iso_z(message.timestamp),
        ))


class StatusEvent(BaseModel):
    type: Literal["status"] = "status"
    data: StatusPayload


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    data: ErrorPayload

    @classmethod
    def with_message(cls, error: str) -> "ErrorEvent":
        return cls(data=ErrorPayload(error=error))


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    data: CompletePayload

    @classmethod
    def with_price(cls, final_price: float) -> "CompleteEvent":
        return cls(data=CompletePayload(final_price=final_price))


BargainEvent = Annotated[
    Union[MessageEvent, StatusEvent, ErrorEvent, CompleteEvent],
    Field(discriminator="type"),
]

TERMINAL_EVENT_TYPES = frozenset({"error", "complete"})

bargain_event_adapter = TypeAdapter(BargainEvent)


def is_terminal(event: BaseModel) -> bool:
    """True for the events that end a stream."""
    return getattr(event, "type", None) in TERMINAL_EVENT_TYPES


def serialize_event(event: BaseModel) -> str:
    """Serialize an event to its wire JSON (camelCase payload keys)."""
    return event.model_dump_json(by_alias=True)
