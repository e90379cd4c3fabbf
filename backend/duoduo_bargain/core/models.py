"""
ORM models for bargain persistence.

WHAT: SQLAlchemy models for participants, bargain sessions and their messages
WHY: Persist every negotiation turn and the session outcome
HOW: Declarative models with constraints, relationships, and indexes
"""

from uuid import uuid4
from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime, Text,
    ForeignKey, CheckConstraint, Index, Enum as SQLEnum
)
from sqlalchemy.orm import relationship

from .database import Base
from ..models.bargain import BargainStatus, SenderRole, utcnow


class Participant(Base):
    """
    Participant table - credential lookup for each side of a negotiation.

    WHAT: A user whose AI persona can speak in a negotiation
    WHY: Each chat-completion call is authenticated with the speaker's token
    HOW: Primary key on the external participant id, token stored as-is
    """
    __tablename__ = "participants"

    participant_id = Column(String(100), primary_key=True)
    name = Column(String(100), nullable=False, default="")
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Participant(participant_id={self.participant_id}, name={self.name})>"


class BargainSession(Base):
    """
    BargainSession table - one negotiation instance over a product.

    WHAT: Prices, participants and lifecycle of a bargain
    WHY: The orchestrator ratchets current_price down and terminalizes the row
    HOW: UUID primary key, CHECK constraints on prices, CASCADE to messages
    """
    __tablename__ = "bargain_sessions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    product_id = Column(String(100), nullable=False)
    product_name = Column(String(200), nullable=True)
    publisher_id = Column(String(100), nullable=False)
    bargainer_id = Column(String(100), nullable=False)
    publish_price = Column(Float, nullable=False)
    current_price = Column(Float, nullable=False)
    target_price = Column(Float, nullable=False)
    status = Column(SQLEnum(BargainStatus), nullable=False, default=BargainStatus.NEGOTIATING)
    final_price = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    completed_at = Column(DateTime, nullable=True)

    messages = relationship(
        "BargainMessage",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="BargainMessage.sequence",
    )

    __table_args__ = (
        CheckConstraint("publish_price > 0", name="check_publish_price_positive"),
        CheckConstraint("target_price > 0", name="check_target_price_positive"),
        CheckConstraint("current_price >= 0", name="check_current_price_non_negative"),
        Index("idx_bargain_status", "status"),
        Index("idx_bargain_bargainer", "bargainer_id"),
    )

    def __repr__(self):
        return f"<BargainSession(id={self.id}, product={self.product_id}, status={self.status})>"


class BargainMessage(Base):
    """
    BargainMessage table - append-only conversation log of a session.

    WHAT: One utterance produced during a negotiation turn
    WHY: Reconstruct the conversation in order
    HOW: Foreign key to BargainSession, ordered by timestamp then sequence
    """
    __tablename__ = "bargain_messages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    session_id = Column(String(36), ForeignKey("bargain_sessions.id", ondelete="CASCADE"), nullable=False)
    sequence = Column(Integer, nullable=False)  # per-session insertion order, breaks timestamp ties
    sender_id = Column(String(100), nullable=False)
    sender_role = Column(SQLEnum(SenderRole), nullable=False)
    content = Column(Text, nullable=False)
    is_from_ai = Column(Boolean, nullable=False, default=True)
    timestamp = Column(DateTime, nullable=False, default=utcnow)

    session = relationship("BargainSession", back_populates="messages")

    __table_args__ = (
        Index("idx_bargain_message_session_time", "session_id", "timestamp"),
    )

    def __repr__(self):
        return f"<BargainMessage(id={self.id}, role={self.sender_role}, session={self.session_id})>"
