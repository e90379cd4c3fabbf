"""
Bargain store: persistence contract and SQL implementation.

WHAT: Create/read/update operations over bargain sessions, messages and participants
WHY: The orchestrator depends on a narrow repository, not on the ORM
HOW: Protocol with async methods; SqlBargainStore runs blocking get_db() work in the threadpool
"""

import functools
from typing import Protocol

from sqlalchemy import func, select, update
from starlette.concurrency import run_in_threadpool

from .database import get_db
from .models import BargainSession, BargainMessage, Participant
from ..models.bargain import (
    BargainStatus,
    SenderRole,
    CreateBargainInput,
    BargainSessionRecord,
    BargainMessageRecord,
    ParticipantRecord,
    utcnow,
)
from ..utils.exceptions import SessionNotFoundException, InvalidTransitionException
from ..utils.logger import get_logger

logger = get_logger(__name__)


class BargainStore(Protocol):
    """Persistence operations consumed by the API and the orchestrator."""

    async def create_session(self, data: CreateBargainInput) -> BargainSessionRecord: ...

    async def get_session(
        self, session_id: str, include_messages: bool = True
    ) -> BargainSessionRecord | None: ...

    async def append_message(
        self,
        session_id: str,
        sender_id: str,
        role: SenderRole,
        content: str,
        is_from_ai: bool = True,
    ) -> BargainMessageRecord: ...

    async def update_current_price(self, session_id: str, price: float) -> BargainSessionRecord: ...

    async def complete_session(self, session_id: str, final_price: float) -> BargainSessionRecord: ...

    async def fail_session(self, session_id: str) -> BargainSessionRecord: ...

    async def list_purchases(self, bargainer_id: str) -> list[BargainSessionRecord]: ...

    async def get_participant(self, participant_id: str) -> ParticipantRecord | None: ...

    async def upsert_participant(self, record: ParticipantRecord) -> ParticipantRecord: ...


def _message_record(row: BargainMessage) -> BargainMessageRecord:
    return BargainMessageRecord(
        id=row.id,
        session_id=row.session_id,
        sender_id=row.sender_id,
        sender_role=row.sender_role,
        content=row.content,
        timestamp=row.timestamp,
        is_from_ai=row.is_from_ai,
    )


def _session_record(row: BargainSession, messages: list[BargainMessage] | None = None) -> BargainSessionRecord:
    return BargainSessionRecord(
        id=row.id,
        product_id=row.product_id,
        product_name=row.product_name,
        publisher_id=row.publisher_id,
        bargainer_id=row.bargainer_id,
        publish_price=row.publish_price,
        current_price=row.current_price,
        target_price=row.target_price,
        status=row.status,
        final_price=row.final_price,
        created_at=row.created_at,
        completed_at=row.completed_at,
        messages=[_message_record(m) for m in messages] if messages else [],
    )


def _threaded(method):
    """Run a blocking store method in the threadpool and expose it as a coroutine."""
    @functools.wraps(method)
    async def wrapper(*args, **kwargs):
        return await run_in_threadpool(method, *args, **kwargs)
    return wrapper


def _terminalize(db, session_id: str, target: BargainStatus, **values) -> BargainSessionRecord:
    """
    Move a negotiating session to a terminal status in one conditional UPDATE.

    Terminal statuses have no outgoing transitions; of two concurrent finalizers
    only the first matches the negotiating row.
    """
    result = db.execute(
        update(BargainSession)
        .where(BargainSession.id == session_id, BargainSession.status == BargainStatus.NEGOTIATING)
        .values(status=target, completed_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    row = db.get(BargainSession, session_id, populate_existing=True)
    if row is None:
        raise SessionNotFoundException(session_id)
    if result.rowcount == 0:
        raise InvalidTransitionException(session_id, row.status.value, target.value)
    return _session_record(row)


class SqlBargainStore:
    """
    SQLAlchemy-backed bargain store.

    WHAT: Durable implementation of BargainStore
    WHY: Sessions and their transcripts must survive restarts
    HOW: One short get_db() transaction per operation, records returned detached
    """

    @_threaded
    def create_session(self, data: CreateBargainInput) -> BargainSessionRecord:
        """Open a session in negotiating status with current_price = publish_price."""
        with get_db() as db:
            row = BargainSession(
                product_id=data.product_id,
                product_name=data.product_name,
                publisher_id=data.publisher_id,
                bargainer_id=data.bargainer_id,
                publish_price=data.publish_price,
                current_price=data.publish_price,
                target_price=data.target_price,
                status=BargainStatus.NEGOTIATING,
            )
            db.add(row)
            db.flush()
            record = _session_record(row)

        logger.info(
            f"Created bargain session {record.id} (product={record.product_id}, "
            f"publish={record.publish_price}, target={record.target_price})"
        )
        return record

    @_threaded
    def get_session(
        self, session_id: str, include_messages: bool = True
    ) -> BargainSessionRecord | None:
        """Fetch a session, with its messages ordered by timestamp, or None."""
        with get_db() as db:
            row = db.get(BargainSession, session_id)
            if row is None:
                return None

            messages = None
            if include_messages:
                messages = db.scalars(
                    select(BargainMessage)
                    .where(BargainMessage.session_id == session_id)
                    .order_by(BargainMessage.timestamp.asc(), BargainMessage.sequence.asc())
                ).all()
            return _session_record(row, messages)

    @_threaded
    def append_message(
        self,
        session_id: str,
        sender_id: str,
        role: SenderRole,
        content: str,
        is_from_ai: bool = True,
    ) -> BargainMessageRecord:
        """Append one message to the session log."""
        with get_db() as db:
            if db.get(BargainSession, session_id) is None:
                raise SessionNotFoundException(session_id)

            last_sequence = db.scalar(
                select(func.max(BargainMessage.sequence)).where(BargainMessage.session_id == session_id)
            )
            row = BargainMessage(
                session_id=session_id,
                sequence=(last_sequence or 0) + 1,
                sender_id=sender_id,
                sender_role=role,
                content=content,
                is_from_ai=is_from_ai,
                timestamp=utcnow(),
            )
            db.add(row)
            db.flush()
            record = _message_record(row)

        logger.debug(f"Appended {role.value} message {record.id} to session {session_id}")
        return record

    @_threaded
    def update_current_price(self, session_id: str, price: float) -> BargainSessionRecord:
        """Lower the session's current price."""
        with get_db() as db:
            row = db.get(BargainSession, session_id)
            if row is None:
                raise SessionNotFoundException(session_id)
            if price > row.current_price:
                raise ValueError(
                    f"current_price may only decrease (session {session_id}: {row.current_price} -> {price})"
                )
            row.current_price = price
            db.flush()
            return _session_record(row)

    @_threaded
    def complete_session(self, session_id: str, final_price: float) -> BargainSessionRecord:
        """Terminalize as completed with a final price."""
        with get_db() as db:
            record = _terminalize(db, session_id, BargainStatus.COMPLETED, final_price=final_price)

        logger.info(f"Completed bargain session {session_id} (final_price={final_price})")
        return record

    @_threaded
    def fail_session(self, session_id: str) -> BargainSessionRecord:
        """Terminalize as failed."""
        with get_db() as db:
            record = _terminalize(db, session_id, BargainStatus.FAILED)

        logger.info(f"Failed bargain session {session_id}")
        return record

    @_threaded
    def list_purchases(self, bargainer_id: str) -> list[BargainSessionRecord]:
        """Completed sessions of a bargainer, most recent first."""
        with get_db() as db:
            rows = db.scalars(
                select(BargainSession)
                .where(
                    BargainSession.bargainer_id == bargainer_id,
                    BargainSession.status == BargainStatus.COMPLETED,
                )
                .order_by(BargainSession.completed_at.desc())
            ).all()
            return [_session_record(row) for row in rows]

    @_threaded
    def get_participant(self, participant_id: str) -> ParticipantRecord | None:
        with get_db() as db:
            row = db.get(Participant, participant_id)
            if row is None:
                return None
            return ParticipantRecord(
                participant_id=row.participant_id,
                name=row.name,
                access_token=row.access_token,
                refresh_token=row.refresh_token,
            )

    @_threaded
    def upsert_participant(self, record: ParticipantRecord) -> ParticipantRecord:
        """Create or replace a participant credential."""
        with get_db() as db:
            row = db.get(Participant, record.participant_id)
            if row is None:
                row = Participant(participant_id=record.participant_id)
                db.add(row)
            row.name = record.name
            row.access_token = record.access_token
            row.refresh_token = record.refresh_token

        logger.info(f"Stored credential for participant {record.participant_id}")
        return record


# Singleton instance
_store_instance: BargainStore | None = None


def get_bargain_store() -> BargainStore:
    """Get the store singleton (FastAPI dependency)."""
    global _store_instance
    if _store_instance is None:
        _store_instance = SqlBargainStore()
    return _store_instance


def reset_bargain_store() -> None:
    """Reset the store singleton (useful for testing)."""
    global _store_instance
    _store_instance = None
