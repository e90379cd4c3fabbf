"""
Bargain negotiation orchestrator.

WHAT: State machine driving a bargainer persona and a publisher persona to a price
WHY: Alternate turns, track the best price, detect agreement, persist and emit every turn
HOW: Async generator yielding stream events; strictly sequential, bounded by max_exchanges
"""

from dataclasses import dataclass
from typing import AsyncIterator

from pydantic import BaseModel

from ..chat.provider import ChatCompletionClient
from ..chat.types import ChatClientError, ChatContext, ChatMessage
from ..core.config import settings
from ..core.store import BargainStore
from ..models.bargain import (
    BargainSessionRecord,
    BargainStatus,
    ParticipantRecord,
    RunOutcome,
    SenderRole,
    resolve_transition,
)
from ..models.events import CompleteEvent, ErrorEvent, MessageEvent, StatusEvent, StatusPayload
from ..utils.cancellation import CancellationToken
from ..utils.exceptions import NegotiationNotActiveException, SessionNotFoundException
from ..utils.logger import get_logger
from ..utils.offers import detect_agreement, extract_price
from .prompts import render_opening_offer, render_publisher_turn, render_rebuttal

logger = get_logger(__name__)


@dataclass
class RunState:
    """Mutable state of one negotiation run."""
    tracked_price: float
    exchanges: int = 0


class BargainGraph:
    """
    Orchestrator for one bargainer/publisher negotiation.

    WHAT: Turn loop between two chat personas over a stored session
    WHY: Produce a usable final price and a persisted, streamed transcript
    HOW: Bargainer turn -> price tracking -> publisher turn -> agreement check -> repeat
    """

    def __init__(
        self,
        store: BargainStore,
        chat_client: ChatCompletionClient,
        *,
        max_exchanges: int | None = None,
        inter_turn_delay: float | None = None,
        mock_publisher_fallback: bool | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Session/message persistence
            chat_client: Persona chat-completion client
            max_exchanges: Cap on bargainer/publisher round trips
            inter_turn_delay: Seconds paused before each side speaks
            mock_publisher_fallback: Use a demo credential when the publisher has none
        """
        self.store = store
        self.chat_client = chat_client
        self.max_exchanges = max_exchanges if max_exchanges is not None else settings.MAX_BARGAIN_EXCHANGES
        self.inter_turn_delay = (
            inter_turn_delay if inter_turn_delay is not None else settings.exchange_delay_seconds
        )
        self.mock_publisher_fallback = (
            mock_publisher_fallback if mock_publisher_fallback is not None
            else settings.MOCK_PUBLISHER_FALLBACK
        )

        if self.max_exchanges < 1:
            raise ValueError("max_exchanges must be >= 1")

    async def run(
        self,
        session_id: str,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[BaseModel]:
        """
        Run the negotiation for a session until a terminal event.

        Args:
            session_id: Session to negotiate
            cancel_token: Stops the run when the consumer disconnects

        Yields:
            StatusEvent, MessageEvent(s), then exactly one CompleteEvent or ErrorEvent
            (nothing further once cancelled)

        Raises:
            SessionNotFoundException: Unknown session id
            NegotiationNotActiveException: Session already terminal
        """
        token = cancel_token or CancellationToken()

        session = await self.store.get_session(session_id, include_messages=False)
        if session is None:
            raise SessionNotFoundException(session_id)
        if session.status.is_terminal:
            raise NegotiationNotActiveException(session_id, session.status.value)

        logger.info(
            f"Starting negotiation for session {session_id}, max_exchanges={self.max_exchanges}, "
            f"publish={session.publish_price}, target={session.target_price}, current={session.current_price}"
        )

        try:
            bargainer = await self.store.get_participant(session.bargainer_id)
            publisher = await self._resolve_publisher(session)

            # Session stays negotiating: nothing was attempted yet
            if bargainer is None:
                logger.error(f"Bargainer {session.bargainer_id} not found for session {session_id}")
                yield ErrorEvent.with_message("Bargainer not found")
                return
            if publisher is None:
                logger.error(f"Publisher {session.publisher_id} not found for session {session_id}")
                yield ErrorEvent.with_message("Publisher not found")
                return

            yield StatusEvent(data=StatusPayload(status=BargainStatus.NEGOTIATING))

            async for event in self._exchange_loop(session, bargainer, publisher, token):
                yield event

        except Exception as e:
            logger.error(f"Unexpected error in negotiation for session {session_id}: {e}", exc_info=True)
            try:
                await self._finalize(session, RunOutcome.CRASHED)
            except Exception as finalize_error:
                logger.error(f"Could not mark session {session_id} failed: {finalize_error}")
            yield ErrorEvent.with_message(str(e) or type(e).__name__)

        finally:
            if token.cancelled:
                logger.info(f"Negotiation for session {session_id} stopped by cancellation")

    async def _exchange_loop(
        self,
        session: BargainSessionRecord,
        bargainer: ParticipantRecord,
        publisher: ParticipantRecord,
        token: CancellationToken,
    ) -> AsyncIterator[BaseModel]:
        """Alternate bargainer and publisher turns until agreement or exhaustion."""
        state = RunState(tracked_price=session.current_price)
        history: list[ChatMessage] = []

        bargainer_context = ChatContext(
            product_name=session.product_label,
            publish_price=session.publish_price,
            target_price=session.target_price,
            role=SenderRole.BARGAINER,
        )
        publisher_context = ChatContext(
            product_name=session.product_label,
            publish_price=session.publish_price,
            target_price=session.target_price,
            role=SenderRole.PUBLISHER,
        )

        utterance = render_opening_offer(session.product_label, session.publish_price, session.target_price)

        for exchange in range(1, self.max_exchanges + 1):
            if token.cancelled:
                return
            logger.debug(f"Session {session.id}: exchange {exchange}/{self.max_exchanges}")

            # === BARGAINER TURN ===
            try:
                bargainer_reply = await self.chat_client.send_message(
                    bargainer.access_token, utterance, bargainer_context, list(history)
                )
            except ChatClientError as e:
                if token.cancelled:
                    return
                logger.error(f"Bargainer chat call failed for session {session.id}: {e!r}")
                await self._finalize(session, RunOutcome.CHAT_FAILED)
                yield ErrorEvent.with_message("Failed to get bargainer response")
                return

            # Late reply to a disconnected stream
            if token.cancelled:
                return

            message = await self.store.append_message(
                session.id, session.bargainer_id, SenderRole.BARGAINER, bargainer_reply, True
            )
            yield MessageEvent.from_record(message)

            await self._track_price(session, state, bargainer_reply)
            history.append({"role": "assistant", "content": bargainer_reply})

            if await token.sleep(self.inter_turn_delay):
                return

            # === PUBLISHER TURN ===
            try:
                publisher_reply = await self.chat_client.send_message(
                    publisher.access_token,
                    render_publisher_turn(bargainer_reply),
                    publisher_context,
                    list(history),
                )
            except ChatClientError as e:
                if token.cancelled:
                    return
                logger.error(f"Publisher chat call failed for session {session.id}: {e!r}")
                await self._finalize(session, RunOutcome.CHAT_FAILED)
                yield ErrorEvent.with_message("Failed to get publisher response")
                return

            if token.cancelled:
                return

            message = await self.store.append_message(
                session.id, session.publisher_id, SenderRole.PUBLISHER, publisher_reply, True
            )
            yield MessageEvent.from_record(message)
            state.exchanges = exchange

            # === AGREEMENT CHECK ===
            if detect_agreement(publisher_reply):
                offered = extract_price(publisher_reply)
                final_price = offered if offered is not None else state.tracked_price
                logger.info(
                    f"Agreement detected in session {session.id} after {exchange} exchange(s), "
                    f"final_price={final_price}"
                )
                await self._finalize(session, RunOutcome.AGREED, final_price)
                yield CompleteEvent.with_price(final_price)
                return

            history.append({"role": "assistant", "content": publisher_reply})
            utterance = render_rebuttal(publisher_reply, state.tracked_price, session.target_price)

            if exchange < self.max_exchanges and await token.sleep(self.inter_turn_delay):
                return

        logger.info(
            f"Exchange budget exhausted for session {session.id} ({state.exchanges} exchanges), "
            f"completing at tracked price {state.tracked_price}"
        )
        await self._finalize(session, RunOutcome.EXHAUSTED, state.tracked_price)
        yield CompleteEvent.with_price(state.tracked_price)

    async def _track_price(self, session: BargainSessionRecord, state: RunState, reply: str) -> None:
        """Adopt a mentioned price if strictly lower than the tracked one."""
        price = extract_price(reply)
        if price is None or price >= state.tracked_price:
            return

        logger.info(f"Session {session.id}: tracked price {state.tracked_price} -> {price}")
        state.tracked_price = price
        await self.store.update_current_price(session.id, price)

    async def _resolve_publisher(self, session: BargainSessionRecord) -> ParticipantRecord | None:
        publisher = await self.store.get_participant(session.publisher_id)
        if publisher is None and self.mock_publisher_fallback:
            logger.warning(f"Publisher {session.publisher_id} has no credential, using demo publisher")
            publisher = ParticipantRecord(
                participant_id=f"mock-publisher-{session.publisher_id}",
                name="Mock Seller",
                access_token=settings.MOCK_PUBLISHER_TOKEN,
            )
        return publisher

    async def _finalize(
        self,
        session: BargainSessionRecord,
        outcome: RunOutcome,
        final_price: float | None = None,
    ) -> BargainStatus:
        """
        Apply the run outcome to the stored session.

        Agreement and exhaustion complete the session with a final price;
        chat failures and crashes fail it.
        """
        target = resolve_transition(session.status, outcome)

        if target is BargainStatus.COMPLETED:
            await self.store.complete_session(session.id, final_price)
        else:
            await self.store.fail_session(session.id)

        logger.info(f"Session {session.id} finalized as {target.value} ({outcome.value})")
        return target
