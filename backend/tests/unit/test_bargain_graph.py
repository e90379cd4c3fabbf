"""
Unit tests for the bargain negotiation orchestrator.

WHAT: Test the turn loop with scripted persona replies
WHY: Verify agreement, exhaustion, failure and cancellation outcomes without a real chat endpoint
HOW: BargainGraph over an in-memory store and a mock chat client
"""

import pytest

from duoduo_bargain.agents.bargain_graph import BargainGraph
from duoduo_bargain.models.bargain import BargainStatus, SenderRole
from duoduo_bargain.models.events import CompleteEvent, ErrorEvent, MessageEvent, StatusEvent
from duoduo_bargain.utils.cancellation import CancellationToken
from duoduo_bargain.utils.exceptions import NegotiationNotActiveException, SessionNotFoundException
from tests.fixtures.mock_chat import MockChatClient

NO_DEAL = "这个价格太低了，我不能接受。"


def make_graph(store, chat, **kwargs):
    kwargs.setdefault("max_exchanges", 10)
    kwargs.setdefault("inter_turn_delay", 0)
    kwargs.setdefault("mock_publisher_fallback", False)
    return BargainGraph(store, chat, **kwargs)


async def run_to_end(graph, session_id, token=None):
    return [event async for event in graph.run(session_id, token)]


@pytest.mark.unit
@pytest.mark.orchestration
class TestNegotiationOutcomes:
    """Test how runs end."""

    @pytest.mark.asyncio
    async def test_publisher_agreement_completes_with_quoted_price(self, memory_store):
        """Test an agreeing publisher reply with a price ends the run at that price."""
        session = memory_store.add_session()
        chat = MockChatClient(
            bargainer_replies=["我最多出1700元"],
            publisher_replies=["好的，就这个价格成交，1800元"],
        )

        events = await run_to_end(make_graph(memory_store, chat), session.id)

        assert [e.type for e in events] == ["status", "message", "message", "complete"]
        assert events[-1].data.final_price == 1800
        stored = await memory_store.get_session(session.id)
        assert stored.status is BargainStatus.COMPLETED
        assert stored.final_price == 1800
        assert len(stored.messages) == 2

    @pytest.mark.asyncio
    async def test_agreement_without_price_uses_tracked_price(self, memory_store):
        session = memory_store.add_session()
        chat = MockChatClient(
            bargainer_replies=["我出1600元吧"],
            publisher_replies=["没问题"],
        )

        events = await run_to_end(make_graph(memory_store, chat), session.id)

        assert events[-1].data.final_price == 1600
        assert (await memory_store.get_session(session.id)).final_price == 1600

    @pytest.mark.asyncio
    async def test_exhaustion_completes_at_tracked_price(self, memory_store):
        """Test running out of exchanges completes rather than fails."""
        session = memory_store.add_session()
        chat = MockChatClient(
            bargainer_replies=["我出1900元", "我出1850元", "我出1700元"],
            publisher_replies=[NO_DEAL],
        )

        events = await run_to_end(make_graph(memory_store, chat, max_exchanges=2), session.id)

        assert chat.call_count == 4
        assert [e.type for e in events].count("message") == 4
        assert isinstance(events[-1], CompleteEvent)
        assert events[-1].data.final_price == 1850
        stored = await memory_store.get_session(session.id)
        assert stored.status is BargainStatus.COMPLETED
        assert stored.final_price == 1850
        assert stored.current_price == 1850

    @pytest.mark.asyncio
    async def test_exhaustion_without_any_price_uses_publish_price(self, memory_store):
        session = memory_store.add_session()
        chat = MockChatClient(bargainer_replies=["能便宜点吗"], publisher_replies=[NO_DEAL])

        events = await run_to_end(make_graph(memory_store, chat, max_exchanges=1), session.id)

        assert events[-1].data.final_price == 2000

    @pytest.mark.asyncio
    async def test_bargainer_failure_on_first_exchange(self, memory_store):
        """Test a failing first call fails the session with one error event and no messages."""
        session = memory_store.add_session()
        chat = MockChatClient(fail_on={SenderRole.BARGAINER: 1})

        events = await run_to_end(make_graph(memory_store, chat), session.id)

        assert [e.type for e in events] == ["status", "error"]
        assert events[-1].data.error == "Failed to get bargainer response"
        stored = await memory_store.get_session(session.id)
        assert stored.status is BargainStatus.FAILED
        assert stored.final_price is None
        assert stored.messages == []

    @pytest.mark.asyncio
    async def test_publisher_failure_keeps_bargainer_message(self, memory_store):
        session = memory_store.add_session()
        chat = MockChatClient(
            bargainer_replies=["我出1800元"],
            fail_on={SenderRole.PUBLISHER: 1},
        )

        events = await run_to_end(make_graph(memory_store, chat), session.id)

        assert [e.type for e in events] == ["status", "message", "error"]
        assert events[-1].data.error == "Failed to get publisher response"
        stored = await memory_store.get_session(session.id)
        assert stored.status is BargainStatus.FAILED
        assert [m.sender_role for m in stored.messages] == [SenderRole.BARGAINER]

    @pytest.mark.asyncio
    async def test_exactly_one_terminal_event(self, memory_store):
        session = memory_store.add_session()
        chat = MockChatClient(publisher_replies=[NO_DEAL])

        events = await run_to_end(make_graph(memory_store, chat, max_exchanges=3), session.id)

        terminal = [e for e in events if isinstance(e, (CompleteEvent, ErrorEvent))]
        assert len(terminal) == 1
        assert events[-1] is terminal[0]


@pytest.mark.unit
@pytest.mark.orchestration
class TestTurnLoop:
    """Test turn order, prompts and price tracking."""

    @pytest.mark.asyncio
    async def test_turns_alternate_starting_with_bargainer(self, memory_store):
        session = memory_store.add_session()
        chat = MockChatClient(publisher_replies=[NO_DEAL])

        await run_to_end(make_graph(memory_store, chat, max_exchanges=3), session.id)

        assert chat.roles() == [SenderRole.BARGAINER, SenderRole.PUBLISHER] * 3
        stored = await memory_store.get_session(session.id)
        assert [m.sender_role for m in stored.messages] == [SenderRole.BARGAINER, SenderRole.PUBLISHER] * 3

    @pytest.mark.asyncio
    async def test_each_side_uses_its_own_token(self, memory_store):
        session = memory_store.add_session()
        chat = MockChatClient(publisher_replies=["成交"])

        await run_to_end(make_graph(memory_store, chat), session.id)

        assert chat.calls[0]["access_token"] == "token-bargainer-1"
        assert chat.calls[1]["access_token"] == "token-publisher-1"

    @pytest.mark.asyncio
    async def test_opening_and_follow_up_utterances(self, memory_store):
        session = memory_store.add_session(publish_price=1000, target_price=700)
        chat = MockChatClient(
            bargainer_replies=["我出900元"],
            publisher_replies=[NO_DEAL],
        )

        await run_to_end(make_graph(memory_store, chat, max_exchanges=2), session.id)

        opening = chat.calls[0]["message"]
        assert "1000" in opening and "700" in opening
        assert chat.calls[1]["message"] == "买家说：我出900元"
        assert chat.calls[2]["message"] == f"卖家说：{NO_DEAL} 现在能接受900元吗？"

    @pytest.mark.asyncio
    async def test_history_grows_with_both_sides(self, memory_store):
        session = memory_store.add_session()
        chat = MockChatClient(bargainer_replies=["我出1900元"], publisher_replies=[NO_DEAL])

        await run_to_end(make_graph(memory_store, chat, max_exchanges=2), session.id)

        assert chat.calls[0]["history"] == []
        assert chat.calls[1]["history"] == [{"role": "assistant", "content": "我出1900元"}]
        assert [h["content"] for h in chat.calls[2]["history"]] == ["我出1900元", NO_DEAL]

    @pytest.mark.asyncio
    async def test_price_only_ratchets_down(self, memory_store):
        """Test a higher mentioned price never raises the tracked price."""
        session = memory_store.add_session()
        chat = MockChatClient(
            bargainer_replies=["我出1800元", "那1900元呢", "最多1600元"],
            publisher_replies=[NO_DEAL],
        )

        events = await run_to_end(make_graph(memory_store, chat, max_exchanges=3), session.id)

        assert memory_store.price_updates == [1800, 1600]
        assert events[-1].data.final_price == 1600

    @pytest.mark.asyncio
    async def test_publisher_prices_are_not_tracked(self, memory_store):
        session = memory_store.add_session()
        chat = MockChatClient(bargainer_replies=["能便宜点吗"], publisher_replies=["最低1200元，不能再少"])

        await run_to_end(make_graph(memory_store, chat, max_exchanges=1), session.id)

        assert memory_store.price_updates == []

    @pytest.mark.asyncio
    async def test_message_events_carry_stored_messages(self, memory_store):
        session = memory_store.add_session()
        chat = MockChatClient(publisher_replies=["成交"])

        events = await run_to_end(make_graph(memory_store, chat), session.id)

        stored = await memory_store.get_session(session.id)
        message_events = [e for e in events if isinstance(e, MessageEvent)]
        assert [e.data.id for e in message_events] == [m.id for m in stored.messages]
        assert message_events[0].data.sender_id == "bargainer-1"
        assert message_events[1].data.sender_id == "publisher-1"


@pytest.mark.unit
@pytest.mark.orchestration
class TestRunPreconditions:
    """Test participant resolution and session checks."""

    @pytest.mark.asyncio
    async def test_unknown_session_raises(self, memory_store):
        graph = make_graph(memory_store, MockChatClient())

        with pytest.raises(SessionNotFoundException):
            await run_to_end(graph, "missing")

    @pytest.mark.asyncio
    async def test_terminal_session_raises(self, memory_store):
        session = memory_store.add_session()
        await memory_store.fail_session(session.id)

        with pytest.raises(NegotiationNotActiveException):
            await run_to_end(make_graph(memory_store, MockChatClient()), session.id)

    @pytest.mark.asyncio
    async def test_missing_bargainer_leaves_session_negotiating(self, memory_store):
        session = memory_store.add_session(bargainer_id="ghost")
        chat = MockChatClient()

        events = await run_to_end(make_graph(memory_store, chat), session.id)

        assert len(events) == 1
        assert events[0].type == "error"
        assert events[0].data.error == "Bargainer not found"
        assert chat.call_count == 0
        assert (await memory_store.get_session(session.id)).status is BargainStatus.NEGOTIATING

    @pytest.mark.asyncio
    async def test_missing_publisher(self, memory_store):
        session = memory_store.add_session(publisher_id="ghost")

        events = await run_to_end(make_graph(memory_store, MockChatClient()), session.id)

        assert events[0].data.error == "Publisher not found"

    @pytest.mark.asyncio
    async def test_mock_publisher_fallback(self, memory_store):
        session = memory_store.add_session(publisher_id="ghost")
        chat = MockChatClient(publisher_replies=["成交"])

        events = await run_to_end(
            make_graph(memory_store, chat, mock_publisher_fallback=True), session.id
        )

        assert isinstance(events[-1], CompleteEvent)
        assert chat.calls[1]["access_token"] == "mock-token"

    def test_rejects_zero_exchanges(self, memory_store):
        with pytest.raises(ValueError):
            make_graph(memory_store, MockChatClient(), max_exchanges=0)

    @pytest.mark.asyncio
    async def test_store_crash_fails_session(self, memory_store):
        session = memory_store.add_session()

        async def broken_append(*args, **kwargs):
            raise RuntimeError("disk full")

        memory_store.append_message = broken_append
        events = await run_to_end(make_graph(memory_store, MockChatClient()), session.id)

        assert [e.type for e in events] == ["status", "error"]
        assert events[-1].data.error == "disk full"
        assert (await memory_store.get_session(session.id)).status is BargainStatus.FAILED


@pytest.mark.unit
@pytest.mark.orchestration
class TestCancellation:
    """Test that a cancelled token stops further chat calls."""

    @pytest.mark.asyncio
    async def test_cancel_before_start_makes_no_calls(self, memory_store):
        session = memory_store.add_session()
        chat = MockChatClient()
        token = CancellationToken()
        token.cancel()

        events = await run_to_end(make_graph(memory_store, chat), session.id, token)

        assert [type(e) for e in events] == [StatusEvent]
        assert chat.call_count == 0
        assert (await memory_store.get_session(session.id)).status is BargainStatus.NEGOTIATING

    @pytest.mark.asyncio
    async def test_cancel_mid_run_discards_in_flight_reply(self, memory_store):
        """Test a reply arriving after cancellation is neither stored nor emitted."""
        session = memory_store.add_session()
        token = CancellationToken()
        chat = MockChatClient(
            publisher_replies=[NO_DEAL],
            on_call=lambda count: token.cancel() if count == 3 else None,
        )

        events = await run_to_end(make_graph(memory_store, chat, inter_turn_delay=0.01), session.id, token)

        assert chat.call_count == 3
        assert [e.type for e in events] == ["status", "message", "message"]
        stored = await memory_store.get_session(session.id)
        assert [m.sender_role for m in stored.messages] == [SenderRole.BARGAINER, SenderRole.PUBLISHER]
        assert stored.status is BargainStatus.NEGOTIATING

    @pytest.mark.asyncio
    async def test_failure_after_cancel_is_silent(self, memory_store):
        """Test a chat error on a cancelled run does not fail the session."""
        session = memory_store.add_session()
        token = CancellationToken()
        chat = MockChatClient(
            fail_on={SenderRole.BARGAINER: 1},
            on_call=lambda count: token.cancel(),
        )

        events = await run_to_end(make_graph(memory_store, chat), session.id, token)

        assert [e.type for e in events] == ["status"]
        assert (await memory_store.get_session(session.id)).status is BargainStatus.NEGOTIATING

    @pytest.mark.asyncio
    async def test_reopening_after_cancel_restarts_loop(self, memory_store):
        session = memory_store.add_session()
        token = CancellationToken()
        token.cancel()
        await run_to_end(make_graph(memory_store, MockChatClient()), session.id, token)

        chat = MockChatClient(publisher_replies=["成交"])
        events = await run_to_end(make_graph(memory_store, chat), session.id)

        assert isinstance(events[-1], CompleteEvent)
        assert "很感兴趣" in chat.calls[0]["message"]
