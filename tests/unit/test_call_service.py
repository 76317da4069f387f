from __future__ import annotations

import pytest

from chat_realtime.domain.value_objects.enums import CallState, MediaKind
from chat_realtime.services.call_service import CallRelay

OFFER = {"type": "offer", "sdp": "v=0"}
ANSWER = {"type": "answer", "sdp": "v=0"}


@pytest.fixture
def relay(fanout) -> CallRelay:
    return CallRelay(fanout)


@pytest.mark.asyncio
async def test_invite_reaches_callee(relay, fanout, alice):
    assert await relay.invite(alice, "u2", OFFER, is_video=True) is True

    [incoming] = fanout.of_type("call_incoming")
    assert incoming.kind == "identity"
    assert incoming.target == "u2"
    assert incoming.data == {
        "callerId": "u1",
        "callerName": "Alice",
        "callerAvatar": "https://example.test/a.png",
        "offer": OFFER,
        "isVideo": True,
    }
    session = await relay.session("u1", "u2")
    assert session.state == CallState.INVITED
    assert session.media == MediaKind.VIDEO


@pytest.mark.asyncio
async def test_full_call_flow(relay, fanout, alice, bob):
    await relay.invite(alice, "u2", OFFER, is_video=False)
    assert await relay.answer(bob, "u1", ANSWER) is True
    assert await relay.ice_candidate(alice, "u2", {"candidate": "c1"}) is True
    assert await relay.ice_candidate(bob, "u1", {"candidate": "c2"}) is True

    [accepted] = fanout.of_type("call_accepted")
    assert accepted.target == "u1"
    assert accepted.data == {"responderId": "u2", "answer": ANSWER}
    assert [d.data for d in fanout.of_type("call_ice_candidate")] == [
        {"senderId": "u1", "candidate": {"candidate": "c1"}},
        {"senderId": "u2", "candidate": {"candidate": "c2"}},
    ]
    assert (await relay.session("u1", "u2")).state == CallState.ACTIVE

    assert await relay.end(bob, "u1") is True
    [ended] = fanout.of_type("call_ended")
    assert ended.target == "u1"
    assert ended.data == {"senderId": "u2"}
    assert await relay.session("u1", "u2") is None


@pytest.mark.asyncio
async def test_unanswered_call_is_rejected(relay, fanout, alice, bob):
    await relay.invite(alice, "u2", OFFER, is_video=False)

    assert await relay.reject(bob, "u1") is True

    [rejected] = fanout.of_type("call_rejected")
    assert rejected.target == "u1"
    assert rejected.data == {"responderId": "u2"}
    assert await relay.session("u1", "u2") is None


@pytest.mark.asyncio
async def test_reject_after_answer_is_dropped(relay, fanout, alice, bob):
    await relay.invite(alice, "u2", OFFER, is_video=False)
    await relay.answer(bob, "u1", ANSWER)

    assert await relay.reject(bob, "u1") is False
    assert fanout.of_type("call_rejected") == []


@pytest.mark.asyncio
async def test_second_invite_for_the_pair_is_busy(relay, fanout, alice, bob):
    await relay.invite(alice, "u2", OFFER, is_video=False)

    assert await relay.invite(bob, "u1", OFFER, is_video=False) is False

    [busy] = fanout.of_type("call_rejected")
    assert busy.target == "u2"
    assert busy.data == {"responderId": "u1", "reason": "busy"}
    assert len(fanout.of_type("call_incoming")) == 1


@pytest.mark.asyncio
async def test_signaling_without_session_is_dropped(relay, fanout, alice, bob):
    assert await relay.answer(bob, "u1", ANSWER) is False
    assert await relay.ice_candidate(alice, "u2", {}) is False
    assert await relay.end(alice, "u2") is False
    assert fanout.deliveries == []


@pytest.mark.asyncio
async def test_caller_cannot_answer_own_invite(relay, alice):
    await relay.invite(alice, "u2", OFFER, is_video=False)
    assert await relay.answer(alice, "u2", ANSWER) is False


@pytest.mark.asyncio
async def test_cannot_call_yourself(relay, fanout, alice):
    assert await relay.invite(alice, "u1", OFFER, is_video=False) is False
    assert fanout.deliveries == []


@pytest.mark.asyncio
async def test_drop_identity_ends_its_calls(relay, fanout, alice, bob, carol):
    await relay.invite(alice, "u2", OFFER, is_video=False)
    await relay.invite(carol, "u1", OFFER, is_video=False)

    assert await relay.drop_identity("u1") == 2

    ended = {(d.target, d.data["senderId"]) for d in fanout.of_type("call_ended")}
    assert ended == {("u2", "u1"), ("u3", "u1")}
    assert await relay.session("u1", "u2") is None
    assert await relay.session("u1", "u3") is None
