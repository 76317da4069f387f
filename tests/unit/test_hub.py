from __future__ import annotations

import pytest

from chat_realtime.infrastructure.ws.presence import InMemoryOnlineDirectory, PresenceRegistry
from chat_realtime.infrastructure.ws.router import RoomRouter
from chat_realtime.infrastructure.ws.hub import RealtimeHub
from chat_realtime.services.call_service import CallRelay, InMemoryCallSessionStore
from chat_realtime.services.typing_service import TypingTracker
from tests.conftest import FakeConnection


@pytest.fixture
def hub() -> RealtimeHub:
    presence = PresenceRegistry()
    router = RoomRouter(presence)
    return RealtimeHub(
        presence=presence,
        router=router,
        typing=TypingTracker(router, timeout=10),
        calls=CallRelay(router),
    )


@pytest.mark.asyncio
async def test_connect_broadcasts_online_identities(hub, alice, bob):
    a1, b1 = FakeConnection("a1"), FakeConnection("b1")

    await hub.connect(a1, alice)
    await hub.connect(b1, bob)

    assert [u["id"] for u in a1.events("users_update")[-1]] == ["u1", "u2"]
    assert b1.events("users_update") == [a1.events("users_update")[-1]]


@pytest.mark.asyncio
async def test_disconnect_cleans_up_once(hub, alice, bob):
    a1, b1 = FakeConnection("a1"), FakeConnection("b1")
    await hub.connect(a1, alice)
    await hub.connect(b1, bob)
    await hub.router.join("a1", "team")

    assert await hub.disconnect(a1) == alice
    assert await hub.disconnect(a1) is None

    assert hub.router.room_members("team") == set()
    assert [u["id"] for u in b1.events("users_update")[-1]] == ["u2"]
    assert len(b1.events("users_update")) == 2


@pytest.mark.asyncio
async def test_disconnect_of_last_device_ends_calls(hub, alice, bob):
    phone, laptop, b1 = FakeConnection("phone"), FakeConnection("laptop"), FakeConnection("b1")
    await hub.connect(phone, alice)
    await hub.connect(laptop, alice)
    await hub.connect(b1, bob)
    await hub.calls.invite(alice, "u2", {"sdp": "x"}, is_video=False)

    await hub.disconnect(phone)
    assert b1.events("call_ended") == []

    await hub.disconnect(laptop)
    assert b1.events("call_ended") == [{"senderId": "u1"}]


@pytest.mark.asyncio
async def test_disconnect_hides_typing_started_on_that_connection(hub, alice, bob):
    from chat_realtime.domain.entities.conversation import Conversation

    a1, b1 = FakeConnection("a1"), FakeConnection("b1")
    await hub.connect(a1, alice)
    await hub.connect(b1, bob)
    await hub.typing.start(Conversation.global_room(), alice, "a1")

    await hub.disconnect(a1)

    assert [h["userId"] for h in b1.events("typing_hide")] == ["u1"]
    await hub.close()


def _instance(directory: InMemoryOnlineDirectory, calls: InMemoryCallSessionStore) -> RealtimeHub:
    presence = PresenceRegistry(directory)
    router = RoomRouter(presence)
    return RealtimeHub(
        presence=presence,
        router=router,
        typing=TypingTracker(router, timeout=10),
        calls=CallRelay(router, calls),
    )


@pytest.mark.asyncio
async def test_call_survives_while_a_device_is_connected_to_another_instance(alice, bob):
    directory, sessions = InMemoryOnlineDirectory(), InMemoryCallSessionStore()
    hub_a, hub_b = _instance(directory, sessions), _instance(directory, sessions)
    phone, laptop, b1 = FakeConnection("phone"), FakeConnection("laptop"), FakeConnection("b1")
    await hub_a.connect(phone, alice)
    await hub_a.connect(b1, bob)
    await hub_b.connect(laptop, alice)
    await hub_a.calls.invite(alice, "u2", {"sdp": "x"}, is_video=False)

    await hub_a.disconnect(phone)

    assert [i.id for i in await hub_a.presence.snapshot()] == ["u1", "u2"]
    assert await sessions.get("u1", "u2") is not None
    assert b1.events("call_ended") == []

    await hub_b.disconnect(laptop)

    assert await sessions.get("u1", "u2") is None
    assert [i.id for i in await hub_a.presence.snapshot()] == ["u2"]
