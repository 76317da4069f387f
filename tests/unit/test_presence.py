from __future__ import annotations

import pytest

from chat_realtime.application.exceptions import UnauthenticatedError
from chat_realtime.infrastructure.ws.presence import InMemoryOnlineDirectory, PresenceRegistry
from tests.conftest import FakeConnection


@pytest.mark.asyncio
async def test_register_requires_identity():
    registry = PresenceRegistry()
    with pytest.raises(UnauthenticatedError):
        await registry.register(FakeConnection("c1"), None)
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_snapshot_lists_distinct_identities(alice, bob):
    registry = PresenceRegistry()
    await registry.register(FakeConnection("c1"), alice)
    await registry.register(FakeConnection("c2"), alice)
    await registry.register(FakeConnection("c3"), bob)

    online = await registry.snapshot()

    assert [i.id for i in online] == ["u1", "u2"]
    assert len(registry) == 3


@pytest.mark.asyncio
async def test_personal_channel_holds_every_device(alice):
    registry = PresenceRegistry()
    phone, laptop = FakeConnection("phone"), FakeConnection("laptop")
    await registry.register(phone, alice)
    await registry.register(laptop, alice)

    assert {c.id for c in registry.personal_channel("u1")} == {"phone", "laptop"}
    assert registry.identity_of("phone") == alice


@pytest.mark.asyncio
async def test_unregister_is_idempotent(alice):
    registry = PresenceRegistry()
    await registry.register(FakeConnection("c1"), alice)

    departure = await registry.unregister("c1")
    assert departure.identity == alice
    assert departure.last_connection
    assert await registry.unregister("c1") is None
    assert await registry.snapshot() == []
    assert registry.personal_channel("u1") == []


@pytest.mark.asyncio
async def test_identity_stays_online_until_last_connection_leaves(alice):
    registry = PresenceRegistry()
    await registry.register(FakeConnection("c1"), alice)
    await registry.register(FakeConnection("c2"), alice)

    await registry.unregister("c1")
    assert [i.id for i in await registry.snapshot()] == ["u1"]

    await registry.unregister("c2")
    assert await registry.snapshot() == []


@pytest.mark.asyncio
async def test_departure_counts_devices_on_every_instance_sharing_the_directory(alice):
    directory = InMemoryOnlineDirectory()
    here, elsewhere = PresenceRegistry(directory), PresenceRegistry(directory)
    await here.register(FakeConnection("phone"), alice)
    await elsewhere.register(FakeConnection("laptop"), alice)

    departure = await here.unregister("phone")

    assert here.personal_channel("u1") == []
    assert departure.remaining == 1
    assert not departure.last_connection
    assert (await elsewhere.unregister("laptop")).last_connection
