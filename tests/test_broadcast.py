"""
Traffic-light pub/sub: latest-value delivery and service-level publishing.
"""

import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from lightboard.core.broadcast import Channel
from lightboard.models.content import LightState
from lightboard.services.site_service import get_light_state, set_light_state


@pytest.mark.asyncio
class TestChannel:
    async def test_publish_reaches_every_subscriber(self):
        channel = Channel("test")
        first = channel.subscribe()
        second = channel.subscribe()

        assert channel.publish("green") == 2
        assert await first.get() == "green"
        assert await second.get() == "green"
        assert channel.latest == "green"

    async def test_slow_subscriber_sees_only_latest(self):
        channel = Channel("test")
        sub = channel.subscribe()

        channel.publish("orange")
        channel.publish("green")

        assert await sub.get() == "green"
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(sub.get(), timeout=0.05)

    async def test_context_exit_unsubscribes(self):
        channel = Channel("test")
        async with channel.subscribe():
            assert channel.subscriber_count == 1
        assert channel.subscriber_count == 0
        assert channel.publish("red") == 0

    async def test_iteration_yields_published_values(self):
        channel = Channel("test")
        received = []

        async def reader():
            async with channel.subscribe() as sub:
                async for state in sub:
                    received.append(state)
                    if state == "green":
                        break

        async def until_received(count):
            while len(received) < count:
                await asyncio.sleep(0.01)

        task = asyncio.create_task(reader())
        while channel.subscriber_count == 0:
            await asyncio.sleep(0.01)
        channel.publish("orange")
        await asyncio.wait_for(until_received(1), timeout=1)
        channel.publish("green")
        await asyncio.wait_for(task, timeout=1)

        assert received == ["orange", "green"]
        assert channel.subscriber_count == 0


@pytest.mark.asyncio
class TestLightStatePublishing:
    async def test_defaults_to_red(self, db_session):
        assert await get_light_state(db_session) == LightState.RED

    async def test_change_is_persisted_and_published(self, db_session):
        channel = Channel("test")
        sub = channel.subscribe()

        await set_light_state(db_session, LightState.ORANGE, changed_by="op-1", channel=channel)

        assert await get_light_state(db_session) == LightState.ORANGE
        assert await sub.get() == "orange"

        await set_light_state(db_session, LightState.GREEN, changed_by="op-1", channel=channel)
        assert await get_light_state(db_session) == LightState.GREEN
        assert await sub.get() == "green"

    async def test_change_is_committed_before_it_is_published(self, session_factory, db_session):
        channel = Channel("test")
        sub = channel.subscribe()

        await set_light_state(db_session, LightState.GREEN, changed_by="op-1", channel=channel)
        assert await sub.get() == "green"

        async with session_factory() as other:
            assert await get_light_state(other) == LightState.GREEN

    async def test_failed_save_is_not_published(self, db_session, monkeypatch):
        channel = Channel("test")
        sub = channel.subscribe()

        async def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "commit", failing_commit)

        with pytest.raises(OperationalError):
            await set_light_state(db_session, LightState.GREEN, changed_by="op-1", channel=channel)

        assert channel.latest is None
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(sub.get(), timeout=0.05)
