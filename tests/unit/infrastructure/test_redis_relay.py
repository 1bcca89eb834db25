"""Redis partition relay: publish on emit, replay pub/sub messages into the local registry."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from fakes import FakeSink

from auditcast.infrastructure.messaging.redis_relay import RedisPartitionRelay
from auditcast.realtime.registry import ConnectionRegistry


@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.publish = AsyncMock(return_value=1)
    return client


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def relay(redis_client, registry):
    return RedisPartitionRelay(redis_client, registry, channel_prefix="partition:")


async def test_emit_publishes_to_partition_channel(relay, redis_client):
    receivers = await relay.emit("t1", "data-changed", {"entityId": "o42"})

    assert receivers == 1
    channel, body = redis_client.publish.call_args[0]
    assert channel == "partition:t1"
    assert json.loads(body) == {"type": "data-changed", "data": {"entityId": "o42"}}


async def test_handle_message_forwards_to_local_members(relay, registry):
    sink = FakeSink()
    connection = registry.open(sink, user_id="u1")
    registry.mark_connected(connection.connection_id)
    await registry.join(connection.connection_id, "t1")
    sink.messages.clear()

    delivered = await relay.handle_message({
        "type": "pmessage",
        "pattern": "partition:*",
        "channel": b"partition:t1",
        "data": json.dumps({"type": "data-changed", "data": {"entityId": "o42"}}),
    })

    assert delivered == 1
    assert sink.messages == [
        {"type": "data-changed", "partition": "t1", "data": {"entityId": "o42"}}
    ]


async def test_handle_message_ignores_other_traffic(relay):
    assert await relay.handle_message({"type": "psubscribe", "channel": "partition:*", "data": 1}) == 0
    assert await relay.handle_message({"type": "pmessage", "channel": "other:t1", "data": "{}"}) == 0
    assert await relay.handle_message({"type": "pmessage", "channel": "partition:t1", "data": "not json"}) == 0


async def test_start_and_stop_release_subscription_and_client(relay, redis_client):
    async def listen():
        await asyncio.Event().wait()
        yield {}

    pubsub = MagicMock()
    pubsub.psubscribe = AsyncMock()
    pubsub.punsubscribe = AsyncMock()
    pubsub.aclose = AsyncMock()
    pubsub.listen = listen
    redis_client.pubsub = MagicMock(return_value=pubsub)

    await relay.start()
    await asyncio.sleep(0)
    await relay.stop()

    pubsub.psubscribe.assert_awaited_once_with("partition:*")
    pubsub.punsubscribe.assert_awaited_once_with("partition:*")
    pubsub.aclose.assert_awaited_once()
    redis_client.close.assert_awaited_once()
    assert relay.running is False
