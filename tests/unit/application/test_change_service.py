"""record_and_broadcast: end-to-end flow and independence of persistence and broadcast."""

import json
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from fakes import FakeQueryExecutor, FakeSink

from auditcast.application.change_service import (
    ChangeFeedService,
    ChangeResult,
    build_change_feed_service,
    fire_and_forget,
    record_and_broadcast,
)
from auditcast.audit.exceptions import AuditPersistenceError, ChangeFeedError
from auditcast.core.context import partition_ctx
from auditcast.realtime.registry import ConnectionRegistry


@pytest.fixture
def registry():
    return ConnectionRegistry()


async def _member(registry: ConnectionRegistry, partition: str, user_id: str = "viewer") -> FakeSink:
    sink = FakeSink()
    connection = registry.open(sink, user_id=user_id)
    registry.mark_connected(connection.connection_id)
    await registry.join(connection.connection_id, partition)
    sink.messages.clear()
    return sink


# ---------- 1. Happy path ----------


async def test_update_by_member_is_audited_and_broadcast_to_tenant(fake_executor, registry):
    """u1 belongs to t1: one row in t1 and one data-changed on t1."""
    t1_sink = await _member(registry, "t1")
    t2_sink = await _member(registry, "t2")

    result = await record_and_broadcast(
        fake_executor,
        registry,
        actor_id="u1",
        action="UPDATE",
        entity_type="order",
        entity_id="o42",
        details="Order approved",
        previous_state={"status": "PENDING"},
        changes={"status": "APPROVED"},
    )

    assert isinstance(result, ChangeResult)
    assert result.ok
    assert len(fake_executor.audit_rows) == 1
    row = fake_executor.audit_rows[0]
    assert row["partition_key"] == "t1"
    assert row["actor_id"] == "u1"
    assert json.loads(row["changes"]) == {"status": "APPROVED"}
    assert json.loads(row["previous_state"]) == {"status": "PENDING"}

    events = t1_sink.of_type("data-changed")
    assert len(events) == 1
    payload = events[0]["data"]
    assert events[0]["partition"] == "t1"
    assert {k: payload[k] for k in ("action", "entityType", "entityId", "actorId", "changes")} == {
        "action": "UPDATE",
        "entityType": "order",
        "entityId": "o42",
        "actorId": "u1",
        "changes": {"status": "APPROVED"},
    }
    assert "timestamp" in payload
    assert "details" not in payload and "previousState" not in payload
    assert t2_sink.messages == []


async def test_external_client_with_override_lands_in_override_partition(fake_executor, registry):
    """Public order response: anonymous actor, explicit tenant."""
    viewer = await _member(registry, "t1", user_id=None)

    result = await record_and_broadcast(
        fake_executor,
        registry,
        actor_id="EXTERNAL_CLIENT",
        action="UPDATE",
        entity_type="order",
        entity_id="o42",
        changes={"status": "APPROVED"},
        partition_override="t1",
    )

    assert result.record.partition_key == "t1"
    assert fake_executor.lookup_count == 0
    assert fake_executor.audit_rows[0]["partition_key"] == "t1"
    assert len(viewer.of_type("data-changed")) == 1


async def test_external_client_without_override_uses_sentinel_partition(fake_executor, registry):
    result = await record_and_broadcast(
        fake_executor,
        registry,
        actor_id="EXTERNAL_CLIENT",
        action="STATUS_CHANGE",
        entity_type="order",
        entity_id="o1",
    )
    assert fake_executor.lookup_count == 0
    assert result.record.partition_key == "EXTERNAL_CLIENT"


async def test_lookup_failure_still_records_under_actor_partition(registry):
    executor = FakeQueryExecutor(fail_lookup=True)
    own_room = await _member(registry, "u1")

    result = await record_and_broadcast(
        executor, registry, actor_id="u1", action="DELETE", entity_type="member", entity_id="m1"
    )

    assert result.ok
    assert executor.audit_rows[0]["partition_key"] == "u1"
    assert len(own_room.of_type("data-changed")) == 1


# ---------- 2. Independent failure domains ----------


async def test_absent_connection_layer_still_persists(fake_executor):
    result = await record_and_broadcast(
        fake_executor, None, actor_id="u1", action="CREATE", entity_type="transaction", entity_id="tx1"
    )
    assert len(fake_executor.audit_rows) == 1
    assert result.persisted.ok
    assert result.broadcast.skipped


async def test_insert_failure_still_broadcasts(registry):
    executor = FakeQueryExecutor(tenants={"u1": "t1"}, fail_insert=True)
    sink = await _member(registry, "t1")

    result = await record_and_broadcast(
        executor, registry, actor_id="u1", action="UPDATE", entity_type="order", entity_id="o42"
    )

    assert isinstance(result.persisted.error, AuditPersistenceError)
    assert result.broadcast.ok
    assert result.broadcast.delivered == 1
    assert len(sink.of_type("data-changed")) == 1


async def test_empty_partition_broadcast_is_noop(fake_executor, registry):
    result = await record_and_broadcast(
        fake_executor, registry, actor_id="u3", action="UPDATE", entity_type="order", entity_id="o1"
    )
    assert result.ok
    assert result.broadcast.delivered == 0


async def test_no_executor_and_no_layer_never_raises():
    result = await record_and_broadcast(
        None, None, actor_id="u1", action="UPDATE", entity_type="order", entity_id="o1"
    )
    assert result.record.partition_key == "u1"
    assert result.persisted.skipped
    assert result.broadcast.skipped


async def test_unexpected_resolver_error_is_contained():
    resolver = MagicMock()
    resolver.resolve = AsyncMock(side_effect=RuntimeError("boom"))
    recorder = MagicMock()
    recorder.record = AsyncMock()
    broadcaster = MagicMock()
    broadcaster.broadcast = AsyncMock()
    logger = MagicMock()
    service = ChangeFeedService(resolver, recorder, broadcaster, logger=logger)

    result = await service.record_and_broadcast(
        actor_id="u1", action="UPDATE", entity_type="order", entity_id="o1"
    )

    assert result.record is None
    assert not result.ok
    assert isinstance(result.persisted.error, ChangeFeedError)
    recorder.record.assert_not_awaited()
    broadcaster.broadcast.assert_not_awaited()
    logger.error.assert_called_once()


async def test_decimal_changes_reach_members_without_eviction(fake_executor, registry):
    sink = await _member(registry, "t1")

    result = await record_and_broadcast(
        fake_executor,
        registry,
        actor_id="u1",
        action="UPDATE",
        entity_type="invoice",
        entity_id="i1",
        changes={"amount": Decimal("10.50")},
    )

    assert result.ok
    assert result.broadcast.delivered == 1
    assert len(registry.members_of("t1")) == 1
    assert sink.of_type("data-changed")[0]["data"]["changes"] == {"amount": "10.50"}
    assert json.loads(fake_executor.audit_rows[0]["changes"]) == {"amount": "10.50"}


async def test_partition_context_is_restored_after_call(fake_executor, registry):
    token = partition_ctx.set("outer")
    try:
        await record_and_broadcast(
            fake_executor, registry, actor_id="u1", action="UPDATE", entity_type="order", entity_id="o1"
        )
        assert partition_ctx.get() == "outer"
    finally:
        partition_ctx.reset(token)


# ---------- 3. Fire-and-forget ----------


async def test_fire_and_forget_runs_to_completion(fake_executor, registry):
    sink = await _member(registry, "t1")
    service = build_change_feed_service(fake_executor, registry)

    task = fire_and_forget(
        service.record_and_broadcast(
            actor_id="u2", action="SAVE", entity_type="order", entity_id="o7"
        )
    )
    result = await task

    assert result.ok
    assert fake_executor.audit_rows[0]["partition_key"] == "t1"
    assert sink.of_type("data-changed")[0]["data"]["actorId"] == "u2"
