"""Audit trail read side: partition scoping, limits, failures."""

import pytest

from fakes import FakeQueryExecutor

from auditcast.application.audit_trail_service import AuditTrailService
from auditcast.application.change_service import record_and_broadcast
from auditcast.application.exceptions import AuditTrailUnavailableError
from auditcast.audit.room_resolver import RoomResolver
from auditcast.domain.exceptions import InvalidActorError
from auditcast.infrastructure.database.audit_repository_sql import SqlAuditRepository


def _service(executor, max_limit: int = 150) -> AuditTrailService:
    return AuditTrailService(
        resolver=RoomResolver(executor),
        repository=SqlAuditRepository(executor),
        max_limit=max_limit,
    )


async def _change(executor, actor_id: str, entity_id: str) -> None:
    await record_and_broadcast(
        executor, None, actor_id=actor_id, action="UPDATE", entity_type="order", entity_id=entity_id
    )


async def test_lists_tenant_records_newest_first(fake_executor):
    await _change(fake_executor, "u1", "o1")
    await _change(fake_executor, "u2", "o2")
    await _change(fake_executor, "u3", "o3")

    partition, records = await _service(fake_executor).list_for_actor("u1")

    assert partition == "t1"
    assert [r.record.entity_id for r in records] == ["o2", "o1"]
    assert {r.record.partition_key for r in records} == {"t1"}


async def test_limit_is_capped(fake_executor):
    for i in range(5):
        await _change(fake_executor, "u1", f"o{i}")

    _, records = await _service(fake_executor, max_limit=3).list_for_actor("u1", limit=10)
    assert len(records) == 3

    _, records = await _service(fake_executor).list_for_actor("u1", limit=2)
    assert len(records) == 2


async def test_anonymous_actor_cannot_read(fake_executor):
    with pytest.raises(InvalidActorError):
        await _service(fake_executor).list_for_actor("EXTERNAL_CLIENT")
    with pytest.raises(InvalidActorError):
        await _service(fake_executor).list_for_actor("  ")


async def test_read_failure_raises_unavailable():
    executor = FakeQueryExecutor(tenants={"u1": "t1"}, fail_list=True)
    with pytest.raises(AuditTrailUnavailableError):
        await _service(executor).list_for_actor("u1")
