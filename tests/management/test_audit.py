"""Tests for entity action logging."""

from uuid import uuid4

import pytest

from src.edgeboard.api.exceptions import NotFoundError
from src.edgeboard.management.domain.audit import EntityActionLogger
from src.edgeboard.management.domain.entities import (
    NULL_UUID,
    ActionType,
    Dashboard,
    Edge,
    EntityType,
)


@pytest.fixture
def action_logger(audit_log, tenant_admin):
    return EntityActionLogger(audit_log, tenant_admin)


class TestEntityActionLogger:

    @pytest.mark.asyncio
    async def test_success_entry(self, action_logger, recorded, tenant_id):
        dashboard = Dashboard(tenant_id=tenant_id, title="Water", id=uuid4())

        await action_logger.log_entity_action(
            EntityType.DASHBOARD, dashboard.id, dashboard, None, ActionType.ADDED
        )

        (entry,) = recorded()
        assert entry.success
        assert entry.failure_details is None
        assert entry.entity_name == "Water"
        assert entry.user_id == "tenant-admin"
        assert entry.customer_id == NULL_UUID
        assert entry.created_time is not None

    @pytest.mark.asyncio
    async def test_edge_name_is_used(self, action_logger, recorded, tenant_id):
        edge = Edge(tenant_id=tenant_id, name="gw-9", type="default", id=uuid4())

        await action_logger.log_entity_action(EntityType.EDGE, edge.id, edge, None, ActionType.UPDATED)

        assert recorded()[0].entity_name == "gw-9"

    @pytest.mark.asyncio
    async def test_failure_keeps_only_context(self, action_logger, recorded):
        error = NotFoundError("Dashboard", "abc")

        await action_logger.log_failure(EntityType.DASHBOARD, ActionType.DELETED, error, "abc", None)

        (entry,) = recorded()
        assert not entry.success
        assert entry.entity_id == NULL_UUID
        assert entry.entity_name is None
        assert entry.action_data == ["abc"]
        assert "Dashboard 'abc' not found" in entry.failure_details

    @pytest.mark.asyncio
    async def test_customer_user_default(self, audit_log, recorded, customer_user):
        action_logger = EntityActionLogger(audit_log, customer_user)

        await action_logger.log_failure(EntityType.EDGE, ActionType.UPDATED, RuntimeError("x"))

        assert recorded()[0].customer_id == customer_user.customer_id

    @pytest.mark.asyncio
    async def test_sink_failure_is_swallowed(self, action_logger, audit_log):
        audit_log.record.side_effect = ConnectionError("audit store unavailable")

        await action_logger.log_entity_action(
            EntityType.DASHBOARD, uuid4(), None, None, ActionType.UPDATED
        )

        audit_log.record.assert_awaited_once()
