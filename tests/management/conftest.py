"""Shared fixtures for the management tests."""

from dataclasses import replace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.edgeboard.api.exceptions import ConflictError
from src.edgeboard.management.domain.entities import (
    NULL_UUID,
    Authority,
    Customer,
    SecurityUser,
    ShortCustomerInfo,
    ShortEdgeInfo,
)


@pytest.fixture
def tenant_id():
    return uuid4()


@pytest.fixture
def tenant_admin(tenant_id):
    return SecurityUser(user_id="tenant-admin", tenant_id=tenant_id, authority=Authority.TENANT_ADMIN)


@pytest.fixture
def customer(tenant_id):
    return Customer(id=uuid4(), tenant_id=tenant_id, title="Acme Corp")


@pytest.fixture
def customer_user(tenant_id, customer):
    return SecurityUser(
        user_id="customer-user",
        tenant_id=tenant_id,
        authority=Authority.CUSTOMER_USER,
        customer_id=customer.id,
    )


@pytest.fixture
def sys_admin():
    return SecurityUser(user_id="sys-admin", tenant_id=NULL_UUID, authority=Authority.SYS_ADMIN)


@pytest.fixture
def audit_log():
    return AsyncMock()


@pytest.fixture
def recorded(audit_log):
    """Audit entries written so far, in order."""
    def entries():
        return [call.args[0] for call in audit_log.record.await_args_list]
    return entries


@pytest.fixture
def membership_store():
    """Factory for a dashboard repository that keeps one dashboard in memory.

    Membership calls raise ConflictError when the peer is already (or not)
    assigned, like the database store. With `fail_on=n` the n-th
    membership call fails before changing anything.
    """
    def factory(dashboard, customer_titles=None, edge_titles=None, fail_on=None):
        customer_titles = customer_titles or {}
        edge_titles = edge_titles or {}
        state = {"dashboard": dashboard, "calls": []}
        repo = AsyncMock()

        def record(name, peer_id):
            state["calls"].append((name, peer_id))
            if fail_on is not None and len(state["calls"]) == fail_on:
                raise ConflictError(f"Store failure on call {fail_on}")

        async def find_by_id(dashboard_id):
            current = state["dashboard"]
            return current if current.id == dashboard_id else None

        async def assign_to_customer(tenant_id, dashboard_id, customer_id):
            record("assign_to_customer", customer_id)
            current = state["dashboard"]
            if current.is_assigned_to_customer(customer_id):
                raise ConflictError("Dashboard is already assigned to customer")
            info = ShortCustomerInfo(customer_id, customer_titles.get(customer_id))
            state["dashboard"] = replace(
                current, assigned_customers=current.assigned_customers | {info}
            )
            return state["dashboard"]

        async def unassign_from_customer(tenant_id, dashboard_id, customer_id):
            record("unassign_from_customer", customer_id)
            current = state["dashboard"]
            if not current.is_assigned_to_customer(customer_id):
                raise ConflictError("Dashboard isn't assigned to customer")
            state["dashboard"] = replace(
                current, assigned_customers=current.assigned_customers - {ShortCustomerInfo(customer_id)}
            )
            return state["dashboard"]

        async def assign_to_edge(tenant_id, dashboard_id, edge_id):
            record("assign_to_edge", edge_id)
            current = state["dashboard"]
            if current.is_assigned_to_edge(edge_id):
                raise ConflictError("Dashboard is already assigned to edge")
            info = ShortEdgeInfo(edge_id, edge_titles.get(edge_id))
            state["dashboard"] = replace(current, assigned_edges=current.assigned_edges | {info})
            return state["dashboard"]

        async def unassign_from_edge(tenant_id, dashboard_id, edge_id):
            record("unassign_from_edge", edge_id)
            current = state["dashboard"]
            if not current.is_assigned_to_edge(edge_id):
                raise ConflictError("Dashboard isn't assigned to edge")
            state["dashboard"] = replace(
                current, assigned_edges=current.assigned_edges - {ShortEdgeInfo(edge_id)}
            )
            return state["dashboard"]

        repo.find_by_id.side_effect = find_by_id
        repo.find_info_by_id.side_effect = find_by_id
        repo.assign_to_customer.side_effect = assign_to_customer
        repo.unassign_from_customer.side_effect = unassign_from_customer
        repo.assign_to_edge.side_effect = assign_to_edge
        repo.unassign_from_edge.side_effect = unassign_from_edge
        repo.state = state
        return repo

    return factory
