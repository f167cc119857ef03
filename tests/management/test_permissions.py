"""Tests for role based access control."""

from uuid import uuid4

import pytest

from src.edgeboard.api.exceptions import PermissionDeniedError
from src.edgeboard.management.domain.entities import (
    NULL_UUID,
    Customer,
    Dashboard,
    Edge,
    Operation,
    Resource,
    ShortCustomerInfo,
    Tenant,
)
from src.edgeboard.management.domain.permissions import AccessControlService


@pytest.fixture
def access_control():
    return AccessControlService()


@pytest.fixture
def dashboard(tenant_id):
    return Dashboard(tenant_id=tenant_id, title="Energy", id=uuid4())


@pytest.fixture
def edge(tenant_id):
    return Edge(tenant_id=tenant_id, name="gw-1", type="default", id=uuid4())


class TestTenantAdmin:
    """Tenant administrators manage everything inside their tenant."""

    @pytest.mark.parametrize("operation", list(Operation))
    def test_all_operations_on_own_dashboard(self, access_control, tenant_admin, dashboard, operation):
        assert access_control.has_permission(
            tenant_admin, Resource.DASHBOARD, operation, dashboard.id, dashboard
        )

    def test_other_tenant_denied(self, access_control, tenant_admin):
        foreign = Dashboard(tenant_id=uuid4(), title="Foreign", id=uuid4())
        assert not access_control.has_permission(
            tenant_admin, Resource.DASHBOARD, Operation.READ, foreign.id, foreign
        )

    def test_create_requires_entity(self, access_control, tenant_admin, tenant_id):
        new_edge = Edge(tenant_id=tenant_id, name="gw-new", type="default")
        assert access_control.has_permission(tenant_admin, Resource.EDGE, Operation.CREATE, None, new_edge)
        assert not access_control.has_permission(tenant_admin, Resource.EDGE, Operation.CREATE)

    def test_reads_own_tenant_only(self, access_control, tenant_admin, tenant_id):
        tenant = Tenant(id=tenant_id, title="Tenant")
        assert access_control.has_permission(tenant_admin, Resource.TENANT, Operation.READ, tenant_id, tenant)
        assert not access_control.has_permission(tenant_admin, Resource.TENANT, Operation.READ, uuid4())


class TestCustomerUser:
    """Customer users read what belongs to their customer."""

    def test_reads_assigned_dashboard(self, access_control, customer_user, tenant_id, customer):
        dashboard = Dashboard(
            tenant_id=tenant_id,
            title="Shared",
            id=uuid4(),
            assigned_customers=frozenset({ShortCustomerInfo(customer.id, customer.title)}),
        )
        assert access_control.has_permission(
            customer_user, Resource.DASHBOARD, Operation.READ, dashboard.id, dashboard
        )

    def test_unassigned_dashboard_denied(self, access_control, customer_user, dashboard):
        assert not access_control.has_permission(
            customer_user, Resource.DASHBOARD, Operation.READ, dashboard.id, dashboard
        )

    def test_writes_denied(self, access_control, customer_user, tenant_id, customer):
        edge = Edge(tenant_id=tenant_id, name="gw-1", type="default", id=uuid4(), customer_id=customer.id)
        assert access_control.has_permission(customer_user, Resource.EDGE, Operation.READ, edge.id, edge)
        assert not access_control.has_permission(customer_user, Resource.EDGE, Operation.WRITE, edge.id, edge)
        assert not access_control.has_permission(
            customer_user, Resource.EDGE, Operation.ASSIGN_TO_CUSTOMER, edge.id, edge
        )

    def test_reads_own_customer_only(self, access_control, customer_user, customer, tenant_id):
        other = Customer(id=uuid4(), tenant_id=tenant_id, title="Other")
        assert access_control.has_permission(customer_user, Resource.CUSTOMER, Operation.READ, customer.id, customer)
        assert not access_control.has_permission(customer_user, Resource.CUSTOMER, Operation.READ, other.id, other)

    def test_edge_of_other_customer_denied(self, access_control, customer_user, edge):
        assert edge.customer_id == NULL_UUID
        assert not access_control.has_permission(customer_user, Resource.EDGE, Operation.READ, edge.id, edge)


class TestSysAdmin:
    """System administrators only read tenants and dashboards."""

    def test_reads_dashboards_of_any_tenant(self, access_control, sys_admin, dashboard):
        assert access_control.has_permission(sys_admin, Resource.DASHBOARD, Operation.READ, dashboard.id, dashboard)

    def test_cannot_write(self, access_control, sys_admin, dashboard, edge):
        assert not access_control.has_permission(sys_admin, Resource.DASHBOARD, Operation.WRITE, dashboard.id, dashboard)
        assert not access_control.has_permission(sys_admin, Resource.EDGE, Operation.READ, edge.id, edge)


class TestCheckPermission:

    def test_raises_permission_denied(self, access_control, customer_user, dashboard):
        with pytest.raises(PermissionDeniedError) as exc_info:
            access_control.check_permission(
                customer_user, Resource.DASHBOARD, Operation.DELETE, dashboard.id, dashboard
            )
        assert exc_info.value.status_code == 403
        assert exc_info.value.details == {"resource": "DASHBOARD", "operation": "DELETE"}

    def test_allowed_returns_none(self, access_control, tenant_admin, dashboard):
        assert access_control.check_permission(
            tenant_admin, Resource.DASHBOARD, Operation.READ, dashboard.id, dashboard
        ) is None
