"""Tests for management domain entities."""

from uuid import uuid4

import pytest

from src.edgeboard.management.domain.entities import (
    NULL_UUID,
    ActionType,
    Authority,
    AuditEntry,
    Customer,
    Dashboard,
    Edge,
    EntityType,
    PageData,
    PageLink,
    SecurityUser,
    ShortCustomerInfo,
    SortOrder,
    is_null_id,
)


class TestSecurityUser:

    def test_requires_user_id(self):
        with pytest.raises(ValueError):
            SecurityUser(user_id="", tenant_id=uuid4(), authority=Authority.TENANT_ADMIN)

    def test_customer_defaults_to_null(self):
        user = SecurityUser(user_id="u1", tenant_id=uuid4(), authority=Authority.TENANT_ADMIN, customer_id=None)
        assert user.customer_id == NULL_UUID
        assert not user.is_customer_user

    def test_customer_user(self):
        user = SecurityUser(
            user_id="u1", tenant_id=uuid4(), authority=Authority.CUSTOMER_USER, customer_id=uuid4()
        )
        assert user.is_customer_user


class TestDashboard:

    def test_customer_references_are_unique_by_id(self):
        customer_id = uuid4()
        dashboard = Dashboard(
            tenant_id=uuid4(),
            title="Dup",
            assigned_customers=[
                ShortCustomerInfo(customer_id, "Old title"),
                ShortCustomerInfo(customer_id, "New title"),
            ],
        )
        assert len(dashboard.assigned_customers) == 1
        assert dashboard.is_assigned_to_customer(customer_id)

    def test_assigned_info_lookup(self):
        customer = Customer(id=uuid4(), tenant_id=uuid4(), title="Acme", is_public=True)
        dashboard = Dashboard(
            tenant_id=customer.tenant_id,
            title="Public board",
            assigned_customers=frozenset({customer.to_short_info()}),
        )
        info = dashboard.get_assigned_customer_info(customer.id)
        assert info.title == "Acme"
        assert info.is_public
        assert dashboard.get_assigned_customer_info(uuid4()) is None

    def test_info_drops_configuration(self):
        dashboard = Dashboard(tenant_id=uuid4(), title="Big", configuration={"widgets": {}})
        assert dashboard.info().configuration is None
        assert dashboard.configuration == {"widgets": {}}


class TestEdge:

    def test_null_customer(self):
        edge = Edge(tenant_id=uuid4(), name="gw", type="default", customer_id=None)
        assert edge.customer_id == NULL_UUID
        assert not edge.is_assigned_to_customer()

    def test_is_null_id(self):
        assert is_null_id(None)
        assert is_null_id(NULL_UUID)
        assert not is_null_id(uuid4())


class TestPaging:

    def test_page_link_validation(self):
        with pytest.raises(ValueError):
            PageLink(page_size=0)
        with pytest.raises(ValueError):
            PageLink(page_size=10, page=-1)

    def test_page_link_normalizes(self):
        link = PageLink(page_size=20, page=2, text_search="  ", sort_order="desc")
        assert link.text_search is None
        assert link.sort_order == SortOrder.DESC
        assert link.offset == 40

    def test_page_data(self):
        page = PageData.of(["a", "b"], total_elements=5, page_link=PageLink(page_size=2))
        assert page.total_pages == 3
        assert page.has_next

        last = PageData.of(["e"], total_elements=5, page_link=PageLink(page_size=2, page=2))
        assert not last.has_next

    def test_empty_page(self):
        page = PageData.of([], total_elements=0, page_link=PageLink(page_size=10))
        assert page.total_pages == 0
        assert not page.has_next


class TestAuditEntry:

    def test_to_dict(self):
        tenant_id = uuid4()
        entry = AuditEntry(
            tenant_id=tenant_id,
            entity_type=EntityType.EDGE,
            entity_id=NULL_UUID,
            action_type=ActionType.DELETED,
            user_id="u1",
            action_data=["edge-id"],
            success=False,
            failure_details="boom",
        )
        data = entry.to_dict()
        assert data["tenant_id"] == str(tenant_id)
        assert data["entity_type"] == "EDGE"
        assert data["action_type"] == "DELETED"
        assert data["action_data"] == ["edge-id"]
        assert data["created_time"] is None
