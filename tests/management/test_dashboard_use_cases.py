"""Tests for dashboard management and assignment use cases."""

from dataclasses import replace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.edgeboard.api.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from src.edgeboard.management.domain.entities import (
    NULL_UUID,
    ActionType,
    Customer,
    Dashboard,
    Edge,
    EntityType,
    PageData,
    PageLink,
    ShortCustomerInfo,
    Tenant,
)
from src.edgeboard.management.use_cases import (
    DashboardAssignmentsUseCase,
    ManageDashboardsUseCase,
)


@pytest.fixture
def customers(tenant_id):
    return [Customer(id=uuid4(), tenant_id=tenant_id, title=f"Customer {i}") for i in range(3)]


@pytest.fixture
def dashboard(tenant_id):
    return Dashboard(tenant_id=tenant_id, title="Overview", id=uuid4())


@pytest.fixture
def customer_repo(customers, tenant_id):
    by_id = {c.id: c for c in customers}
    public = Customer(id=uuid4(), tenant_id=tenant_id, title="Public", is_public=True)
    by_id[public.id] = public

    repo = AsyncMock()
    repo.find_by_id.side_effect = lambda customer_id: by_id.get(customer_id)
    repo.find_or_create_public_customer.return_value = public
    repo.public = public
    return repo


@pytest.fixture
def edge(tenant_id):
    return Edge(tenant_id=tenant_id, name="gw-1", type="default", id=uuid4())


@pytest.fixture
def edge_repo(edge):
    repo = AsyncMock()
    repo.find_by_id.side_effect = lambda edge_id: edge if edge_id == edge.id else None
    return repo


@pytest.fixture
def titles(customers):
    return {c.id: c.title for c in customers}


@pytest.fixture
def make_assignments(customer_repo, edge_repo, audit_log, tenant_admin):
    def factory(dashboard_repo, user=None):
        return DashboardAssignmentsUseCase(
            user or tenant_admin, dashboard_repo, customer_repo, edge_repo, audit_log
        )
    return factory


def failures(entries):
    return [entry for entry in entries if not entry.success]


class TestBulkCustomerAssignment:
    """Test update/add/remove of a dashboard's customers."""

    @pytest.mark.asyncio
    async def test_update_customers(
        self, dashboard, customers, titles, membership_store, make_assignments, recorded
    ):
        repo = membership_store(dashboard, customer_titles=titles)
        use_case = make_assignments(repo)

        result = await use_case.update_dashboard_customers(
            str(dashboard.id), [str(c.id) for c in customers[:2]]
        )

        assert {c.customer_id for c in result.assigned_customers} == {customers[0].id, customers[1].id}
        assert len(recorded()) == 2
        assert all(entry.success for entry in recorded())

    @pytest.mark.asyncio
    async def test_unchanged_set_returns_current_dashboard(
        self, dashboard, membership_store, make_assignments, audit_log
    ):
        repo = membership_store(dashboard)
        use_case = make_assignments(repo)

        result = await use_case.update_dashboard_customers(str(dashboard.id), [])

        assert result == dashboard
        assert repo.state["calls"] == []
        audit_log.record.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_partial_failure_writes_one_failure_entry(
        self, dashboard, customers, titles, membership_store, make_assignments, recorded
    ):
        repo = membership_store(dashboard, customer_titles=titles, fail_on=2)
        use_case = make_assignments(repo)

        with pytest.raises(ConflictError):
            await use_case.update_dashboard_customers(str(dashboard.id), [str(c.id) for c in customers])

        entries = recorded()
        assert len(entries) == 2
        assert entries[0].success
        (failure,) = failures(entries)
        assert failure.entity_type == EntityType.DASHBOARD
        assert failure.entity_id == NULL_UUID
        assert failure.action_type == ActionType.ASSIGNED_TO_CUSTOMER
        assert failure.action_data == [str(dashboard.id)]
        # The first assignment is kept
        assert len(repo.state["dashboard"].assigned_customers) == 1

    @pytest.mark.asyncio
    async def test_add_customers(
        self, tenant_id, customers, titles, membership_store, make_assignments
    ):
        first, second = customers[0], customers[1]
        dashboard = Dashboard(
            tenant_id=tenant_id,
            title="Shared",
            id=uuid4(),
            assigned_customers=frozenset({ShortCustomerInfo(first.id, first.title)}),
        )
        repo = membership_store(dashboard, customer_titles=titles)
        use_case = make_assignments(repo)

        result = await use_case.add_dashboard_customers(str(dashboard.id), [str(first.id), str(second.id)])

        assert repo.state["calls"] == [("assign_to_customer", second.id)]
        assert {c.customer_id for c in result.assigned_customers} == {first.id, second.id}

    @pytest.mark.asyncio
    async def test_remove_customers(
        self, tenant_id, customers, titles, membership_store, make_assignments, recorded
    ):
        first, second = customers[0], customers[1]
        dashboard = Dashboard(
            tenant_id=tenant_id,
            title="Shared",
            id=uuid4(),
            assigned_customers=frozenset(
                {ShortCustomerInfo(first.id, first.title), ShortCustomerInfo(second.id, second.title)}
            ),
        )
        repo = membership_store(dashboard, customer_titles=titles)
        use_case = make_assignments(repo)

        result = await use_case.remove_dashboard_customers(str(dashboard.id), [str(first.id)])

        assert {c.customer_id for c in result.assigned_customers} == {second.id}
        (entry,) = recorded()
        assert entry.action_type == ActionType.UNASSIGNED_FROM_CUSTOMER
        assert entry.action_data == [str(dashboard.id), str(first.id), first.title]

    @pytest.mark.asyncio
    async def test_invalid_dashboard_id_is_audited(self, dashboard, membership_store, make_assignments, recorded):
        repo = membership_store(dashboard)
        use_case = make_assignments(repo)

        with pytest.raises(ValidationError, match="Invalid UUID string"):
            await use_case.update_dashboard_customers("not-a-uuid", [])

        (failure,) = recorded()
        assert not failure.success
        assert failure.action_data == ["not-a-uuid"]
        repo.find_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_customer_id_is_audited(self, dashboard, membership_store, make_assignments, recorded):
        repo = membership_store(dashboard)
        use_case = make_assignments(repo)

        with pytest.raises(ValidationError):
            await use_case.update_dashboard_customers(str(dashboard.id), ["bogus"])

        assert len(recorded()) == 1
        assert repo.state["calls"] == []

    @pytest.mark.asyncio
    async def test_empty_dashboard_id_is_audited(self, dashboard, membership_store, make_assignments, recorded):
        repo = membership_store(dashboard)
        use_case = make_assignments(repo)

        with pytest.raises(ValidationError, match="can't be empty"):
            await use_case.update_dashboard_customers("", [])

        (failure,) = recorded()
        assert not failure.success
        assert failure.action_type == ActionType.ASSIGNED_TO_CUSTOMER
        assert failure.action_data == [""]
        repo.find_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_dashboard(self, dashboard, membership_store, make_assignments, recorded):
        use_case = make_assignments(membership_store(dashboard))

        with pytest.raises(NotFoundError):
            await use_case.add_dashboard_customers(str(uuid4()), [])

        assert len(failures(recorded())) == 1

    @pytest.mark.asyncio
    async def test_customer_user_denied(
        self, tenant_id, customer, customers, membership_store, make_assignments, customer_user, recorded
    ):
        dashboard = Dashboard(
            tenant_id=tenant_id,
            title="Shared",
            id=uuid4(),
            assigned_customers=frozenset({ShortCustomerInfo(customer.id, customer.title)}),
        )
        repo = membership_store(dashboard)
        use_case = make_assignments(repo, user=customer_user)

        with pytest.raises(PermissionDeniedError):
            await use_case.update_dashboard_customers(str(dashboard.id), [str(customers[0].id)])

        assert repo.state["calls"] == []
        (failure,) = recorded()
        assert failure.customer_id == customer.id


class TestSingleCustomerAssignment:

    @pytest.mark.asyncio
    async def test_assign_to_customer(
        self, dashboard, customers, membership_store, make_assignments, recorded
    ):
        target = customers[0]
        repo = membership_store(dashboard)
        use_case = make_assignments(repo)

        result = await use_case.assign_dashboard_to_customer(str(target.id), str(dashboard.id))

        assert result.is_assigned_to_customer(target.id)
        (entry,) = recorded()
        assert entry.customer_id == target.id
        assert entry.action_data == [str(dashboard.id), str(target.id), target.title]

    @pytest.mark.asyncio
    async def test_assign_twice_conflicts(
        self, dashboard, customers, titles, membership_store, make_assignments, recorded
    ):
        target = customers[0]
        repo = membership_store(dashboard, customer_titles=titles)
        use_case = make_assignments(repo)
        await use_case.assign_dashboard_to_customer(str(target.id), str(dashboard.id))

        with pytest.raises(ConflictError):
            await use_case.assign_dashboard_to_customer(str(target.id), str(dashboard.id))

        (failure,) = failures(recorded())
        assert failure.action_data == [str(dashboard.id), str(target.id)]

    @pytest.mark.asyncio
    async def test_unknown_customer(self, dashboard, membership_store, make_assignments, recorded):
        repo = membership_store(dashboard)
        use_case = make_assignments(repo)

        with pytest.raises(NotFoundError):
            await use_case.assign_dashboard_to_customer(str(uuid4()), str(dashboard.id))

        assert repo.state["calls"] == []
        assert len(recorded()) == 1

    @pytest.mark.asyncio
    async def test_unassign_from_customer(
        self, tenant_id, customers, membership_store, make_assignments
    ):
        target = customers[1]
        dashboard = Dashboard(
            tenant_id=tenant_id,
            title="Shared",
            id=uuid4(),
            assigned_customers=frozenset({ShortCustomerInfo(target.id, target.title)}),
        )
        repo = membership_store(dashboard)
        use_case = make_assignments(repo)

        result = await use_case.unassign_dashboard_from_customer(str(target.id), str(dashboard.id))

        assert not result.assigned_customers

    @pytest.mark.asyncio
    async def test_unassign_failure_keeps_only_dashboard_id(
        self, dashboard, customers, membership_store, make_assignments, recorded
    ):
        use_case = make_assignments(membership_store(dashboard))

        with pytest.raises(ConflictError):
            await use_case.unassign_dashboard_from_customer(str(customers[0].id), str(dashboard.id))

        (failure,) = recorded()
        assert failure.action_type == ActionType.UNASSIGNED_FROM_CUSTOMER
        assert failure.action_data == [str(dashboard.id)]

    @pytest.mark.asyncio
    async def test_empty_customer_id_is_audited(self, dashboard, membership_store, make_assignments, recorded):
        use_case = make_assignments(membership_store(dashboard))

        with pytest.raises(ValidationError, match="can't be empty"):
            await use_case.assign_dashboard_to_customer("", str(dashboard.id))

        (failure,) = recorded()
        assert failure.action_data == [str(dashboard.id), ""]

    @pytest.mark.asyncio
    async def test_public_customer(
        self, dashboard, tenant_id, membership_store, make_assignments, customer_repo
    ):
        repo = membership_store(dashboard)
        use_case = make_assignments(repo)

        result = await use_case.assign_dashboard_to_public_customer(str(dashboard.id))

        customer_repo.find_or_create_public_customer.assert_awaited_once_with(tenant_id)
        assert result.is_assigned_to_customer(customer_repo.public.id)

        result = await use_case.unassign_dashboard_from_public_customer(str(dashboard.id))
        assert not result.is_assigned_to_customer(customer_repo.public.id)


class TestEdgeAssignment:

    @pytest.mark.asyncio
    async def test_assign_to_edge(self, dashboard, edge, membership_store, make_assignments, recorded):
        repo = membership_store(dashboard)
        use_case = make_assignments(repo)

        result = await use_case.assign_dashboard_to_edge(str(edge.id), str(dashboard.id))

        assert result.is_assigned_to_edge(edge.id)
        assert recorded()[0].action_data == [str(dashboard.id), str(edge.id), edge.name]

    @pytest.mark.asyncio
    async def test_unassign_unassigned_edge_conflicts(
        self, dashboard, edge, membership_store, make_assignments, recorded
    ):
        use_case = make_assignments(membership_store(dashboard))

        with pytest.raises(ConflictError):
            await use_case.unassign_dashboard_from_edge(str(edge.id), str(dashboard.id))

        (failure,) = recorded()
        assert failure.action_type == ActionType.UNASSIGNED_FROM_EDGE
        assert failure.action_data == [str(dashboard.id)]

    @pytest.mark.asyncio
    async def test_update_edges(self, dashboard, membership_store, make_assignments):
        edge_ids = [uuid4(), uuid4()]
        repo = membership_store(dashboard)
        use_case = make_assignments(repo)

        result = await use_case.update_dashboard_edges(str(dashboard.id), [str(e) for e in edge_ids])
        assert {e.edge_id for e in result.assigned_edges} == set(edge_ids)

        result = await use_case.remove_dashboard_edges(str(dashboard.id), [str(edge_ids[0])])
        assert {e.edge_id for e in result.assigned_edges} == {edge_ids[1]}

        result = await use_case.add_dashboard_edges(str(dashboard.id), [str(edge_ids[0])])
        assert {e.edge_id for e in result.assigned_edges} == set(edge_ids)


@pytest.fixture
def dashboard_repo(dashboard):
    repo = AsyncMock()
    repo.find_by_id.side_effect = lambda dashboard_id: dashboard if dashboard_id == dashboard.id else None
    repo.find_info_by_id.side_effect = lambda dashboard_id: (
        dashboard.info() if dashboard_id == dashboard.id else None
    )

    async def save(d):
        return d if d.id else replace(d, id=uuid4())

    repo.save.side_effect = save
    return repo


@pytest.fixture
def tenant_repo(tenant_id):
    repo = AsyncMock()
    repo.find_by_id.side_effect = lambda t: Tenant(id=t, title="Tenant") if t == tenant_id else None
    return repo


@pytest.fixture
def make_manage(dashboard_repo, customer_repo, edge_repo, tenant_repo, audit_log, tenant_admin):
    def factory(user=None):
        return ManageDashboardsUseCase(
            user or tenant_admin, dashboard_repo, customer_repo, edge_repo, tenant_repo, audit_log
        )
    return factory


class TestManageDashboards:

    @pytest.mark.asyncio
    async def test_create_stamps_tenant(self, make_manage, dashboard_repo, tenant_id, recorded):
        use_case = make_manage()

        saved = await use_case.save_dashboard(Dashboard(tenant_id=uuid4(), title="New"))

        assert saved.id is not None
        assert saved.tenant_id == tenant_id
        (entry,) = recorded()
        assert entry.action_type == ActionType.ADDED
        assert entry.entity_id == saved.id

    @pytest.mark.asyncio
    async def test_update_keeps_assignments(self, make_manage, tenant_id, dashboard_repo, recorded):
        customer_id = uuid4()
        stored = Dashboard(
            tenant_id=tenant_id,
            title="Old",
            id=uuid4(),
            assigned_customers=frozenset({ShortCustomerInfo(customer_id, "Acme")}),
        )
        dashboard_repo.find_by_id.side_effect = lambda d: stored if d == stored.id else None

        saved = await make_manage().save_dashboard(Dashboard(tenant_id=None, title="Renamed", id=stored.id))

        assert saved.title == "Renamed"
        assert saved.is_assigned_to_customer(customer_id)
        assert recorded()[0].action_type == ActionType.UPDATED

    @pytest.mark.asyncio
    async def test_customer_user_cannot_create(self, make_manage, customer_user, dashboard_repo, recorded):
        with pytest.raises(PermissionDeniedError):
            await make_manage(customer_user).save_dashboard(Dashboard(tenant_id=None, title="Nope"))

        dashboard_repo.save.assert_not_awaited()
        (failure,) = recorded()
        assert not failure.success
        assert failure.entity_id == NULL_UUID
        assert failure.entity_name == "Nope"

    @pytest.mark.asyncio
    async def test_get_dashboard_info(self, make_manage, dashboard):
        info = await make_manage().get_dashboard_info(str(dashboard.id))
        assert info.id == dashboard.id
        assert info.configuration is None

    @pytest.mark.asyncio
    async def test_get_missing_dashboard(self, make_manage):
        with pytest.raises(NotFoundError):
            await make_manage().get_dashboard(str(uuid4()))

    @pytest.mark.asyncio
    async def test_delete(self, make_manage, dashboard, dashboard_repo, tenant_id, recorded):
        await make_manage().delete_dashboard(str(dashboard.id))

        dashboard_repo.delete.assert_awaited_once_with(tenant_id, dashboard.id)
        (entry,) = recorded()
        assert entry.action_type == ActionType.DELETED
        assert entry.success

    @pytest.mark.asyncio
    async def test_delete_missing_is_audited(self, make_manage, dashboard_repo, recorded):
        missing = str(uuid4())
        with pytest.raises(NotFoundError):
            await make_manage().delete_dashboard(missing)

        dashboard_repo.delete.assert_not_awaited()
        assert recorded()[0].action_data == [missing]

    @pytest.mark.asyncio
    async def test_sys_admin_lists_tenant_dashboards(
        self, make_manage, sys_admin, dashboard_repo, tenant_id
    ):
        page_link = PageLink(page_size=10)
        dashboard_repo.find_by_tenant.return_value = PageData.of([], 0, page_link)

        await make_manage(sys_admin).get_tenant_dashboards(str(tenant_id), page_link)

        dashboard_repo.find_by_tenant.assert_awaited_once_with(tenant_id, page_link)

    @pytest.mark.asyncio
    async def test_customer_dashboards(self, make_manage, customers, dashboard_repo, tenant_id):
        page_link = PageLink(page_size=10)

        await make_manage().get_customer_dashboards(str(customers[0].id), page_link)

        dashboard_repo.find_by_tenant_and_customer.assert_awaited_once_with(
            tenant_id, customers[0].id, page_link
        )

    @pytest.mark.asyncio
    async def test_edge_dashboards(self, make_manage, edge, dashboard_repo, tenant_id):
        page_link = PageLink(page_size=5)

        await make_manage().get_edge_dashboards(str(edge.id), page_link)

        dashboard_repo.find_by_tenant_and_edge.assert_awaited_once_with(tenant_id, edge.id, page_link)
