"""Dashboard assignment use case.

Assigns dashboards to customers (including the tenant's public customer)
and to edges. Three request shapes are supported for each peer kind:

- single peer: assign or unassign one customer/edge
- full reconcile: make the assigned set equal to the requested ids
- add-only / remove-only: change only the listed ids

Every operation records exactly one failure audit entry when it fails,
whether the failure happened while checking the request or while
applying the changes. Changes committed before a failure are kept.
"""

import logging
from typing import Awaitable, Callable, Iterable, Optional, Sequence
from uuid import UUID

from ..domain.audit import EntityActionLogger
from ..domain.entities import (
    ActionType,
    Dashboard,
    EntityType,
    Operation,
    SecurityUser,
)
from ..domain.permissions import AccessControlService
from ..domain.ports import IAuditLog, ICustomerRepository, IDashboardRepository, IEdgeRepository
from ..domain.reconciler import (
    DashboardCustomerBinding,
    DashboardEdgeBinding,
    ReconciliationPlan,
    SetReconciler,
)
from .common import EntityGuard, check_parameter, to_uuid, to_uuid_set

logger = logging.getLogger(__name__)

Planner = Callable[[Dashboard, Optional[Iterable[UUID]]], ReconciliationPlan]


class DashboardAssignmentsUseCase:
    """Dashboard to customer and dashboard to edge assignments."""

    def __init__(
        self,
        user: SecurityUser,
        dashboard_repo: IDashboardRepository,
        customer_repo: ICustomerRepository,
        edge_repo: IEdgeRepository,
        audit_log: IAuditLog,
        access_control: Optional[AccessControlService] = None,
    ):
        self.user = user
        self.customer_repo = customer_repo
        self.access_control = access_control or AccessControlService()
        self.action_logger = EntityActionLogger(audit_log, user)
        self.guard = EntityGuard(
            user,
            self.access_control,
            dashboard_repo=dashboard_repo,
            edge_repo=edge_repo,
            customer_repo=customer_repo,
        )
        self.customers = SetReconciler(DashboardCustomerBinding(dashboard_repo), self.action_logger)
        self.edges = SetReconciler(DashboardEdgeBinding(dashboard_repo), self.action_logger)

    async def _audited(
        self,
        action: ActionType,
        context: Sequence[str],
        operation: Callable[[], Awaitable[Dashboard]],
    ) -> Dashboard:
        """Run an assignment operation, recording its failure once."""
        try:
            return await operation()
        except Exception as e:
            await self.action_logger.log_failure(EntityType.DASHBOARD, action, e, *context)
            raise

    # ========== Customers ==========

    async def assign_dashboard_to_customer(self, customer_id: str, dashboard_id: str) -> Dashboard:
        async def operation() -> Dashboard:
            check_parameter("customerId", customer_id)
            check_parameter("dashboardId", dashboard_id)
            customer = await self.guard.check_customer_id(
                to_uuid(customer_id, "customerId"), Operation.READ
            )
            dashboard = await self.guard.check_dashboard_id(
                to_uuid(dashboard_id, "dashboardId"), Operation.ASSIGN_TO_CUSTOMER
            )
            outcome = await self.customers.apply(
                dashboard, ReconciliationPlan.single_add(customer.id), {customer.id: customer.title}
            )
            return outcome.unwrap()

        return await self._audited(
            ActionType.ASSIGNED_TO_CUSTOMER, (dashboard_id, customer_id), operation
        )

    async def unassign_dashboard_from_customer(
        self, customer_id: str, dashboard_id: str
    ) -> Dashboard:
        async def operation() -> Dashboard:
            check_parameter("customerId", customer_id)
            check_parameter("dashboardId", dashboard_id)
            customer = await self.guard.check_customer_id(
                to_uuid(customer_id, "customerId"), Operation.READ
            )
            dashboard = await self.guard.check_dashboard_id(
                to_uuid(dashboard_id, "dashboardId"), Operation.UNASSIGN_FROM_CUSTOMER
            )
            outcome = await self.customers.apply(
                dashboard,
                ReconciliationPlan.single_remove(customer.id),
                {customer.id: customer.title},
            )
            return outcome.unwrap()

        return await self._audited(ActionType.UNASSIGNED_FROM_CUSTOMER, (dashboard_id,), operation)

    async def assign_dashboard_to_public_customer(self, dashboard_id: str) -> Dashboard:
        async def operation() -> Dashboard:
            check_parameter("dashboardId", dashboard_id)
            dashboard = await self.guard.check_dashboard_id(
                to_uuid(dashboard_id, "dashboardId"), Operation.ASSIGN_TO_CUSTOMER
            )
            public = await self.customer_repo.find_or_create_public_customer(dashboard.tenant_id)
            outcome = await self.customers.apply(
                dashboard, ReconciliationPlan.single_add(public.id), {public.id: public.title}
            )
            return outcome.unwrap()

        return await self._audited(ActionType.ASSIGNED_TO_CUSTOMER, (dashboard_id,), operation)

    async def unassign_dashboard_from_public_customer(self, dashboard_id: str) -> Dashboard:
        async def operation() -> Dashboard:
            check_parameter("dashboardId", dashboard_id)
            dashboard = await self.guard.check_dashboard_id(
                to_uuid(dashboard_id, "dashboardId"), Operation.UNASSIGN_FROM_CUSTOMER
            )
            public = await self.customer_repo.find_or_create_public_customer(dashboard.tenant_id)
            outcome = await self.customers.apply(
                dashboard, ReconciliationPlan.single_remove(public.id), {public.id: public.title}
            )
            return outcome.unwrap()

        return await self._audited(ActionType.UNASSIGNED_FROM_CUSTOMER, (dashboard_id,), operation)

    async def update_dashboard_customers(
        self, dashboard_id: str, customer_ids: Optional[list[str]]
    ) -> Dashboard:
        """Make the dashboard's customers exactly the given ids."""
        return await self._reconcile(
            dashboard_id,
            customer_ids,
            "customerIds",
            self.customers,
            self.customers.reconcile,
            Operation.ASSIGN_TO_CUSTOMER,
            ActionType.ASSIGNED_TO_CUSTOMER,
        )

    async def add_dashboard_customers(
        self, dashboard_id: str, customer_ids: Optional[list[str]]
    ) -> Dashboard:
        return await self._reconcile(
            dashboard_id,
            customer_ids,
            "customerIds",
            self.customers,
            self.customers.reconcile_additions,
            Operation.ASSIGN_TO_CUSTOMER,
            ActionType.ASSIGNED_TO_CUSTOMER,
        )

    async def remove_dashboard_customers(
        self, dashboard_id: str, customer_ids: Optional[list[str]]
    ) -> Dashboard:
        return await self._reconcile(
            dashboard_id,
            customer_ids,
            "customerIds",
            self.customers,
            self.customers.reconcile_removals,
            Operation.UNASSIGN_FROM_CUSTOMER,
            ActionType.UNASSIGNED_FROM_CUSTOMER,
        )

    # ========== Edges ==========

    async def assign_dashboard_to_edge(self, edge_id: str, dashboard_id: str) -> Dashboard:
        async def operation() -> Dashboard:
            check_parameter("edgeId", edge_id)
            check_parameter("dashboardId", dashboard_id)
            edge = await self.guard.check_edge_id(to_uuid(edge_id, "edgeId"), Operation.READ)
            dashboard = await self.guard.check_dashboard_id(
                to_uuid(dashboard_id, "dashboardId"), Operation.ASSIGN_TO_EDGE
            )
            outcome = await self.edges.apply(
                dashboard, ReconciliationPlan.single_add(edge.id), {edge.id: edge.name}
            )
            return outcome.unwrap()

        return await self._audited(ActionType.ASSIGNED_TO_EDGE, (dashboard_id, edge_id), operation)

    async def unassign_dashboard_from_edge(self, edge_id: str, dashboard_id: str) -> Dashboard:
        async def operation() -> Dashboard:
            check_parameter("edgeId", edge_id)
            check_parameter("dashboardId", dashboard_id)
            edge = await self.guard.check_edge_id(to_uuid(edge_id, "edgeId"), Operation.READ)
            dashboard = await self.guard.check_dashboard_id(
                to_uuid(dashboard_id, "dashboardId"), Operation.UNASSIGN_FROM_EDGE
            )
            outcome = await self.edges.apply(
                dashboard, ReconciliationPlan.single_remove(edge.id), {edge.id: edge.name}
            )
            return outcome.unwrap()

        return await self._audited(ActionType.UNASSIGNED_FROM_EDGE, (dashboard_id,), operation)

    async def update_dashboard_edges(
        self, dashboard_id: str, edge_ids: Optional[list[str]]
    ) -> Dashboard:
        """Make the dashboard's edges exactly the given ids."""
        return await self._reconcile(
            dashboard_id,
            edge_ids,
            "edgeIds",
            self.edges,
            self.edges.reconcile,
            Operation.ASSIGN_TO_EDGE,
            ActionType.ASSIGNED_TO_EDGE,
        )

    async def add_dashboard_edges(
        self, dashboard_id: str, edge_ids: Optional[list[str]]
    ) -> Dashboard:
        return await self._reconcile(
            dashboard_id,
            edge_ids,
            "edgeIds",
            self.edges,
            self.edges.reconcile_additions,
            Operation.ASSIGN_TO_EDGE,
            ActionType.ASSIGNED_TO_EDGE,
        )

    async def remove_dashboard_edges(
        self, dashboard_id: str, edge_ids: Optional[list[str]]
    ) -> Dashboard:
        return await self._reconcile(
            dashboard_id,
            edge_ids,
            "edgeIds",
            self.edges,
            self.edges.reconcile_removals,
            Operation.UNASSIGN_FROM_EDGE,
            ActionType.UNASSIGNED_FROM_EDGE,
        )

    # ========== Bulk ==========

    async def _reconcile(
        self,
        dashboard_id: str,
        peer_ids: Optional[list[str]],
        peer_param: str,
        reconciler: SetReconciler[Dashboard],
        planner: Planner,
        operation_type: Operation,
        action: ActionType,
    ) -> Dashboard:
        """Plan and apply a bulk change; the result is the last stored snapshot."""
        async def operation() -> Dashboard:
            check_parameter("dashboardId", dashboard_id)
            dashboard = await self.guard.check_dashboard_id(
                to_uuid(dashboard_id, "dashboardId"), operation_type
            )
            plan = planner(dashboard, to_uuid_set(peer_ids, peer_param))
            if plan.is_empty:
                logger.debug(f"Dashboard {dashboard.id}: nothing to change")
            outcome = await reconciler.apply(dashboard, plan)
            return outcome.unwrap()

        return await self._audited(action, (dashboard_id,), operation)
