"""Dashboard management use case.

Create, read, update and delete dashboards, and list them per tenant,
customer or edge. Assignment of dashboards to customers and edges lives
in dashboard_assignments.
"""

import logging
from dataclasses import replace
from typing import Optional

from ..domain.audit import EntityActionLogger
from ..domain.entities import (
    ActionType,
    Dashboard,
    EntityType,
    Operation,
    PageData,
    PageLink,
    Resource,
    SecurityUser,
)
from ..domain.permissions import AccessControlService
from ..domain.ports import (
    IAuditLog,
    ICustomerRepository,
    IDashboardRepository,
    IEdgeRepository,
    ITenantRepository,
)
from .common import EntityGuard, check_parameter, to_uuid

logger = logging.getLogger(__name__)


class ManageDashboardsUseCase:
    """Dashboard CRUD and listings for one authenticated user."""

    def __init__(
        self,
        user: SecurityUser,
        dashboard_repo: IDashboardRepository,
        customer_repo: ICustomerRepository,
        edge_repo: IEdgeRepository,
        tenant_repo: ITenantRepository,
        audit_log: IAuditLog,
        access_control: Optional[AccessControlService] = None,
    ):
        self.user = user
        self.dashboard_repo = dashboard_repo
        self.access_control = access_control or AccessControlService()
        self.action_logger = EntityActionLogger(audit_log, user)
        self.guard = EntityGuard(
            user,
            self.access_control,
            dashboard_repo=dashboard_repo,
            edge_repo=edge_repo,
            customer_repo=customer_repo,
            tenant_repo=tenant_repo,
        )

    async def get_dashboard_info(self, dashboard_id: str) -> Dashboard:
        check_parameter("dashboardId", dashboard_id)
        return await self.guard.check_dashboard_info_id(
            to_uuid(dashboard_id, "dashboardId"), Operation.READ
        )

    async def get_dashboard(self, dashboard_id: str) -> Dashboard:
        check_parameter("dashboardId", dashboard_id)
        return await self.guard.check_dashboard_id(to_uuid(dashboard_id, "dashboardId"), Operation.READ)

    async def save_dashboard(self, dashboard: Dashboard) -> Dashboard:
        """Create a dashboard (no id) or update an existing one.

        The dashboard is always stamped with the caller's tenant. Existing
        assignments are kept; they only change through the assignment
        operations.
        """
        dashboard = replace(dashboard, tenant_id=self.user.tenant_id)
        action = ActionType.ADDED if dashboard.id is None else ActionType.UPDATED

        try:
            if dashboard.id is None:
                self.guard.check(Resource.DASHBOARD, Operation.CREATE, None, dashboard)
            else:
                existing = await self.guard.check_dashboard_id(dashboard.id, Operation.WRITE)
                dashboard = replace(
                    dashboard,
                    assigned_customers=existing.assigned_customers,
                    assigned_edges=existing.assigned_edges,
                    created_time=existing.created_time,
                )

            saved = await self.dashboard_repo.save(dashboard)
        except Exception as e:
            await self.action_logger.log_entity_action(
                EntityType.DASHBOARD, None, dashboard, None, action, e
            )
            raise

        logger.info(f"Dashboard {saved.id} {action.value.lower()} by {self.user.user_id}")
        await self.action_logger.log_entity_action(
            EntityType.DASHBOARD, saved.id, saved, None, action
        )
        return saved

    async def delete_dashboard(self, dashboard_id: str) -> None:
        check_parameter("dashboardId", dashboard_id)
        try:
            dashboard = await self.guard.check_dashboard_id(
                to_uuid(dashboard_id, "dashboardId"), Operation.DELETE
            )
            await self.dashboard_repo.delete(dashboard.tenant_id, dashboard.id)
        except Exception as e:
            await self.action_logger.log_failure(
                EntityType.DASHBOARD, ActionType.DELETED, e, dashboard_id
            )
            raise

        logger.info(f"Dashboard {dashboard.id} deleted by {self.user.user_id}")
        await self.action_logger.log_entity_action(
            EntityType.DASHBOARD, dashboard.id, dashboard, None, ActionType.DELETED, None, dashboard_id
        )

    async def get_tenant_dashboards(
        self, tenant_id: str, page_link: PageLink
    ) -> PageData[Dashboard]:
        """List the dashboards of any tenant (system administrators)."""
        check_parameter("tenantId", tenant_id)
        tenant = await self.guard.check_tenant_id(to_uuid(tenant_id, "tenantId"), Operation.READ)
        return await self.dashboard_repo.find_by_tenant(tenant.id, page_link)

    async def get_current_tenant_dashboards(self, page_link: PageLink) -> PageData[Dashboard]:
        return await self.dashboard_repo.find_by_tenant(self.user.tenant_id, page_link)

    async def get_customer_dashboards(
        self, customer_id: str, page_link: PageLink
    ) -> PageData[Dashboard]:
        check_parameter("customerId", customer_id)
        customer = await self.guard.check_customer_id(
            to_uuid(customer_id, "customerId"), Operation.READ
        )
        return await self.dashboard_repo.find_by_tenant_and_customer(
            self.user.tenant_id, customer.id, page_link
        )

    async def get_edge_dashboards(self, edge_id: str, page_link: PageLink) -> PageData[Dashboard]:
        check_parameter("edgeId", edge_id)
        edge = await self.guard.check_edge_id(to_uuid(edge_id, "edgeId"), Operation.READ)
        return await self.dashboard_repo.find_by_tenant_and_edge(
            self.user.tenant_id, edge.id, page_link
        )
