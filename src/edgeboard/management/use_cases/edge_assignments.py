"""Edge to customer assignment use case.

An edge belongs to at most one customer. Assigning replaces the current
owner; unassigning requires the edge to be assigned.
"""

import logging
from typing import Optional

from ...api.exceptions import IncorrectParameterError
from ..domain.audit import EntityActionLogger
from ..domain.entities import ActionType, Edge, EntityType, Operation, SecurityUser
from ..domain.permissions import AccessControlService
from ..domain.ports import IAuditLog, ICustomerRepository, IEdgeRepository
from ..domain.reconciler import EdgeCustomerBinding, ReconciliationPlan, SetReconciler
from .common import EntityGuard, check_parameter, to_uuid

logger = logging.getLogger(__name__)


class EdgeAssignmentsUseCase:
    """Assign edges to customers for one authenticated user."""

    def __init__(
        self,
        user: SecurityUser,
        edge_repo: IEdgeRepository,
        customer_repo: ICustomerRepository,
        audit_log: IAuditLog,
        access_control: Optional[AccessControlService] = None,
    ):
        self.user = user
        self.customer_repo = customer_repo
        self.access_control = access_control or AccessControlService()
        self.action_logger = EntityActionLogger(audit_log, user)
        self.guard = EntityGuard(
            user, self.access_control, edge_repo=edge_repo, customer_repo=customer_repo
        )
        self.customers = SetReconciler(EdgeCustomerBinding(edge_repo), self.action_logger)

    async def assign_edge_to_customer(self, customer_id: str, edge_id: str) -> Edge:
        try:
            check_parameter("customerId", customer_id)
            check_parameter("edgeId", edge_id)
            customer = await self.guard.check_customer_id(
                to_uuid(customer_id, "customerId"), Operation.READ
            )
            edge = await self.guard.check_edge_id(
                to_uuid(edge_id, "edgeId"), Operation.ASSIGN_TO_CUSTOMER
            )
            outcome = await self.customers.apply(
                edge, ReconciliationPlan.single_add(customer.id), {customer.id: customer.title}
            )
            return outcome.unwrap()
        except Exception as e:
            await self.action_logger.log_failure(
                EntityType.EDGE, ActionType.ASSIGNED_TO_CUSTOMER, e, edge_id, customer_id
            )
            raise

    async def unassign_edge_from_customer(self, edge_id: str) -> Edge:
        """Remove the edge from its customer.

        Raises:
            IncorrectParameterError: If the edge has no customer; no store
                call is made in that case
        """
        try:
            check_parameter("edgeId", edge_id)
            edge = await self.guard.check_edge_id(
                to_uuid(edge_id, "edgeId"), Operation.UNASSIGN_FROM_CUSTOMER
            )
            if not edge.is_assigned_to_customer():
                raise IncorrectParameterError("Edge isn't assigned to any customer!")
            customer = await self.guard.check_customer_id(edge.customer_id, Operation.READ)
            outcome = await self.customers.apply(
                edge, ReconciliationPlan.single_remove(customer.id), {customer.id: customer.title}
            )
            return outcome.unwrap()
        except Exception as e:
            await self.action_logger.log_failure(
                EntityType.EDGE, ActionType.UNASSIGNED_FROM_CUSTOMER, e, edge_id
            )
            raise

    async def assign_edge_to_public_customer(self, edge_id: str) -> Edge:
        try:
            check_parameter("edgeId", edge_id)
            edge = await self.guard.check_edge_id(
                to_uuid(edge_id, "edgeId"), Operation.ASSIGN_TO_CUSTOMER
            )
            public = await self.customer_repo.find_or_create_public_customer(edge.tenant_id)
            outcome = await self.customers.apply(
                edge, ReconciliationPlan.single_add(public.id), {public.id: public.title}
            )
            return outcome.unwrap()
        except Exception as e:
            await self.action_logger.log_failure(
                EntityType.EDGE, ActionType.ASSIGNED_TO_CUSTOMER, e, edge_id
            )
            raise
