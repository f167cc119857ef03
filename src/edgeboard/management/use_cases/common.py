"""Parameter parsing and entity access checks shared by the use cases."""

from typing import Optional, Sequence
from uuid import UUID

from ...api.exceptions import NotFoundError, ValidationError
from ..domain.entities import (
    Customer,
    Dashboard,
    Edge,
    EntityType,
    Operation,
    Resource,
    RuleChain,
    SecurityUser,
    Tenant,
)
from ..domain.permissions import AccessControlService
from ..domain.ports import (
    ICustomerRepository,
    IDashboardRepository,
    IEdgeRepository,
    IRuleChainRepository,
    ITenantRepository,
)


def check_parameter(name: str, value: Optional[str]) -> None:
    """Reject a missing or blank parameter."""
    if value is None or not str(value).strip():
        raise ValidationError(f"Parameter '{name}' can't be empty!", field=name)


def check_array_parameter(name: str, values: Optional[Sequence[str]]) -> None:
    if not values:
        raise ValidationError(f"Parameter '{name}' can't be empty!", field=name)
    for value in values:
        check_parameter(name, value)


def to_uuid(value: str, name: str = "id") -> UUID:
    """Parse an identifier string into a UUID."""
    try:
        return UUID(str(value).strip())
    except (ValueError, AttributeError):
        raise ValidationError(f"Invalid UUID string: {value}", field=name)


def to_uuid_set(values: Optional[Sequence[str]], name: str) -> frozenset[UUID]:
    """Parse a list of identifier strings; None is the empty set, duplicates collapse."""
    if values is None:
        return frozenset()
    return frozenset(to_uuid(v, name) for v in values)


class EntityGuard:
    """Loads entities by id and checks the caller's permission on them.

    Missing entities raise NotFoundError; entities the caller may not
    access raise PermissionDeniedError.
    """

    def __init__(
        self,
        user: SecurityUser,
        access_control: AccessControlService,
        dashboard_repo: Optional[IDashboardRepository] = None,
        edge_repo: Optional[IEdgeRepository] = None,
        customer_repo: Optional[ICustomerRepository] = None,
        tenant_repo: Optional[ITenantRepository] = None,
        rule_chain_repo: Optional[IRuleChainRepository] = None,
    ):
        self.user = user
        self.access_control = access_control
        self.dashboard_repo = dashboard_repo
        self.edge_repo = edge_repo
        self.customer_repo = customer_repo
        self.tenant_repo = tenant_repo
        self.rule_chain_repo = rule_chain_repo

    def check(self, resource: Resource, operation: Operation, entity_id, entity) -> None:
        self.access_control.check_permission(self.user, resource, operation, entity_id, entity)

    async def check_dashboard_id(self, dashboard_id: UUID, operation: Operation) -> Dashboard:
        dashboard = await self.dashboard_repo.find_by_id(dashboard_id)
        if dashboard is None:
            raise NotFoundError("Dashboard", str(dashboard_id))
        self.check(Resource.DASHBOARD, operation, dashboard_id, dashboard)
        return dashboard

    async def check_dashboard_info_id(self, dashboard_id: UUID, operation: Operation) -> Dashboard:
        dashboard = await self.dashboard_repo.find_info_by_id(dashboard_id)
        if dashboard is None:
            raise NotFoundError("Dashboard", str(dashboard_id))
        self.check(Resource.DASHBOARD, operation, dashboard_id, dashboard)
        return dashboard

    async def check_edge_id(self, edge_id: UUID, operation: Operation) -> Edge:
        edge = await self.edge_repo.find_by_id(edge_id)
        if edge is None:
            raise NotFoundError("Edge", str(edge_id))
        self.check(Resource.EDGE, operation, edge_id, edge)
        return edge

    async def check_customer_id(self, customer_id: UUID, operation: Operation) -> Customer:
        customer = await self.customer_repo.find_by_id(customer_id)
        if customer is None:
            raise NotFoundError("Customer", str(customer_id))
        self.check(Resource.CUSTOMER, operation, customer_id, customer)
        return customer

    async def check_tenant_id(self, tenant_id: UUID, operation: Operation) -> Tenant:
        tenant = await self.tenant_repo.find_by_id(tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant", str(tenant_id))
        self.check(Resource.TENANT, operation, tenant_id, tenant)
        return tenant

    async def check_rule_chain_id(self, rule_chain_id: UUID, operation: Operation) -> RuleChain:
        rule_chain = await self.rule_chain_repo.find_by_id(rule_chain_id)
        if rule_chain is None:
            raise NotFoundError("Rule chain", str(rule_chain_id))
        self.check(Resource.RULE_CHAIN, operation, rule_chain_id, rule_chain)
        return rule_chain

    async def check_entity_id(self, entity_type: EntityType, entity_id: UUID, operation: Operation):
        """Dispatch to the check for the given entity type."""
        checks = {
            EntityType.DASHBOARD: self.check_dashboard_info_id,
            EntityType.EDGE: self.check_edge_id,
            EntityType.CUSTOMER: self.check_customer_id,
            EntityType.TENANT: self.check_tenant_id,
            EntityType.RULE_CHAIN: self.check_rule_chain_id,
        }
        check = checks.get(entity_type)
        if check is None:
            raise ValidationError(f"Unsupported entity type: {entity_type}", field="entityType")
        return await check(entity_id, operation)
