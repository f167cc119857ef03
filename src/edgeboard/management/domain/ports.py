"""Port interfaces for dashboard and edge management.

These are abstract interfaces (ports) that define how the domain
interacts with persistence and audit infrastructure. Concrete
implementations (adapters) are provided in the adapters module.

Membership operations (assign/unassign) return the authoritative owner
as stored after the change and raise:
    - NotFoundError if the owner or the peer does not exist
    - ConflictError if the relation is already in the requested state
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from .entities import (
    AuditEntry,
    Customer,
    Dashboard,
    Edge,
    EdgeSearchQuery,
    EntitySubtype,
    PageData,
    PageLink,
    RuleChain,
    Tenant,
)


class IDashboardRepository(ABC):
    """Port for dashboard storage and dashboard membership."""

    @abstractmethod
    async def find_by_id(self, dashboard_id: UUID) -> Optional[Dashboard]:
        """Find a dashboard (including configuration) by id."""
        ...

    @abstractmethod
    async def find_info_by_id(self, dashboard_id: UUID) -> Optional[Dashboard]:
        """Find a dashboard without its configuration payload."""
        ...

    @abstractmethod
    async def save(self, dashboard: Dashboard) -> Dashboard:
        """Create (no id) or update a dashboard.

        Assignments are not changed by save; use the membership methods.
        """
        ...

    @abstractmethod
    async def delete(self, tenant_id: UUID, dashboard_id: UUID) -> None:
        """Delete a dashboard together with its assignments."""
        ...

    @abstractmethod
    async def find_by_tenant(self, tenant_id: UUID, page_link: PageLink) -> PageData[Dashboard]:
        ...

    @abstractmethod
    async def find_by_tenant_and_customer(
        self, tenant_id: UUID, customer_id: UUID, page_link: PageLink
    ) -> PageData[Dashboard]:
        ...

    @abstractmethod
    async def find_by_tenant_and_edge(
        self, tenant_id: UUID, edge_id: UUID, page_link: PageLink
    ) -> PageData[Dashboard]:
        ...

    @abstractmethod
    async def assign_to_customer(
        self, tenant_id: UUID, dashboard_id: UUID, customer_id: UUID
    ) -> Dashboard:
        ...

    @abstractmethod
    async def unassign_from_customer(
        self, tenant_id: UUID, dashboard_id: UUID, customer_id: UUID
    ) -> Dashboard:
        ...

    @abstractmethod
    async def assign_to_edge(self, tenant_id: UUID, dashboard_id: UUID, edge_id: UUID) -> Dashboard:
        ...

    @abstractmethod
    async def unassign_from_edge(
        self, tenant_id: UUID, dashboard_id: UUID, edge_id: UUID
    ) -> Dashboard:
        ...


class IEdgeRepository(ABC):
    """Port for edge storage and edge-to-customer membership."""

    @abstractmethod
    async def find_by_id(self, edge_id: UUID) -> Optional[Edge]:
        ...

    @abstractmethod
    async def save(self, edge: Edge) -> Edge:
        """Create (no id) or update an edge.

        Raises:
            IntegrityError: If another edge of the tenant has the same name
        """
        ...

    @abstractmethod
    async def delete(self, tenant_id: UUID, edge_id: UUID) -> None:
        ...

    @abstractmethod
    async def find_by_tenant(
        self, tenant_id: UUID, page_link: PageLink, edge_type: Optional[str] = None
    ) -> PageData[Edge]:
        ...

    @abstractmethod
    async def find_by_tenant_and_name(self, tenant_id: UUID, name: str) -> Optional[Edge]:
        ...

    @abstractmethod
    async def find_by_tenant_and_customer(
        self,
        tenant_id: UUID,
        customer_id: UUID,
        page_link: PageLink,
        edge_type: Optional[str] = None,
    ) -> PageData[Edge]:
        ...

    @abstractmethod
    async def find_by_tenant_and_ids(self, tenant_id: UUID, edge_ids: list[UUID]) -> list[Edge]:
        ...

    @abstractmethod
    async def find_by_tenant_customer_and_ids(
        self, tenant_id: UUID, customer_id: UUID, edge_ids: list[UUID]
    ) -> list[Edge]:
        ...

    @abstractmethod
    async def find_by_query(self, tenant_id: UUID, query: EdgeSearchQuery) -> list[Edge]:
        """Find edges related to the query root, filtered by edge type."""
        ...

    @abstractmethod
    async def find_types(self, tenant_id: UUID) -> list[EntitySubtype]:
        ...

    @abstractmethod
    async def assign_to_customer(self, tenant_id: UUID, edge_id: UUID, customer_id: UUID) -> Edge:
        """Make the customer the owner of the edge (replaces any previous owner)."""
        ...

    @abstractmethod
    async def unassign_from_customer(
        self, tenant_id: UUID, edge_id: UUID, customer_id: Optional[UUID] = None
    ) -> Edge:
        """Clear the edge's customer.

        When `customer_id` is given the edge must still belong to that
        customer, otherwise ConflictError is raised and nothing changes.
        """
        ...

    @abstractmethod
    async def set_root_rule_chain(self, tenant_id: UUID, edge: Edge, rule_chain_id: UUID) -> Edge:
        ...


class ICustomerRepository(ABC):
    """Port for customer lookups."""

    @abstractmethod
    async def find_by_id(self, customer_id: UUID) -> Optional[Customer]:
        ...

    @abstractmethod
    async def find_or_create_public_customer(self, tenant_id: UUID) -> Customer:
        """Return the tenant's public customer, creating it on first use."""
        ...


class ITenantRepository(ABC):
    """Port for tenant lookups."""

    @abstractmethod
    async def find_by_id(self, tenant_id: UUID) -> Optional[Tenant]:
        ...


class IRuleChainRepository(ABC):
    """Port for rule chain lookups and edge bindings."""

    @abstractmethod
    async def find_by_id(self, rule_chain_id: UUID) -> Optional[RuleChain]:
        ...

    @abstractmethod
    async def get_root_tenant_rule_chain(self, tenant_id: UUID) -> Optional[RuleChain]:
        ...

    @abstractmethod
    async def assign_to_edge(self, tenant_id: UUID, rule_chain_id: UUID, edge_id: UUID) -> None:
        ...


class IAuditLog(ABC):
    """Port for the audit sink."""

    @abstractmethod
    async def record(self, entry: AuditEntry) -> None:
        """Persist one audit record."""
        ...
