"""Domain entities for dashboard and edge management.

These are pure domain objects with no infrastructure dependencies.
They represent the owners (dashboards, edges), their peers (customers,
edges) and the paging context every operation runs in. The security
context (SecurityUser, Authority) is defined in api.security and
re-exported here.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Optional, TypeVar
from uuid import UUID

from ...api.security import NULL_UUID, Authority, SecurityUser, is_null_id

T = TypeVar("T")

PUBLIC_CUSTOMER_TITLE = "Public"


class EntityType(str, Enum):
    """Kinds of entities referenced in audit records and queries."""

    TENANT = "TENANT"
    CUSTOMER = "CUSTOMER"
    DASHBOARD = "DASHBOARD"
    EDGE = "EDGE"
    RULE_CHAIN = "RULE_CHAIN"


class Resource(str, Enum):
    """Resources a permission check can target."""

    TENANT = "TENANT"
    CUSTOMER = "CUSTOMER"
    DASHBOARD = "DASHBOARD"
    EDGE = "EDGE"
    RULE_CHAIN = "RULE_CHAIN"


class Operation(str, Enum):
    """Operations a permission check can authorize."""

    READ = "READ"
    CREATE = "CREATE"
    WRITE = "WRITE"
    DELETE = "DELETE"
    ASSIGN_TO_CUSTOMER = "ASSIGN_TO_CUSTOMER"
    UNASSIGN_FROM_CUSTOMER = "UNASSIGN_FROM_CUSTOMER"
    ASSIGN_TO_EDGE = "ASSIGN_TO_EDGE"
    UNASSIGN_FROM_EDGE = "UNASSIGN_FROM_EDGE"


class ActionType(str, Enum):
    """Audited action kinds."""

    ADDED = "ADDED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"
    ASSIGNED_TO_CUSTOMER = "ASSIGNED_TO_CUSTOMER"
    UNASSIGNED_FROM_CUSTOMER = "UNASSIGNED_FROM_CUSTOMER"
    ASSIGNED_TO_EDGE = "ASSIGNED_TO_EDGE"
    UNASSIGNED_FROM_EDGE = "UNASSIGNED_FROM_EDGE"


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


# ========== Peer references ==========


@dataclass(frozen=True)
class ShortCustomerInfo:
    """Customer reference cached on a dashboard.

    Equality and hashing use the customer id only, so a dashboard can
    never hold two references to the same customer.
    """

    customer_id: UUID
    title: Optional[str] = field(default=None, compare=False)
    is_public: bool = field(default=False, compare=False)


@dataclass(frozen=True)
class ShortEdgeInfo:
    """Edge reference cached on a dashboard."""

    edge_id: UUID
    title: Optional[str] = field(default=None, compare=False)


# ========== Owners and peers ==========


@dataclass
class Tenant:
    id: UUID
    title: str


@dataclass
class Customer:
    """A customer of a tenant. One public customer exists per tenant."""

    id: UUID
    tenant_id: UUID
    title: str
    is_public: bool = False
    created_time: Optional[datetime] = None

    @property
    def name(self) -> str:
        return self.title

    def to_short_info(self) -> ShortCustomerInfo:
        return ShortCustomerInfo(customer_id=self.id, title=self.title, is_public=self.is_public)


@dataclass
class Dashboard:
    """A dashboard and the customers/edges it is assigned to."""

    tenant_id: Optional[UUID]
    title: str
    id: Optional[UUID] = None
    image: Optional[str] = None
    mobile_hide: bool = False
    mobile_order: Optional[int] = None
    configuration: Optional[dict[str, Any]] = None
    assigned_customers: frozenset[ShortCustomerInfo] = field(default_factory=frozenset)
    assigned_edges: frozenset[ShortEdgeInfo] = field(default_factory=frozenset)
    created_time: Optional[datetime] = None

    def __post_init__(self):
        self.assigned_customers = frozenset(self.assigned_customers or ())
        self.assigned_edges = frozenset(self.assigned_edges or ())

    def is_assigned_to_customer(self, customer_id: UUID) -> bool:
        return any(c.customer_id == customer_id for c in self.assigned_customers)

    def get_assigned_customer_info(self, customer_id: UUID) -> Optional[ShortCustomerInfo]:
        for info in self.assigned_customers:
            if info.customer_id == customer_id:
                return info
        return None

    def is_assigned_to_edge(self, edge_id: UUID) -> bool:
        return any(e.edge_id == edge_id for e in self.assigned_edges)

    def get_assigned_edge_info(self, edge_id: UUID) -> Optional[ShortEdgeInfo]:
        for info in self.assigned_edges:
            if info.edge_id == edge_id:
                return info
        return None

    def info(self) -> "Dashboard":
        """Copy without the (potentially large) configuration payload."""
        return replace(self, configuration=None)


@dataclass
class Edge:
    """An edge gateway representing a remote deployment."""

    tenant_id: Optional[UUID]
    name: str
    type: str
    id: Optional[UUID] = None
    customer_id: UUID = NULL_UUID
    root_rule_chain_id: Optional[UUID] = None
    label: Optional[str] = None
    routing_key: Optional[str] = None
    secret: Optional[str] = None
    additional_info: Optional[dict[str, Any]] = None
    created_time: Optional[datetime] = None

    def __post_init__(self):
        if self.customer_id is None:
            self.customer_id = NULL_UUID

    def is_assigned_to_customer(self) -> bool:
        return not is_null_id(self.customer_id)


@dataclass
class RuleChain:
    """A rule chain; each tenant has exactly one root rule chain."""

    id: UUID
    tenant_id: UUID
    name: str
    root: bool = False


# ========== Queries and paging ==========


@dataclass
class PageLink:
    """Paging, text search and sorting parameters of a list request."""

    page_size: int
    page: int = 0
    text_search: Optional[str] = None
    sort_property: Optional[str] = None
    sort_order: SortOrder = SortOrder.ASC

    def __post_init__(self):
        if self.page_size < 1:
            raise ValueError("page_size must be greater than 0")
        if self.page < 0:
            raise ValueError("page must be non-negative")
        if self.text_search is not None:
            self.text_search = self.text_search.strip() or None
        if isinstance(self.sort_order, str):
            self.sort_order = SortOrder(self.sort_order.upper())

    @property
    def offset(self) -> int:
        return self.page * self.page_size


@dataclass
class PageData(Generic[T]):
    """One page of a listing."""

    data: list[T]
    total_pages: int
    total_elements: int
    has_next: bool

    @classmethod
    def of(cls, data: list[T], total_elements: int, page_link: PageLink) -> "PageData[T]":
        total_pages = (total_elements + page_link.page_size - 1) // page_link.page_size
        return cls(
            data=data,
            total_pages=total_pages,
            total_elements=total_elements,
            has_next=page_link.page + 1 < total_pages,
        )


class RelationDirection(str, Enum):
    FROM = "FROM"
    TO = "TO"


@dataclass
class EdgeSearchQuery:
    """Find edges related to a root entity.

    Attributes:
        root_id: Entity the relation search starts from
        root_type: Type of the root entity
        direction: Follow relations from or to the root
        relation_type: Relation type filter (e.g. "Contains", "Manages")
        max_level: Maximum relation depth
        edge_types: Only return edges of these types
    """

    root_id: UUID
    root_type: EntityType
    edge_types: list[str]
    direction: RelationDirection = RelationDirection.FROM
    relation_type: Optional[str] = None
    max_level: int = 1


@dataclass
class EntitySubtype:
    """A distinct entity type string used within a tenant."""

    tenant_id: UUID
    entity_type: EntityType
    type: str


# ========== Audit ==========


@dataclass
class AuditEntry:
    """One audit log record.

    `action_data` holds the positional context strings of the action
    (owner id, peer id, peer label), in the order they were supplied.
    """

    tenant_id: UUID
    entity_type: EntityType
    entity_id: UUID
    action_type: ActionType
    user_id: str
    customer_id: UUID = NULL_UUID
    entity_name: Optional[str] = None
    action_data: list[str] = field(default_factory=list)
    success: bool = True
    failure_details: Optional[str] = None
    created_time: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for logging and storage."""
        return {
            "tenant_id": str(self.tenant_id),
            "customer_id": str(self.customer_id),
            "entity_type": self.entity_type.value,
            "entity_id": str(self.entity_id),
            "entity_name": self.entity_name,
            "user_id": self.user_id,
            "action_type": self.action_type.value,
            "action_data": list(self.action_data),
            "success": self.success,
            "failure_details": self.failure_details,
            "created_time": self.created_time.isoformat() if self.created_time else None,
        }
