"""Domain layer for dashboard and edge management.

Contains:
- Entities: Core business objects
- Ports: Interface definitions for infrastructure adapters
- Reconciler: Membership set reconciliation
- Access control and audit services built on the ports
"""

from .audit import EntityActionLogger
from .entities import (
    NULL_UUID,
    ActionType,
    AuditEntry,
    Authority,
    Customer,
    Dashboard,
    Edge,
    EdgeSearchQuery,
    EntitySubtype,
    EntityType,
    Operation,
    PageData,
    PageLink,
    Resource,
    RuleChain,
    SecurityUser,
    ShortCustomerInfo,
    ShortEdgeInfo,
    Tenant,
)
from .permissions import AccessControlService
from .ports import (
    IAuditLog,
    ICustomerRepository,
    IDashboardRepository,
    IEdgeRepository,
    IRuleChainRepository,
    ITenantRepository,
)
from .reconciler import (
    DashboardCustomerBinding,
    DashboardEdgeBinding,
    EdgeCustomerBinding,
    PeerBinding,
    ReconciliationOutcome,
    ReconciliationPlan,
    SetReconciler,
)

__all__ = [
    # Entities
    "NULL_UUID",
    "ActionType",
    "AuditEntry",
    "Authority",
    "Customer",
    "Dashboard",
    "Edge",
    "EdgeSearchQuery",
    "EntitySubtype",
    "EntityType",
    "Operation",
    "PageData",
    "PageLink",
    "Resource",
    "RuleChain",
    "SecurityUser",
    "ShortCustomerInfo",
    "ShortEdgeInfo",
    "Tenant",
    # Ports
    "IAuditLog",
    "ICustomerRepository",
    "IDashboardRepository",
    "IEdgeRepository",
    "IRuleChainRepository",
    "ITenantRepository",
    # Services
    "AccessControlService",
    "EntityActionLogger",
    # Reconciliation
    "PeerBinding",
    "DashboardCustomerBinding",
    "DashboardEdgeBinding",
    "EdgeCustomerBinding",
    "ReconciliationPlan",
    "ReconciliationOutcome",
    "SetReconciler",
]
