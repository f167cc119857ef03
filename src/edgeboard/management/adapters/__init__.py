"""Infrastructure adapters for dashboard and edge management.

These implement the domain ports using concrete technologies
(asyncpg / PostgreSQL).
"""

from .postgres_audit_log import PostgresAuditLog
from .postgres_customer_repo import (
    PostgresCustomerRepository,
    PostgresRuleChainRepository,
    PostgresTenantRepository,
)
from .postgres_dashboard_repo import PostgresDashboardRepository
from .postgres_edge_repo import PostgresEdgeRepository
from .schema import ensure_schema

__all__ = [
    "PostgresAuditLog",
    "PostgresCustomerRepository",
    "PostgresDashboardRepository",
    "PostgresEdgeRepository",
    "PostgresRuleChainRepository",
    "PostgresTenantRepository",
    "ensure_schema",
]
