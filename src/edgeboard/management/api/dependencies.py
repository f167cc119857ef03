"""FastAPI dependency injection for the management API.

This module provides dependency injection functions that create
and return adapter and use case instances for use in API endpoints.

Lifecycle Management:
- Database pool: Initialized at startup, shared across requests,
  closed at application shutdown
- Repositories and use cases: created per request around the shared pool
"""

import logging
import os
from typing import Optional

import asyncpg
from fastapi import Depends, Query

from ...api.auth import get_current_user
from ...api.database import close_pool, create_pool
from ...api.exceptions import ConfigurationError
from ..adapters import (
    PostgresAuditLog,
    PostgresCustomerRepository,
    PostgresDashboardRepository,
    PostgresEdgeRepository,
    PostgresRuleChainRepository,
    PostgresTenantRepository,
)
from ..domain.entities import PageLink, SecurityUser, SortOrder
from ..domain.permissions import AccessControlService
from ..domain.ports import (
    IAuditLog,
    ICustomerRepository,
    IDashboardRepository,
    IEdgeRepository,
    IRuleChainRepository,
    ITenantRepository,
)
from ..use_cases import (
    DashboardAssignmentsUseCase,
    EdgeAssignmentsUseCase,
    ManageDashboardsUseCase,
    ManageEdgesUseCase,
)

logger = logging.getLogger(__name__)

# ========== Global State ==========

# Global connection pool (initialized on startup)
_db_pool: Optional[asyncpg.Pool] = None

_access_control = AccessControlService()


async def init_db_pool():
    """Initialize the database connection pool.

    Should be called on application startup.
    """
    global _db_pool

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise ConfigurationError(
            "DATABASE_URL environment variable is required",
            missing_keys=["DATABASE_URL"],
        )

    _db_pool = await create_pool(
        database_url,
        min_size=int(os.getenv("DB_POOL_MIN_SIZE", "2")),
        max_size=int(os.getenv("DB_POOL_MAX_SIZE", "10")),
    )


async def close_db_pool():
    """Close the database connection pool.

    Should be called on application shutdown.
    """
    global _db_pool
    if _db_pool:
        await close_pool(_db_pool)
        _db_pool = None


def get_db_pool() -> asyncpg.Pool:
    """Get the database connection pool."""
    if _db_pool is None:
        raise RuntimeError("Database pool not initialized. Call init_db_pool() first.")
    return _db_pool


# ========== Repositories ==========


def get_dashboard_repo() -> IDashboardRepository:
    return PostgresDashboardRepository(get_db_pool())


def get_edge_repo() -> IEdgeRepository:
    return PostgresEdgeRepository(get_db_pool())


def get_customer_repo() -> ICustomerRepository:
    return PostgresCustomerRepository(get_db_pool())


def get_tenant_repo() -> ITenantRepository:
    return PostgresTenantRepository(get_db_pool())


def get_rule_chain_repo() -> IRuleChainRepository:
    return PostgresRuleChainRepository(get_db_pool())


def get_audit_log() -> IAuditLog:
    return PostgresAuditLog(get_db_pool())


def get_access_control() -> AccessControlService:
    return _access_control


def get_page_link(
    page_size: int = Query(..., alias="pageSize", ge=1, description="Maximum items per page"),
    page: int = Query(0, ge=0, description="Page number, starting at 0"),
    text_search: Optional[str] = Query(None, alias="textSearch"),
    sort_property: Optional[str] = Query(None, alias="sortProperty"),
    sort_order: SortOrder = Query(SortOrder.ASC, alias="sortOrder"),
) -> PageLink:
    """Paging parameters shared by all listings."""
    return PageLink(
        page_size=page_size,
        page=page,
        text_search=text_search,
        sort_property=sort_property,
        sort_order=sort_order,
    )


# ========== Use Cases ==========


def get_manage_dashboards(
    user: SecurityUser = Depends(get_current_user),
    dashboard_repo: IDashboardRepository = Depends(get_dashboard_repo),
    customer_repo: ICustomerRepository = Depends(get_customer_repo),
    edge_repo: IEdgeRepository = Depends(get_edge_repo),
    tenant_repo: ITenantRepository = Depends(get_tenant_repo),
    audit_log: IAuditLog = Depends(get_audit_log),
    access_control: AccessControlService = Depends(get_access_control),
) -> ManageDashboardsUseCase:
    return ManageDashboardsUseCase(
        user, dashboard_repo, customer_repo, edge_repo, tenant_repo, audit_log, access_control
    )


def get_dashboard_assignments(
    user: SecurityUser = Depends(get_current_user),
    dashboard_repo: IDashboardRepository = Depends(get_dashboard_repo),
    customer_repo: ICustomerRepository = Depends(get_customer_repo),
    edge_repo: IEdgeRepository = Depends(get_edge_repo),
    audit_log: IAuditLog = Depends(get_audit_log),
    access_control: AccessControlService = Depends(get_access_control),
) -> DashboardAssignmentsUseCase:
    return DashboardAssignmentsUseCase(
        user, dashboard_repo, customer_repo, edge_repo, audit_log, access_control
    )


def get_manage_edges(
    user: SecurityUser = Depends(get_current_user),
    edge_repo: IEdgeRepository = Depends(get_edge_repo),
    customer_repo: ICustomerRepository = Depends(get_customer_repo),
    rule_chain_repo: IRuleChainRepository = Depends(get_rule_chain_repo),
    dashboard_repo: IDashboardRepository = Depends(get_dashboard_repo),
    tenant_repo: ITenantRepository = Depends(get_tenant_repo),
    audit_log: IAuditLog = Depends(get_audit_log),
    access_control: AccessControlService = Depends(get_access_control),
) -> ManageEdgesUseCase:
    return ManageEdgesUseCase(
        user,
        edge_repo,
        customer_repo,
        rule_chain_repo,
        audit_log,
        access_control,
        dashboard_repo=dashboard_repo,
        tenant_repo=tenant_repo,
    )


def get_edge_assignments(
    user: SecurityUser = Depends(get_current_user),
    edge_repo: IEdgeRepository = Depends(get_edge_repo),
    customer_repo: ICustomerRepository = Depends(get_customer_repo),
    audit_log: IAuditLog = Depends(get_audit_log),
    access_control: AccessControlService = Depends(get_access_control),
) -> EdgeAssignmentsUseCase:
    return EdgeAssignmentsUseCase(user, edge_repo, customer_repo, audit_log, access_control)
