"""PostgreSQL adapters for customer, tenant and rule chain lookups."""

import logging
from typing import Optional
from uuid import UUID, uuid4

import asyncpg

from ...api.database import database_connection, database_transaction
from ..domain.entities import PUBLIC_CUSTOMER_TITLE, Customer, RuleChain, Tenant
from ..domain.ports import ICustomerRepository, IRuleChainRepository, ITenantRepository

logger = logging.getLogger(__name__)


class PostgresCustomerRepository(ICustomerRepository):
    """PostgreSQL implementation of ICustomerRepository."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def find_by_id(self, customer_id: UUID) -> Optional[Customer]:
        async with database_connection(self.pool) as conn:
            row = await conn.fetchrow(
                "SELECT id, tenant_id, title, is_public, created_time FROM customers WHERE id = $1",
                customer_id,
            )
        return self._row_to_customer(row) if row else None

    async def find_or_create_public_customer(self, tenant_id: UUID) -> Customer:
        """Return the tenant's public customer, creating it on first use.

        Concurrent first calls race on the partial unique index; the loser
        reads the winner's row.
        """
        async with database_transaction(self.pool) as conn:
            created = await conn.fetchval(
                """
                INSERT INTO customers (id, tenant_id, title, is_public)
                VALUES ($1, $2, $3, TRUE)
                ON CONFLICT (tenant_id) WHERE is_public DO NOTHING
                RETURNING id
                """,
                uuid4(),
                tenant_id,
                PUBLIC_CUSTOMER_TITLE,
            )
            if created is not None:
                logger.info(f"Created public customer {created} for tenant {tenant_id}")
            row = await conn.fetchrow(
                """
                SELECT id, tenant_id, title, is_public, created_time
                FROM customers WHERE tenant_id = $1 AND is_public
                """,
                tenant_id,
            )
        return self._row_to_customer(row)

    def _row_to_customer(self, row) -> Customer:
        return Customer(
            id=row["id"],
            tenant_id=row["tenant_id"],
            title=row["title"],
            is_public=row["is_public"],
            created_time=row["created_time"],
        )


class PostgresTenantRepository(ITenantRepository):
    """PostgreSQL implementation of ITenantRepository."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def find_by_id(self, tenant_id: UUID) -> Optional[Tenant]:
        async with database_connection(self.pool) as conn:
            row = await conn.fetchrow("SELECT id, title FROM tenants WHERE id = $1", tenant_id)
        return Tenant(id=row["id"], title=row["title"]) if row else None


class PostgresRuleChainRepository(IRuleChainRepository):
    """PostgreSQL implementation of IRuleChainRepository."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def find_by_id(self, rule_chain_id: UUID) -> Optional[RuleChain]:
        async with database_connection(self.pool) as conn:
            row = await conn.fetchrow(
                "SELECT id, tenant_id, name, root FROM rule_chains WHERE id = $1", rule_chain_id
            )
        return self._row_to_rule_chain(row) if row else None

    async def get_root_tenant_rule_chain(self, tenant_id: UUID) -> Optional[RuleChain]:
        async with database_connection(self.pool) as conn:
            row = await conn.fetchrow(
                "SELECT id, tenant_id, name, root FROM rule_chains "
                "WHERE tenant_id = $1 AND root LIMIT 1",
                tenant_id,
            )
        return self._row_to_rule_chain(row) if row else None

    async def assign_to_edge(self, tenant_id: UUID, rule_chain_id: UUID, edge_id: UUID) -> None:
        async with database_transaction(self.pool) as conn:
            await conn.execute(
                """
                INSERT INTO edge_rule_chains (edge_id, rule_chain_id)
                SELECT e.id, rc.id FROM edges e, rule_chains rc
                WHERE e.id = $1 AND rc.id = $2 AND e.tenant_id = $3 AND rc.tenant_id = $3
                ON CONFLICT DO NOTHING
                """,
                edge_id,
                rule_chain_id,
                tenant_id,
            )

    def _row_to_rule_chain(self, row) -> RuleChain:
        return RuleChain(id=row["id"], tenant_id=row["tenant_id"], name=row["name"], root=row["root"])
