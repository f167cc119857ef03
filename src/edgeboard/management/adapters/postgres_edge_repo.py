"""PostgreSQL adapter for edge repository.

This adapter implements IEdgeRepository using asyncpg to query the
edges table. An unassigned edge stores NULL as its customer and is
returned with the NULL_UUID sentinel.
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import asyncpg

from ...api.database import database_connection, database_transaction
from ...api.exceptions import ConflictError, NotFoundError
from ..domain.entities import (
    Edge,
    EdgeSearchQuery,
    EntitySubtype,
    EntityType,
    PageData,
    PageLink,
    RelationDirection,
    is_null_id,
)
from ..domain.ports import IEdgeRepository
from .paging import dump_json, load_json, order_by, search_pattern

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    "name": "name",
    "type": "type",
    "label": "label",
    "createdTime": "created_time",
    "created_time": "created_time",
}

_COLUMNS = (
    "id, tenant_id, customer_id, root_rule_chain_id, name, type, label, "
    "routing_key, secret, additional_info, created_time"
)


class PostgresEdgeRepository(IEdgeRepository):
    """PostgreSQL implementation of IEdgeRepository."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    # ========== Lookups ==========

    async def find_by_id(self, edge_id: UUID) -> Optional[Edge]:
        async with database_connection(self.pool) as conn:
            row = await conn.fetchrow(f"SELECT {_COLUMNS} FROM edges WHERE id = $1", edge_id)
        return self._row_to_edge(row) if row else None

    async def find_by_tenant_and_name(self, tenant_id: UUID, name: str) -> Optional[Edge]:
        async with database_connection(self.pool) as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM edges WHERE tenant_id = $1 AND name = $2",
                tenant_id,
                name,
            )
        return self._row_to_edge(row) if row else None

    async def find_by_tenant(
        self, tenant_id: UUID, page_link: PageLink, edge_type: Optional[str] = None
    ) -> PageData[Edge]:
        return await self._find_page("tenant_id = $1", [tenant_id], page_link, edge_type)

    async def find_by_tenant_and_customer(
        self,
        tenant_id: UUID,
        customer_id: UUID,
        page_link: PageLink,
        edge_type: Optional[str] = None,
    ) -> PageData[Edge]:
        return await self._find_page(
            "tenant_id = $1 AND customer_id = $2", [tenant_id, customer_id], page_link, edge_type
        )

    async def find_by_tenant_and_ids(self, tenant_id: UUID, edge_ids: list[UUID]) -> list[Edge]:
        async with database_connection(self.pool) as conn:
            rows = await conn.fetch(
                f"SELECT {_COLUMNS} FROM edges WHERE tenant_id = $1 AND id = ANY($2::uuid[]) "
                "ORDER BY name",
                tenant_id,
                edge_ids,
            )
        return [self._row_to_edge(row) for row in rows]

    async def find_by_tenant_customer_and_ids(
        self, tenant_id: UUID, customer_id: UUID, edge_ids: list[UUID]
    ) -> list[Edge]:
        async with database_connection(self.pool) as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_COLUMNS} FROM edges
                WHERE tenant_id = $1 AND customer_id = $2 AND id = ANY($3::uuid[])
                ORDER BY name
                """,
                tenant_id,
                customer_id,
                edge_ids,
            )
        return [self._row_to_edge(row) for row in rows]

    async def find_by_query(self, tenant_id: UUID, query: EdgeSearchQuery) -> list[Edge]:
        """Follow relations from (or to) the root up to max_level hops."""
        if query.direction == RelationDirection.FROM:
            src, dst = "from", "to"
        else:
            src, dst = "to", "from"

        async with database_connection(self.pool) as conn:
            rows = await conn.fetch(
                f"""
                WITH RECURSIVE related(id, type, level) AS (
                    SELECT r.{dst}_id, r.{dst}_type, 1
                    FROM relations r
                    WHERE r.{src}_id = $1 AND r.{src}_type = $2
                      AND ($3::text IS NULL OR r.relation_type = $3)
                    UNION
                    SELECT r.{dst}_id, r.{dst}_type, related.level + 1
                    FROM relations r
                    JOIN related ON r.{src}_id = related.id AND r.{src}_type = related.type
                    WHERE related.level < $4
                      AND ($3::text IS NULL OR r.relation_type = $3)
                )
                SELECT {_COLUMNS} FROM edges
                WHERE tenant_id = $5
                  AND id IN (SELECT id FROM related WHERE type = $6)
                  AND (cardinality($7::text[]) = 0 OR type = ANY($7::text[]))
                ORDER BY name
                """,
                query.root_id,
                query.root_type.value,
                query.relation_type,
                max(query.max_level, 1),
                tenant_id,
                EntityType.EDGE.value,
                list(query.edge_types or []),
            )
        return [self._row_to_edge(row) for row in rows]

    async def find_types(self, tenant_id: UUID) -> list[EntitySubtype]:
        async with database_connection(self.pool) as conn:
            rows = await conn.fetch(
                "SELECT DISTINCT type FROM edges WHERE tenant_id = $1 ORDER BY type",
                tenant_id,
            )
        return [EntitySubtype(tenant_id, EntityType.EDGE, row["type"]) for row in rows]

    # ========== Writes ==========

    async def save(self, edge: Edge) -> Edge:
        customer_id = None if is_null_id(edge.customer_id) else edge.customer_id
        async with database_transaction(self.pool) as conn:
            if edge.id is None:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO edges
                        (id, tenant_id, customer_id, root_rule_chain_id, name, type,
                         label, routing_key, secret, additional_info)
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10::jsonb)
                    RETURNING {_COLUMNS}
                    """,
                    uuid4(),
                    edge.tenant_id,
                    customer_id,
                    edge.root_rule_chain_id,
                    edge.name,
                    edge.type,
                    edge.label,
                    edge.routing_key,
                    edge.secret,
                    dump_json(edge.additional_info),
                )
            else:
                row = await conn.fetchrow(
                    f"""
                    UPDATE edges
                    SET customer_id = $3, root_rule_chain_id = $4, name = $5, type = $6,
                        label = $7, routing_key = $8, secret = $9, additional_info = $10::jsonb
                    WHERE id = $1 AND tenant_id = $2
                    RETURNING {_COLUMNS}
                    """,
                    edge.id,
                    edge.tenant_id,
                    customer_id,
                    edge.root_rule_chain_id,
                    edge.name,
                    edge.type,
                    edge.label,
                    edge.routing_key,
                    edge.secret,
                    dump_json(edge.additional_info),
                )
                if row is None:
                    raise NotFoundError("Edge", str(edge.id))

        return self._row_to_edge(row)

    async def delete(self, tenant_id: UUID, edge_id: UUID) -> None:
        async with database_transaction(self.pool) as conn:
            result = await conn.execute(
                "DELETE FROM edges WHERE id = $1 AND tenant_id = $2", edge_id, tenant_id
            )
            if result == "DELETE 0":
                raise NotFoundError("Edge", str(edge_id))

    async def set_root_rule_chain(self, tenant_id: UUID, edge: Edge, rule_chain_id: UUID) -> Edge:
        async with database_transaction(self.pool) as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE edges SET root_rule_chain_id = $3
                WHERE id = $1 AND tenant_id = $2
                RETURNING {_COLUMNS}
                """,
                edge.id,
                tenant_id,
                rule_chain_id,
            )
            if row is None:
                raise NotFoundError("Edge", str(edge.id))
        return self._row_to_edge(row)

    # ========== Membership ==========

    async def assign_to_customer(self, tenant_id: UUID, edge_id: UUID, customer_id: UUID) -> Edge:
        async with database_transaction(self.pool) as conn:
            await self._lock_edge(conn, tenant_id, edge_id)
            found = await conn.fetchval(
                "SELECT id FROM customers WHERE id = $1 AND tenant_id = $2",
                customer_id,
                tenant_id,
            )
            if found is None:
                raise NotFoundError("Customer", str(customer_id))
            row = await conn.fetchrow(
                f"UPDATE edges SET customer_id = $2 WHERE id = $1 RETURNING {_COLUMNS}",
                edge_id,
                customer_id,
            )
        logger.debug(f"Edge {edge_id} now owned by customer {customer_id}")
        return self._row_to_edge(row)

    async def unassign_from_customer(
        self, tenant_id: UUID, edge_id: UUID, customer_id: Optional[UUID] = None
    ) -> Edge:
        async with database_transaction(self.pool) as conn:
            current = await self._lock_edge(conn, tenant_id, edge_id)
            if current is None:
                raise ConflictError(f"Edge '{edge_id}' isn't assigned to any customer")
            if customer_id is not None and current != customer_id:
                raise ConflictError(
                    f"Edge '{edge_id}' isn't assigned to customer '{customer_id}'"
                )
            row = await conn.fetchrow(
                f"UPDATE edges SET customer_id = NULL WHERE id = $1 RETURNING {_COLUMNS}",
                edge_id,
            )
        return self._row_to_edge(row)

    # ========== Helpers ==========

    async def _lock_edge(self, conn, tenant_id: UUID, edge_id: UUID) -> Optional[UUID]:
        """Lock the edge row and return its current customer id."""
        row = await conn.fetchrow(
            "SELECT customer_id FROM edges WHERE id = $1 AND tenant_id = $2 FOR UPDATE",
            edge_id,
            tenant_id,
        )
        if row is None:
            raise NotFoundError("Edge", str(edge_id))
        return row["customer_id"]

    async def _find_page(
        self, where: str, args: list, page_link: PageLink, edge_type: Optional[str]
    ) -> PageData[Edge]:
        if edge_type:
            args = args + [edge_type]
            where += f" AND type = ${len(args)}"
        pattern = search_pattern(page_link)
        if pattern is not None:
            args = args + [pattern]
            where += f" AND name ILIKE ${len(args)}"

        async with database_connection(self.pool) as conn:
            total = await conn.fetchval(f"SELECT COUNT(*) FROM edges WHERE {where}", *args)
            rows = await conn.fetch(
                f"""
                SELECT {_COLUMNS} FROM edges
                WHERE {where}
                {order_by(page_link, _SORT_COLUMNS, "name")}
                LIMIT ${len(args) + 1} OFFSET ${len(args) + 2}
                """,
                *args,
                page_link.page_size,
                page_link.offset,
            )
        return PageData.of([self._row_to_edge(row) for row in rows], total, page_link)

    def _row_to_edge(self, row) -> Edge:
        """Convert a database row to an Edge entity."""
        return Edge(
            id=row["id"],
            tenant_id=row["tenant_id"],
            customer_id=row["customer_id"],
            root_rule_chain_id=row["root_rule_chain_id"],
            name=row["name"],
            type=row["type"],
            label=row["label"],
            routing_key=row["routing_key"],
            secret=row["secret"],
            additional_info=load_json(row["additional_info"]),
            created_time=row["created_time"],
        )
