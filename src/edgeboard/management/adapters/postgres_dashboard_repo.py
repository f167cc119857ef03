"""PostgreSQL adapter for dashboard repository.

This adapter implements IDashboardRepository using asyncpg. Customer and
edge references are read through joins, so the labels on a returned
dashboard are always the current titles/names.
"""

import logging
from collections import defaultdict
from typing import Optional
from uuid import UUID, uuid4

import asyncpg

from ...api.database import database_connection, database_transaction
from ...api.exceptions import ConflictError, NotFoundError
from ..domain.entities import Dashboard, PageData, PageLink, ShortCustomerInfo, ShortEdgeInfo
from ..domain.ports import IDashboardRepository
from .paging import dump_json, load_json, order_by, search_pattern

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    "title": "title",
    "createdTime": "created_time",
    "created_time": "created_time",
}

_INFO_COLUMNS = "id, tenant_id, title, image, mobile_hide, mobile_order, created_time"


class PostgresDashboardRepository(IDashboardRepository):
    """PostgreSQL implementation of IDashboardRepository."""

    def __init__(self, pool: asyncpg.Pool):
        """Initialize with database connection pool.

        Args:
            pool: asyncpg connection pool
        """
        self.pool = pool

    # ========== Lookups ==========

    async def find_by_id(self, dashboard_id: UUID) -> Optional[Dashboard]:
        async with database_connection(self.pool) as conn:
            return await self._load(conn, dashboard_id)

    async def find_info_by_id(self, dashboard_id: UUID) -> Optional[Dashboard]:
        async with database_connection(self.pool) as conn:
            return await self._load(conn, dashboard_id, with_configuration=False)

    async def find_by_tenant(self, tenant_id: UUID, page_link: PageLink) -> PageData[Dashboard]:
        return await self._find_page(
            "tenant_id = $1",
            [tenant_id],
            page_link,
        )

    async def find_by_tenant_and_customer(
        self, tenant_id: UUID, customer_id: UUID, page_link: PageLink
    ) -> PageData[Dashboard]:
        return await self._find_page(
            "tenant_id = $1 AND id IN "
            "(SELECT dashboard_id FROM dashboard_customers WHERE customer_id = $2)",
            [tenant_id, customer_id],
            page_link,
        )

    async def find_by_tenant_and_edge(
        self, tenant_id: UUID, edge_id: UUID, page_link: PageLink
    ) -> PageData[Dashboard]:
        return await self._find_page(
            "tenant_id = $1 AND id IN "
            "(SELECT dashboard_id FROM dashboard_edges WHERE edge_id = $2)",
            [tenant_id, edge_id],
            page_link,
        )

    # ========== Writes ==========

    async def save(self, dashboard: Dashboard) -> Dashboard:
        async with database_transaction(self.pool) as conn:
            if dashboard.id is None:
                dashboard_id = uuid4()
                await conn.execute(
                    """
                    INSERT INTO dashboards
                        (id, tenant_id, title, image, mobile_hide, mobile_order, configuration)
                    VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb)
                    """,
                    dashboard_id,
                    dashboard.tenant_id,
                    dashboard.title,
                    dashboard.image,
                    dashboard.mobile_hide,
                    dashboard.mobile_order,
                    dump_json(dashboard.configuration),
                )
                logger.debug(f"Inserted dashboard {dashboard_id}")
            else:
                dashboard_id = dashboard.id
                result = await conn.execute(
                    """
                    UPDATE dashboards
                    SET title = $3, image = $4, mobile_hide = $5,
                        mobile_order = $6, configuration = $7::jsonb
                    WHERE id = $1 AND tenant_id = $2
                    """,
                    dashboard_id,
                    dashboard.tenant_id,
                    dashboard.title,
                    dashboard.image,
                    dashboard.mobile_hide,
                    dashboard.mobile_order,
                    dump_json(dashboard.configuration),
                )
                if result == "UPDATE 0":
                    raise NotFoundError("Dashboard", str(dashboard_id))

            return await self._load(conn, dashboard_id)

    async def delete(self, tenant_id: UUID, dashboard_id: UUID) -> None:
        async with database_transaction(self.pool) as conn:
            result = await conn.execute(
                "DELETE FROM dashboards WHERE id = $1 AND tenant_id = $2",
                dashboard_id,
                tenant_id,
            )
            if result == "DELETE 0":
                raise NotFoundError("Dashboard", str(dashboard_id))

    # ========== Membership ==========

    async def assign_to_customer(
        self, tenant_id: UUID, dashboard_id: UUID, customer_id: UUID
    ) -> Dashboard:
        async with database_transaction(self.pool) as conn:
            await self._lock_dashboard(conn, tenant_id, dashboard_id)
            await self._require(conn, "customers", "Customer", tenant_id, customer_id)
            inserted = await conn.fetchval(
                """
                INSERT INTO dashboard_customers (dashboard_id, customer_id)
                VALUES ($1, $2)
                ON CONFLICT DO NOTHING
                RETURNING customer_id
                """,
                dashboard_id,
                customer_id,
            )
            if inserted is None:
                raise ConflictError(
                    f"Dashboard '{dashboard_id}' is already assigned to customer '{customer_id}'"
                )
            return await self._load(conn, dashboard_id)

    async def unassign_from_customer(
        self, tenant_id: UUID, dashboard_id: UUID, customer_id: UUID
    ) -> Dashboard:
        async with database_transaction(self.pool) as conn:
            await self._lock_dashboard(conn, tenant_id, dashboard_id)
            await self._require(conn, "customers", "Customer", tenant_id, customer_id)
            result = await conn.execute(
                "DELETE FROM dashboard_customers WHERE dashboard_id = $1 AND customer_id = $2",
                dashboard_id,
                customer_id,
            )
            if result == "DELETE 0":
                raise ConflictError(
                    f"Dashboard '{dashboard_id}' isn't assigned to customer '{customer_id}'"
                )
            return await self._load(conn, dashboard_id)

    async def assign_to_edge(self, tenant_id: UUID, dashboard_id: UUID, edge_id: UUID) -> Dashboard:
        async with database_transaction(self.pool) as conn:
            await self._lock_dashboard(conn, tenant_id, dashboard_id)
            await self._require(conn, "edges", "Edge", tenant_id, edge_id)
            inserted = await conn.fetchval(
                """
                INSERT INTO dashboard_edges (dashboard_id, edge_id)
                VALUES ($1, $2)
                ON CONFLICT DO NOTHING
                RETURNING edge_id
                """,
                dashboard_id,
                edge_id,
            )
            if inserted is None:
                raise ConflictError(
                    f"Dashboard '{dashboard_id}' is already assigned to edge '{edge_id}'"
                )
            return await self._load(conn, dashboard_id)

    async def unassign_from_edge(
        self, tenant_id: UUID, dashboard_id: UUID, edge_id: UUID
    ) -> Dashboard:
        async with database_transaction(self.pool) as conn:
            await self._lock_dashboard(conn, tenant_id, dashboard_id)
            await self._require(conn, "edges", "Edge", tenant_id, edge_id)
            result = await conn.execute(
                "DELETE FROM dashboard_edges WHERE dashboard_id = $1 AND edge_id = $2",
                dashboard_id,
                edge_id,
            )
            if result == "DELETE 0":
                raise ConflictError(
                    f"Dashboard '{dashboard_id}' isn't assigned to edge '{edge_id}'"
                )
            return await self._load(conn, dashboard_id)

    # ========== Helpers ==========

    async def _lock_dashboard(self, conn, tenant_id: UUID, dashboard_id: UUID) -> None:
        found = await conn.fetchval(
            "SELECT id FROM dashboards WHERE id = $1 AND tenant_id = $2 FOR UPDATE",
            dashboard_id,
            tenant_id,
        )
        if found is None:
            raise NotFoundError("Dashboard", str(dashboard_id))

    async def _require(self, conn, table: str, label: str, tenant_id: UUID, entity_id: UUID) -> None:
        found = await conn.fetchval(
            f"SELECT id FROM {table} WHERE id = $1 AND tenant_id = $2",
            entity_id,
            tenant_id,
        )
        if found is None:
            raise NotFoundError(label, str(entity_id))

    async def _load(
        self, conn, dashboard_id: UUID, with_configuration: bool = True
    ) -> Optional[Dashboard]:
        columns = _INFO_COLUMNS + (", configuration" if with_configuration else "")
        row = await conn.fetchrow(f"SELECT {columns} FROM dashboards WHERE id = $1", dashboard_id)
        if row is None:
            return None
        customers, edges = await self._fetch_refs(conn, [dashboard_id])
        return self._row_to_dashboard(row, customers[dashboard_id], edges[dashboard_id])

    async def _find_page(
        self, where: str, args: list, page_link: PageLink
    ) -> PageData[Dashboard]:
        pattern = search_pattern(page_link)
        if pattern is not None:
            args = args + [pattern]
            where += f" AND title ILIKE ${len(args)}"

        async with database_connection(self.pool) as conn:
            total = await conn.fetchval(f"SELECT COUNT(*) FROM dashboards WHERE {where}", *args)
            rows = await conn.fetch(
                f"""
                SELECT {_INFO_COLUMNS} FROM dashboards
                WHERE {where}
                {order_by(page_link, _SORT_COLUMNS, "title")}
                LIMIT ${len(args) + 1} OFFSET ${len(args) + 2}
                """,
                *args,
                page_link.page_size,
                page_link.offset,
            )
            ids = [row["id"] for row in rows]
            customers, edges = await self._fetch_refs(conn, ids)

        data = [self._row_to_dashboard(row, customers[row["id"]], edges[row["id"]]) for row in rows]
        return PageData.of(data, total, page_link)

    async def _fetch_refs(self, conn, dashboard_ids: list[UUID]):
        customers: dict[UUID, list[ShortCustomerInfo]] = defaultdict(list)
        edges: dict[UUID, list[ShortEdgeInfo]] = defaultdict(list)
        if not dashboard_ids:
            return customers, edges

        for row in await conn.fetch(
            """
            SELECT dc.dashboard_id, c.id, c.title, c.is_public
            FROM dashboard_customers dc
            JOIN customers c ON c.id = dc.customer_id
            WHERE dc.dashboard_id = ANY($1::uuid[])
            """,
            dashboard_ids,
        ):
            customers[row["dashboard_id"]].append(
                ShortCustomerInfo(customer_id=row["id"], title=row["title"], is_public=row["is_public"])
            )

        for row in await conn.fetch(
            """
            SELECT de.dashboard_id, e.id, e.name
            FROM dashboard_edges de
            JOIN edges e ON e.id = de.edge_id
            WHERE de.dashboard_id = ANY($1::uuid[])
            """,
            dashboard_ids,
        ):
            edges[row["dashboard_id"]].append(ShortEdgeInfo(edge_id=row["id"], title=row["name"]))

        return customers, edges

    def _row_to_dashboard(self, row, customers, edges) -> Dashboard:
        """Convert a database row to a Dashboard entity."""
        return Dashboard(
            id=row["id"],
            tenant_id=row["tenant_id"],
            title=row["title"],
            image=row["image"],
            mobile_hide=row["mobile_hide"],
            mobile_order=row["mobile_order"],
            configuration=load_json(row.get("configuration")),
            assigned_customers=frozenset(customers),
            assigned_edges=frozenset(edges),
            created_time=row["created_time"],
        )
