"""PostgreSQL schema for dashboard and edge management.

All statements are idempotent; `ensure_schema` can run on every start.
"""

import logging

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    """CREATE TABLE IF NOT EXISTS tenants (
    id UUID PRIMARY KEY,
    title TEXT NOT NULL,
    created_time TIMESTAMPTZ NOT NULL DEFAULT now()
)""",
    """CREATE TABLE IF NOT EXISTS customers (
    id UUID PRIMARY KEY,
    tenant_id UUID NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    is_public BOOLEAN NOT NULL DEFAULT FALSE,
    created_time TIMESTAMPTZ NOT NULL DEFAULT now()
)""",
    """CREATE UNIQUE INDEX IF NOT EXISTS idx_customers_public
    ON customers (tenant_id) WHERE is_public""",
    """CREATE TABLE IF NOT EXISTS rule_chains (
    id UUID PRIMARY KEY,
    tenant_id UUID NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    root BOOLEAN NOT NULL DEFAULT FALSE
)""",
    """CREATE TABLE IF NOT EXISTS edges (
    id UUID PRIMARY KEY,
    tenant_id UUID NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
    customer_id UUID REFERENCES customers(id) ON DELETE SET NULL,
    root_rule_chain_id UUID REFERENCES rule_chains(id) ON DELETE SET NULL,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    label TEXT,
    routing_key TEXT,
    secret TEXT,
    additional_info JSONB,
    created_time TIMESTAMPTZ NOT NULL DEFAULT now(),
    UNIQUE (tenant_id, name)
)""",
    "CREATE INDEX IF NOT EXISTS idx_edges_tenant_customer ON edges (tenant_id, customer_id)",
    """CREATE TABLE IF NOT EXISTS edge_rule_chains (
    edge_id UUID NOT NULL REFERENCES edges(id) ON DELETE CASCADE,
    rule_chain_id UUID NOT NULL REFERENCES rule_chains(id) ON DELETE CASCADE,
    PRIMARY KEY (edge_id, rule_chain_id)
)""",
    """CREATE TABLE IF NOT EXISTS dashboards (
    id UUID PRIMARY KEY,
    tenant_id UUID NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    image TEXT,
    mobile_hide BOOLEAN NOT NULL DEFAULT FALSE,
    mobile_order INTEGER,
    configuration JSONB,
    created_time TIMESTAMPTZ NOT NULL DEFAULT now()
)""",
    """CREATE TABLE IF NOT EXISTS dashboard_customers (
    dashboard_id UUID NOT NULL REFERENCES dashboards(id) ON DELETE CASCADE,
    customer_id UUID NOT NULL REFERENCES customers(id) ON DELETE CASCADE,
    PRIMARY KEY (dashboard_id, customer_id)
)""",
    """CREATE TABLE IF NOT EXISTS dashboard_edges (
    dashboard_id UUID NOT NULL REFERENCES dashboards(id) ON DELETE CASCADE,
    edge_id UUID NOT NULL REFERENCES edges(id) ON DELETE CASCADE,
    PRIMARY KEY (dashboard_id, edge_id)
)""",
    """CREATE TABLE IF NOT EXISTS relations (
    from_id UUID NOT NULL,
    from_type TEXT NOT NULL,
    to_id UUID NOT NULL,
    to_type TEXT NOT NULL,
    relation_type TEXT NOT NULL,
    PRIMARY KEY (from_id, from_type, to_id, to_type, relation_type)
)""",
    "CREATE INDEX IF NOT EXISTS idx_relations_to ON relations (to_id, to_type)",
    """CREATE TABLE IF NOT EXISTS audit_logs (
    id BIGSERIAL PRIMARY KEY,
    tenant_id UUID NOT NULL,
    customer_id UUID,
    user_id TEXT NOT NULL,
    entity_type TEXT NOT NULL,
    entity_id UUID,
    entity_name TEXT,
    action_type TEXT NOT NULL,
    action_data JSONB NOT NULL DEFAULT '[]'::jsonb,
    success BOOLEAN NOT NULL,
    failure_details TEXT,
    created_time TIMESTAMPTZ NOT NULL DEFAULT now()
)""",
    "CREATE INDEX IF NOT EXISTS idx_audit_logs_entity ON audit_logs (entity_type, entity_id)",
]


async def ensure_schema(pool) -> None:
    """Create any missing tables and indexes."""
    async with pool.acquire() as conn:
        async with conn.transaction():
            for statement in SCHEMA_STATEMENTS:
                await conn.execute(statement)
    logger.info(f"Schema ensured ({len(SCHEMA_STATEMENTS)} statements)")
