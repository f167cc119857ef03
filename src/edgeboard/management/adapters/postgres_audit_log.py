"""PostgreSQL adapter for the audit log."""

import json
import logging

import asyncpg

from ...api.database import database_connection
from ..domain.entities import NULL_UUID, AuditEntry
from ..domain.ports import IAuditLog

logger = logging.getLogger(__name__)


class PostgresAuditLog(IAuditLog):
    """Appends audit entries to the audit_logs table."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def record(self, entry: AuditEntry) -> None:
        async with database_connection(self.pool) as conn:
            await conn.execute(
                """
                INSERT INTO audit_logs
                    (tenant_id, customer_id, user_id, entity_type, entity_id, entity_name,
                     action_type, action_data, success, failure_details, created_time)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8::jsonb, $9, $10, COALESCE($11, now()))
                """,
                entry.tenant_id,
                None if entry.customer_id == NULL_UUID else entry.customer_id,
                entry.user_id,
                entry.entity_type.value,
                entry.entity_id,
                entry.entity_name,
                entry.action_type.value,
                json.dumps(entry.action_data),
                entry.success,
                entry.failure_details,
                entry.created_time,
            )
        if not entry.success:
            logger.debug(f"Recorded failed {entry.action_type.value} on {entry.entity_type.value}")
