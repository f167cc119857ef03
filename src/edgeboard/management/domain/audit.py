"""Entity action logging on top of the audit sink port.

Audit writes are fire-and-forget: a failing sink is logged and never
changes the outcome of the operation being audited.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from .entities import NULL_UUID, ActionType, AuditEntry, EntityType, SecurityUser
from .ports import IAuditLog

logger = logging.getLogger(__name__)


def _entity_name(entity: Any) -> Optional[str]:
    if entity is None:
        return None
    return getattr(entity, "title", None) or getattr(entity, "name", None)


class EntityActionLogger:
    """Records audit entries for actions performed by one user."""

    def __init__(self, audit_log: IAuditLog, user: SecurityUser):
        self.audit_log = audit_log
        self.user = user

    async def log_entity_action(
        self,
        entity_type: EntityType,
        entity_id: Optional[UUID],
        entity: Any,
        customer_id: Optional[UUID],
        action_type: ActionType,
        error: Optional[BaseException] = None,
        *additional_info: Any,
    ) -> None:
        """Record one action.

        Args:
            entity_type: Kind of the entity acted upon
            entity_id: Id of the entity (NULL_UUID/None when unknown)
            entity: Snapshot of the entity, if available
            customer_id: Customer the action relates to (defaults to the user's)
            action_type: What was done
            error: The failure, or None on success
            *additional_info: Context values stored in order as strings
        """
        entry = AuditEntry(
            tenant_id=self.user.tenant_id,
            customer_id=customer_id or self.user.customer_id or NULL_UUID,
            entity_type=entity_type,
            entity_id=entity_id or NULL_UUID,
            entity_name=_entity_name(entity),
            user_id=self.user.user_id,
            action_type=action_type,
            action_data=[str(v) for v in additional_info if v is not None],
            success=error is None,
            failure_details=str(error) if error is not None else None,
            created_time=datetime.now(timezone.utc),
        )

        try:
            await self.audit_log.record(entry)
        except Exception as e:
            logger.error(
                f"Failed to record audit entry {action_type.value} "
                f"for {entity_type.value} {entry.entity_id}: {e}"
            )

    async def log_failure(
        self,
        entity_type: EntityType,
        action_type: ActionType,
        error: BaseException,
        *additional_info: Any,
    ) -> None:
        """Record a failed action against an unknown entity.

        Only the caller-supplied identifiers are kept as context.
        """
        await self.log_entity_action(
            entity_type, NULL_UUID, None, None, action_type, error, *additional_info
        )
