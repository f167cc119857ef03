"""Role based access control for dashboards, edges and their peers.

Rules by authority:
    SYS_ADMIN      read tenants and dashboards, nothing else
    TENANT_ADMIN   everything on entities of the own tenant
    CUSTOMER_USER  read only; dashboards assigned to the own customer,
                   edges owned by the own customer, the own customer
"""

import logging
from typing import Any, Optional
from uuid import UUID

from ...api.exceptions import PermissionDeniedError
from .entities import Authority, Customer, Dashboard, Edge, Operation, Resource, SecurityUser

logger = logging.getLogger(__name__)

_SYS_ADMIN_ALLOWED = {
    (Resource.TENANT, Operation.READ),
    (Resource.DASHBOARD, Operation.READ),
}


class AccessControlService:
    """Decides whether a user may perform an operation on an entity."""

    def check_permission(
        self,
        user: SecurityUser,
        resource: Resource,
        operation: Operation,
        entity_id: Optional[UUID] = None,
        entity: Any = None,
    ) -> None:
        """Raise PermissionDeniedError unless the operation is allowed.

        Args:
            user: The caller
            resource: Resource kind being accessed
            operation: Operation requested
            entity_id: Id of the entity (None for entities being created)
            entity: The entity itself, if loaded
        """
        if not self.has_permission(user, resource, operation, entity_id, entity):
            logger.info(
                f"Denied {operation.value} on {resource.value} {entity_id} "
                f"for {user.authority.value} {user.user_id}"
            )
            raise PermissionDeniedError(resource=resource.value, operation=operation.value)

    def has_permission(
        self,
        user: SecurityUser,
        resource: Resource,
        operation: Operation,
        entity_id: Optional[UUID] = None,
        entity: Any = None,
    ) -> bool:
        if user.authority == Authority.SYS_ADMIN:
            return (resource, operation) in _SYS_ADMIN_ALLOWED

        if resource == Resource.TENANT:
            return operation == Operation.READ and entity_id == user.tenant_id

        if entity is not None and getattr(entity, "tenant_id", None) != user.tenant_id:
            return False

        if user.authority == Authority.TENANT_ADMIN:
            # Creating requires the new entity to be stamped with the own tenant
            return entity is not None

        if user.authority == Authority.CUSTOMER_USER:
            if operation != Operation.READ or entity is None:
                return False
            return self._customer_can_read(user, resource, entity)

        return False

    @staticmethod
    def _customer_can_read(user: SecurityUser, resource: Resource, entity: Any) -> bool:
        if resource == Resource.DASHBOARD and isinstance(entity, Dashboard):
            return entity.is_assigned_to_customer(user.customer_id)
        if resource == Resource.EDGE and isinstance(entity, Edge):
            return entity.customer_id == user.customer_id
        if resource == Resource.CUSTOMER and isinstance(entity, Customer):
            return entity.id == user.customer_id
        return False
