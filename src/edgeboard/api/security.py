"""Security context shared by authentication and the feature packages.

The token layer (auth.py) builds a SecurityUser; use cases and permission
checks consume it. Nothing here depends on a feature package.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import UUID

# Sentinel id used for "no customer" / "no entity" references
NULL_UUID = UUID("13814000-1dd2-11b2-8080-808080808080")


def is_null_id(value: Optional[UUID]) -> bool:
    """True when an id reference is absent or the sentinel."""
    return value is None or value == NULL_UUID


class Authority(str, Enum):
    """Roles a user can hold."""

    SYS_ADMIN = "SYS_ADMIN"
    TENANT_ADMIN = "TENANT_ADMIN"
    CUSTOMER_USER = "CUSTOMER_USER"


@dataclass
class SecurityUser:
    """The authenticated caller.

    Attributes:
        user_id: Subject of the access token
        tenant_id: Tenant the user belongs to (NULL_UUID for system admins)
        authority: Role of the user
        customer_id: Customer of a customer user (NULL_UUID otherwise)
    """

    user_id: str
    tenant_id: UUID
    authority: Authority
    customer_id: UUID = NULL_UUID

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("user_id is required")
        if self.customer_id is None:
            self.customer_id = NULL_UUID

    @property
    def is_customer_user(self) -> bool:
        return self.authority == Authority.CUSTOMER_USER and not is_null_id(self.customer_id)
