"""Shared API infrastructure: errors, authentication and database helpers."""

from .exceptions import (
    APIError,
    ConflictError,
    DatabaseError,
    EdgeboardError,
    IncorrectParameterError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

__all__ = [
    "APIError",
    "ConflictError",
    "DatabaseError",
    "EdgeboardError",
    "IncorrectParameterError",
    "NotFoundError",
    "PermissionDeniedError",
    "ValidationError",
]
