#!/usr/bin/env python3
"""Exception Hierarchy for the Edgeboard management API.

This module provides a structured exception hierarchy for handling errors
across the dashboard and edge management service, including validation,
permission, persistence and configuration errors.

Design Principles:
    - All exceptions inherit from EdgeboardError base class
    - Exceptions preserve context (original error, timestamps, details)
    - Each exception carries the HTTP status it maps to at the API boundary

Exception Hierarchy:
    EdgeboardError (base)
    ├── ConfigurationError (unrecoverable - fix config)
    ├── PermissionDeniedError (403)
    ├── APIError
    │   ├── ValidationError (400)
    │   │   └── IncorrectParameterError
    │   ├── NotFoundError (404)
    │   └── ConflictError (409)
    └── DatabaseError (500)
        ├── ConnectionPoolError
        ├── TransactionError
        └── IntegrityError (409)
"""
from datetime import datetime, timezone
from typing import Any, Optional

# ============================================
# Base Exception
# ============================================

class EdgeboardError(Exception):
    """Base exception for all Edgeboard errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "NOT_FOUND")
        details: Additional context as a dictionary
        timestamp: When the error occurred
        cause: The original exception that caused this error
        recoverable: Whether this error might be recoverable with retry
        status_code: HTTP status used when the error reaches a client
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        self.cause = cause
        self.recoverable = recoverable

        if cause:
            self.__cause__ = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.insert(0, f"[{self.code}]")
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "cause": str(self.cause) if self.cause else None,
        }


# ============================================
# Configuration Errors (Unrecoverable)
# ============================================

class ConfigurationError(EdgeboardError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list[str]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


# ============================================
# Security Errors
# ============================================

class PermissionDeniedError(EdgeboardError):
    """Raised when the current user may not perform an operation.

    Evaluated by use cases before any store call is made.
    """

    status_code = 403

    def __init__(
        self,
        message: str = "You don't have permission to perform this operation!",
        resource: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if resource:
            details["resource"] = resource
        if operation:
            details["operation"] = operation
        super().__init__(
            message,
            code="PERMISSION_DENIED",
            details=details,
            recoverable=False,
            **kwargs,
        )


ForbiddenError = PermissionDeniedError


# ============================================
# API Errors
# ============================================

class APIError(EdgeboardError):
    """Base class for errors raised while serving an API operation."""

    def __init__(self, message: str, status_code: int = 500, **kwargs):
        kwargs.setdefault("code", f"API_ERROR_{status_code}")
        super().__init__(message, **kwargs)
        self.status_code = status_code


class ValidationError(APIError):
    """Raised when a parameter is missing or malformed (HTTP 400)."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        **kwargs,
    ):
        kwargs.setdefault("code", "VALIDATION_ERROR")
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field

        super().__init__(
            message,
            status_code=400,
            details=details,
            recoverable=False,
            **kwargs,
        )
        self.field = field


class IncorrectParameterError(ValidationError):
    """Raised when an entity is not in the state an operation requires."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="INCORRECT_PARAMETER", **kwargs)


class NotFoundError(APIError):
    """Raised when requested resource is not found (HTTP 404)."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        **kwargs,
    ):
        message = f"{resource_type} not found"
        if resource_id:
            message = f"{resource_type} '{resource_id}' not found"

        details = kwargs.pop("details", {})
        details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id

        super().__init__(
            message,
            status_code=404,
            code="NOT_FOUND",
            details=details,
            recoverable=False,
            **kwargs,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConflictError(APIError):
    """Raised when an entity's current state disagrees with the request (HTTP 409).

    Stores raise this when assigning an already-assigned peer or
    unassigning a peer that is not assigned.
    """

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            status_code=409,
            code="CONFLICT",
            recoverable=False,
            **kwargs,
        )


# ============================================
# Database Errors
# ============================================

class DatabaseError(EdgeboardError):
    """Base class for database-related errors."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class ConnectionPoolError(DatabaseError):
    """Raised when database connection pool is exhausted or unavailable."""

    status_code = 503

    def __init__(
        self,
        message: str = "Database connection pool error",
        **kwargs,
    ):
        super().__init__(message, code="CONNECTION_POOL_ERROR", **kwargs)


class TransactionError(DatabaseError):
    """Raised when database transaction fails."""

    def __init__(
        self,
        message: str = "Database transaction failed",
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        super().__init__(
            message,
            code="TRANSACTION_ERROR",
            details=details,
            **kwargs,
        )


class IntegrityError(DatabaseError):
    """Raised when database integrity constraint is violated."""

    status_code = 409

    def __init__(
        self,
        message: str = "Database integrity error",
        constraint: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if constraint:
            details["constraint"] = constraint
        super().__init__(
            message,
            code="INTEGRITY_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


__all__ = [
    "EdgeboardError",
    "ConfigurationError",
    "PermissionDeniedError",
    "ForbiddenError",
    "APIError",
    "ValidationError",
    "IncorrectParameterError",
    "NotFoundError",
    "ConflictError",
    "DatabaseError",
    "ConnectionPoolError",
    "TransactionError",
    "IntegrityError",
]
