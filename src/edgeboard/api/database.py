#!/usr/bin/env python3
"""Database utilities for the Edgeboard management API.

This module provides:
    - Connection and transaction context managers over an asyncpg pool
    - Connection pool creation and shutdown
    - Translation of driver errors into the Edgeboard exception hierarchy

Example:
    async with database_transaction(pool) as conn:
        await conn.execute("INSERT INTO dashboard_customers ...")
        await conn.execute("UPDATE dashboards ...")
        # Automatic commit on success, rollback on exception

Domain errors raised inside either block (NotFoundError, ConflictError, ...)
propagate unchanged; asyncpg errors become DatabaseError subtypes.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import asyncpg
from asyncpg import exceptions as pg_errors

from .error_sanitizer import sanitize_error_message
from .exceptions import (
    ConnectionPoolError,
    DatabaseError,
    EdgeboardError,
    IntegrityError,
    TransactionError,
)

logger = logging.getLogger(__name__)

ACQUIRE_TIMEOUT_SECONDS = 30.0

# asyncpg error class -> (label, constraint kind)
_CONSTRAINT_VIOLATIONS = {
    pg_errors.UniqueViolationError: ("Duplicate entry", "unique"),
    pg_errors.ForeignKeyViolationError: ("Foreign key violation", "foreign_key"),
    pg_errors.NotNullViolationError: ("Not null violation", "not_null"),
}


async def _acquire(pool):
    if pool is None:
        raise ConnectionPoolError("Database connection pool is not initialized")
    try:
        return await asyncio.wait_for(pool.acquire(), timeout=ACQUIRE_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        raise ConnectionPoolError(
            "Timeout acquiring database connection",
            details={"timeout_seconds": ACQUIRE_TIMEOUT_SECONDS},
        )
    except (OSError, asyncpg.InterfaceError, asyncpg.PostgresError) as e:
        raise ConnectionPoolError(f"Failed to acquire database connection: {e}", cause=e)


@asynccontextmanager
async def database_transaction(
    pool,
    isolation: str = "read_committed",
    readonly: bool = False,
) -> AsyncIterator[Any]:
    """Run the block inside a transaction on a pooled connection.

    Args:
        pool: asyncpg connection pool
        isolation: Transaction isolation level
        readonly: If True, transaction is read-only

    Yields:
        Database connection within transaction
    """
    conn = await _acquire(pool)
    try:
        transaction = conn.transaction(isolation=isolation, readonly=readonly)
        try:
            await transaction.start()
        except asyncpg.PostgresError as e:
            raise TransactionError(f"Failed to start transaction: {e}", cause=e)

        try:
            yield conn
        except Exception as e:
            try:
                await transaction.rollback()
            except (asyncpg.PostgresError, asyncpg.InterfaceError) as rollback_error:
                logger.error(f"Rollback failed: {rollback_error}")
            raise convert_db_exception(e)

        try:
            await transaction.commit()
        except Exception as e:
            raise convert_db_exception(e)
    finally:
        await pool.release(conn)


@asynccontextmanager
async def database_connection(pool) -> AsyncIterator[Any]:
    """A pooled connection without an explicit transaction.

    Example:
        async with database_connection(pool) as conn:
            rows = await conn.fetch("SELECT * FROM edges LIMIT 10")
    """
    conn = await _acquire(pool)
    try:
        yield conn
    except Exception as e:
        raise convert_db_exception(e)
    finally:
        await pool.release(conn)


def convert_db_exception(e: Exception) -> Exception:
    """Map a driver exception to the matching Edgeboard error.

    Anything that is neither an Edgeboard error nor raised by the driver
    is returned unchanged.
    """
    if isinstance(e, EdgeboardError):
        return e

    for error_class, (label, constraint) in _CONSTRAINT_VIOLATIONS.items():
        if isinstance(e, error_class):
            return IntegrityError(f"{label}: {e}", constraint=constraint, cause=e)

    if isinstance(e, pg_errors.DeadlockDetectedError):
        return TransactionError(f"Deadlock detected: {e}", operation="transaction", cause=e)

    if isinstance(e, (pg_errors.QueryCanceledError, asyncio.TimeoutError)):
        return TransactionError(f"Database operation timed out: {e}", operation="query", cause=e)

    if isinstance(e, (asyncpg.PostgresError, asyncpg.InterfaceError)):
        return DatabaseError(f"Database operation failed: {e}", cause=e)

    return e


# ============================================
# Connection Pool Helpers
# ============================================

async def create_pool(
    database_url: str,
    min_size: int = 2,
    max_size: int = 10,
    command_timeout: float = 60.0,
    **kwargs,
):
    """Create a database connection pool.

    Raises:
        ConnectionPoolError: If pool creation fails
    """
    try:
        pool = await asyncpg.create_pool(
            database_url,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
            **kwargs,
        )
    except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        raise ConnectionPoolError(f"Failed to create database pool: {e}", cause=e)

    logger.info(f"Database pool created (min={min_size}, max={max_size})")
    return pool


async def close_pool(pool, timeout: float = 10.0):
    """Close the pool, terminating it if closing hangs."""
    if pool is None:
        return

    try:
        await asyncio.wait_for(pool.close(), timeout=timeout)
        logger.info("Database pool closed")
    except asyncio.TimeoutError:
        logger.warning(f"Pool close timed out after {timeout}s, terminating")
        pool.terminate()


async def check_database_health(pool) -> dict[str, Any]:
    """Probe the pool with a trivial query and report its usage."""
    if pool is None:
        return {"healthy": False, "error": "Pool not initialized"}

    try:
        async with database_connection(pool) as conn:
            result = await conn.fetchval("SELECT 1")
    except EdgeboardError as e:
        logger.warning(f"Database health check failed: {e}")
        return {"healthy": False, "error": sanitize_error_message(e.message)}

    pool_size = pool.get_size()
    pool_free = pool.get_idle_size()
    return {
        "healthy": result == 1,
        "pool_size": pool_size,
        "pool_free": pool_free,
        "pool_used": pool_size - pool_free,
    }


__all__ = [
    "database_transaction",
    "database_connection",
    "convert_db_exception",
    "create_pool",
    "close_pool",
    "check_database_health",
]
