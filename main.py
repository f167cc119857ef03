#!/usr/bin/env python3
"""Edgeboard Management CLI.

Runs the dashboard and edge management API, or prepares its database.

Environment Variables:
    - DATABASE_URL: PostgreSQL connection string (required)
    - DB_POOL_MIN_SIZE / DB_POOL_MAX_SIZE: Connection pool bounds
    - PORT: Default listen port for `serve`
    - JWT_* / REQUIRE_AUTH: Token validation (see src/edgeboard/api/auth.py)

Example Usage:
    $ python main.py init-db                      # Create tables and indexes
    $ python main.py serve                        # Run the API on 0.0.0.0:8000
    $ python main.py serve --port 9000 --reload   # Development server
"""
import os
import sys
import asyncio
import argparse
from dotenv import load_dotenv

load_dotenv()

# Local imports
from src.edgeboard.api.database import close_pool, create_pool
from src.edgeboard.api.exceptions import EdgeboardError
from src.edgeboard.management.adapters import ensure_schema


async def init_db() -> int:
    """Create the schema in the configured database.

    Returns:
        Process exit code
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("DATABASE_URL is not set", file=sys.stderr)
        return 1

    try:
        pool = await create_pool(database_url, min_size=1, max_size=2)
    except EdgeboardError as e:
        print(f"Could not connect to database: {e.message}", file=sys.stderr)
        return 1

    try:
        await ensure_schema(pool)
    finally:
        await close_pool(pool)

    print("Database schema is up to date")
    return 0


def serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "src.edgeboard.management.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Dashboard and edge management API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py init-db                  # Create the database schema
  python main.py serve                    # Run the API server
  python main.py serve --reload           # Run with auto-reload
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Interface to bind (default: 0.0.0.0)"
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8000")),
        help="Port to listen on (default: $PORT or 8000)"
    )
    serve_parser.add_argument(
        "--reload",
        action="store_true",
        help="Reload on code changes (development only)"
    )

    subparsers.add_parser("init-db", help="Create tables and indexes")

    args = parser.parse_args()

    if args.command == "init-db":
        sys.exit(asyncio.run(init_db()))
    sys.exit(serve(args))


if __name__ == "__main__":
    main()
