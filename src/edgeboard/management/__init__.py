"""Dashboard and edge management.

Layout:
- domain: entities, ports, set reconciliation, access control, audit
- use_cases: operations bound to one authenticated user
- adapters: asyncpg repositories and the audit log
- api: FastAPI routers, schemas and dependencies
"""
