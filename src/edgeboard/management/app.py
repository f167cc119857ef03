"""FastAPI application for dashboard and edge management.

This is the main entry point for the management API server.
"""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# JWT settings are read at import time
load_dotenv()

from ..api.auth import JWTConfig
from ..api.database import check_database_health
from ..api.error_handlers import register_exception_handlers
from .adapters import ensure_schema
from .api.dashboard_router import router as dashboard_router
from .api.dependencies import close_db_pool, get_db_pool, init_db_pool
from .api.edge_router import router as edge_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Edgeboard Management API...")
    if not JWTConfig.REQUIRE_AUTH:
        logger.warning("REQUIRE_AUTH=false - authentication disabled, never use this in production")

    await init_db_pool()
    logger.info("Database pool initialized")

    if os.getenv("AUTO_INIT_SCHEMA", "false").lower() == "true":
        await ensure_schema(get_db_pool())

    yield

    logger.info("Shutting down Edgeboard Management API...")
    await close_db_pool()
    logger.info("Database pool closed")


app = FastAPI(
    title="Edgeboard Management API",
    description="""
    API for managing dashboards and edges of an IoT platform.

    - **Dashboards**: create, update, delete and list dashboards
    - **Edges**: create, update, delete and look up edge gateways
    - **Assignments**: share dashboards with customers and edges, hand edges to customers
    """,
    version=VERSION,
    lifespan=lifespan,
)

cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)

register_exception_handlers(app)

app.include_router(dashboard_router)
app.include_router(edge_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Edgeboard Management API",
        "version": VERSION,
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health")
async def health():
    """Global health check, including the database pool."""
    try:
        pool = get_db_pool()
    except RuntimeError:
        pool = None
    database = await check_database_health(pool)
    return {
        "status": "healthy" if database["healthy"] else "degraded",
        "database": database,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.edgeboard.management.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
