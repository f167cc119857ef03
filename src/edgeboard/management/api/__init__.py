"""HTTP API for dashboard and edge management."""

from .dashboard_router import router as dashboard_router
from .edge_router import router as edge_router

__all__ = ["dashboard_router", "edge_router"]
