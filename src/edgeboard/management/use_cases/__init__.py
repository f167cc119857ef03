"""Use cases for dashboard and edge management.

Each use case is bound to one authenticated user and orchestrates
permission checks, repository calls and audit records.
"""

from .dashboard_assignments import DashboardAssignmentsUseCase
from .edge_assignments import EdgeAssignmentsUseCase
from .manage_dashboards import ManageDashboardsUseCase
from .manage_edges import ManageEdgesUseCase

__all__ = [
    "DashboardAssignmentsUseCase",
    "EdgeAssignmentsUseCase",
    "ManageDashboardsUseCase",
    "ManageEdgesUseCase",
]
