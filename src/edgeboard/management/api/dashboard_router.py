"""FastAPI router for dashboard endpoints."""

import logging
import os
import time
from typing import Optional

from fastapi import APIRouter, Body, Depends, Response

from ...api.auth import require_authority
from ..domain.entities import Authority, PageLink
from ..use_cases import DashboardAssignmentsUseCase, ManageDashboardsUseCase
from .dependencies import get_dashboard_assignments, get_manage_dashboards, get_page_link
from .schemas import DashboardDTO, DashboardInfoDTO, DashboardRequest, PageDataDTO

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Dashboards"])

any_user = require_authority(Authority.SYS_ADMIN, Authority.TENANT_ADMIN, Authority.CUSTOMER_USER)
tenant_or_customer = require_authority(Authority.TENANT_ADMIN, Authority.CUSTOMER_USER)
tenant_admin = require_authority(Authority.TENANT_ADMIN)
sys_admin = require_authority(Authority.SYS_ADMIN)

PeerIds = Optional[list[str]]


# ========== Dashboard management ==========


@router.get("/dashboard/serverTime", response_model=int)
async def get_server_time():
    """Current server time in milliseconds since the epoch."""
    return int(time.time() * 1000)


@router.get("/dashboard/maxDatapointsLimit", response_model=int)
async def get_max_datapoints_limit():
    """Maximum number of datapoints a dashboard widget may request."""
    return int(os.getenv("MAX_DATAPOINTS_LIMIT", "50000"))


@router.get("/dashboard/info/{dashboard_id}", response_model=DashboardInfoDTO)
async def get_dashboard_info(
    dashboard_id: str,
    _user=Depends(any_user),
    use_case: ManageDashboardsUseCase = Depends(get_manage_dashboards),
):
    dashboard = await use_case.get_dashboard_info(dashboard_id)
    return DashboardInfoDTO.from_entity(dashboard)


@router.get("/dashboard/{dashboard_id}", response_model=DashboardDTO)
async def get_dashboard(
    dashboard_id: str,
    _user=Depends(tenant_or_customer),
    use_case: ManageDashboardsUseCase = Depends(get_manage_dashboards),
):
    dashboard = await use_case.get_dashboard(dashboard_id)
    return DashboardDTO.from_entity(dashboard)


@router.post("/dashboard", response_model=DashboardDTO)
async def save_dashboard(
    request: DashboardRequest,
    _user=Depends(tenant_admin),
    use_case: ManageDashboardsUseCase = Depends(get_manage_dashboards),
):
    """Create a dashboard, or update it when the body carries an id."""
    dashboard = await use_case.save_dashboard(request.to_entity())
    return DashboardDTO.from_entity(dashboard)


@router.delete("/dashboard/{dashboard_id}")
async def delete_dashboard(
    dashboard_id: str,
    _user=Depends(tenant_admin),
    use_case: ManageDashboardsUseCase = Depends(get_manage_dashboards),
):
    await use_case.delete_dashboard(dashboard_id)
    return Response(status_code=200)


@router.get("/tenant/{tenant_id}/dashboards", response_model=PageDataDTO[DashboardInfoDTO])
async def get_tenant_dashboards_by_id(
    tenant_id: str,
    page_link: PageLink = Depends(get_page_link),
    _user=Depends(sys_admin),
    use_case: ManageDashboardsUseCase = Depends(get_manage_dashboards),
):
    page = await use_case.get_tenant_dashboards(tenant_id, page_link)
    return PageDataDTO[DashboardInfoDTO].from_page(page, DashboardInfoDTO.from_entity)


@router.get("/tenant/dashboards", response_model=PageDataDTO[DashboardInfoDTO])
async def get_tenant_dashboards(
    page_link: PageLink = Depends(get_page_link),
    _user=Depends(tenant_admin),
    use_case: ManageDashboardsUseCase = Depends(get_manage_dashboards),
):
    page = await use_case.get_current_tenant_dashboards(page_link)
    return PageDataDTO[DashboardInfoDTO].from_page(page, DashboardInfoDTO.from_entity)


@router.get("/customer/{customer_id}/dashboards", response_model=PageDataDTO[DashboardInfoDTO])
async def get_customer_dashboards(
    customer_id: str,
    page_link: PageLink = Depends(get_page_link),
    _user=Depends(tenant_or_customer),
    use_case: ManageDashboardsUseCase = Depends(get_manage_dashboards),
):
    page = await use_case.get_customer_dashboards(customer_id, page_link)
    return PageDataDTO[DashboardInfoDTO].from_page(page, DashboardInfoDTO.from_entity)


@router.get("/edge/{edge_id}/dashboards", response_model=PageDataDTO[DashboardInfoDTO])
async def get_edge_dashboards(
    edge_id: str,
    page_link: PageLink = Depends(get_page_link),
    _user=Depends(tenant_admin),
    use_case: ManageDashboardsUseCase = Depends(get_manage_dashboards),
):
    page = await use_case.get_edge_dashboards(edge_id, page_link)
    return PageDataDTO[DashboardInfoDTO].from_page(page, DashboardInfoDTO.from_entity)


# ========== Customer assignments ==========


@router.post("/customer/public/dashboard/{dashboard_id}", response_model=DashboardDTO)
async def assign_dashboard_to_public_customer(
    dashboard_id: str,
    _user=Depends(tenant_admin),
    use_case: DashboardAssignmentsUseCase = Depends(get_dashboard_assignments),
):
    dashboard = await use_case.assign_dashboard_to_public_customer(dashboard_id)
    return DashboardDTO.from_entity(dashboard)


@router.delete("/customer/public/dashboard/{dashboard_id}", response_model=DashboardDTO)
async def unassign_dashboard_from_public_customer(
    dashboard_id: str,
    _user=Depends(tenant_admin),
    use_case: DashboardAssignmentsUseCase = Depends(get_dashboard_assignments),
):
    dashboard = await use_case.unassign_dashboard_from_public_customer(dashboard_id)
    return DashboardDTO.from_entity(dashboard)


@router.post("/customer/{customer_id}/dashboard/{dashboard_id}", response_model=DashboardDTO)
async def assign_dashboard_to_customer(
    customer_id: str,
    dashboard_id: str,
    _user=Depends(tenant_admin),
    use_case: DashboardAssignmentsUseCase = Depends(get_dashboard_assignments),
):
    dashboard = await use_case.assign_dashboard_to_customer(customer_id, dashboard_id)
    return DashboardDTO.from_entity(dashboard)


@router.delete("/customer/{customer_id}/dashboard/{dashboard_id}", response_model=DashboardDTO)
async def unassign_dashboard_from_customer(
    customer_id: str,
    dashboard_id: str,
    _user=Depends(tenant_admin),
    use_case: DashboardAssignmentsUseCase = Depends(get_dashboard_assignments),
):
    dashboard = await use_case.unassign_dashboard_from_customer(customer_id, dashboard_id)
    return DashboardDTO.from_entity(dashboard)


@router.post("/dashboard/{dashboard_id}/customers", response_model=DashboardDTO)
async def update_dashboard_customers(
    dashboard_id: str,
    customer_ids: PeerIds = Body(None),
    _user=Depends(tenant_admin),
    use_case: DashboardAssignmentsUseCase = Depends(get_dashboard_assignments),
):
    """Replace the dashboard's customers with the given list."""
    dashboard = await use_case.update_dashboard_customers(dashboard_id, customer_ids)
    return DashboardDTO.from_entity(dashboard)


@router.post("/dashboard/{dashboard_id}/customers/add", response_model=DashboardDTO)
async def add_dashboard_customers(
    dashboard_id: str,
    customer_ids: PeerIds = Body(None),
    _user=Depends(tenant_admin),
    use_case: DashboardAssignmentsUseCase = Depends(get_dashboard_assignments),
):
    dashboard = await use_case.add_dashboard_customers(dashboard_id, customer_ids)
    return DashboardDTO.from_entity(dashboard)


@router.post("/dashboard/{dashboard_id}/customers/remove", response_model=DashboardDTO)
async def remove_dashboard_customers(
    dashboard_id: str,
    customer_ids: PeerIds = Body(None),
    _user=Depends(tenant_admin),
    use_case: DashboardAssignmentsUseCase = Depends(get_dashboard_assignments),
):
    dashboard = await use_case.remove_dashboard_customers(dashboard_id, customer_ids)
    return DashboardDTO.from_entity(dashboard)


# ========== Edge assignments ==========


@router.post("/edge/{edge_id}/dashboard/{dashboard_id}", response_model=DashboardDTO)
async def assign_dashboard_to_edge(
    edge_id: str,
    dashboard_id: str,
    _user=Depends(tenant_admin),
    use_case: DashboardAssignmentsUseCase = Depends(get_dashboard_assignments),
):
    dashboard = await use_case.assign_dashboard_to_edge(edge_id, dashboard_id)
    return DashboardDTO.from_entity(dashboard)


@router.delete("/edge/{edge_id}/dashboard/{dashboard_id}", response_model=DashboardDTO)
async def unassign_dashboard_from_edge(
    edge_id: str,
    dashboard_id: str,
    _user=Depends(tenant_admin),
    use_case: DashboardAssignmentsUseCase = Depends(get_dashboard_assignments),
):
    dashboard = await use_case.unassign_dashboard_from_edge(edge_id, dashboard_id)
    return DashboardDTO.from_entity(dashboard)


@router.post("/dashboard/{dashboard_id}/edges", response_model=DashboardDTO)
async def update_dashboard_edges(
    dashboard_id: str,
    edge_ids: PeerIds = Body(None),
    _user=Depends(tenant_admin),
    use_case: DashboardAssignmentsUseCase = Depends(get_dashboard_assignments),
):
    """Replace the dashboard's edges with the given list."""
    dashboard = await use_case.update_dashboard_edges(dashboard_id, edge_ids)
    return DashboardDTO.from_entity(dashboard)


@router.post("/dashboard/{dashboard_id}/edges/add", response_model=DashboardDTO)
async def add_dashboard_edges(
    dashboard_id: str,
    edge_ids: PeerIds = Body(None),
    _user=Depends(tenant_admin),
    use_case: DashboardAssignmentsUseCase = Depends(get_dashboard_assignments),
):
    dashboard = await use_case.add_dashboard_edges(dashboard_id, edge_ids)
    return DashboardDTO.from_entity(dashboard)


@router.post("/dashboard/{dashboard_id}/edges/remove", response_model=DashboardDTO)
async def remove_dashboard_edges(
    dashboard_id: str,
    edge_ids: PeerIds = Body(None),
    _user=Depends(tenant_admin),
    use_case: DashboardAssignmentsUseCase = Depends(get_dashboard_assignments),
):
    dashboard = await use_case.remove_dashboard_edges(dashboard_id, edge_ids)
    return DashboardDTO.from_entity(dashboard)
