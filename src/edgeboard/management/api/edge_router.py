"""FastAPI router for edge endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from ...api.auth import AuthorizationError, require_authority
from ...api.exceptions import ValidationError
from ..domain.entities import Authority, PageLink, SecurityUser, SortOrder
from ..use_cases import EdgeAssignmentsUseCase, ManageEdgesUseCase
from .dependencies import get_edge_assignments, get_manage_edges, get_page_link
from .schemas import (
    EdgeDTO,
    EdgeRequest,
    EdgeSearchQueryRequest,
    EntitySubtypeDTO,
    PageDataDTO,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Edges"])

tenant_or_customer = require_authority(Authority.TENANT_ADMIN, Authority.CUSTOMER_USER)
tenant_admin = require_authority(Authority.TENANT_ADMIN)


def _page_link(
    page_size: Optional[int],
    page: int,
    text_search: Optional[str],
    sort_property: Optional[str],
    sort_order: SortOrder,
) -> PageLink:
    if page_size is None:
        raise ValidationError("Parameter 'pageSize' can't be empty!", field="pageSize")
    return PageLink(
        page_size=page_size,
        page=page,
        text_search=text_search,
        sort_property=sort_property,
        sort_order=sort_order,
    )


# ========== Edge management ==========


@router.get("/edge/types", response_model=list[EntitySubtypeDTO])
async def get_edge_types(
    _user=Depends(tenant_or_customer),
    use_case: ManageEdgesUseCase = Depends(get_manage_edges),
):
    """Distinct edge types used within the caller's tenant."""
    types = await use_case.get_edge_types()
    return [EntitySubtypeDTO.from_entity(t) for t in types]


@router.get("/edge/{edge_id}", response_model=EdgeDTO)
async def get_edge(
    edge_id: str,
    _user=Depends(tenant_or_customer),
    use_case: ManageEdgesUseCase = Depends(get_manage_edges),
):
    edge = await use_case.get_edge(edge_id)
    return EdgeDTO.from_entity(edge)


@router.post("/edge", response_model=EdgeDTO)
async def save_edge(
    request: EdgeRequest,
    _user=Depends(tenant_admin),
    use_case: ManageEdgesUseCase = Depends(get_manage_edges),
):
    """Create an edge, or update it when the body carries an id."""
    edge = await use_case.save_edge(request.to_entity())
    return EdgeDTO.from_entity(edge)


@router.delete("/edge/{edge_id}")
async def delete_edge(
    edge_id: str,
    _user=Depends(tenant_admin),
    use_case: ManageEdgesUseCase = Depends(get_manage_edges),
):
    await use_case.delete_edge(edge_id)
    return Response(status_code=200)


@router.post("/edge/{edge_id}/{rule_chain_id}/root", response_model=EdgeDTO)
async def set_edge_root_rule_chain(
    edge_id: str,
    rule_chain_id: str,
    _user=Depends(tenant_admin),
    use_case: ManageEdgesUseCase = Depends(get_manage_edges),
):
    edge = await use_case.set_root_rule_chain(edge_id, rule_chain_id)
    return EdgeDTO.from_entity(edge)


@router.get("/edges")
async def get_edges(
    edge_ids: Optional[str] = Query(None, alias="edgeIds", description="Comma-separated edge ids"),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
    page: int = Query(0, ge=0),
    text_search: Optional[str] = Query(None, alias="textSearch"),
    sort_property: Optional[str] = Query(None, alias="sortProperty"),
    sort_order: SortOrder = Query(SortOrder.ASC, alias="sortOrder"),
    user: SecurityUser = Depends(tenant_or_customer),
    use_case: ManageEdgesUseCase = Depends(get_manage_edges),
):
    """List the tenant's edges page by page, or fetch edges by id.

    With `edgeIds` the matching edges are returned as a list; otherwise
    `pageSize` is required and only tenant administrators may page.
    """
    if edge_ids is not None:
        edges = await use_case.get_edges_by_ids(edge_ids.split(","))
        return [EdgeDTO.from_entity(e) for e in edges]

    if user.authority != Authority.TENANT_ADMIN:
        raise AuthorizationError()
    page_link = _page_link(page_size, page, text_search, sort_property, sort_order)
    result = await use_case.get_edges(page_link)
    return PageDataDTO[EdgeDTO].from_page(result, EdgeDTO.from_entity)


@router.post("/edges", response_model=list[EdgeDTO])
async def find_edges_by_query(
    query: EdgeSearchQueryRequest,
    _user=Depends(tenant_or_customer),
    use_case: ManageEdgesUseCase = Depends(get_manage_edges),
):
    """Find edges related to an entity, filtered to those the caller may read."""
    edges = await use_case.find_by_query(query.to_query())
    return [EdgeDTO.from_entity(e) for e in edges]


@router.get("/tenant/edges")
async def get_tenant_edges(
    edge_name: Optional[str] = Query(None, alias="edgeName"),
    edge_type: Optional[str] = Query(None, alias="type"),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
    page: int = Query(0, ge=0),
    text_search: Optional[str] = Query(None, alias="textSearch"),
    sort_property: Optional[str] = Query(None, alias="sortProperty"),
    sort_order: SortOrder = Query(SortOrder.ASC, alias="sortOrder"),
    _user=Depends(tenant_admin),
    use_case: ManageEdgesUseCase = Depends(get_manage_edges),
):
    """Look an edge up by name, or list the tenant's edges with an optional type filter."""
    if edge_name is not None:
        edge = await use_case.get_tenant_edge(edge_name)
        return EdgeDTO.from_entity(edge)

    page_link = _page_link(page_size, page, text_search, sort_property, sort_order)
    result = await use_case.get_tenant_edges(page_link, edge_type)
    return PageDataDTO[EdgeDTO].from_page(result, EdgeDTO.from_entity)


@router.get("/customer/{customer_id}/edges", response_model=PageDataDTO[EdgeDTO])
async def get_customer_edges(
    customer_id: str,
    edge_type: Optional[str] = Query(None, alias="type"),
    page_link: PageLink = Depends(get_page_link),
    _user=Depends(tenant_or_customer),
    use_case: ManageEdgesUseCase = Depends(get_manage_edges),
):
    result = await use_case.get_customer_edges(customer_id, page_link, edge_type)
    return PageDataDTO[EdgeDTO].from_page(result, EdgeDTO.from_entity)


# ========== Customer assignment ==========


@router.post("/customer/public/edge/{edge_id}", response_model=EdgeDTO)
async def assign_edge_to_public_customer(
    edge_id: str,
    _user=Depends(tenant_admin),
    use_case: EdgeAssignmentsUseCase = Depends(get_edge_assignments),
):
    edge = await use_case.assign_edge_to_public_customer(edge_id)
    return EdgeDTO.from_entity(edge)


@router.post("/customer/{customer_id}/edge/{edge_id}", response_model=EdgeDTO)
async def assign_edge_to_customer(
    customer_id: str,
    edge_id: str,
    _user=Depends(tenant_admin),
    use_case: EdgeAssignmentsUseCase = Depends(get_edge_assignments),
):
    edge = await use_case.assign_edge_to_customer(customer_id, edge_id)
    return EdgeDTO.from_entity(edge)


@router.delete("/customer/edge/{edge_id}", response_model=EdgeDTO)
async def unassign_edge_from_customer(
    edge_id: str,
    _user=Depends(tenant_admin),
    use_case: EdgeAssignmentsUseCase = Depends(get_edge_assignments),
):
    edge = await use_case.unassign_edge_from_customer(edge_id)
    return EdgeDTO.from_entity(edge)
