"""Pydantic schemas for API request/response validation.

Field names are snake_case in Python and camelCase on the wire; requests
accept either.
"""

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..domain.entities import (
    Dashboard,
    Edge,
    EdgeSearchQuery,
    EntitySubtype,
    EntityType,
    PageData,
    RelationDirection,
    is_null_id,
)

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ========== Peer references ==========


class ShortCustomerInfoDTO(CamelModel):
    customer_id: UUID
    title: Optional[str] = None
    is_public: bool = False


class ShortEdgeInfoDTO(CamelModel):
    edge_id: UUID
    title: Optional[str] = None


# ========== Dashboards ==========


class DashboardInfoDTO(CamelModel):
    """Dashboard without its configuration payload."""

    id: UUID
    tenant_id: UUID
    title: str
    image: Optional[str] = None
    mobile_hide: bool = False
    mobile_order: Optional[int] = None
    assigned_customers: list[ShortCustomerInfoDTO] = Field(default_factory=list)
    assigned_edges: list[ShortEdgeInfoDTO] = Field(default_factory=list)
    created_time: Optional[datetime] = None

    @classmethod
    def from_entity(cls, dashboard: Dashboard) -> "DashboardInfoDTO":
        return cls(
            id=dashboard.id,
            tenant_id=dashboard.tenant_id,
            title=dashboard.title,
            image=dashboard.image,
            mobile_hide=dashboard.mobile_hide,
            mobile_order=dashboard.mobile_order,
            assigned_customers=[
                ShortCustomerInfoDTO(
                    customer_id=c.customer_id, title=c.title, is_public=c.is_public
                )
                for c in sorted(dashboard.assigned_customers, key=lambda c: (c.title or ""))
            ],
            assigned_edges=[
                ShortEdgeInfoDTO(edge_id=e.edge_id, title=e.title)
                for e in sorted(dashboard.assigned_edges, key=lambda e: (e.title or ""))
            ],
            created_time=dashboard.created_time,
        )


class DashboardDTO(DashboardInfoDTO):
    configuration: Optional[dict[str, Any]] = None

    @classmethod
    def from_entity(cls, dashboard: Dashboard) -> "DashboardDTO":
        info = DashboardInfoDTO.from_entity(dashboard)
        return cls(**info.model_dump(), configuration=dashboard.configuration)


class DashboardRequest(CamelModel):
    """Body of a dashboard create/update.

    Tenant and assignments are not accepted from the client.
    """

    id: Optional[UUID] = None
    title: str = Field(..., min_length=1, max_length=255)
    image: Optional[str] = None
    mobile_hide: bool = False
    mobile_order: Optional[int] = None
    configuration: Optional[dict[str, Any]] = None

    def to_entity(self) -> Dashboard:
        return Dashboard(
            id=self.id,
            tenant_id=None,
            title=self.title,
            image=self.image,
            mobile_hide=self.mobile_hide,
            mobile_order=self.mobile_order,
            configuration=self.configuration,
        )


# ========== Edges ==========


class EdgeDTO(CamelModel):
    id: UUID
    tenant_id: UUID
    customer_id: Optional[UUID] = None
    root_rule_chain_id: Optional[UUID] = None
    name: str
    type: str
    label: Optional[str] = None
    routing_key: Optional[str] = None
    secret: Optional[str] = None
    additional_info: Optional[dict[str, Any]] = None
    created_time: Optional[datetime] = None

    @classmethod
    def from_entity(cls, edge: Edge) -> "EdgeDTO":
        return cls(
            id=edge.id,
            tenant_id=edge.tenant_id,
            customer_id=None if is_null_id(edge.customer_id) else edge.customer_id,
            root_rule_chain_id=edge.root_rule_chain_id,
            name=edge.name,
            type=edge.type,
            label=edge.label,
            routing_key=edge.routing_key,
            secret=edge.secret,
            additional_info=edge.additional_info,
            created_time=edge.created_time,
        )


class EdgeRequest(CamelModel):
    """Body of an edge create/update."""

    id: Optional[UUID] = None
    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., min_length=1, max_length=255)
    label: Optional[str] = None
    routing_key: Optional[str] = None
    secret: Optional[str] = None
    root_rule_chain_id: Optional[UUID] = None
    additional_info: Optional[dict[str, Any]] = None

    def to_entity(self) -> Edge:
        return Edge(
            id=self.id,
            tenant_id=None,
            name=self.name,
            type=self.type,
            label=self.label,
            routing_key=self.routing_key,
            secret=self.secret,
            root_rule_chain_id=self.root_rule_chain_id,
            additional_info=self.additional_info,
        )


class RelationsSearchParametersDTO(CamelModel):
    root_id: UUID
    root_type: EntityType
    direction: RelationDirection = RelationDirection.FROM
    max_level: int = Field(default=1, ge=1, le=10)


class EdgeSearchQueryRequest(CamelModel):
    """Find edges related to an entity.

    Example:
        {"parameters": {"rootId": "...", "rootType": "CUSTOMER", "direction": "FROM"},
         "relationType": "Contains", "edgeTypes": ["default"]}
    """

    parameters: RelationsSearchParametersDTO
    relation_type: Optional[str] = None
    edge_types: list[str] = Field(default_factory=list)

    def to_query(self) -> EdgeSearchQuery:
        return EdgeSearchQuery(
            root_id=self.parameters.root_id,
            root_type=self.parameters.root_type,
            direction=self.parameters.direction,
            max_level=self.parameters.max_level,
            relation_type=self.relation_type,
            edge_types=list(self.edge_types),
        )


class EntitySubtypeDTO(CamelModel):
    tenant_id: UUID
    entity_type: EntityType
    type: str

    @classmethod
    def from_entity(cls, subtype: EntitySubtype) -> "EntitySubtypeDTO":
        return cls(tenant_id=subtype.tenant_id, entity_type=subtype.entity_type, type=subtype.type)


# ========== Paging ==========


class PageDataDTO(CamelModel, Generic[T]):
    data: list[T]
    total_pages: int
    total_elements: int
    has_next: bool

    @classmethod
    def from_page(cls, page: PageData, convert) -> "PageDataDTO":
        return cls(
            data=[convert(item) for item in page.data],
            total_pages=page.total_pages,
            total_elements=page.total_elements,
            has_next=page.has_next,
        )
