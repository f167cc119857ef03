"""Edge management use case.

Create, read, update and delete edges, bind them to rule chains, and
look them up by tenant, customer, name, ids or relation query.
"""

import logging
import secrets
from dataclasses import replace
from typing import Optional
from uuid import uuid4

from ...api.exceptions import NotFoundError, ValidationError
from ..domain.audit import EntityActionLogger
from ..domain.entities import (
    ActionType,
    Edge,
    EdgeSearchQuery,
    EntitySubtype,
    EntityType,
    Operation,
    PageData,
    PageLink,
    Resource,
    SecurityUser,
)
from ..domain.permissions import AccessControlService
from ..domain.ports import (
    IAuditLog,
    ICustomerRepository,
    IDashboardRepository,
    IEdgeRepository,
    IRuleChainRepository,
    ITenantRepository,
)
from .common import EntityGuard, check_array_parameter, check_parameter, to_uuid

logger = logging.getLogger(__name__)


class ManageEdgesUseCase:
    """Edge CRUD, rule chain binding and lookups for one authenticated user."""

    def __init__(
        self,
        user: SecurityUser,
        edge_repo: IEdgeRepository,
        customer_repo: ICustomerRepository,
        rule_chain_repo: IRuleChainRepository,
        audit_log: IAuditLog,
        access_control: Optional[AccessControlService] = None,
        dashboard_repo: Optional[IDashboardRepository] = None,
        tenant_repo: Optional[ITenantRepository] = None,
    ):
        self.user = user
        self.edge_repo = edge_repo
        self.rule_chain_repo = rule_chain_repo
        self.access_control = access_control or AccessControlService()
        self.action_logger = EntityActionLogger(audit_log, user)
        self.guard = EntityGuard(
            user,
            self.access_control,
            dashboard_repo=dashboard_repo,
            edge_repo=edge_repo,
            customer_repo=customer_repo,
            tenant_repo=tenant_repo,
            rule_chain_repo=rule_chain_repo,
        )

    async def get_edge(self, edge_id: str) -> Edge:
        check_parameter("edgeId", edge_id)
        return await self.guard.check_edge_id(to_uuid(edge_id, "edgeId"), Operation.READ)

    async def save_edge(self, edge: Edge) -> Edge:
        """Create an edge (no id) or update an existing one.

        A new edge gets the tenant's root rule chain assigned and set as its
        own root rule chain, plus a generated routing key and secret when
        none are given. Updates keep the customer of the stored edge.
        """
        edge = replace(edge, tenant_id=self.user.tenant_id)
        created = edge.id is None
        action = ActionType.ADDED if created else ActionType.UPDATED

        try:
            if created:
                self.guard.check(Resource.EDGE, Operation.CREATE, None, edge)
                edge = replace(
                    edge,
                    routing_key=edge.routing_key or str(uuid4()),
                    secret=edge.secret or secrets.token_urlsafe(15),
                )
                root_chain = await self.rule_chain_repo.get_root_tenant_rule_chain(edge.tenant_id)
                if root_chain is None:
                    raise ValidationError("Root rule chain is not available!", field="ruleChainId")
            else:
                existing = await self.guard.check_edge_id(edge.id, Operation.WRITE)
                edge = replace(
                    edge,
                    customer_id=existing.customer_id,
                    root_rule_chain_id=edge.root_rule_chain_id or existing.root_rule_chain_id,
                    created_time=existing.created_time,
                )

            saved = await self.edge_repo.save(edge)

            if created:
                await self.rule_chain_repo.assign_to_edge(saved.tenant_id, root_chain.id, saved.id)
                saved = await self.edge_repo.set_root_rule_chain(saved.tenant_id, saved, root_chain.id)
        except Exception as e:
            await self.action_logger.log_entity_action(EntityType.EDGE, None, edge, None, action, e)
            raise

        logger.info(f"Edge {saved.id} ({saved.name}) {action.value.lower()} by {self.user.user_id}")
        await self.action_logger.log_entity_action(
            EntityType.EDGE, saved.id, saved, saved.customer_id, action
        )
        return saved

    async def delete_edge(self, edge_id: str) -> None:
        check_parameter("edgeId", edge_id)
        try:
            edge = await self.guard.check_edge_id(to_uuid(edge_id, "edgeId"), Operation.DELETE)
            await self.edge_repo.delete(edge.tenant_id, edge.id)
        except Exception as e:
            await self.action_logger.log_failure(EntityType.EDGE, ActionType.DELETED, e, edge_id)
            raise

        logger.info(f"Edge {edge.id} deleted by {self.user.user_id}")
        await self.action_logger.log_entity_action(
            EntityType.EDGE, edge.id, edge, edge.customer_id, ActionType.DELETED, None, edge_id
        )

    async def set_root_rule_chain(self, edge_id: str, rule_chain_id: str) -> Edge:
        check_parameter("edgeId", edge_id)
        check_parameter("ruleChainId", rule_chain_id)
        try:
            rule_chain = await self.guard.check_rule_chain_id(
                to_uuid(rule_chain_id, "ruleChainId"), Operation.WRITE
            )
            edge = await self.guard.check_edge_id(to_uuid(edge_id, "edgeId"), Operation.WRITE)
            updated = await self.edge_repo.set_root_rule_chain(edge.tenant_id, edge, rule_chain.id)
        except Exception as e:
            await self.action_logger.log_failure(EntityType.EDGE, ActionType.UPDATED, e, edge_id)
            raise

        await self.action_logger.log_entity_action(
            EntityType.EDGE, updated.id, updated, updated.customer_id, ActionType.UPDATED
        )
        return updated

    async def get_edges(self, page_link: PageLink) -> PageData[Edge]:
        return await self.edge_repo.find_by_tenant(self.user.tenant_id, page_link)

    async def get_tenant_edges(
        self, page_link: PageLink, edge_type: Optional[str] = None
    ) -> PageData[Edge]:
        return await self.edge_repo.find_by_tenant(
            self.user.tenant_id, page_link, edge_type=edge_type or None
        )

    async def get_tenant_edge(self, edge_name: str) -> Edge:
        check_parameter("edgeName", edge_name)
        edge = await self.edge_repo.find_by_tenant_and_name(self.user.tenant_id, edge_name)
        if edge is None:
            raise NotFoundError("Edge", edge_name)
        self.guard.check(Resource.EDGE, Operation.READ, edge.id, edge)
        return edge

    async def get_customer_edges(
        self, customer_id: str, page_link: PageLink, edge_type: Optional[str] = None
    ) -> PageData[Edge]:
        check_parameter("customerId", customer_id)
        customer = await self.guard.check_customer_id(
            to_uuid(customer_id, "customerId"), Operation.READ
        )
        return await self.edge_repo.find_by_tenant_and_customer(
            self.user.tenant_id, customer.id, page_link, edge_type=edge_type or None
        )

    async def get_edges_by_ids(self, edge_ids: list[str]) -> list[Edge]:
        """Look up edges by id; customer users only see their customer's edges."""
        check_array_parameter("edgeIds", edge_ids)
        ids = [to_uuid(edge_id, "edgeIds") for edge_id in edge_ids]
        if self.user.is_customer_user:
            return await self.edge_repo.find_by_tenant_customer_and_ids(
                self.user.tenant_id, self.user.customer_id, ids
            )
        return await self.edge_repo.find_by_tenant_and_ids(self.user.tenant_id, ids)

    async def find_by_query(self, query: EdgeSearchQuery) -> list[Edge]:
        """Edges related to the query root that the caller may read."""
        await self.guard.check_entity_id(query.root_type, query.root_id, Operation.READ)
        edges = await self.edge_repo.find_by_query(self.user.tenant_id, query)
        return [
            edge
            for edge in edges
            if self.access_control.has_permission(
                self.user, Resource.EDGE, Operation.READ, edge.id, edge
            )
        ]

    async def get_edge_types(self) -> list[EntitySubtype]:
        return await self.edge_repo.find_types(self.user.tenant_id)
