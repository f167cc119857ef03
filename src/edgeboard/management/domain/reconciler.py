"""Membership set reconciliation.

Given an owner (dashboard or edge) with its current set of assigned peers
(customers or edges) and a desired set of peer ids, compute which peers to
add and which to remove, then apply the changes one store call at a time.

The algorithm is written once and bound to a peer kind through a
PeerBinding, which supplies the store calls, the cached peer labels and
the audit action types for that kind.

Application rules:
    - Additions are applied before removals.
    - A removal is skipped when an addition already replaced that peer
      (an edge's single customer); no store call or audit is made for it.
    - Order within a phase follows set iteration and must not be relied on.
    - Each successful change is audited with the post-change owner snapshot;
      removals use the label cached on the owner before the removal.
    - The first failing store call stops the run. Changes already made stay
      committed; the failure is returned in the outcome, not raised.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, Iterable, Mapping, Optional, TypeVar
from uuid import UUID

from .audit import EntityActionLogger
from .entities import ActionType, Dashboard, Edge, EntityType
from .ports import IDashboardRepository, IEdgeRepository

logger = logging.getLogger(__name__)

O = TypeVar("O")


# ========== Plans and outcomes ==========


@dataclass(frozen=True)
class ReconciliationPlan:
    """Peers to add to and remove from an owner."""

    to_add: frozenset[UUID] = frozenset()
    to_remove: frozenset[UUID] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove

    @property
    def size(self) -> int:
        return len(self.to_add) + len(self.to_remove)

    @classmethod
    def single_add(cls, peer_id: UUID) -> "ReconciliationPlan":
        return cls(to_add=frozenset({peer_id}))

    @classmethod
    def single_remove(cls, peer_id: UUID) -> "ReconciliationPlan":
        return cls(to_remove=frozenset({peer_id}))


@dataclass(frozen=True)
class AppliedChange:
    """One store call that succeeded."""

    peer_id: UUID
    action: ActionType


@dataclass
class ReconciliationOutcome(Generic[O]):
    """Result of applying a plan.

    Attributes:
        owner: Last owner snapshot returned by the store (the original
            owner when nothing was applied)
        applied: Changes that were committed, in application order
        error: The failure that stopped the run, if any
    """

    owner: O
    applied: list[AppliedChange] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def unwrap(self) -> O:
        """Return the owner, or raise the error that stopped the run."""
        if self.error is not None:
            raise self.error
        return self.owner


# ========== Peer bindings ==========


class PeerBinding(ABC, Generic[O]):
    """Capabilities the reconciler needs for one owner/peer relation."""

    owner_type: EntityType
    peer_kind: str
    assign_action: ActionType
    unassign_action: ActionType
    # Whether audit records carry the peer id as the related customer
    peer_is_customer: bool = False

    @abstractmethod
    def owner_id(self, owner: O) -> UUID:
        ...

    @abstractmethod
    def owner_tenant_id(self, owner: O) -> UUID:
        ...

    @abstractmethod
    def current_peers(self, owner: O) -> frozenset[UUID]:
        """Ids of the peers currently assigned to the owner."""
        ...

    @abstractmethod
    def peer_label(self, owner: O, peer_id: UUID) -> Optional[str]:
        """Display label the owner caches for a peer, if any."""
        ...

    @abstractmethod
    async def assign(self, tenant_id: UUID, owner_id: UUID, peer_id: UUID) -> O:
        ...

    @abstractmethod
    async def unassign(self, tenant_id: UUID, owner_id: UUID, peer_id: UUID) -> O:
        ...


class DashboardCustomerBinding(PeerBinding[Dashboard]):
    owner_type = EntityType.DASHBOARD
    peer_kind = "customer"
    assign_action = ActionType.ASSIGNED_TO_CUSTOMER
    unassign_action = ActionType.UNASSIGNED_FROM_CUSTOMER
    peer_is_customer = True

    def __init__(self, dashboard_repo: IDashboardRepository):
        self.dashboard_repo = dashboard_repo

    def owner_id(self, owner: Dashboard) -> UUID:
        return owner.id

    def owner_tenant_id(self, owner: Dashboard) -> UUID:
        return owner.tenant_id

    def current_peers(self, owner: Dashboard) -> frozenset[UUID]:
        return frozenset(c.customer_id for c in owner.assigned_customers or ())

    def peer_label(self, owner: Dashboard, peer_id: UUID) -> Optional[str]:
        info = owner.get_assigned_customer_info(peer_id)
        return info.title if info else None

    async def assign(self, tenant_id: UUID, owner_id: UUID, peer_id: UUID) -> Dashboard:
        return await self.dashboard_repo.assign_to_customer(tenant_id, owner_id, peer_id)

    async def unassign(self, tenant_id: UUID, owner_id: UUID, peer_id: UUID) -> Dashboard:
        return await self.dashboard_repo.unassign_from_customer(tenant_id, owner_id, peer_id)


class DashboardEdgeBinding(PeerBinding[Dashboard]):
    owner_type = EntityType.DASHBOARD
    peer_kind = "edge"
    assign_action = ActionType.ASSIGNED_TO_EDGE
    unassign_action = ActionType.UNASSIGNED_FROM_EDGE

    def __init__(self, dashboard_repo: IDashboardRepository):
        self.dashboard_repo = dashboard_repo

    def owner_id(self, owner: Dashboard) -> UUID:
        return owner.id

    def owner_tenant_id(self, owner: Dashboard) -> UUID:
        return owner.tenant_id

    def current_peers(self, owner: Dashboard) -> frozenset[UUID]:
        return frozenset(e.edge_id for e in owner.assigned_edges or ())

    def peer_label(self, owner: Dashboard, peer_id: UUID) -> Optional[str]:
        info = owner.get_assigned_edge_info(peer_id)
        return info.title if info else None

    async def assign(self, tenant_id: UUID, owner_id: UUID, peer_id: UUID) -> Dashboard:
        return await self.dashboard_repo.assign_to_edge(tenant_id, owner_id, peer_id)

    async def unassign(self, tenant_id: UUID, owner_id: UUID, peer_id: UUID) -> Dashboard:
        return await self.dashboard_repo.unassign_from_edge(tenant_id, owner_id, peer_id)


class EdgeCustomerBinding(PeerBinding[Edge]):
    """An edge has at most one customer; the relation is a one-element set."""

    owner_type = EntityType.EDGE
    peer_kind = "customer"
    assign_action = ActionType.ASSIGNED_TO_CUSTOMER
    unassign_action = ActionType.UNASSIGNED_FROM_CUSTOMER
    peer_is_customer = True

    def __init__(self, edge_repo: IEdgeRepository):
        self.edge_repo = edge_repo

    def owner_id(self, owner: Edge) -> UUID:
        return owner.id

    def owner_tenant_id(self, owner: Edge) -> UUID:
        return owner.tenant_id

    def current_peers(self, owner: Edge) -> frozenset[UUID]:
        if owner.is_assigned_to_customer():
            return frozenset({owner.customer_id})
        return frozenset()

    def peer_label(self, owner: Edge, peer_id: UUID) -> Optional[str]:
        # Edges do not cache their customer's title
        return None

    async def assign(self, tenant_id: UUID, owner_id: UUID, peer_id: UUID) -> Edge:
        return await self.edge_repo.assign_to_customer(tenant_id, owner_id, peer_id)

    async def unassign(self, tenant_id: UUID, owner_id: UUID, peer_id: UUID) -> Edge:
        return await self.edge_repo.unassign_from_customer(tenant_id, owner_id, peer_id)


# ========== Reconciler ==========


class SetReconciler(Generic[O]):
    """Computes and applies membership plans for one peer binding.

    Example:
        reconciler = SetReconciler(DashboardCustomerBinding(repo), action_logger)
        plan = reconciler.reconcile(dashboard, requested_customer_ids)
        outcome = await reconciler.apply(dashboard, plan)
        dashboard = outcome.unwrap()
    """

    def __init__(self, binding: PeerBinding[O], action_logger: EntityActionLogger):
        self.binding = binding
        self.action_logger = action_logger

    def reconcile(self, owner: O, desired_peer_ids: Optional[Iterable[UUID]]) -> ReconciliationPlan:
        """Full reconcile: make the owner's peers equal the desired set."""
        current = self.binding.current_peers(owner)
        desired = frozenset(desired_peer_ids or ())
        return ReconciliationPlan(to_add=desired - current, to_remove=current - desired)

    def reconcile_additions(
        self, owner: O, requested_peer_ids: Optional[Iterable[UUID]]
    ) -> ReconciliationPlan:
        """Add-only: requested peers not yet assigned."""
        current = self.binding.current_peers(owner)
        return ReconciliationPlan(to_add=frozenset(requested_peer_ids or ()) - current)

    def reconcile_removals(
        self, owner: O, requested_peer_ids: Optional[Iterable[UUID]]
    ) -> ReconciliationPlan:
        """Remove-only: requested peers that are currently assigned."""
        current = self.binding.current_peers(owner)
        return ReconciliationPlan(to_remove=frozenset(requested_peer_ids or ()) & current)

    async def apply(
        self,
        owner: O,
        plan: ReconciliationPlan,
        labels: Optional[Mapping[UUID, str]] = None,
    ) -> ReconciliationOutcome[O]:
        """Apply a plan through the store, auditing every committed change.

        Args:
            owner: Owner snapshot the plan was computed from
            plan: Peers to add and remove
            labels: Peer labels known to the caller; take precedence over
                labels cached on the owner

        Returns:
            ReconciliationOutcome with the last stored owner snapshot, the
            committed changes and the error that stopped the run, if any
        """
        outcome: ReconciliationOutcome[O] = ReconciliationOutcome(owner=owner)
        if plan.is_empty:
            return outcome

        binding = self.binding
        owner_id = binding.owner_id(owner)
        tenant_id = binding.owner_tenant_id(owner)
        labels = labels or {}

        logger.info(
            f"Reconciling {binding.owner_type.value.lower()} {owner_id} {binding.peer_kind}s: "
            f"+{len(plan.to_add)} -{len(plan.to_remove)}"
        )

        try:
            for peer_id in plan.to_add:
                outcome.owner = await binding.assign(tenant_id, owner_id, peer_id)
                label = labels.get(peer_id) or binding.peer_label(outcome.owner, peer_id)
                outcome.applied.append(AppliedChange(peer_id, binding.assign_action))
                await self._log_change(owner_id, outcome.owner, peer_id, binding.assign_action, label)

            # Single-valued relations drop the old peer when a new one is assigned
            displaced = binding.current_peers(owner) - binding.current_peers(outcome.owner)

            for peer_id in plan.to_remove:
                if peer_id in displaced:
                    logger.debug(f"{binding.peer_kind} {peer_id} already replaced on {owner_id}")
                    continue
                # Look the label up before the store drops the cached reference
                label = labels.get(peer_id) or binding.peer_label(owner, peer_id)
                outcome.owner = await binding.unassign(tenant_id, owner_id, peer_id)
                outcome.applied.append(AppliedChange(peer_id, binding.unassign_action))
                await self._log_change(owner_id, outcome.owner, peer_id, binding.unassign_action, label)

        except Exception as e:
            logger.warning(
                f"Reconciliation of {binding.owner_type.value.lower()} {owner_id} stopped "
                f"after {len(outcome.applied)} of {plan.size} changes: {e}"
            )
            outcome.error = e

        return outcome

    async def _log_change(
        self,
        owner_id: UUID,
        snapshot: O,
        peer_id: UUID,
        action: ActionType,
        label: Optional[str],
    ) -> None:
        logger.debug(f"{action.value}: {owner_id} <-> {peer_id}")
        await self.action_logger.log_entity_action(
            self.binding.owner_type,
            owner_id,
            snapshot,
            peer_id if self.binding.peer_is_customer else None,
            action,
            None,
            owner_id,
            peer_id,
            label,
        )
