"""Lifecycle state machines for Vendor, Product, Inquiry and Order.

Each entity type has an explicit transition table. Every edge names the
actors allowed to drive it and any fields that must be non-empty once the
transition's own changes are applied.

apply_transition() executes a transition as a single read-modify-write:
the UPDATE is guarded by the status that was read, so if another request
moved the row in between, zero rows match and TransitionConflict is raised
(the caller retries; nothing is silently lost). On any failure the row is
left untouched.

Requesting the status an entity is already in is an idempotent no-op,
provided the actor could legitimately have driven it there.

Called by: vendor_service, product_service, inquiry_service, order_service
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy.orm import Session

from ..models import InquiryStatus, OrderStatus, ProductStatus, VendorStatus
from ..schemas.results import ErrorKind, ServiceResult

log = logging.getLogger("wedstay.lifecycle")


class Actor(str, Enum):
    OWNER = "owner"          # vendor owning the record, or customer owning the inquiry/order
    ADMIN = "admin"
    RESPONDER = "responder"  # vendor whose product is referenced by an inquiry
    SYSTEM = "system"


# ── Errors ────────────────────────────────────────────────────────────


def _label(state) -> str:
    return getattr(state, "value", str(state))


class LifecycleError(Exception):
    """Base class for business-rule failures raised by apply_transition."""


class InvalidTransition(LifecycleError):
    def __init__(self, machine: str, source: Enum, target: Enum):
        self.machine, self.source, self.target = machine, source, target
        super().__init__(
            f"Cannot move {machine} from '{_label(source)}' to '{_label(target)}'"
        )


class TransitionNotPermitted(LifecycleError):
    def __init__(self, machine: str, source: Enum, target: Enum):
        super().__init__(
            f"You are not allowed to move this {machine} from "
            f"'{_label(source)}' to '{_label(target)}'"
        )


class TransitionRequirementMissing(LifecycleError):
    def __init__(self, machine: str, target: Enum, fields: list[str]):
        self.fields = fields
        super().__init__(
            f"{machine.capitalize()} cannot become '{_label(target)}' until these are "
            f"filled in: {', '.join(fields)}"
        )


class TransitionConflict(LifecycleError):
    def __init__(self, machine: str, entity_id: int):
        super().__init__(
            f"{machine.capitalize()} #{entity_id} was changed by another request; reload and retry"
        )


# ── Transition tables ─────────────────────────────────────────────────


@dataclass(frozen=True)
class Edge:
    source: Enum
    target: Enum
    actors: frozenset
    requires: tuple = ()


class StateMachine:
    def __init__(self, name: str, edges: list[Edge]):
        self.name = name
        self.states = type(edges[0].source)
        self._edges = {(e.source, e.target): e for e in edges}

    def edge(self, source: Enum, target: Enum) -> Edge | None:
        return self._edges.get((source, target))

    def targets(self, source: Enum) -> set:
        return {t for (s, t) in self._edges if s == source}

    def is_terminal(self, state: Enum) -> bool:
        return not self.targets(state)

    def can_enter(self, target: Enum, actors: frozenset) -> bool:
        return any(e.target == target and e.actors & actors for e in self._edges.values())


def _edge(source, target, *actors, requires=()) -> Edge:
    return Edge(source, target, frozenset(actors), tuple(requires))


_PRODUCT_SUBMIT_FIELDS = ("name", "description", "category", "base_price")

VENDOR_MACHINE = StateMachine("vendor", [
    _edge(VendorStatus.PENDING, VendorStatus.APPROVED, Actor.ADMIN),
    _edge(VendorStatus.PENDING, VendorStatus.REJECTED, Actor.ADMIN, requires=("rejection_reason",)),
    _edge(VendorStatus.APPROVED, VendorStatus.SUSPENDED, Actor.ADMIN),
    _edge(VendorStatus.REJECTED, VendorStatus.PENDING, Actor.OWNER),
])

PRODUCT_MACHINE = StateMachine("product", [
    _edge(ProductStatus.DRAFT, ProductStatus.PENDING, Actor.OWNER, requires=_PRODUCT_SUBMIT_FIELDS),
    _edge(ProductStatus.PENDING, ProductStatus.APPROVED, Actor.ADMIN),
    _edge(ProductStatus.PENDING, ProductStatus.REJECTED, Actor.ADMIN),
    _edge(ProductStatus.APPROVED, ProductStatus.ARCHIVED, Actor.OWNER, Actor.ADMIN),
    _edge(ProductStatus.REJECTED, ProductStatus.PENDING, Actor.OWNER, requires=_PRODUCT_SUBMIT_FIELDS),
])

INQUIRY_MACHINE = StateMachine("inquiry", [
    _edge(InquiryStatus.PENDING, InquiryStatus.QUOTED, Actor.RESPONDER, requires=("vendor_responses",)),
    _edge(InquiryStatus.QUOTED, InquiryStatus.BOOKED, Actor.OWNER, Actor.ADMIN),
    _edge(InquiryStatus.PENDING, InquiryStatus.CANCELLED, Actor.OWNER, Actor.ADMIN),
    _edge(InquiryStatus.QUOTED, InquiryStatus.CANCELLED, Actor.OWNER, Actor.ADMIN),
    _edge(InquiryStatus.BOOKED, InquiryStatus.COMPLETED, Actor.ADMIN),
])

ORDER_MACHINE = StateMachine("order", [
    _edge(OrderStatus.PENDING, OrderStatus.CONFIRMED, Actor.ADMIN, Actor.SYSTEM),
    _edge(OrderStatus.CONFIRMED, OrderStatus.PROCESSING, Actor.ADMIN, Actor.SYSTEM),
    _edge(OrderStatus.PROCESSING, OrderStatus.COMPLETED, Actor.ADMIN, Actor.SYSTEM),
    _edge(OrderStatus.PENDING, OrderStatus.CANCELLED, Actor.OWNER, Actor.ADMIN),
    _edge(OrderStatus.CONFIRMED, OrderStatus.CANCELLED, Actor.OWNER, Actor.ADMIN),
    _edge(OrderStatus.PROCESSING, OrderStatus.CANCELLED, Actor.OWNER, Actor.ADMIN),
    # Refund timing is enforced by the payment collaborator
    _edge(OrderStatus.COMPLETED, OrderStatus.REFUNDED, Actor.ADMIN),
])

# Products may only be hard-deleted from these states
DELETABLE_PRODUCT_STATES = frozenset({ProductStatus.DRAFT, ProductStatus.ARCHIVED})


# ── Execution ─────────────────────────────────────────────────────────


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def check_transition(machine: StateMachine, source: Enum, target: Enum, actors: frozenset) -> Edge:
    """Validate the edge and actor. Returns the Edge or raises a LifecycleError."""
    edge = machine.edge(source, target)
    if edge is None:
        raise InvalidTransition(machine.name, source, target)
    if not edge.actors & actors:
        raise TransitionNotPermitted(machine.name, source, target)
    return edge


def apply_transition(
    db: Session,
    entity,
    machine: StateMachine,
    target: Enum,
    actors: Iterable[Actor],
    changes: dict | None = None,
    commit: bool = True,
) -> bool:
    """Move entity to target as one guarded UPDATE.

    Returns True if the status changed, False for an idempotent no-op.
    Raises InvalidTransition, TransitionNotPermitted,
    TransitionRequirementMissing or TransitionConflict; in every case the
    row is unchanged.
    """
    actors = frozenset(actors)
    source = entity.status
    changes = dict(changes or {})

    if not isinstance(target, machine.states):
        # Statuses from another entity type share string values; never match them
        raise InvalidTransition(machine.name, source, target)

    if source == target:
        if not machine.can_enter(target, actors):
            raise TransitionNotPermitted(machine.name, source, target)
        return False

    edge = check_transition(machine, source, target, actors)

    missing = [
        f for f in edge.requires
        if _is_blank(changes[f] if f in changes else getattr(entity, f, None))
    ]
    if missing:
        raise TransitionRequirementMissing(machine.name, target, missing)

    model = type(entity)
    values = {**changes, "status": target, "updated_at": datetime.now(timezone.utc)}
    matched = (
        db.query(model)
        .filter(model.id == entity.id, model.status == source)
        .update(values, synchronize_session=False)
    )
    if matched != 1:
        db.rollback()
        db.refresh(entity)
        if entity.status == target:
            # Another request already made the same move
            return False
        log.warning(
            f"Concurrent change on {machine.name} #{entity.id}: "
            f"expected '{_label(source)}' before moving to '{_label(target)}'"
        )
        raise TransitionConflict(machine.name, entity.id)

    if commit:
        db.commit()
    db.refresh(entity)
    log.info(f"{machine.name} #{entity.id}: {_label(source)} -> {_label(target)}")
    return True


def transition_failure(exc: LifecycleError) -> ServiceResult:
    """Map a lifecycle exception onto the result callers surface."""
    if isinstance(exc, TransitionConflict):
        kind = ErrorKind.CONFLICT
    elif isinstance(exc, TransitionNotPermitted):
        kind = ErrorKind.FORBIDDEN
    elif isinstance(exc, TransitionRequirementMissing):
        kind = ErrorKind.VALIDATION_FAILED
    else:
        kind = ErrorKind.INVALID_TRANSITION
    return ServiceResult.fail(kind, str(exc))
