"""Delivery order lifecycle.

The transition table below is the single source of truth for which status
changes are legal.  Operations never compare statuses ad hoc; they ask
``ensure_transition`` (or ``ensure_editable``) instead.
"""

from __future__ import annotations

from enum import Enum

from fulfillment.domain.exceptions import StateConflictError


class DeliveryOrderStatus(Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self]

    @property
    def holds_reservation(self) -> bool:
        """True while line quantities count as committed on the ledger."""
        return self in RESERVING_STATUSES

    def can_transition_to(self, target: DeliveryOrderStatus) -> bool:
        return target in TRANSITIONS[self]


TRANSITIONS: dict[DeliveryOrderStatus, frozenset[DeliveryOrderStatus]] = {
    DeliveryOrderStatus.DRAFT: frozenset(
        {DeliveryOrderStatus.CONFIRMED, DeliveryOrderStatus.CANCELLED}
    ),
    DeliveryOrderStatus.CONFIRMED: frozenset(
        {DeliveryOrderStatus.IN_TRANSIT, DeliveryOrderStatus.CANCELLED}
    ),
    DeliveryOrderStatus.IN_TRANSIT: frozenset(
        {DeliveryOrderStatus.DELIVERED, DeliveryOrderStatus.CANCELLED}
    ),
    DeliveryOrderStatus.DELIVERED: frozenset(),
    DeliveryOrderStatus.CANCELLED: frozenset(),
}

RESERVING_STATUSES = frozenset(
    {
        DeliveryOrderStatus.CONFIRMED,
        DeliveryOrderStatus.IN_TRANSIT,
        DeliveryOrderStatus.DELIVERED,
    }
)

EDITABLE_STATUSES = frozenset({DeliveryOrderStatus.DRAFT})

# Verb used in error messages for each target status
_ACTIONS = {
    DeliveryOrderStatus.CONFIRMED: "confirm",
    DeliveryOrderStatus.IN_TRANSIT: "ship",
    DeliveryOrderStatus.DELIVERED: "deliver",
    DeliveryOrderStatus.CANCELLED: "cancel",
}


def sources_of(target: DeliveryOrderStatus) -> list[DeliveryOrderStatus]:
    """Statuses from which *target* can be reached, in declaration order."""
    return [s for s in DeliveryOrderStatus if target in TRANSITIONS[s]]


def ensure_transition(
    current: DeliveryOrderStatus, target: DeliveryOrderStatus
) -> None:
    if not current.can_transition_to(target):
        raise StateConflictError(
            _ACTIONS.get(target, f"move to {target.value}"),
            current,
            sources_of(target),
        )


def ensure_editable(current: DeliveryOrderStatus) -> None:
    if current not in EDITABLE_STATUSES:
        raise StateConflictError("edit", current, sorted(EDITABLE_STATUSES, key=_order))


def _order(status: DeliveryOrderStatus) -> int:
    return list(DeliveryOrderStatus).index(status)
