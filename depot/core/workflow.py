"""
Order status workflow — the state machine behind supply requests.

    pending ──► approved ──► completed
       │
       └──────► rejected

``rejected`` and ``completed`` are terminal. Only ``pending`` orders can be
edited or deleted by their owner.
"""

from __future__ import annotations

from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


ORDER_STATUSES: tuple[str, ...] = tuple(s.value for s in OrderStatus)

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.APPROVED, OrderStatus.REJECTED}),
    OrderStatus.APPROVED: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.REJECTED: frozenset(),
    OrderStatus.COMPLETED: frozenset(),
}

# Statuses that count towards spend / revenue figures
FULFILLED_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.APPROVED, OrderStatus.COMPLETED}
)

_LABELS = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.APPROVED: "Approved",
    OrderStatus.REJECTED: "Rejected",
    OrderStatus.COMPLETED: "Completed",
}


class IllegalTransition(Exception):
    """Raised when a status change is not in the transition table."""

    def __init__(self, current: OrderStatus | str, target: OrderStatus | str) -> None:
        self.current = OrderStatus(current)
        self.target = OrderStatus(target)
        super().__init__(
            f"Cannot change order status from '{self.current.value}' "
            f"to '{self.target.value}'"
        )


def can_transition(current: OrderStatus | str, target: OrderStatus | str) -> bool:
    return OrderStatus(target) in TRANSITIONS[OrderStatus(current)]


def ensure_transition(current: OrderStatus | str, target: OrderStatus | str) -> OrderStatus:
    """Validate ``current -> target`` and return the target status."""
    if not can_transition(current, target):
        raise IllegalTransition(current, target)
    return OrderStatus(target)


def is_terminal(status: OrderStatus | str) -> bool:
    return not TRANSITIONS[OrderStatus(status)]


def can_edit(status: OrderStatus | str) -> bool:
    return OrderStatus(status) is OrderStatus.PENDING


def can_delete(status: OrderStatus | str) -> bool:
    return OrderStatus(status) is OrderStatus.PENDING


def status_label(status: OrderStatus | str) -> str:
    try:
        return _LABELS[OrderStatus(status)]
    except ValueError:
        return "Unknown"
