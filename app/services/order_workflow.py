"""Order status transitions.

Every endpoint that changes ``Order.status`` asks :func:`can_transition`
first, so the legal moves for buyers, sellers and the admin live in one
table instead of being re-derived per route.

Pipeline for a GCash order::

    pending -> payment_verified -> processing -> ready_for_pickup -> picked_up

Cash-on-pickup orders start at ``confirmed``. ``cancelled`` (buyer) and
``rejected`` (admin) are side exits from the early states.
"""
from enum import Enum
from typing import Dict, FrozenSet, Tuple

from app.models.order import OrderStatus


class Actor(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"


TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.PICKED_UP,
    OrderStatus.CANCELLED,
    OrderStatus.REJECTED,
})

CANCELLABLE_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
})

# Fixed moves for the buyer and the admin: {current: allowed targets}
_BUYER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    status: frozenset({OrderStatus.CANCELLED}) for status in CANCELLABLE_STATUSES
}

_ADMIN_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PAYMENT_VERIFIED, OrderStatus.REJECTED}),
}

# Seller choices once a GCash payment has been verified; forward only
VERIFIED_SELLER_PIPELINE: Tuple[OrderStatus, ...] = (
    OrderStatus.PAYMENT_VERIFIED,
    OrderStatus.PROCESSING,
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.PICKED_UP,
)

# Seller choices while no payment has been verified
UNVERIFIED_SELLER_TARGETS: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.PICKED_UP,
})


def _seller_can_transition(current: OrderStatus, target: OrderStatus, payment_verified: bool, awaiting_payment: bool) -> bool:
    # A GCash receipt under review keeps the order at pending until the admin decides
    if awaiting_payment:
        return False
    if payment_verified:
        if current not in VERIFIED_SELLER_PIPELINE or target not in VERIFIED_SELLER_PIPELINE:
            return False
        return VERIFIED_SELLER_PIPELINE.index(target) > VERIFIED_SELLER_PIPELINE.index(current)

    if current in TERMINAL_STATUSES or current == OrderStatus.PAYMENT_VERIFIED:
        return False
    return target in UNVERIFIED_SELLER_TARGETS


def can_transition(
    current: OrderStatus,
    target: OrderStatus,
    actor: Actor,
    payment_verified: bool = False,
    awaiting_payment: bool = False,
) -> bool:
    current = OrderStatus(current)
    target = OrderStatus(target)
    if current == target:
        return False

    if actor == Actor.BUYER:
        return target in _BUYER_TRANSITIONS.get(current, frozenset())
    if actor == Actor.ADMIN:
        return target in _ADMIN_TRANSITIONS.get(current, frozenset())
    if actor == Actor.SELLER:
        return _seller_can_transition(current, target, payment_verified, awaiting_payment)
    return False


def seller_status_choices(current: OrderStatus, payment_verified: bool = False, awaiting_payment: bool = False) -> list:
    """Statuses a seller may pick next, in pipeline order."""
    order = [
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PAYMENT_VERIFIED,
        OrderStatus.PROCESSING,
        OrderStatus.READY_FOR_PICKUP,
        OrderStatus.PICKED_UP,
    ]
    return [s for s in order if can_transition(current, s, Actor.SELLER, payment_verified, awaiting_payment)]
