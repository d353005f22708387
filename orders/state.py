"""Transition tables for the order and payment state machines.

The two machines are coupled only through the composite payment handlers in
`orders.services`; everything else moves one machine at a time.
"""

from common.choices import OrderStatus, PaymentStatus
from common.exceptions import InvalidState

ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PLACED, OrderStatus.CANCELLED},
    OrderStatus.PLACED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PROCESSING, PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.PROCESSING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.COMPLETED: {PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED},
    # Further partial refunds stay partially refunded until the total is reached
    PaymentStatus.PARTIALLY_REFUNDED: {PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED},
    PaymentStatus.FAILED: set(),
    PaymentStatus.REFUNDED: set(),
}

# Statuses a customer may cancel from
CUSTOMER_CANCELLABLE = {OrderStatus.PENDING, OrderStatus.PLACED, OrderStatus.SHIPPED}


def validate_order_status(value: str) -> str:
    if value not in OrderStatus.values:
        raise InvalidState("Invalid order status", status=value, allowed=list(OrderStatus.values))
    return value


def validate_payment_status(value: str) -> str:
    if value not in PaymentStatus.values:
        raise InvalidState("Invalid payment status", payment_status=value, allowed=list(PaymentStatus.values))
    return value


def can_transition_order(current: str, target: str) -> bool:
    return target in ORDER_TRANSITIONS.get(current, set())


def can_transition_payment(current: str, target: str) -> bool:
    return target in PAYMENT_TRANSITIONS.get(current, set())


def ensure_order_transition(current: str, target: str) -> None:
    validate_order_status(target)
    if not can_transition_order(current, target):
        raise InvalidState(f"Cannot move order from {current} to {target}", status=current, requested=target)


def ensure_payment_transition(current: str, target: str) -> None:
    validate_payment_status(target)
    if not can_transition_payment(current, target):
        raise InvalidState(
            f"Cannot move payment from {current} to {target}", payment_status=current, requested=target
        )
