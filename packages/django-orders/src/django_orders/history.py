"""Order history: walking previous_order links and listing past orders.

Lineages are acyclic by construction (checked on save). A cycle found while
walking means corrupted data and raises ChainIntegrityError instead of looping.
"""

from .exceptions import ChainIntegrityError, OrderValidationError
from .models import Order

# Upper bound on lineage length; no real lineage comes close.
MAX_CHAIN_LENGTH = 1000


def walk_previous_orders(order: Order) -> list[Order]:
    """
    Return order followed by its previous orders, most recent first.

    Raises:
        ChainIntegrityError: If an order repeats or the chain is too long
    """
    chain = []
    visited = set()
    current = order

    while current is not None:
        if current.pk in visited:
            raise ChainIntegrityError(order.order_number)
        if len(chain) >= MAX_CHAIN_LENGTH:
            raise ChainIntegrityError(
                order.order_number,
                f"Order history of '{order.order_number}' is longer than {MAX_CHAIN_LENGTH} orders",
            )
        visited.add(current.pk)
        chain.append(current)

        if current.previous_order_id is None:
            break
        current = Order.objects.filter(pk=current.previous_order_id).first()

    return chain


def assert_acyclic(order: Order) -> None:
    """
    Check that linking order to its previous_order would not close a loop.

    Raises:
        ChainIntegrityError: If order is already part of its previous chain
    """
    if order.previous_order_id is None:
        return

    previous = Order.objects.filter(pk=order.previous_order_id).first()
    if previous is None:
        return

    for ancestor in walk_previous_orders(previous):
        if order.pk is not None and ancestor.pk == order.pk:
            raise ChainIntegrityError(
                order.order_number or str(order.pk),
                f"Order '{order.order_number}' cannot supersede its own history",
            )


def get_successor(order: Order):
    """Return the non-voided order that revises or discontinues order, or None."""
    return Order.objects.filter(previous_order=order, voided=False).first()


def get_order_history_by_order_number(order_number: str) -> list[Order]:
    """
    Return the lineage ending at order_number, most recent first.

    For A revised by B, discontinued by C, the history of C is [C, B, A].
    Returns an empty list when no order has that number.
    """
    order = Order.objects.filter(order_number=order_number).first()
    if order is None:
        return []
    return walk_previous_orders(order)


def get_order_history_by_concept(patient, concept) -> list[Order]:
    """
    Return every order of patient for concept across all lineages.

    Latest start_date first; voided orders included.

    Raises:
        OrderValidationError: If patient or concept is None
    """
    violations = []
    if patient is None:
        violations.append("patient is required")
    if concept is None:
        violations.append("concept is required")
    if violations:
        raise OrderValidationError(violations)

    return list(
        Order.objects.for_patient(patient)
        .filter(concept=concept)
        .latest_first()
    )
