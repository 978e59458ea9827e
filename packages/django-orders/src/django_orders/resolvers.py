"""
Default resolution for an order's type and care setting.

Reads reference data only; never writes.
"""

from .exceptions import UnresolvedDefaultError
from .models import OrderType


def get_order_type_by_concept_class(concept_class):
    """Return the first unretired OrderType mapped to concept_class, or None."""
    if concept_class is None:
        return None
    return (
        OrderType.objects.unretired()
        .filter(concept_classes=concept_class)
        .order_by("id")
        .first()
    )


def resolve_order_type(order, context=None) -> OrderType:
    """
    Resolve the order type for an order.

    Precedence:
    1. order.order_type when already set
    2. the OrderType mapped to the concept's class
    3. context.order_type

    Raises:
        UnresolvedDefaultError: If none of the above yields a type
    """
    if order.order_type_id is not None:
        return order.order_type

    concept = order.concept if order.concept_id is not None else None
    if concept is not None:
        order_type = get_order_type_by_concept_class(concept.concept_class)
        if order_type is not None:
            return order_type

    if context is not None and context.order_type is not None:
        return context.order_type

    raise UnresolvedDefaultError(
        "order_type",
        "Order type is not set, the concept class is not mapped to an order "
        "type and the order context has no default",
    )


def resolve_care_setting(order, context=None):
    """
    Resolve the care setting for an order: explicit value, then context.

    Raises:
        UnresolvedDefaultError: If neither is set
    """
    if order.care_setting_id is not None:
        return order.care_setting

    if context is not None and context.care_setting is not None:
        return context.care_setting

    raise UnresolvedDefaultError(
        "care_setting",
        "Care setting is not set and the order context has no default",
    )


def get_subtypes(order_type, include_retired: bool = False) -> list[OrderType]:
    """
    Return all subtypes of order_type, transitively.

    Breadth-first over the parent links; the type itself is not included.
    """
    subtypes = []
    visited = {order_type.pk}
    queue = [order_type.pk]

    while queue:
        current = queue.pop(0)
        for child in OrderType.objects.filter(parent_id=current).order_by("id"):
            if child.pk in visited:
                continue
            visited.add(child.pk)
            queue.append(child.pk)
            if include_retired or not child.retired:
                subtypes.append(child)

    return subtypes


def order_type_and_subtypes(order_type) -> list[OrderType]:
    """Return order_type followed by its subtypes, retired ones included."""
    return [order_type] + get_subtypes(order_type, include_retired=True)
