"""Order number allocation.

Order numbers come from, in order of precedence:
1. OrderContext.order_number
2. OrderContext.order_number_generator
3. the generator named by ORDERS_ORDER_NUMBER_GENERATOR

The default generator formats a value taken from a shared, atomically
incremented OrderNumberSequence row. Gaps are fine, duplicates are not.
"""

from django.db import transaction

from .conf import (
    DEFAULT_ORDER_NUMBER_PREFIX,
    DEFAULT_ORDER_NUMBER_SCOPE,
    get_default_generator,
    get_setting,
    load_generator,
)
from .exceptions import OrderValidationError
from .models import Order, OrderNumberSequence


class BaseOrderNumberGenerator:
    """
    Base class for order number generators.

    Example:

        class PharmacyNumberGenerator(BaseOrderNumberGenerator):
            def generate(self, order, context):
                return f"RX-{next_order_number_seed()}"
    """

    def generate(self, order, context) -> str:
        raise NotImplementedError


class SequenceOrderNumberGenerator(BaseOrderNumberGenerator):
    """Default generator: ORDERS_ORDER_NUMBER_PREFIX + next sequence value."""

    def generate(self, order, context) -> str:
        prefix = get_setting('ORDER_NUMBER_PREFIX', DEFAULT_ORDER_NUMBER_PREFIX)
        return f"{prefix}{next_order_number_seed()}"


def next_order_number_seed(scope: str = None) -> int:
    """
    Get the next order number seed atomically.

    Uses select_for_update() so concurrent savers never see the same value.
    The sequence row is created on first use.
    """
    scope = scope or get_setting('ORDER_NUMBER_SCOPE', DEFAULT_ORDER_NUMBER_SCOPE)

    with transaction.atomic():
        seq, _ = OrderNumberSequence.objects.get_or_create(scope=scope)
        seq = OrderNumberSequence.objects.select_for_update().get(pk=seq.pk)

        seq.current_value += 1
        seq.save(update_fields=['current_value', 'updated_at'])

        return seq.current_value


def get_order_number_generator(generator=None) -> BaseOrderNumberGenerator:
    """Return generator as an instance, loading dotted paths; default when None."""
    if generator is None:
        return get_default_generator()
    if isinstance(generator, str):
        return load_generator(generator)
    return generator


def allocate_order_number(order, context=None) -> str:
    """
    Choose the order number for an order about to be saved.

    Raises:
        OrderValidationError: If the number is blank or already taken
    """
    if context is not None and context.order_number:
        order_number = context.order_number
    else:
        generator = get_order_number_generator(
            context.order_number_generator if context is not None else None
        )
        order_number = generator.generate(order, context)

    if not order_number:
        raise OrderValidationError("Order number generator returned an empty value")

    if Order.objects.filter(order_number=order_number).exists():
        raise OrderValidationError(f"Order number '{order_number}' is already in use")

    return order_number
