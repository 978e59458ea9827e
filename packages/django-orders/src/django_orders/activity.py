"""
Pure functions answering "is this order active at time T?".

No database access. Order.objects.active() is the queryset rendition of the
same rules and must stay in step with is_active().

Rules, evaluated in order:
1. voided orders are never active
2. DISCONTINUE orders are never active themselves
3. orders not yet started are inactive
4. date_stopped, when set, decides alone (active iff date_stopped > as_of)
5. otherwise auto_expire_date decides (active iff auto_expire_date > as_of)
6. otherwise the order stays active indefinitely
"""

from django.utils import timezone

from .models import OrderAction


def is_active(order, as_of=None) -> bool:
    """
    Return True if the order is active at as_of.

    Args:
        order: The order to check
        as_of: Instant to evaluate at (defaults to now)

    Returns:
        Whether the order is active at that instant
    """
    as_of = as_of or timezone.now()

    if order.voided:
        return False
    if order.action == OrderAction.DISCONTINUE:
        return False
    if not is_started(order, as_of):
        return False
    if order.date_stopped is not None:
        return order.date_stopped > as_of
    if order.auto_expire_date is not None:
        return order.auto_expire_date > as_of
    return True


def is_started(order, as_of=None) -> bool:
    as_of = as_of or timezone.now()
    return order.start_date is not None and order.start_date <= as_of


def is_stopped(order, as_of=None) -> bool:
    """
    Return True if a later order has stopped this one.

    Without as_of, any recorded date_stopped counts; with as_of, only a stop
    that has taken effect by then.
    """
    if order.date_stopped is None:
        return False
    if as_of is None:
        return True
    return order.date_stopped <= as_of


def is_expired(order, as_of=None) -> bool:
    """Return True if the order ran past its auto_expire_date without being stopped."""
    as_of = as_of or timezone.now()
    if order.date_stopped is not None or order.auto_expire_date is None:
        return False
    return order.auto_expire_date <= as_of


def effective_stop_date(order):
    """The instant the order stops being active, or None if open-ended."""
    if order.date_stopped is not None:
        return order.date_stopped
    return order.auto_expire_date


def filter_active(orders, as_of=None) -> list:
    """Return the orders active at as_of, keeping their input order."""
    as_of = as_of or timezone.now()
    return [order for order in orders if is_active(order, as_of)]
