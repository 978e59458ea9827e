"""
django-orders: Clinical order lifecycle for Django.

Provides:
- Order: append-only clinical orders linked into revision/discontinuation chains
- Services for save, revise, discontinue, void/unvoid and purge
- Temporal activity rules ("which orders are active as of T")
- Pluggable validators and order number generators
"""

__version__ = "0.1.0"

__all__ = [
    # Context
    "OrderContext",
    # Activity
    "is_active",
    # Exceptions
    "OrderError",
    "OrderValidationError",
    "IllegalTransitionError",
    "UnresolvedDefaultError",
    "ConflictError",
    "ChainIntegrityError",
    "OrderInUseError",
    "ConfigurationError",
]


def __getattr__(name):
    """Lazy import to avoid AppRegistryNotReady errors."""
    if name == "OrderContext":
        from django_orders.context import OrderContext
        return OrderContext
    if name == "is_active":
        from django_orders.activity import is_active
        return is_active
    if name in __all__:
        from django_orders import exceptions
        return getattr(exceptions, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
