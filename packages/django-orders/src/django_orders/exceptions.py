"""Custom exceptions for django-orders."""


class OrderError(Exception):
    """Base exception for order errors."""
    pass


class OrderValidationError(OrderError):
    """Raised when an order fails structural or business validation."""

    def __init__(self, violations):
        if isinstance(violations, str):
            violations = [violations]
        self.violations = list(violations)
        super().__init__("Order is invalid: " + "; ".join(self.violations))


class IllegalTransitionError(OrderError):
    """
    Raised when an order cannot move to the requested state.

    `rule` is a stable code naming the rule that was violated, e.g.
    'previous_order_voided' or 'order_immutable'.
    """

    def __init__(self, rule: str, message: str = None):
        self.rule = rule
        self.message = message or f"Illegal order transition: {rule}"
        super().__init__(self.message)


class UnresolvedDefaultError(OrderError):
    """Raised when order type or care setting cannot be resolved."""

    def __init__(self, field: str, reason: str = None):
        self.field = field
        self.reason = reason or (
            f"Cannot resolve {field.replace('_', ' ')}: not set on the order "
            f"and no default available"
        )
        super().__init__(self.reason)


class ConflictError(OrderError):
    """Raised when the previous order was superseded by a concurrent writer."""

    def __init__(self, previous_order, reason: str = None):
        self.previous_order = previous_order
        number = getattr(previous_order, "order_number", previous_order)
        self.reason = reason or (
            f"Order '{number}' has already been revised or discontinued; "
            f"reload it and try again"
        )
        super().__init__(self.reason)


class ChainIntegrityError(OrderError):
    """Raised when a previous-order chain contains a cycle."""

    def __init__(self, order_number: str, reason: str = None):
        self.order_number = order_number
        self.reason = reason or f"Cycle detected in order history of '{order_number}'"
        super().__init__(self.reason)


class OrderInUseError(OrderError):
    """Raised when purging an order that other records still reference."""

    def __init__(self, order, dependents: list[str]):
        self.order = order
        self.dependents = dependents
        super().__init__(
            f"Cannot purge order '{order.order_number}': referenced by "
            + ", ".join(dependents)
        )


class ConfigurationError(OrderError):
    """Raised when a configured validator or generator cannot be loaded."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load '{path}': {reason}")
