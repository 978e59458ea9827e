"""Per-call overrides supplied when saving an order."""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class OrderContext:
    """
    Optional defaults used only while saving an order. Never persisted.

    Precedence at save time:
    - order_type / care_setting: value on the order, then concept class
      mapping (order type only), then this context
    - order_number: this context, then order_number_generator, then the
      ORDERS_ORDER_NUMBER_GENERATOR setting

    order_number_generator may be a BaseOrderNumberGenerator instance or a
    dotted path to a subclass.
    """

    order_type: Optional[Any] = None
    care_setting: Optional[Any] = None
    order_number: Optional[str] = None
    order_number_generator: Optional[Any] = None
