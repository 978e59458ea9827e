"""Configuration helpers for django-orders.

All settings can be overridden in your Django settings.py.

Example:
    # settings.py
    ORDERS_VALIDATORS = [
        'django_orders.validators.RequiredFieldsValidator',
        'pharmacy.validators.FormularyValidator',
    ]
    ORDERS_ORDER_NUMBER_GENERATOR = 'pharmacy.numbering.RxNumberGenerator'
"""

from functools import lru_cache
from importlib import import_module

from django.conf import settings

from .exceptions import ConfigurationError


DEFAULT_VALIDATORS = ['django_orders.validators.RequiredFieldsValidator']
DEFAULT_ORDER_NUMBER_GENERATOR = 'django_orders.numbering.SequenceOrderNumberGenerator'
DEFAULT_ORDER_NUMBER_PREFIX = 'ORD-'
DEFAULT_ORDER_NUMBER_SCOPE = 'order_number'


def get_setting(name: str, default=None):
    """Get a setting with ORDERS_ prefix."""
    return getattr(settings, f"ORDERS_{name}", default)


def _import_class(dotted_path: str, base_class: type):
    try:
        module_path, class_name = dotted_path.rsplit('.', 1)
    except ValueError:
        raise ConfigurationError(dotted_path, "Invalid dotted path format")

    try:
        module = import_module(module_path)
    except ImportError as e:
        raise ConfigurationError(dotted_path, f"Cannot import module: {e}")

    try:
        klass = getattr(module, class_name)
    except AttributeError:
        raise ConfigurationError(dotted_path, f"Class '{class_name}' not found in module")

    if not isinstance(klass, type) or not issubclass(klass, base_class):
        raise ConfigurationError(
            dotted_path,
            f"'{class_name}' must be a subclass of {base_class.__name__}"
        )

    return klass


@lru_cache(maxsize=128)
def load_validator(dotted_path: str):
    """
    Import and instantiate an order validator from dotted path.

    Raises ConfigurationError for bad imports or non-subclass validators.
    """
    from .validators import BaseOrderValidator

    return _import_class(dotted_path, BaseOrderValidator)()


@lru_cache(maxsize=32)
def load_generator(dotted_path: str):
    """Import and instantiate an order number generator from dotted path."""
    from .numbering import BaseOrderNumberGenerator

    return _import_class(dotted_path, BaseOrderNumberGenerator)()


def get_validators() -> list:
    """Load validator instances listed in ORDERS_VALIDATORS."""
    paths = get_setting('VALIDATORS', DEFAULT_VALIDATORS)
    return [load_validator(path) for path in paths]


def get_default_generator():
    """Load the generator named by ORDERS_ORDER_NUMBER_GENERATOR."""
    return load_generator(
        get_setting('ORDER_NUMBER_GENERATOR', DEFAULT_ORDER_NUMBER_GENERATOR)
    )


def clear_caches():
    """Clear the class loading caches. Useful for testing."""
    load_validator.cache_clear()
    load_generator.cache_clear()


# =============================================================================
# DEFAULT SETTINGS REFERENCE
# =============================================================================

# ORDERS_VALIDATORS = ['django_orders.validators.RequiredFieldsValidator']
# ORDERS_ORDER_NUMBER_GENERATOR = 'django_orders.numbering.SequenceOrderNumberGenerator'
# ORDERS_ORDER_NUMBER_PREFIX = 'ORD-'
# ORDERS_ORDER_NUMBER_SCOPE = 'order_number'
