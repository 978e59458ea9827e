"""Tests for configuration and class loading."""

import pytest
from django.conf import settings
from django.test import override_settings

from django_orders.conf import (
    DEFAULT_VALIDATORS,
    clear_caches,
    get_default_generator,
    get_setting,
    get_validators,
    load_generator,
    load_validator,
)
from django_orders.context import OrderContext
from django_orders.exceptions import ConfigurationError
from django_orders.numbering import (
    BaseOrderNumberGenerator,
    SequenceOrderNumberGenerator,
    get_order_number_generator,
)
from django_orders.validators import BaseOrderValidator, RequiredFieldsValidator
from tests.testapp.validators import FixedNumberGenerator


class TestLoadValidator:
    """Tests for load_validator function."""

    def test_load_valid_validator(self):
        validator = load_validator("tests.testapp.validators.BlockingValidator")

        assert isinstance(validator, BaseOrderValidator)

    def test_bad_dotted_path_format(self):
        """Invalid dotted path format raises error."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_validator("invalid")

        assert "Invalid dotted path format" in str(exc_info.value)
        assert exc_info.value.path == "invalid"

    def test_module_not_found(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_validator("nonexistent.module.Validator")

        assert "Cannot import module" in str(exc_info.value)

    def test_class_not_found(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_validator("tests.testapp.validators.NonexistentValidator")

        assert "not found in module" in str(exc_info.value)

    def test_not_a_validator_subclass(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_validator("tests.testapp.validators.FixedNumberGenerator")

        assert "must be a subclass of BaseOrderValidator" in str(exc_info.value)

    def test_same_instance_until_cache_cleared(self):
        first = load_validator("tests.testapp.validators.BlockingValidator")
        assert load_validator("tests.testapp.validators.BlockingValidator") is first

        clear_caches()

        assert load_validator("tests.testapp.validators.BlockingValidator") is not first


class TestLoadGenerator:
    """Tests for load_generator and generator selection."""

    def test_load_valid_generator(self):
        generator = load_generator("tests.testapp.validators.FixedNumberGenerator")

        assert isinstance(generator, FixedNumberGenerator)

    def test_not_a_generator_subclass(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_generator("tests.testapp.validators.NotAGenerator")

        assert "must be a subclass of BaseOrderNumberGenerator" in str(exc_info.value)

    def test_default_generator(self):
        assert isinstance(get_default_generator(), SequenceOrderNumberGenerator)

    @override_settings(ORDERS_ORDER_NUMBER_GENERATOR="tests.testapp.validators.FixedNumberGenerator")
    def test_configured_generator(self):
        assert isinstance(get_order_number_generator(), FixedNumberGenerator)

    def test_instance_passed_through(self):
        generator = FixedNumberGenerator()

        assert get_order_number_generator(generator) is generator

    def test_base_generator_must_be_overridden(self):
        with pytest.raises(NotImplementedError):
            BaseOrderNumberGenerator().generate(None, OrderContext())


class TestSettings:
    """Tests for ORDERS_ settings lookup."""

    def test_get_setting_default(self):
        assert get_setting("NOT_A_SETTING", "fallback") == "fallback"

    @override_settings(ORDERS_ORDER_NUMBER_PREFIX="LAB-")
    def test_get_setting_reads_prefixed_name(self):
        assert get_setting("ORDER_NUMBER_PREFIX") == "LAB-"

    def test_get_validators_from_settings(self):
        validators = get_validators()

        assert [type(v) for v in validators] == [RequiredFieldsValidator]

    @override_settings()
    def test_default_validators_when_unset(self):
        del settings.ORDERS_VALIDATORS

        assert [type(v) for v in get_validators()] == [RequiredFieldsValidator]
        assert DEFAULT_VALIDATORS == ["django_orders.validators.RequiredFieldsValidator"]

    @override_settings(ORDERS_VALIDATORS=["invalid"])
    def test_bad_configured_validator_raises(self):
        with pytest.raises(ConfigurationError):
            get_validators()


@pytest.mark.django_db
class TestOrderNumberPrefix:
    """Tests for the default generator's prefix and scope settings."""

    @override_settings(ORDERS_ORDER_NUMBER_PREFIX="LAB-")
    def test_prefix_override(self, make_order, cbc):
        order = make_order(cbc)

        assert order.order_number == "LAB-1"

    @override_settings(ORDERS_ORDER_NUMBER_SCOPE="lab")
    def test_scope_override_uses_separate_sequence(self, make_order, cbc):
        from django_orders.models import OrderNumberSequence

        make_order(cbc)

        assert OrderNumberSequence.objects.get(scope="lab").current_value == 1
        assert not OrderNumberSequence.objects.filter(scope="order_number").exists()
