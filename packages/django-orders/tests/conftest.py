"""Pytest configuration for django-orders tests."""

from datetime import datetime, timezone as dt_timezone

import pytest

from django_orders.conf import clear_caches
from django_orders.models import (
    CareSetting,
    CareSettingType,
    Concept,
    ConceptClass,
    Drug,
    Order,
    OrderKind,
    OrderType,
)
from django_orders.services import save_order
from tests.testapp.models import Patient


def utc(year, month, day, hour=0):
    return datetime(year, month, day, hour, tzinfo=dt_timezone.utc)


@pytest.fixture(autouse=True)
def clear_loader_caches():
    """Clear validator/generator caches before and after each test."""
    clear_caches()
    yield
    clear_caches()


@pytest.fixture
def user(db, django_user_model):
    """Create the ordering provider."""
    return django_user_model.objects.create_user(username="drhouse", password="test")


@pytest.fixture
def patient(db):
    return Patient.objects.create(name="Jane Doe")


@pytest.fixture
def other_patient(db):
    return Patient.objects.create(name="John Roe")


@pytest.fixture
def drug_class(db):
    return ConceptClass.objects.create(name="Drug")


@pytest.fixture
def test_class(db):
    return ConceptClass.objects.create(name="Test")


@pytest.fixture
def misc_class(db):
    """Concept class with no order type mapped to it."""
    return ConceptClass.objects.create(name="Misc")


@pytest.fixture
def drug_order_type(drug_class):
    order_type = OrderType.objects.create(name="Drug Order")
    order_type.concept_classes.add(drug_class)
    return order_type


@pytest.fixture
def test_order_type(test_class):
    order_type = OrderType.objects.create(name="Test Order")
    order_type.concept_classes.add(test_class)
    return order_type


@pytest.fixture
def aspirin(drug_class):
    return Concept.objects.create(code="ASA", name="Aspirin", concept_class=drug_class)


@pytest.fixture
def aspirin_81(aspirin):
    return Drug.objects.create(name="Aspirin 81mg", concept=aspirin, strength="81mg")


@pytest.fixture
def aspirin_325(aspirin):
    return Drug.objects.create(name="Aspirin 325mg", concept=aspirin, strength="325mg")


@pytest.fixture
def cbc(test_class):
    return Concept.objects.create(code="CBC", name="Complete Blood Count", concept_class=test_class)


@pytest.fixture
def glucose(test_class):
    return Concept.objects.create(code="GLU", name="Blood Glucose", concept_class=test_class)


@pytest.fixture
def physio(misc_class):
    """Concept whose class is not mapped to any order type."""
    return Concept.objects.create(code="PHYSIO", name="Physiotherapy", concept_class=misc_class)


@pytest.fixture
def outpatient(db):
    return CareSetting.objects.create(name="Outpatient", care_setting_type=CareSettingType.OUTPATIENT)


@pytest.fixture
def inpatient(db):
    return CareSetting.objects.create(name="Inpatient", care_setting_type=CareSettingType.INPATIENT)


@pytest.fixture
def make_order(patient, user, outpatient, test_order_type, drug_order_type):
    """
    Save a NEW order through the service layer.

    Defaults: the `patient` fixture, the `user` fixture as orderer and the
    outpatient care setting. Any Order field can be overridden.
    """

    def _make(concept, context=None, **fields):
        fields.setdefault("patient", patient)
        fields.setdefault("orderer", user)
        fields.setdefault("care_setting", outpatient)
        if fields.get("drug") is not None:
            fields.setdefault("kind", OrderKind.DRUG)
        order = Order(concept=concept, **fields)
        return save_order(order, context=context)

    return _make
