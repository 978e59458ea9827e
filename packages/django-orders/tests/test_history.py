"""Tests for order history and chain integrity."""

import pytest

from django_orders.exceptions import ChainIntegrityError, OrderValidationError
from django_orders.history import (
    assert_acyclic,
    get_successor,
    walk_previous_orders,
)
from django_orders.models import Order
from django_orders.services import (
    discontinue_order,
    get_order_history_by_concept,
    get_order_history_by_order_number,
    revise_order,
    void_order,
)
from tests.conftest import utc


JAN_1 = utc(2024, 1, 1)
JAN_5 = utc(2024, 1, 5)
JAN_7 = utc(2024, 1, 7)
JAN_10 = utc(2024, 1, 10)


@pytest.fixture
def lineage(make_order, user, cbc):
    """A revised by B, B discontinued by C."""
    a = make_order(cbc, start_date=JAN_1)
    b = revise_order(a, start_date=JAN_5, instructions="fasting")
    c = discontinue_order(b, "resolved", JAN_7, orderer=user)
    return a, b, c


@pytest.mark.django_db
class TestHistoryByOrderNumber:
    """Tests for get_order_history_by_order_number."""

    def test_returns_lineage_most_recent_first(self, lineage):
        a, b, c = lineage

        history = get_order_history_by_order_number(c.order_number)

        assert history == [c, b, a]

    def test_history_of_middle_order_stops_at_root(self, lineage):
        a, b, c = lineage

        assert get_order_history_by_order_number(b.order_number) == [b, a]

    def test_single_order(self, make_order, glucose):
        order = make_order(glucose)

        assert get_order_history_by_order_number(order.order_number) == [order]

    def test_unknown_number_returns_empty_list(self, db):
        assert get_order_history_by_order_number("ORD-404") == []


@pytest.mark.django_db
class TestHistoryByConcept:
    """Tests for get_order_history_by_concept."""

    def test_all_lineages_latest_first(self, lineage, make_order, patient, cbc):
        a, b, c = lineage
        d = make_order(cbc, start_date=JAN_10)

        assert get_order_history_by_concept(patient, cbc) == [d, c, b, a]

    def test_includes_voided_orders(self, make_order, patient, cbc):
        order = make_order(cbc, start_date=JAN_1)
        void_order(order, "wrong")

        assert get_order_history_by_concept(patient, cbc) == [order]

    def test_only_matching_concept_and_patient(self, make_order, patient, other_patient, cbc, glucose):
        mine = make_order(cbc, start_date=JAN_1)
        make_order(glucose, start_date=JAN_1)
        make_order(cbc, patient=other_patient, start_date=JAN_1)

        assert get_order_history_by_concept(patient, cbc) == [mine]

    def test_requires_patient_and_concept(self, db):
        with pytest.raises(OrderValidationError) as exc_info:
            get_order_history_by_concept(None, None)

        assert exc_info.value.violations == ["patient is required", "concept is required"]


@pytest.mark.django_db
class TestChainIntegrity:
    """Tests for walking corrupted previous-order chains."""

    def test_get_successor(self, lineage):
        a, b, c = lineage

        assert get_successor(a) == b
        assert get_successor(b) == c
        assert get_successor(c) is None

    def test_voided_successor_is_ignored(self, make_order, cbc):
        a = make_order(cbc, start_date=JAN_1)
        b = revise_order(a, start_date=JAN_5)
        void_order(b, "mistake")

        assert get_successor(a) is None

    def test_cycle_raises_instead_of_looping(self, lineage):
        a, b, c = lineage
        Order.objects.filter(pk=a.pk).update(previous_order=c)
        c.refresh_from_db()

        with pytest.raises(ChainIntegrityError) as exc_info:
            walk_previous_orders(c)

        assert exc_info.value.order_number == c.order_number

    def test_overlong_chain_raises(self, lineage, monkeypatch):
        a, b, c = lineage
        monkeypatch.setattr("django_orders.history.MAX_CHAIN_LENGTH", 2)

        with pytest.raises(ChainIntegrityError) as exc_info:
            walk_previous_orders(c)

        assert "longer than 2 orders" in str(exc_info.value)
        assert "Cycle" not in str(exc_info.value)

    def test_history_of_corrupted_chain_raises(self, lineage):
        a, b, c = lineage
        Order.objects.filter(pk=a.pk).update(previous_order=c)

        with pytest.raises(ChainIntegrityError):
            get_order_history_by_order_number(b.order_number)

    def test_assert_acyclic_rejects_self_reference(self, lineage):
        a, b, c = lineage
        b.previous_order = c

        with pytest.raises(ChainIntegrityError):
            assert_acyclic(b)

    def test_assert_acyclic_accepts_linear_chain(self, lineage):
        a, b, c = lineage

        assert_acyclic(c)
