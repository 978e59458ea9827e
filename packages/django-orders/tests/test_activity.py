"""Tests for activity rules (pure functions, no database)."""

from datetime import timedelta

import pytest
from freezegun import freeze_time

from django_orders.activity import (
    effective_stop_date,
    filter_active,
    is_active,
    is_expired,
    is_started,
    is_stopped,
)
from django_orders.models import Order, OrderAction
from tests.conftest import utc


JAN_1 = utc(2024, 1, 1)
JAN_5 = utc(2024, 1, 5)
JAN_7 = utc(2024, 1, 7)
JAN_10 = utc(2024, 1, 10)
JAN_15 = utc(2024, 1, 15)


def build(**fields):
    """Unsaved order with just the fields activity rules read."""
    fields.setdefault("start_date", JAN_1)
    fields.setdefault("action", OrderAction.NEW)
    return Order(**fields)


class TestIsActive:
    """Tests for is_active."""

    def test_open_ended_order_is_active_after_start(self):
        order = build()

        assert is_active(order, JAN_15) is True

    def test_active_at_exact_start(self):
        """Starting at as_of counts as started."""
        assert is_active(build(), JAN_1) is True

    def test_not_active_before_start(self):
        order = build(start_date=JAN_5)

        assert is_active(order, JAN_1) is False

    def test_auto_expire_scenario(self):
        """Start Jan 1, expires Jan 10: active Jan 5, inactive Jan 15."""
        order = build(auto_expire_date=JAN_10)

        assert is_active(order, JAN_5) is True
        assert is_active(order, JAN_15) is False

    def test_inactive_at_exact_expiry(self):
        order = build(auto_expire_date=JAN_10)

        assert is_active(order, JAN_10) is False

    def test_inactive_at_exact_stop(self):
        order = build(date_stopped=JAN_5)

        assert is_active(order, JAN_5) is False

    @pytest.mark.parametrize("as_of", [JAN_1, JAN_5, JAN_10, JAN_15])
    def test_voided_never_active(self, as_of):
        order = build(voided=True)

        assert is_active(order, as_of) is False

    @pytest.mark.parametrize("as_of", [JAN_1, JAN_5, JAN_10, JAN_15])
    def test_discontinuation_never_active(self, as_of):
        order = build(action=OrderAction.DISCONTINUE)

        assert is_active(order, as_of) is False

    def test_date_stopped_wins_over_later_expiry(self):
        """Stopped Jan 5 with expiry Jan 10: inactive on Jan 7."""
        order = build(date_stopped=JAN_5, auto_expire_date=JAN_10)

        assert is_active(order, JAN_7) is False

    def test_date_stopped_wins_over_earlier_expiry(self):
        """Stopped Jan 10 with expiry Jan 5: still active on Jan 7."""
        order = build(date_stopped=JAN_10, auto_expire_date=JAN_5)

        assert is_active(order, JAN_7) is True

    @pytest.mark.parametrize("expiry", [None, JAN_5, JAN_10, JAN_15])
    def test_expiry_irrelevant_when_stopped(self, expiry):
        order = build(date_stopped=JAN_7, auto_expire_date=expiry)

        assert is_active(order, JAN_5) is True
        assert is_active(order, JAN_10) is False

    @freeze_time("2024-01-08 12:00:00")
    def test_defaults_to_now(self):
        order = build(auto_expire_date=JAN_10)

        assert is_active(order) is True
        assert is_active(build(auto_expire_date=JAN_7)) is False


class TestHelpers:
    """Tests for is_started, is_stopped, is_expired and friends."""

    def test_is_started(self):
        order = build(start_date=JAN_5)

        assert is_started(order, JAN_1) is False
        assert is_started(order, JAN_5) is True

    def test_is_stopped_without_as_of_counts_any_stop(self):
        order = build(date_stopped=JAN_15)

        assert is_stopped(order) is True
        assert is_stopped(order, JAN_10) is False
        assert is_stopped(order, JAN_15) is True

    def test_is_stopped_false_when_never_stopped(self):
        assert is_stopped(build(auto_expire_date=JAN_5), JAN_15) is False

    def test_is_expired(self):
        order = build(auto_expire_date=JAN_10)

        assert is_expired(order, JAN_5) is False
        assert is_expired(order, JAN_10) is True

    def test_stopped_order_is_not_expired(self):
        order = build(date_stopped=JAN_5, auto_expire_date=JAN_10)

        assert is_expired(order, JAN_15) is False

    def test_effective_stop_date(self):
        assert effective_stop_date(build()) is None
        assert effective_stop_date(build(auto_expire_date=JAN_10)) == JAN_10
        assert effective_stop_date(build(date_stopped=JAN_5, auto_expire_date=JAN_10)) == JAN_5

    def test_filter_active_keeps_input_order(self):
        first = build(start_date=JAN_5)
        expired = build(auto_expire_date=JAN_5)
        second = build(start_date=JAN_1 - timedelta(days=1))

        result = filter_active([first, expired, second], JAN_7)

        assert result == [first, second]
