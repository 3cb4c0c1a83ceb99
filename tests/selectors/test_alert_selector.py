"""
Tests for AlertSelector: low-stock and near-expiry classification.

Both bounds are inclusive.
"""

from datetime import datetime, timedelta, timezone

import pytest

from stock_kernel.selectors import AlertSelector

AS_OF = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def add_item(catalog, deterministic_clock):
    def _add(name, stock, threshold, expiration):
        item = catalog.create_item(
            name=name,
            manufacturer="VetPharma",
            batch=f"{name}-1",
            expiration_date=expiration,
            stock_quantity=stock,
            min_stock_threshold=threshold,
        )
        deterministic_clock.advance(1)
        return item

    return _add


def _alerts(database, horizon_days=30):
    with database.session_scope() as session:
        return AlertSelector(session).list_alerts(AS_OF, horizon_days)


class TestClassification:

    def test_stock_equal_to_threshold_is_low(self, database, add_item):
        item = add_item("equal", 5, 5, AS_OF + timedelta(days=365))

        [alert] = _alerts(database)

        assert alert.id == item.id
        assert alert.low_stock is True
        assert alert.near_expiry is False

    def test_stock_above_threshold_not_reported(self, database, add_item):
        add_item("plenty", 6, 5, AS_OF + timedelta(days=365))

        assert _alerts(database) == []

    def test_expiry_exactly_at_horizon_is_near(self, database, add_item):
        item = add_item("edge", 50, 0, AS_OF + timedelta(days=30))

        [alert] = _alerts(database)

        assert alert.id == item.id
        assert alert.near_expiry is True
        assert alert.low_stock is False

    def test_expiry_just_past_horizon_not_reported(self, database, add_item):
        add_item("later", 50, 0, AS_OF + timedelta(days=30, seconds=1))

        assert _alerts(database) == []

    def test_expired_item_is_near_expiry(self, database, add_item):
        add_item("gone", 50, 0, AS_OF - timedelta(days=3))

        [alert] = _alerts(database)

        assert alert.near_expiry is True

    def test_both_flags(self, database, add_item):
        add_item("both", 0, 0, AS_OF + timedelta(days=1))

        [alert] = _alerts(database)

        assert alert.low_stock is True
        assert alert.near_expiry is True

    def test_custom_horizon(self, database, add_item):
        add_item("ten-days", 50, 0, AS_OF + timedelta(days=10))

        assert _alerts(database, horizon_days=9) == []
        assert len(_alerts(database, horizon_days=10)) == 1

    def test_negative_horizon_rejected(self, database):
        with pytest.raises(ValueError):
            _alerts(database, horizon_days=-1)


class TestOrdering:

    def test_newest_first(self, database, add_item):
        first = add_item("first", 0, 1, AS_OF + timedelta(days=365))
        second = add_item("second", 0, 1, AS_OF + timedelta(days=365))
        add_item("fine", 10, 1, AS_OF + timedelta(days=365))

        assert [a.id for a in _alerts(database)] == [second.id, first.id]

    def test_alert_fields_mirror_item(self, database, add_item):
        expiration = AS_OF + timedelta(days=2)
        item = add_item("mirror", 3, 4, expiration)

        [alert] = _alerts(database)

        assert alert.name == item.name
        assert alert.stock_quantity == 3
        assert alert.min_stock_threshold == 4
        assert alert.expiration_date == expiration
