"""Tests for linking orphaned guest orders to a signed-in customer."""
from datetime import timedelta
from decimal import Decimal

import pytest

from models import Order
from services.balance_service import get_balance
from services.recovery_service import normalize_phone, recover_orphan_orders
from tests.factories import NOW, make_order, make_profile


@pytest.mark.parametrize("raw,expected", [
    ("555-0100", "5550100"),
    ("(555) 0100", "5550100"),
    ("+1 212 555 0100", "2125550100"),
    (None, ""),
])
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


class TestRecoverOrphanOrders:

    def test_links_and_awards_recent_orphans(self, db, customer):
        make_profile(db, legacy_user_id=7, phone="555-0100")
        orphan = make_order(db, Decimal("20.00"), phone="5550100", created_at=NOW - timedelta(days=2))

        result = recover_orphan_orders(db, customer, now=NOW)

        assert result.orders_linked == 1
        assert result.points_awarded == 20
        assert result.orders[0].order_id == orphan.id
        # plus the first order bonus
        assert get_balance(db, customer).points == 70

        linked = db.get(Order, orphan.id)
        db.refresh(linked)
        assert linked.legacy_user_id == 7

    def test_second_run_links_nothing(self, db, customer):
        make_profile(db, legacy_user_id=7, phone="555-0100")
        make_order(db, Decimal("20.00"), phone="555 0100", created_at=NOW - timedelta(days=2))
        recover_orphan_orders(db, customer, now=NOW)

        again = recover_orphan_orders(db, customer, now=NOW)

        assert again.orders_linked == 0
        assert get_balance(db, customer).points == 70

    def test_ignores_old_claimed_and_mismatched_orders(self, db, customer):
        make_profile(db, legacy_user_id=7, phone="555-0100")
        make_order(db, Decimal("20.00"), phone="5550100", created_at=NOW - timedelta(days=45))
        make_order(db, Decimal("20.00"), phone="5550100", legacy_user_id=9, created_at=NOW)
        make_order(db, Decimal("20.00"), phone="5550199", created_at=NOW)

        result = recover_orphan_orders(db, customer, now=NOW)

        assert result.orders_linked == 0
        assert get_balance(db, customer).points == 0

    def test_unpaid_orphan_is_linked_without_points(self, db, customer):
        make_profile(db, legacy_user_id=7, phone="555-0100")
        make_order(db, Decimal("20.00"), phone="5550100", payment_status="pending", created_at=NOW)

        result = recover_orphan_orders(db, customer, now=NOW)

        assert result.orders_linked == 1
        assert result.points_awarded == 0

    def test_customer_without_phone(self, db, customer):
        make_order(db, Decimal("20.00"), phone="5550100", created_at=NOW)

        result = recover_orphan_orders(db, customer, now=NOW)

        assert result.phone is None
        assert result.orders_linked == 0
