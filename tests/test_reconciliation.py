"""Tests for the balance reconciliation auditor."""
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, text

from models import BALANCE_UNIQUE_INDEX, CustomerBalance, PointsTransaction
from services.award_service import award_order_points
from services.balance_service import find_balance_rows, get_balance
from services.identity import CustomerIdentity
from services.reconciliation_service import (
    balance_unique_index_present,
    ensure_balance_unique_index,
    reconcile_all,
    reconcile_identity,
)
from tests.factories import NOW, make_order

LATER = NOW + timedelta(hours=1)


def _count(db, column):
    return db.query(func.count(column)).scalar()


@pytest.fixture
def broken_balance(db, customer):
    """
    Customer 7 with one awarded $40 order (plus the 50 point first order
    bonus), one paid $18 order that was never awarded, and a duplicate
    balance row of 25 next to the correct one of 90.
    """
    awarded = make_order(db, Decimal("40.00"), legacy_user_id=7)
    make_order(db, Decimal("18.00"), legacy_user_id=7)
    award_order_points(db, customer, awarded.id, awarded.total, now=NOW)

    db.execute(text(f"DROP INDEX {BALANCE_UNIQUE_INDEX}"))
    db.add(CustomerBalance(
        **customer.columns(),
        points=25,
        total_earned=25,
        total_redeemed=0,
        created_at=NOW + timedelta(minutes=1),
        updated_at=NOW + timedelta(minutes=1),
    ))
    db.flush()
    return customer


class TestReconcileIdentity:

    def test_consistent_customer_has_no_discrepancy(self, db, customer):
        award_order_points(db, customer, 1, Decimal("10.00"))

        report = reconcile_identity(db, customer, dry_run=False)

        assert report.discrepancy is False
        assert report.applied is False
        assert report.before.points == 60

    def test_dry_run_reports_without_writing(self, db, broken_balance):
        report = reconcile_identity(db, broken_balance, dry_run=True, now=LATER)

        assert report.discrepancy is True
        assert report.applied is False
        assert report.balance_rows == 2
        assert len(report.duplicate_row_ids) == 1
        assert [m.points for m in report.missing_orders] == [18]
        assert report.expected.points == 108
        assert report.before.points == 90
        assert report.unique_index_present is False

        assert len(find_balance_rows(db, broken_balance)) == 2
        assert _count(db, PointsTransaction.id) == 2
        assert balance_unique_index_present(db) is False

    def test_apply_converges_and_restores_index(self, db, broken_balance):
        report = reconcile_identity(db, broken_balance, dry_run=False, now=LATER)

        assert report.applied is True
        assert report.after.points == 108
        assert report.after.total_earned == 108

        rows = find_balance_rows(db, broken_balance)
        assert len(rows) == 1
        assert (rows[0].points, rows[0].total_earned, rows[0].total_redeemed) == (108, 108, 0)
        assert rows[0].last_earned_at == LATER

        retro = db.query(PointsTransaction).filter(PointsTransaction.is_retroactive.is_(True)).all()
        assert [(e.points, e.type) for e in retro] == [(18, "earned")]
        assert balance_unique_index_present(db) is True

    def test_apply_twice_is_stable(self, db, broken_balance):
        reconcile_identity(db, broken_balance, dry_run=False, now=LATER)
        second = reconcile_identity(db, broken_balance, dry_run=False, now=LATER)

        assert second.discrepancy is False
        assert get_balance(db, broken_balance).points == 108
        assert _count(db, PointsTransaction.id) == 3

    def test_missing_balance_row_is_created(self, db, customer):
        make_order(db, Decimal("18.00"), legacy_user_id=7)

        report = reconcile_identity(db, customer, dry_run=False, now=LATER)

        assert report.before is None
        assert report.after.points == 18
        assert get_balance(db, customer).points == 18


class TestReconcileAll:

    def test_summary_over_customers(self, db, broken_balance):
        other = CustomerIdentity(external_id="abc")
        award_order_points(db, other, 99, Decimal("5.00"))

        summary = reconcile_all(db, dry_run=True, now=LATER)

        assert summary.identities_checked == 2
        assert summary.identities_with_discrepancy >= 1
        assert summary.missing_orders == 1
        assert summary.duplicate_rows == 1


def test_ensure_index_is_noop_when_present(db):
    assert ensure_balance_unique_index(db) is False
    assert balance_unique_index_present(db) is True
