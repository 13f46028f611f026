"""Tests for reward redemption and the voucher lifecycle."""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import func, update

from models import DiscountType, PointsTransaction, Reward, TransactionType, UserVoucher, VoucherStatus
from services import voucher_service
from services.award_service import admin_award
from services.balance_service import get_balance
from services.exceptions import (
    InsufficientBalanceError,
    MinimumOrderNotMetError,
    RewardNotFoundError,
    RewardUnavailableError,
    VoucherNotFoundError,
)
from services.voucher_service import apply_voucher, expire_vouchers, list_eligible_vouchers, redeem_reward
from tests.factories import NOW, make_reward


def _count(db, column):
    return db.query(func.count(column)).scalar()


class TestRedeemReward:
    """Points -> voucher"""

    def test_redeem_debits_and_issues_voucher(self, db, customer):
        admin_award(db, customer, 150, "seed")
        reward = make_reward(db, points_required=100)

        result = redeem_reward(db, customer, reward.id, now=NOW)

        assert result.points_spent == 100
        assert result.balance_after == 50
        assert result.voucher.status == VoucherStatus.ACTIVE.value
        assert result.voucher.points_used == 100
        assert result.voucher.expires_at == NOW + timedelta(days=30)
        assert result.voucher.voucher_code.startswith("RWD-")

        balance = get_balance(db, customer)
        assert (balance.points, balance.total_earned, balance.total_redeemed) == (50, 150, 100)
        assert reward.times_used == 1

    def test_insufficient_balance_changes_nothing(self, db, customer):
        admin_award(db, customer, 40, "seed")
        reward = make_reward(db, points_required=100)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            redeem_reward(db, customer, reward.id)

        assert exc_info.value.required == 100
        assert exc_info.value.available == 40
        assert get_balance(db, customer).points == 40
        assert _count(db, PointsTransaction.id) == 1
        assert _count(db, UserVoucher.id) == 0

    def test_customer_without_balance(self, db, customer):
        reward = make_reward(db, points_required=10)

        with pytest.raises(InsufficientBalanceError):
            redeem_reward(db, customer, reward.id)

    def test_inactive_reward(self, db, customer):
        reward = make_reward(db, active=False)

        with pytest.raises(RewardNotFoundError):
            redeem_reward(db, customer, reward.id)

    def test_usage_limit(self, db, customer):
        admin_award(db, customer, 500, "seed")
        reward = make_reward(db, points_required=100, max_uses=1)

        redeem_reward(db, customer, reward.id)
        with pytest.raises(RewardUnavailableError):
            redeem_reward(db, customer, reward.id)
        assert get_balance(db, customer).points == 400

    def test_last_use_taken_between_check_and_debit(self, db, customer):
        admin_award(db, customer, 300, "seed")
        reward = make_reward(db, points_required=100, max_uses=2, times_used=1)
        original = voucher_service.get_active_reward

        def concurrent_redemption(session, reward_id):
            found = original(session, reward_id)
            session.execute(
                update(Reward)
                .where(Reward.id == reward_id)
                .values(times_used=Reward.times_used + 1)
                .execution_options(synchronize_session=False)
            )
            return found

        with patch.object(voucher_service, "get_active_reward", side_effect=concurrent_redemption):
            with pytest.raises(RewardUnavailableError):
                redeem_reward(db, customer, reward.id)

        db.expire_all()
        assert db.get(Reward, reward.id).times_used == 2
        assert get_balance(db, customer).points == 300
        assert _count(db, UserVoucher.id) == 0
        redeemed = db.query(PointsTransaction).filter(PointsTransaction.type == TransactionType.REDEEMED.value)
        assert redeemed.count() == 0

    def test_voucher_carries_delivery_fee_waiver(self, db, customer):
        admin_award(db, customer, 100, "seed")
        reward = make_reward(db, points_required=100, discount_type=DiscountType.DELIVERY_FEE_WAIVER.value)

        result = redeem_reward(db, customer, reward.id, now=NOW)

        assert result.voucher.discount_type == "delivery-fee-waiver"


class TestVouchers:
    """Listing, applying and expiring vouchers"""

    @pytest.fixture
    def voucher(self, db, customer):
        admin_award(db, customer, 100, "seed")
        reward = make_reward(db, points_required=100, min_order_amount=Decimal("15.00"))
        return redeem_reward(db, customer, reward.id, now=NOW).voucher

    def test_eligible_by_subtotal(self, db, customer, voucher):
        assert [v.id for v in list_eligible_vouchers(db, customer, now=NOW)] == [voucher.id]
        assert list_eligible_vouchers(db, customer, subtotal=Decimal("10.00"), now=NOW) == []
        assert len(list_eligible_vouchers(db, customer, subtotal=Decimal("15.00"), now=NOW)) == 1

    def test_apply_below_minimum(self, db, customer, voucher):
        with pytest.raises(MinimumOrderNotMetError):
            apply_voucher(db, customer, voucher.voucher_code, order_id=90, subtotal=Decimal("9.99"), now=NOW)

    def test_apply_marks_redeemed_once(self, db, customer, voucher):
        used = apply_voucher(db, customer, voucher.voucher_code, order_id=90, subtotal=Decimal("20.00"), now=NOW)

        assert used.status == VoucherStatus.REDEEMED.value
        assert used.applied_to_order_id == 90
        with pytest.raises(VoucherNotFoundError):
            apply_voucher(db, customer, voucher.voucher_code, order_id=91, subtotal=Decimal("20.00"), now=NOW)

    def test_expired_voucher_cannot_be_applied(self, db, customer, voucher):
        later = NOW + timedelta(days=31)
        with pytest.raises(VoucherNotFoundError):
            apply_voucher(db, customer, voucher.voucher_code, order_id=90, subtotal=Decimal("20.00"), now=later)

    def test_expire_sweep(self, db, customer, voucher):
        assert expire_vouchers(db, now=NOW + timedelta(days=1)) == 0
        assert expire_vouchers(db, now=NOW + timedelta(days=31)) == 1

        row = db.get(UserVoucher, voucher.id)
        db.refresh(row)
        assert row.status == VoucherStatus.EXPIRED.value
