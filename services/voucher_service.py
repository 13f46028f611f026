# services/voucher_service.py
"""
Redemption / Voucher Engine - turns points into spendable vouchers.

Redeeming a reward debits the balance, appends a redeemed ledger entry and
issues an active voucher in one savepoint. The balance may never go below
zero here; the debit is a guarded relative update, so two concurrent
redemptions cannot both spend the same points. The reward usage counter is
bumped the same way, so max_uses holds under concurrency too.
"""
import logging
import secrets
import string
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from config import DEFAULT_VOUCHER_VALIDITY_DAYS
from models import Reward, UserVoucher, VoucherStatus, TransactionType
from schemas.voucher import RedemptionResult, VoucherResponse
from services.balance_service import BalanceKind, upsert_increment, get_balance_row
from services.exceptions import (
     InsufficientBalanceError,
     MinimumOrderNotMetError,
     RewardNotFoundError,
     RewardUnavailableError,
     VoucherNotFoundError,
)
from services.identity import CustomerIdentity, identity_clause
from services.ledger_service import append_entry
from utils.clock import utcnow

logger = logging.getLogger(__name__)

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_voucher_code(prefix: str = "RWD") -> str:
     suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(6))
     return f"{prefix}-{suffix}"


def issue_voucher(
     db: Session,
     identity: CustomerIdentity,
     reward: Reward,
     code: str,
     expires_at: datetime,
     points_used: int,
) -> UserVoucher:
     """Create an active voucher carrying the reward's discount terms."""
     voucher = UserVoucher(
          **identity.columns(),
          reward_id=reward.id,
          voucher_code=code,
          discount_amount=reward.discount_amount or Decimal("0"),
          discount_type=reward.discount_type or "fixed",
          min_order_amount=reward.min_order_amount or Decimal("0"),
          points_used=points_used,
          status=VoucherStatus.ACTIVE.value,
          expires_at=expires_at,
          title=reward.name,
          description=reward.description,
     )
     db.add(voucher)
     db.flush()
     return voucher


def get_active_reward(db: Session, reward_id: int) -> Reward:
     reward = db.query(Reward).filter(Reward.id == reward_id, Reward.active.is_(True)).first()
     if reward is None:
          raise RewardNotFoundError(f"Reward {reward_id} not found or inactive")
     return reward


def redeem_reward(
     db: Session,
     identity: CustomerIdentity,
     reward_id: int,
     now: Optional[datetime] = None,
) -> RedemptionResult:
     """
     Spend points on a reward and issue the resulting voucher.

     Raises:
          RewardNotFoundError: unknown or inactive reward
          RewardUnavailableError: reward usage limit reached
          InsufficientBalanceError: balance below points_required (nothing written)
     """
     reward = get_active_reward(db, reward_id)
     if reward.is_exhausted:
          raise RewardUnavailableError(f"Reward {reward_id} usage limit reached")

     cost = reward.points_required
     now = now or utcnow()

     with db.begin_nested():
          if not upsert_increment(db, identity, -cost, BalanceKind.REDEEM, now=now, guard_funds=True):
               row = get_balance_row(db, identity)
               raise InsufficientBalanceError(cost, row.points if row is not None else 0)

          append_entry(
               db,
               identity,
               TransactionType.REDEEMED,
               -cost,
               description=f"Redeemed reward: {reward.name}",
               created_at=now,
          )
          validity = reward.voucher_validity_days or DEFAULT_VOUCHER_VALIDITY_DAYS
          voucher = issue_voucher(
               db,
               identity,
               reward,
               code=generate_voucher_code(),
               expires_at=now + timedelta(days=validity),
               points_used=cost,
          )
          used = db.execute(
               update(Reward)
               .where(
                    Reward.id == reward.id,
                    or_(Reward.max_uses.is_(None), Reward.times_used < Reward.max_uses),
               )
               .values(times_used=Reward.times_used + 1, updated_at=now)
               .execution_options(synchronize_session="fetch")
          )
          if used.rowcount != 1:
               raise RewardUnavailableError(f"Reward {reward_id} usage limit reached")

     balance_after = get_balance_row(db, identity).points
     logger.info("%s redeemed reward %s for %s points", identity.key, reward.id, cost)
     return RedemptionResult(
          reward_id=reward.id,
          points_spent=cost,
          balance_after=balance_after,
          voucher=VoucherResponse.model_validate(voucher),
          message=f"Successfully redeemed {reward.name}!",
     )


def list_eligible_vouchers(
     db: Session,
     identity: CustomerIdentity,
     subtotal: Optional[Decimal] = None,
     now: Optional[datetime] = None,
) -> list[UserVoucher]:
     """Active, unexpired vouchers; with a subtotal, only those whose minimum it meets."""
     now = now or utcnow()
     query = db.query(UserVoucher).filter(
          identity_clause(UserVoucher, identity),
          UserVoucher.status == VoucherStatus.ACTIVE.value,
          UserVoucher.expires_at > now,
     )
     if subtotal is not None:
          query = query.filter(UserVoucher.min_order_amount <= subtotal)
     return query.order_by(UserVoucher.expires_at, UserVoucher.id).all()


def apply_voucher(
     db: Session,
     identity: CustomerIdentity,
     voucher_code: str,
     order_id: int,
     subtotal: Decimal,
     now: Optional[datetime] = None,
) -> UserVoucher:
     """
     Mark a voucher as used on an order (active -> redeemed).

     Raises:
          VoucherNotFoundError: no active, unexpired voucher with that code
          MinimumOrderNotMetError: subtotal below the voucher minimum
     """
     now = now or utcnow()
     voucher = (
          db.query(UserVoucher)
          .filter(
               identity_clause(UserVoucher, identity),
               UserVoucher.voucher_code == voucher_code,
               UserVoucher.status == VoucherStatus.ACTIVE.value,
               UserVoucher.expires_at > now,
          )
          .order_by(UserVoucher.id)
          .first()
     )
     if voucher is None:
          raise VoucherNotFoundError("Voucher not found, expired, or already used")

     if Decimal(subtotal) < Decimal(voucher.min_order_amount or 0):
          raise MinimumOrderNotMetError(
               f"Order subtotal {subtotal} is below the voucher minimum of {voucher.min_order_amount}"
          )

     result = db.execute(
          update(UserVoucher)
          .where(UserVoucher.id == voucher.id, UserVoucher.status == VoucherStatus.ACTIVE.value)
          .values(status=VoucherStatus.REDEEMED.value, applied_to_order_id=order_id, used_at=now)
     )
     if result.rowcount != 1:
          raise VoucherNotFoundError("Voucher not found, expired, or already used")

     db.refresh(voucher)
     logger.info("Voucher %s applied to order %s", voucher.id, order_id)
     return voucher


def expire_vouchers(db: Session, now: Optional[datetime] = None) -> int:
     """
     Mark every active voucher past its expiry as expired.

     This should be called by a scheduled job.

     Returns:
          Number of vouchers expired
     """
     now = now or utcnow()
     result = db.execute(
          update(UserVoucher)
          .where(UserVoucher.status == VoucherStatus.ACTIVE.value, UserVoucher.expires_at <= now)
          .values(status=VoucherStatus.EXPIRED.value)
          .execution_options(synchronize_session=False)
     )
     count = result.rowcount or 0
     if count:
          logger.info("Expired %s vouchers", count)
     return count
