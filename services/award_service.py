# services/award_service.py
"""
Award Service - credits loyalty points for completed, paid orders.

Exactly one earned entry may exist per customer and order. Payment-success
notifications are retried by the payment processor, so repeat calls must be
harmless: the existing award is returned instead of a new one.

A customer's first awarded order also carries the one-time first_order
bonus, booked in the same savepoint as the earned entry.
"""
import logging
import math
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import SIGNUP_BONUS_POINTS, FIRST_ORDER_BONUS_POINTS
from models import PointsTransaction, TransactionType
from schemas.ledger import AwardResult, LedgerEntryResponse
from services.balance_service import BalanceKind, upsert_increment
from services.exceptions import InvalidPointsError
from services.identity import CustomerIdentity, identity_clause
from services.ledger_service import append_entry, awarded_order_ids, find_by_order
from utils.clock import utcnow

logger = logging.getLogger(__name__)

BONUS_POINTS = {
     TransactionType.SIGNUP: SIGNUP_BONUS_POINTS,
     TransactionType.FIRST_ORDER: FIRST_ORDER_BONUS_POINTS,
}


def calculate_order_points(total: Decimal) -> int:
     """One point per whole dollar spent."""
     return max(int(math.floor(Decimal(total))), 0)


def _already_awarded(entry: PointsTransaction) -> AwardResult:
     return AwardResult(
          order_id=entry.order_id,
          points_awarded=entry.points,
          already_processed=True,
          entry=LedgerEntryResponse.model_validate(entry),
          message=f"Points already awarded for order #{entry.order_id}",
     )


def award_order_points(
     db: Session,
     identity: CustomerIdentity,
     order_id: int,
     total: Decimal,
     payment_succeeded: bool = True,
     now: Optional[datetime] = None,
) -> AwardResult:
     """
     Convert a completed, paid order into a single earned ledger entry.

     The ledger append and the balance increment share one savepoint, so
     either both land or neither does. The first_order bonus, when due, is
     granted inside that same savepoint.

     Args:
          db: SQLAlchemy database session
          identity: resolved customer identity
          order_id: the paid order
          total: order total; points = floor(total)
          payment_succeeded: unpaid orders earn nothing

     Returns:
          AwardResult (already_processed=True for repeated calls)
     """
     if not payment_succeeded:
          return AwardResult(order_id=order_id, message="Payment not successful; no points awarded")

     existing = find_by_order(db, identity, order_id)
     if existing is not None:
          logger.debug("Order %s already awarded to %s", order_id, identity.key)
          return _already_awarded(existing)

     points = calculate_order_points(total)
     if points <= 0:
          return AwardResult(order_id=order_id, message="Order total below one point; nothing awarded")

     first_order = BONUS_POINTS[TransactionType.FIRST_ORDER] > 0 and not awarded_order_ids(db, identity)
     bonus_points = 0

     now = now or utcnow()
     try:
          with db.begin_nested():
               entry = append_entry(
                    db,
                    identity,
                    TransactionType.EARNED,
                    points,
                    description=f"Points earned for order #{order_id}",
                    order_id=order_id,
                    order_amount=Decimal(total),
                    created_at=now,
               )
               upsert_increment(db, identity, points, BalanceKind.EARN, now=now)
               if first_order:
                    bonus = grant_bonus(db, identity, TransactionType.FIRST_ORDER, now=now)
                    if not bonus.already_processed:
                         bonus_points = bonus.points_awarded
     except IntegrityError:
          # Lost the race against a concurrent award for the same order
          existing = find_by_order(db, identity, order_id)
          if existing is None:
               raise
          return _already_awarded(existing)

     logger.info("Awarded %s points to %s for order %s", points, identity.key, order_id)
     message = f"Awarded {points} points for order #{order_id}"
     if bonus_points:
          message = f"{message} plus a {bonus_points} point first order bonus"
     return AwardResult(
          order_id=order_id,
          points_awarded=points,
          bonus_points=bonus_points,
          entry=LedgerEntryResponse.model_validate(entry),
          message=message,
     )


def grant_bonus(
     db: Session,
     identity: CustomerIdentity,
     bonus_type: TransactionType,
     points: Optional[int] = None,
     now: Optional[datetime] = None,
) -> AwardResult:
     """Grant the one-time signup or first-order bonus. Repeat grants are no-ops."""
     bonus_type = TransactionType(bonus_type)
     if bonus_type not in BONUS_POINTS:
          raise InvalidPointsError(f"{bonus_type.value} is not a bonus type")
     points = BONUS_POINTS[bonus_type] if points is None else points

     existing = (
          db.query(PointsTransaction)
          .filter(
               identity_clause(PointsTransaction, identity),
               PointsTransaction.type == bonus_type.value,
          )
          .first()
     )
     if existing is not None:
          return AwardResult(
               points_awarded=existing.points,
               already_processed=True,
               entry=LedgerEntryResponse.model_validate(existing),
               message=f"{bonus_type.value} bonus already granted",
          )

     now = now or utcnow()
     label = "Welcome bonus" if bonus_type is TransactionType.SIGNUP else "First order bonus"
     with db.begin_nested():
          entry = append_entry(db, identity, bonus_type, points, description=label, created_at=now)
          upsert_increment(db, identity, points, BalanceKind.EARN, now=now)

     logger.info("Granted %s bonus of %s points to %s", bonus_type.value, points, identity.key)
     return AwardResult(
          points_awarded=points,
          entry=LedgerEntryResponse.model_validate(entry),
          message=f"{label}: {points} points",
     )


def admin_award(
     db: Session,
     identity: CustomerIdentity,
     points: int,
     reason: str,
     performed_by: Optional[str] = None,
     now: Optional[datetime] = None,
) -> AwardResult:
     """Operator credit; always a new positive admin_award entry."""
     if points <= 0:
          raise InvalidPointsError("Admin awards must be positive")

     now = now or utcnow()
     description = f"Admin award: {reason}"
     if performed_by:
          description = f"{description} (by {performed_by})"

     with db.begin_nested():
          entry = append_entry(
               db, identity, TransactionType.ADMIN_AWARD, points, description=description, created_at=now
          )
          upsert_increment(db, identity, points, BalanceKind.EARN, now=now)

     logger.info("Admin award of %s points to %s by %s", points, identity.key, performed_by or "unknown")
     return AwardResult(
          points_awarded=points,
          entry=LedgerEntryResponse.model_validate(entry),
          message=f"Awarded {points} points",
     )


def admin_correction(
     db: Session,
     identity: CustomerIdentity,
     points: int,
     reason: str,
     performed_by: Optional[str] = None,
     now: Optional[datetime] = None,
) -> AwardResult:
     """
     Operator debit: appends an admin_correction entry of -points.

     Like a refund it lowers total_earned rather than counting as a
     redemption, and it may take the balance below zero.
     """
     if points <= 0:
          raise InvalidPointsError("Correction amount must be positive")

     now = now or utcnow()
     description = f"Admin correction: {reason}"
     if performed_by:
          description = f"{description} (by {performed_by})"

     with db.begin_nested():
          entry = append_entry(
               db, identity, TransactionType.ADMIN_CORRECTION, -points, description=description, created_at=now
          )
          upsert_increment(db, identity, -points, BalanceKind.EARN, now=now)

     logger.info("Admin correction of -%s points to %s by %s", points, identity.key, performed_by or "unknown")
     return AwardResult(
          points_awarded=-points,
          entry=LedgerEntryResponse.model_validate(entry),
          message=f"Deducted {points} points",
     )
