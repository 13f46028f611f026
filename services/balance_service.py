# services/balance_service.py
"""
Balance Materializer - denormalized per-customer summary of the ledger.

Balances are only ever changed with relative updates (points = points + delta)
inside the caller's transaction, next to the ledger append they mirror. The
first activity for a customer creates the row; if a concurrent writer won that
race the unique index rejects our insert and we retry as an increment.
"""
import enum
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import CustomerBalance
from schemas.ledger import BalanceResponse
from services.identity import CustomerIdentity, identity_clause
from utils.clock import utcnow

logger = logging.getLogger(__name__)


class BalanceKind(str, enum.Enum):
     """Which lifetime counter a balance change is booked against."""
     EARN = "earn"
     REDEEM = "redeem"


def find_balance_rows(db: Session, identity: CustomerIdentity) -> list[CustomerBalance]:
     """All balance rows for the customer, earliest first (more than one means duplicates)."""
     return (
          db.query(CustomerBalance)
          .populate_existing()
          .filter(identity_clause(CustomerBalance, identity))
          .order_by(CustomerBalance.created_at, CustomerBalance.id)
          .all()
     )


def get_balance_row(db: Session, identity: CustomerIdentity) -> Optional[CustomerBalance]:
     rows = find_balance_rows(db, identity)
     return rows[0] if rows else None


def _target_row_id(db: Session, identity: CustomerIdentity) -> Optional[int]:
     row = (
          db.query(CustomerBalance.id)
          .filter(identity_clause(CustomerBalance, identity))
          .order_by(CustomerBalance.created_at, CustomerBalance.id)
          .first()
     )
     return row[0] if row else None


def _increment_values(delta: int, kind: BalanceKind, now: datetime) -> dict:
     values = {
          "points": CustomerBalance.points + delta,
          "updated_at": now,
     }
     if kind is BalanceKind.EARN:
          values["total_earned"] = CustomerBalance.total_earned + delta
          if delta > 0:
               values["last_earned_at"] = now
     else:
          values["total_redeemed"] = CustomerBalance.total_redeemed - delta
     return values


def _apply_increment(
     db: Session,
     identity: CustomerIdentity,
     delta: int,
     kind: BalanceKind,
     now: datetime,
     guard_funds: bool,
) -> Optional[bool]:
     """
     Relative update of the customer's balance row.

     Returns None when the customer has no balance row yet, False when
     guard_funds rejected the update, True otherwise.
     """
     row_id = _target_row_id(db, identity)
     if row_id is None:
          return None

     stmt = (
          update(CustomerBalance)
          .where(CustomerBalance.id == row_id)
          .values(**_increment_values(delta, kind, now))
     )
     if guard_funds and delta < 0:
          stmt = stmt.where(CustomerBalance.points >= -delta)
     result = db.execute(stmt)
     return result.rowcount == 1


def upsert_increment(
     db: Session,
     identity: CustomerIdentity,
     delta: int,
     kind: BalanceKind,
     now: Optional[datetime] = None,
     guard_funds: bool = False,
) -> bool:
     """
     Apply a signed point change to the customer's balance.

     Args:
          delta: signed change to points (negative for redemptions and refunds)
          kind: EARN books delta against total_earned, REDEEM books -delta
               against total_redeemed
          guard_funds: refuse (return False) instead of going below zero

     Returns:
          bool: False only when guard_funds refused the change
     """
     kind = BalanceKind(kind)
     now = now or utcnow()

     applied = _apply_increment(db, identity, delta, kind, now, guard_funds)
     if applied is not None:
          return applied

     if guard_funds and delta < 0:
          return False

     row = CustomerBalance(
          **identity.columns(),
          points=delta,
          total_earned=delta if kind is BalanceKind.EARN else 0,
          total_redeemed=-delta if kind is BalanceKind.REDEEM else 0,
          last_earned_at=now if kind is BalanceKind.EARN and delta > 0 else None,
          created_at=now,
          updated_at=now,
     )
     try:
          with db.begin_nested():
               db.add(row)
     except IntegrityError:
          logger.warning(
               "Balance row for %s created concurrently; retrying as increment", identity.key
          )
          applied = _apply_increment(db, identity, delta, kind, now, guard_funds)
          if applied is None:
               raise
          return applied
     return True


def get_balance(db: Session, identity: CustomerIdentity) -> BalanceResponse:
     """Current balance for display; a customer with no activity has zero points."""
     row = get_balance_row(db, identity)
     if row is None:
          return BalanceResponse(identity_key=identity.key)
     return BalanceResponse(
          identity_key=identity.key,
          points=row.points,
          total_earned=row.total_earned,
          total_redeemed=row.total_redeemed,
          last_earned_at=row.last_earned_at,
     )
