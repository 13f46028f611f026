# services/recovery_service.py
"""
Orphan-Order Recovery - attaches guest orders to the customer who placed them.

Orders placed before a customer signed in carry no identity, only the phone
number typed at checkout. When the customer authenticates, recent orphaned
orders with the same phone number are linked to them and awarded. Awarding
goes through the award service, so re-running recovery never double-credits.
"""
import logging
import re
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from config import ORPHAN_RECOVERY_DAYS
from models import Order
from schemas.ledger import RecoveryResult, RecoveredOrder
from services.award_service import award_order_points
from services.identity import CallerIdentity, CustomerIdentity, find_profile
from utils.clock import utcnow

logger = logging.getLogger(__name__)


def normalize_phone(phone: Optional[str]) -> str:
     """Digits only, without a leading North American country code."""
     digits = re.sub(r"\D", "", phone or "")
     if len(digits) == 11 and digits.startswith("1"):
          digits = digits[1:]
     return digits


def find_orphan_orders(
     db: Session,
     phone: str,
     now: datetime,
     window_days: int = ORPHAN_RECOVERY_DAYS,
) -> list[Order]:
     """Recent orders with no identity at all whose phone matches."""
     target = normalize_phone(phone)
     if not target:
          return []
     cutoff = now - timedelta(days=window_days)
     candidates = (
          db.query(Order)
          .filter(
               Order.legacy_user_id.is_(None),
               Order.external_user_id.is_(None),
               Order.phone.isnot(None),
               Order.created_at >= cutoff,
          )
          .order_by(Order.created_at, Order.id)
          .all()
     )
     return [order for order in candidates if normalize_phone(order.phone) == target]


def recover_orphan_orders(
     db: Session,
     identity: CustomerIdentity,
     now: Optional[datetime] = None,
     window_days: int = ORPHAN_RECOVERY_DAYS,
) -> RecoveryResult:
     """
     Link orphaned orders to the customer by profile phone number and award them.

     Args:
          db: SQLAlchemy database session
          identity: resolved identity of the (newly) authenticated customer
          window_days: orders older than this are left alone

     Returns:
          RecoveryResult listing every order linked in this run
     """
     now = now or utcnow()
     profile = find_profile(db, CallerIdentity(identity.legacy_id, identity.external_id))
     phone = profile.phone if profile is not None else None
     result = RecoveryResult(identity_key=identity.key, phone=phone)
     if not phone:
          return result

     for order in find_orphan_orders(db, phone, now, window_days):
          with db.begin_nested():
               linked = db.execute(
                    update(Order)
                    .where(
                         Order.id == order.id,
                         Order.legacy_user_id.is_(None),
                         Order.external_user_id.is_(None),
                    )
                    .values(
                         legacy_user_id=identity.legacy_id,
                         external_user_id=identity.external_id,
                         updated_at=now,
                    )
               )
               if linked.rowcount != 1:
                    # Claimed by someone else in the meantime
                    continue

               points = 0
               already = False
               if order.is_paid:
                    award = award_order_points(db, identity, order.id, order.total, now=now)
                    points = 0 if award.already_processed else award.points_awarded
                    already = award.already_processed

          result.orders_linked += 1
          result.points_awarded += points
          result.orders.append(RecoveredOrder(
               order_id=order.id,
               total=order.total,
               points_awarded=points,
               already_awarded=already,
               created_at=order.created_at,
          ))

     if result.orders_linked:
          logger.info(
               "Recovered %s orphan orders (%s points) for %s",
               result.orders_linked, result.points_awarded, identity.key,
          )
     return result
