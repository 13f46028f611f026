# services/refund_service.py
"""
Refund Reversal - claws back points granted for an order that was refunded.

Unlike redemption, a reversal may leave the balance negative: the customer
already spent the value at payment time. Such reversals are logged at
warning level for operator review.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from models import TransactionType
from schemas.ledger import RefundResult, LedgerEntryResponse
from services.award_service import calculate_order_points
from services.balance_service import BalanceKind, upsert_increment, get_balance_row
from services.identity import CustomerIdentity
from services.ledger_service import append_entry, find_by_order, sum_by_type
from utils.clock import utcnow

logger = logging.getLogger(__name__)


def reverse_order_points(
     db: Session,
     identity: CustomerIdentity,
     order_id: int,
     refunded_amount: Optional[Decimal] = None,
     now: Optional[datetime] = None,
) -> RefundResult:
     """
     Append a refund entry offsetting the points earned for an order.

     A full refund reverses whatever is still unreversed; a partial refund
     reverses floor(refunded_amount) points. Either way the total reversed
     for an order never exceeds what was granted for it, so repeated refund
     notifications are harmless.
     """
     original = find_by_order(db, identity, order_id)
     if original is None:
          return RefundResult(order_id=order_id, message="No points were awarded for this order")

     already_reversed = -sum_by_type(db, identity, [TransactionType.REFUND], order_id=order_id)
     remaining = original.points - already_reversed
     if remaining <= 0:
          return RefundResult(
               order_id=order_id,
               already_processed=True,
               message=f"Points for order #{order_id} were already reversed",
          )

     to_reverse = remaining
     if refunded_amount is not None:
          to_reverse = min(calculate_order_points(refunded_amount), remaining)
     if to_reverse <= 0:
          return RefundResult(order_id=order_id, message="Refund amount below one point; nothing reversed")

     now = now or utcnow()
     with db.begin_nested():
          entry = append_entry(
               db,
               identity,
               TransactionType.REFUND,
               -to_reverse,
               description=f"Points reversed for refunded order #{order_id}",
               order_id=order_id,
               order_amount=refunded_amount,
               created_at=now,
          )
          upsert_increment(db, identity, -to_reverse, BalanceKind.EARN, now=now)

     row = get_balance_row(db, identity)
     balance_after = row.points if row is not None else None
     negative = balance_after is not None and balance_after < 0
     if negative:
          logger.warning(
               "Refund of order %s left %s with a negative balance of %s points",
               order_id, identity.key, balance_after,
          )
     else:
          logger.info("Reversed %s points from %s for refunded order %s", to_reverse, identity.key, order_id)

     return RefundResult(
          order_id=order_id,
          points_reversed=to_reverse,
          balance_after=balance_after,
          negative_balance=negative,
          entry=LedgerEntryResponse.model_validate(entry),
          message=f"Reversed {to_reverse} points for order #{order_id}",
     )
