# services/ledger_service.py
"""
Transaction Ledger - append-only record of every point movement.

Rules:
1. Entries are inserted, never updated or deleted
2. A correction is a new entry of the opposite sign
3. Every writer checks find_by_order before recording an earned entry

The customer balance is derived from these rows (see balance_service).
"""
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import func, desc
from sqlalchemy.orm import Session

from models import PointsTransaction, TransactionType, CREDIT_TYPES, DEBIT_TYPES
from services.exceptions import InvalidPointsError
from services.identity import CustomerIdentity, identity_clause
from utils.clock import utcnow


def _check_sign(entry_type: TransactionType, points: int) -> None:
     if entry_type in CREDIT_TYPES and points <= 0:
          raise InvalidPointsError(f"{entry_type.value} entries must carry positive points, got {points}")
     if entry_type in DEBIT_TYPES and points >= 0:
          raise InvalidPointsError(f"{entry_type.value} entries must carry negative points, got {points}")


def append_entry(
     db: Session,
     identity: CustomerIdentity,
     entry_type: TransactionType,
     points: int,
     description: str,
     order_id: Optional[int] = None,
     order_amount: Optional[Decimal] = None,
     is_retroactive: bool = False,
     created_at: Optional[datetime] = None,
) -> PointsTransaction:
     """
     Append an immutable ledger entry.

     The entry is flushed so its id is available, but not committed; the
     caller owns the transaction together with the matching balance update.

     Raises:
          InvalidPointsError: if the sign of points does not match the entry type
          IntegrityError: on a second earned entry for the same customer and order
     """
     entry_type = TransactionType(entry_type)
     _check_sign(entry_type, points)

     entry = PointsTransaction(
          **identity.columns(),
          order_id=order_id,
          type=entry_type.value,
          points=points,
          description=description,
          order_amount=order_amount,
          is_retroactive=is_retroactive,
          created_at=created_at or utcnow(),
     )
     db.add(entry)
     db.flush()
     return entry


def find_by_order(
     db: Session,
     identity: CustomerIdentity,
     order_id: int,
     entry_type: TransactionType = TransactionType.EARNED,
) -> Optional[PointsTransaction]:
     """Return the first entry of the given type recorded for this customer and order."""
     return (
          db.query(PointsTransaction)
          .filter(
               identity_clause(PointsTransaction, identity),
               PointsTransaction.order_id == order_id,
               PointsTransaction.type == TransactionType(entry_type).value,
          )
          .order_by(PointsTransaction.id)
          .first()
     )


def sum_by_type(
     db: Session,
     identity: CustomerIdentity,
     types: Iterable[TransactionType],
     order_id: Optional[int] = None,
) -> int:
     """Signed sum of points over the given entry types (optionally for one order)."""
     type_values = [TransactionType(t).value for t in types]
     query = db.query(func.coalesce(func.sum(PointsTransaction.points), 0)).filter(
          identity_clause(PointsTransaction, identity),
          PointsTransaction.type.in_(type_values),
     )
     if order_id is not None:
          query = query.filter(PointsTransaction.order_id == order_id)
     return int(query.scalar() or 0)


def awarded_order_ids(db: Session, identity: CustomerIdentity) -> set[int]:
     rows = (
          db.query(PointsTransaction.order_id)
          .filter(
               identity_clause(PointsTransaction, identity),
               PointsTransaction.type == TransactionType.EARNED.value,
               PointsTransaction.order_id.isnot(None),
          )
          .distinct()
          .all()
     )
     return {row[0] for row in rows}


def last_earned_at(db: Session, identity: CustomerIdentity) -> Optional[datetime]:
     return (
          db.query(func.max(PointsTransaction.created_at))
          .filter(
               identity_clause(PointsTransaction, identity),
               PointsTransaction.type.in_([t.value for t in CREDIT_TYPES]),
          )
          .scalar()
     )


def list_entries(
     db: Session,
     identity: CustomerIdentity,
     limit: int = 50,
     offset: int = 0,
) -> tuple[list[PointsTransaction], int]:
     """Paginated ledger history, newest first. Returns (entries, total_count)."""
     query = db.query(PointsTransaction).filter(identity_clause(PointsTransaction, identity))
     total = query.count()
     entries = (
          query.order_by(desc(PointsTransaction.created_at), desc(PointsTransaction.id))
          .offset(offset)
          .limit(limit)
          .all()
     )
     return entries, total
