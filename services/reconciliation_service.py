# services/reconciliation_service.py
"""
Reconciliation Auditor - checks the materialized balance against the ledger.

For a customer it:
1. Sums ledger entries by type (the ledger is the source of truth)
2. Finds paid orders with no earned entry and the points they imply
3. Compares the result with the stored balance row(s)
4. Unless dry_run: appends retroactive earned entries, deletes duplicate
   balance rows (keeping the earliest), rewrites the kept row and makes sure
   the balance uniqueness index exists

Each customer is repaired inside one savepoint, so a partial repair is never
visible.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, inspect
from sqlalchemy.orm import Session

from models import (
     CustomerBalance,
     BALANCE_UNIQUE_INDEX,
     Order,
     PAID_PAYMENT_STATUSES,
     PointsTransaction,
     TransactionType,
     CREDIT_TYPES,
)
from schemas.reconciliation import (
     BalanceSnapshot,
     MissingAward,
     ReconciliationReport,
     ReconciliationSummary,
)
from services.award_service import calculate_order_points
from services.balance_service import find_balance_rows
from services.identity import CallerIdentity, CustomerIdentity, identity_clause, resolve_identity
from services.ledger_service import append_entry, awarded_order_ids, last_earned_at, sum_by_type
from utils.clock import utcnow

logger = logging.getLogger(__name__)


def _snapshot(row: Optional[CustomerBalance]) -> Optional[BalanceSnapshot]:
     if row is None:
          return None
     return BalanceSnapshot(
          points=row.points,
          total_earned=row.total_earned,
          total_redeemed=row.total_redeemed,
     )


def balance_unique_index_present(db: Session) -> bool:
     inspector = inspect(db.connection())
     table = CustomerBalance.__table__.name
     for index in inspector.get_indexes(table):
          if index.get("unique") and list(index["column_names"]) == ["identity_key"]:
               return True
     for constraint in inspector.get_unique_constraints(table):
          if list(constraint["column_names"]) == ["identity_key"]:
               return True
     return False


def ensure_balance_unique_index(db: Session) -> bool:
     """Create the balance uniqueness index if it is missing. Returns True if created."""
     if balance_unique_index_present(db):
          return False
     index = next(ix for ix in CustomerBalance.__table__.indexes if ix.name == BALANCE_UNIQUE_INDEX)
     index.create(bind=db.connection())
     logger.warning("Recreated missing unique index %s", BALANCE_UNIQUE_INDEX)
     return True


def ledger_totals(db: Session, identity: CustomerIdentity) -> BalanceSnapshot:
     """Ledger-true totals; refunds and admin corrections reduce total_earned."""
     earned = sum_by_type(
          db, identity, list(CREDIT_TYPES) + [TransactionType.REFUND, TransactionType.ADMIN_CORRECTION]
     )
     redeemed = -sum_by_type(db, identity, [TransactionType.REDEEMED])
     return BalanceSnapshot(points=earned - redeemed, total_earned=earned, total_redeemed=redeemed)


def find_missing_awards(db: Session, identity: CustomerIdentity) -> list[MissingAward]:
     """Paid orders of this customer that never received an earned entry."""
     awarded = awarded_order_ids(db, identity)
     paid_orders = (
          db.query(Order)
          .filter(
               identity_clause(Order, identity),
               func.lower(Order.payment_status).in_(PAID_PAYMENT_STATUSES),
          )
          .order_by(Order.created_at, Order.id)
          .all()
     )
     missing = []
     for order in paid_orders:
          if order.id in awarded:
               continue
          points = calculate_order_points(order.total)
          if points <= 0:
               continue
          missing.append(MissingAward(
               order_id=order.id,
               total=Decimal(order.total),
               points=points,
               created_at=order.created_at,
          ))
     return missing


def reconcile_identity(
     db: Session,
     identity: CustomerIdentity,
     dry_run: bool = True,
     now: Optional[datetime] = None,
) -> ReconciliationReport:
     """
     Audit (and unless dry_run, repair) one customer's balance.

     Returns:
          ReconciliationReport with before/after values; in dry-run mode
          "after" is the projected result and nothing is written
     """
     now = now or utcnow()
     ledger = ledger_totals(db, identity)
     missing = find_missing_awards(db, identity)
     missing_points = sum(m.points for m in missing)
     expected = BalanceSnapshot(
          points=ledger.points + missing_points,
          total_earned=ledger.total_earned + missing_points,
          total_redeemed=ledger.total_redeemed,
     )

     rows = find_balance_rows(db, identity)
     kept = rows[0] if rows else None
     duplicates = [row.id for row in rows[1:]]
     before = _snapshot(kept)
     index_present = balance_unique_index_present(db)

     if kept is None:
          balance_wrong = expected != BalanceSnapshot()
     else:
          balance_wrong = before != expected
     discrepancy = balance_wrong or bool(duplicates) or bool(missing) or not index_present

     report = ReconciliationReport(
          identity_key=identity.key,
          dry_run=dry_run,
          ledger=ledger,
          missing_orders=missing,
          missing_points=missing_points,
          expected=expected,
          balance_rows=len(rows),
          duplicate_row_ids=duplicates,
          before=before,
          after=expected if (kept is not None or balance_wrong) else None,
          discrepancy=discrepancy,
          unique_index_present=index_present,
     )
     if discrepancy:
          logger.warning(
               "Balance discrepancy for %s: stored=%s expected=%s duplicates=%s missing_orders=%s",
               identity.key, before, expected, duplicates, [m.order_id for m in missing],
          )
     if dry_run or not discrepancy:
          return report

     with db.begin_nested():
          for item in missing:
               append_entry(
                    db,
                    identity,
                    TransactionType.EARNED,
                    item.points,
                    description=f"Retroactive award for order #{item.order_id}",
                    order_id=item.order_id,
                    order_amount=item.total,
                    is_retroactive=True,
                    created_at=now,
               )

          if duplicates:
               for row in rows[1:]:
                    db.delete(row)
               db.flush()

          if kept is None and balance_wrong:
               kept = CustomerBalance(**identity.columns(), created_at=now)
               db.add(kept)

          if kept is not None:
               for column, value in identity.columns().items():
                    setattr(kept, column, value)
               kept.points = expected.points
               kept.total_earned = expected.total_earned
               kept.total_redeemed = expected.total_redeemed
               kept.last_earned_at = last_earned_at(db, identity)
               kept.updated_at = now
               db.flush()

          ensure_balance_unique_index(db)

     report.applied = True
     report.after = _snapshot(kept)
     report.unique_index_present = True
     logger.info("Reconciled %s: %s -> %s", identity.key, before, report.after)
     return report


def _known_identities(db: Session) -> list[CustomerIdentity]:
     callers = set()
     for model in (PointsTransaction, CustomerBalance):
          for legacy_id, external_id in db.query(model.legacy_user_id, model.external_user_id).distinct():
               callers.add(CallerIdentity(legacy_id, external_id))
     paid_orders = (
          db.query(Order.legacy_user_id, Order.external_user_id)
          .filter(func.lower(Order.payment_status).in_(PAID_PAYMENT_STATUSES))
          .distinct()
     )
     for legacy_id, external_id in paid_orders:
          callers.add(CallerIdentity(legacy_id, external_id))

     identities = {}
     for caller in callers:
          if caller.legacy_id is None and not caller.external_id:
               continue
          identity = resolve_identity(db, caller)
          identities.setdefault(identity.key, identity)
     return [identities[key] for key in sorted(identities)]


def reconcile_all(
     db: Session,
     dry_run: bool = True,
     now: Optional[datetime] = None,
) -> ReconciliationSummary:
     """
     Reconcile every customer known to the ledger, balances or paid orders.

     In apply mode each customer's repair is committed on its own, so one
     customer's repair is either fully visible or not at all.
     """
     reports = []
     for identity in _known_identities(db):
          report = reconcile_identity(db, identity, dry_run=dry_run, now=now)
          if report.applied:
               db.commit()
          reports.append(report)

     return ReconciliationSummary(
          dry_run=dry_run,
          identities_checked=len(reports),
          identities_with_discrepancy=sum(1 for r in reports if r.discrepancy),
          missing_orders=sum(len(r.missing_orders) for r in reports),
          duplicate_rows=sum(len(r.duplicate_row_ids) for r in reports),
          reports=reports,
     )
