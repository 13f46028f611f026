# models/points_transaction.py
"""
PointsTransaction model - append-only loyalty ledger.

Rows are never updated or deleted by the application; a correction is a new
row of the opposite sign. The per-customer balance is derived from this table.
"""
import enum
from sqlalchemy import (
     Column, Integer, String, Numeric, DateTime, Boolean, Index, func, text,
)
from .base import Base


class TransactionType(str, enum.Enum):
     """Ledger entry types; the sign of points is fixed per type."""
     EARNED = "earned"
     SIGNUP = "signup"
     FIRST_ORDER = "first_order"
     REDEEMED = "redeemed"
     ADMIN_AWARD = "admin_award"
     REFUND = "refund"
     ADMIN_CORRECTION = "admin_correction"


# Types that credit the customer (positive points)
CREDIT_TYPES = (
     TransactionType.EARNED,
     TransactionType.SIGNUP,
     TransactionType.FIRST_ORDER,
     TransactionType.ADMIN_AWARD,
)
# Types that debit the customer (negative points)
DEBIT_TYPES = (TransactionType.REDEEMED, TransactionType.REFUND, TransactionType.ADMIN_CORRECTION)

_EARNED_ONLY = text("type = 'earned'")


class PointsTransaction(Base):
     """Immutable signed point movement for one customer."""
     __tablename__ = "points_transactions"
     __table_args__ = (
          # At most one earned entry per customer and order
          Index(
               "uq_points_transactions_earned_order",
               "identity_key",
               "order_id",
               unique=True,
               sqlite_where=_EARNED_ONLY,
               postgresql_where=_EARNED_ONLY,
               mssql_where=_EARNED_ONLY,
          ),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)
     identity_key = Column(String(300), nullable=False, index=True)
     legacy_user_id = Column(Integer, nullable=True, index=True)
     external_user_id = Column(String(255), nullable=True, index=True)
     order_id = Column(Integer, nullable=True, index=True)  # no FK: orders live in the host schema
     type = Column(String(20), nullable=False, index=True)
     points = Column(Integer, nullable=False)
     description = Column(String(500), nullable=False)
     order_amount = Column(Numeric(10, 2), nullable=True)
     is_retroactive = Column(Boolean, default=False, nullable=False)
     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     def __repr__(self):
          return (
               f"<PointsTransaction(id={self.id}, identity='{self.identity_key}', "
               f"type='{self.type}', points={self.points}, order_id={self.order_id})>"
          )
