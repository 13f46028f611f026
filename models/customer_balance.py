# models/customer_balance.py
from sqlalchemy import Column, Integer, String, DateTime, Index, func
from .base import Base


BALANCE_UNIQUE_INDEX = "uq_customer_balances_identity_key"


class CustomerBalance(Base):
     """
     Materialized per-customer point balance.

     A cache of the points_transactions aggregate: points == total_earned -
     total_redeemed. When it disagrees with the ledger, the ledger wins and
     the reconciliation auditor rewrites this row.
     """
     __tablename__ = "customer_balances"
     __table_args__ = (
          Index(BALANCE_UNIQUE_INDEX, "identity_key", unique=True),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)
     identity_key = Column(String(300), nullable=False)
     legacy_user_id = Column(Integer, nullable=True, index=True)
     external_user_id = Column(String(255), nullable=True, index=True)
     points = Column(Integer, nullable=False, default=0)
     total_earned = Column(Integer, nullable=False, default=0)
     total_redeemed = Column(Integer, nullable=False, default=0)
     last_earned_at = Column(DateTime, nullable=True)
     created_at = Column(DateTime, server_default=func.now(), nullable=False)
     updated_at = Column(DateTime, server_default=func.now(), nullable=False)

     def __repr__(self):
          return (
               f"<CustomerBalance(id={self.id}, identity='{self.identity_key}', "
               f"points={self.points}, earned={self.total_earned}, redeemed={self.total_redeemed})>"
          )
