# models/order.py
from sqlalchemy import Column, Integer, Numeric, String, DateTime, func
from .base import Base


# Payment states that count as a successful payment
PAID_PAYMENT_STATUSES = ("paid", "succeeded", "completed")


class Order(Base):
     """
     Order model - mapping of the ordering platform's orders table.

     The ledger only reads orders, and relinks orphaned ones (orders created
     without any customer identity) during recovery.
     """
     __tablename__ = "orders"

     id = Column(Integer, primary_key=True, autoincrement=True)
     legacy_user_id = Column(Integer, nullable=True, index=True)
     external_user_id = Column(String(255), nullable=True, index=True)
     phone = Column(String(50), nullable=True, index=True)
     total = Column(Numeric(10, 2), nullable=False)
     payment_status = Column(String(50), nullable=True)
     status = Column(String(50), nullable=True)
     created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
     updated_at = Column(DateTime, server_default=func.now(), nullable=True)

     def __repr__(self):
          return f"<Order(id={self.id}, total={self.total}, payment_status='{self.payment_status}')>"

     @property
     def is_paid(self) -> bool:
          return (self.payment_status or "").lower() in PAID_PAYMENT_STATUSES
