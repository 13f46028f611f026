# models/reward.py
import enum
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, func
from .base import Base


class DiscountType(str, enum.Enum):
     """How a voucher discount is applied at checkout."""
     PERCENTAGE = "percentage"
     FIXED = "fixed"
     DELIVERY_FEE_WAIVER = "delivery-fee-waiver"


class Reward(Base):
     """
     Reward definition configured by restaurant staff.

     Redeeming a reward debits points_required and issues a voucher carrying
     the discount terms below.
     """
     __tablename__ = "rewards"

     id = Column(Integer, primary_key=True, autoincrement=True)
     name = Column(String(200), nullable=False)
     description = Column(String(1000), nullable=True)
     points_required = Column(Integer, nullable=False, default=50)
     discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
     discount_type = Column(String(20), nullable=False, default=DiscountType.FIXED.value)
     min_order_amount = Column(Numeric(10, 2), nullable=False, default=0)
     voucher_code = Column(String(100), nullable=True)
     voucher_validity_days = Column(Integer, nullable=True, default=30)
     max_uses = Column(Integer, nullable=True)
     times_used = Column(Integer, nullable=False, default=0)
     active = Column(Boolean, nullable=False, default=True)
     created_at = Column(DateTime, server_default=func.now(), nullable=False)
     updated_at = Column(DateTime, server_default=func.now(), nullable=False)

     def __repr__(self):
          return f"<Reward(id={self.id}, name='{self.name}', points_required={self.points_required})>"

     @property
     def is_exhausted(self) -> bool:
          return self.max_uses is not None and (self.times_used or 0) >= self.max_uses
