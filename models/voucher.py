# models/voucher.py
import enum
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from .base import Base


class VoucherStatus(str, enum.Enum):
     """Voucher lifecycle: active -> redeemed | expired, never reopened."""
     ACTIVE = "active"
     REDEEMED = "redeemed"
     EXPIRED = "expired"


class UserVoucher(Base):
     """
     Spendable voucher issued to a customer, either by redeeming points or by
     a free promotional claim (points_used = 0).
     """
     __tablename__ = "user_vouchers"

     id = Column(Integer, primary_key=True, autoincrement=True)
     identity_key = Column(String(300), nullable=False, index=True)
     legacy_user_id = Column(Integer, nullable=True, index=True)
     external_user_id = Column(String(255), nullable=True, index=True)
     reward_id = Column(Integer, ForeignKey("rewards.id", ondelete="SET NULL"), nullable=True)
     voucher_code = Column(String(100), nullable=False, index=True)
     discount_amount = Column(Numeric(10, 2), nullable=False)
     discount_type = Column(String(20), nullable=False)
     min_order_amount = Column(Numeric(10, 2), nullable=False, default=0)
     points_used = Column(Integer, nullable=False, default=0)
     status = Column(String(20), nullable=False, default=VoucherStatus.ACTIVE.value, index=True)
     expires_at = Column(DateTime, nullable=False)
     applied_to_order_id = Column(Integer, nullable=True)
     used_at = Column(DateTime, nullable=True)
     title = Column(String(200), nullable=True)
     description = Column(String(1000), nullable=True)
     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     # Relationships
     reward = relationship("Reward")

     def __repr__(self):
          return f"<UserVoucher(id={self.id}, code='{self.voucher_code}', status='{self.status}')>"
