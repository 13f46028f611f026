# models/promo.py
"""
Promotional calendar models (e.g. a 25-day December campaign).

A slot assigns a reward to one day of the campaign; a claim records that a
customer took that day's reward. One claim per customer, day and year.
"""
from sqlalchemy import (
     Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint, func,
)
from sqlalchemy.orm import relationship
from .base import Base


class PromoCalendarSlot(Base):
     __table_args__ = (
          UniqueConstraint("day", "year", name="uq_promo_calendar_slots_day_year"),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)
     day = Column(Integer, nullable=False)
     year = Column(Integer, nullable=False, index=True)
     reward_id = Column(Integer, ForeignKey("rewards.id", ondelete="SET NULL"), nullable=True)
     is_active = Column(Boolean, nullable=False, default=True)
     is_closed = Column(Boolean, nullable=False, default=False)

     reward = relationship("Reward")

     def __repr__(self):
          return f"<PromoCalendarSlot(day={self.day}, year={self.year}, reward_id={self.reward_id})>"


class PromoClaim(Base):
     __table_args__ = (
          UniqueConstraint("identity_key", "day", "year", name="uq_promo_claims_identity_day_year"),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)
     identity_key = Column(String(300), nullable=False)
     legacy_user_id = Column(Integer, nullable=True, index=True)
     external_user_id = Column(String(255), nullable=True, index=True)
     day = Column(Integer, nullable=False)
     year = Column(Integer, nullable=False)
     reward_id = Column(Integer, ForeignKey("rewards.id", ondelete="SET NULL"), nullable=True)
     voucher_id = Column(Integer, ForeignKey("user_vouchers.id", ondelete="CASCADE"), nullable=True)
     claimed_at = Column(DateTime, server_default=func.now(), nullable=False)

     voucher = relationship("UserVoucher")

     def __repr__(self):
          return f"<PromoClaim(identity='{self.identity_key}', day={self.day}, year={self.year})>"
