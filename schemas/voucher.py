# schemas/voucher.py
"""
Pydantic schemas for vouchers, reward redemption and promotional claims.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict


class VoucherResponse(BaseModel):
     id: int
     reward_id: Optional[int] = None
     voucher_code: str
     discount_amount: Decimal
     discount_type: str
     min_order_amount: Decimal
     points_used: int
     status: str
     expires_at: datetime
     title: Optional[str] = None
     description: Optional[str] = None

     model_config = ConfigDict(
          from_attributes=True,
          json_schema_extra={
               "example": {
                    "id": 12,
                    "reward_id": 3,
                    "voucher_code": "RWD-7K2Q9D",
                    "discount_amount": 5.00,
                    "discount_type": "fixed",
                    "min_order_amount": 15.00,
                    "points_used": 100,
                    "status": "active",
                    "expires_at": "2026-11-17T10:30:00",
               }
          }
     )


class RedemptionResult(BaseModel):
     reward_id: int
     points_spent: int
     balance_after: int
     voucher: VoucherResponse
     message: str


class ApplyVoucherRequest(BaseModel):
     voucher_code: str = Field(..., min_length=1, max_length=100)
     order_id: int = Field(..., gt=0)
     subtotal: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)


class PromoClaimRequest(BaseModel):
     day: int = Field(..., description="Campaign day being claimed (1..N)")


class PromoClaimResetRequest(BaseModel):
     identity_key: str = Field(..., description='Customer key, e.g. "legacy:7" or "external:abc"')
     day: int
     year: int


class ClaimResult(BaseModel):
     day: int
     year: int
     reward_id: int
     reward_name: str
     voucher: VoucherResponse
     message: str


class CalendarDay(BaseModel):
     day: int
     reward_id: Optional[int] = None
     reward_name: Optional[str] = None
     reward_description: Optional[str] = None
     is_current_day: bool
     is_past_day: bool
     is_future_day: bool
     is_claimed: bool
     is_closed: bool
     can_claim: bool


class CalendarResponse(BaseModel):
     year: int
     in_campaign_month: bool
     current_day: Optional[int] = None
     days_until_end: int
     days: List[CalendarDay]
