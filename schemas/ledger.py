# schemas/ledger.py
"""
Pydantic schemas for ledger events, balances and award/refund results.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict

from models.points_transaction import TransactionType


class OrderPaidEvent(BaseModel):
     """Inbound "order paid" fact."""
     order_id: int = Field(..., gt=0)
     total: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
     payment_succeeded: bool = True
     paid_at: Optional[datetime] = None
     legacy_user_id: Optional[int] = None
     external_user_id: Optional[str] = None

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "order_id": 70,
                    "total": 23.50,
                    "payment_succeeded": True,
                    "legacy_user_id": 7,
               }
          }
     )


class OrderRefundedEvent(BaseModel):
     """Inbound "order refunded" fact. refunded_amount is set for partial refunds."""
     order_id: int = Field(..., gt=0)
     refunded_amount: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
     legacy_user_id: Optional[int] = None
     external_user_id: Optional[str] = None


class AdminAwardRequest(BaseModel):
     legacy_user_id: Optional[int] = None
     external_user_id: Optional[str] = None
     points: int = Field(..., gt=0)
     reason: str = Field(..., min_length=1, max_length=400)


class AdminCorrectionRequest(BaseModel):
     """Downward correction; points is the amount to deduct."""
     legacy_user_id: Optional[int] = None
     external_user_id: Optional[str] = None
     points: int = Field(..., gt=0)
     reason: str = Field(..., min_length=1, max_length=400)


class SignupBonusRequest(BaseModel):
     legacy_user_id: Optional[int] = None
     external_user_id: Optional[str] = None


class LedgerEntryResponse(BaseModel):
     id: int
     identity_key: str
     order_id: Optional[int] = None
     type: TransactionType
     points: int
     description: str
     order_amount: Optional[Decimal] = None
     is_retroactive: bool = False
     created_at: datetime

     model_config = ConfigDict(from_attributes=True)


class BalanceResponse(BaseModel):
     """Outbound balance read for display."""
     identity_key: str
     points: int = 0
     total_earned: int = 0
     total_redeemed: int = 0
     last_earned_at: Optional[datetime] = None


class LedgerHistoryResponse(BaseModel):
     identity_key: str
     entries: List[LedgerEntryResponse]
     total_count: int
     current_points: int


class CustomerLedgerResponse(BaseModel):
     """Operator view of one customer: stored balance plus recent ledger entries."""
     balance: BalanceResponse
     entries: List[LedgerEntryResponse]
     total_count: int


class AwardResult(BaseModel):
     order_id: Optional[int] = None
     points_awarded: int = 0
     bonus_points: int = 0
     already_processed: bool = False
     entry: Optional[LedgerEntryResponse] = None
     message: str


class RefundResult(BaseModel):
     order_id: int
     points_reversed: int = 0
     already_processed: bool = False
     balance_after: Optional[int] = None
     negative_balance: bool = False
     entry: Optional[LedgerEntryResponse] = None
     message: str


class RecoveredOrder(BaseModel):
     order_id: int
     total: Decimal
     points_awarded: int
     already_awarded: bool
     created_at: datetime


class RecoveryResult(BaseModel):
     identity_key: str
     phone: Optional[str] = None
     orders_linked: int = 0
     points_awarded: int = 0
     orders: List[RecoveredOrder] = Field(default_factory=list)
