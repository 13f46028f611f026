# routers/loyalty.py
"""
Customer-facing loyalty routes.

All routes act on the authenticated caller; the identity resolver maps the
token's legacy or external key onto one canonical customer.
"""
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_session
from dependencies import current_customer, http_error
from schemas.ledger import BalanceResponse, LedgerEntryResponse, LedgerHistoryResponse, RecoveryResult
from schemas.voucher import ApplyVoucherRequest, RedemptionResult, VoucherResponse
from services.balance_service import get_balance
from services.exceptions import LoyaltyError
from services.identity import CustomerIdentity
from services.ledger_service import list_entries
from services.recovery_service import recover_orphan_orders
from services.voucher_service import apply_voucher, list_eligible_vouchers, redeem_reward

router = APIRouter(prefix="/api/loyalty", tags=["loyalty"])


@router.get("/balance", response_model=BalanceResponse, summary="Current point balance")
def read_balance(
     db: Session = Depends(get_session),
     customer: CustomerIdentity = Depends(current_customer),
):
     return get_balance(db, customer)


@router.get("/history", response_model=LedgerHistoryResponse, summary="Points history")
def read_history(
     limit: int = Query(50, ge=1, le=200),
     offset: int = Query(0, ge=0),
     db: Session = Depends(get_session),
     customer: CustomerIdentity = Depends(current_customer),
):
     entries, total = list_entries(db, customer, limit=limit, offset=offset)
     return LedgerHistoryResponse(
          identity_key=customer.key,
          entries=[LedgerEntryResponse.model_validate(e) for e in entries],
          total_count=total,
          current_points=get_balance(db, customer).points,
     )


@router.get("/vouchers", response_model=List[VoucherResponse], summary="Vouchers usable at checkout")
def read_vouchers(
     subtotal: Optional[Decimal] = Query(None, ge=0, description="Order subtotal to check minimums against"),
     db: Session = Depends(get_session),
     customer: CustomerIdentity = Depends(current_customer),
):
     """
     Active, unexpired vouchers of the caller. With **subtotal**, only the
     vouchers whose minimum order amount it satisfies.
     """
     return list_eligible_vouchers(db, customer, subtotal=subtotal)


@router.post("/rewards/{reward_id}/redeem", response_model=RedemptionResult, summary="Redeem a reward")
def redeem(
     reward_id: int,
     db: Session = Depends(get_session),
     customer: CustomerIdentity = Depends(current_customer),
):
     try:
          return redeem_reward(db, customer, reward_id)
     except LoyaltyError as e:
          raise http_error(e)


@router.post("/vouchers/apply", response_model=VoucherResponse, summary="Use a voucher on an order")
def use_voucher(
     body: ApplyVoucherRequest,
     db: Session = Depends(get_session),
     customer: CustomerIdentity = Depends(current_customer),
):
     try:
          return apply_voucher(db, customer, body.voucher_code, body.order_id, body.subtotal)
     except LoyaltyError as e:
          raise http_error(e)


@router.post("/recover", response_model=RecoveryResult, summary="Link guest orders placed with my phone number")
def recover_orders(
     db: Session = Depends(get_session),
     customer: CustomerIdentity = Depends(current_customer),
):
     return recover_orphan_orders(db, customer)
