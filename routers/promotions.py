# routers/promotions.py
"""
Promotional calendar routes.

GET  /api/promotions/calendar: public; claim state is included when authenticated.
POST /api/promotions/claim: claim today's reward (free voucher, no points spent).
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_session
from dependencies import current_customer, optional_customer, http_error
from schemas.voucher import CalendarResponse, ClaimResult, PromoClaimRequest
from services.exceptions import LoyaltyError
from services.identity import CustomerIdentity
from services.promo_service import claim_promo_day, promo_calendar

router = APIRouter(prefix="/api/promotions", tags=["promotions"])


@router.get("/calendar", response_model=CalendarResponse, summary="Promotional calendar")
def read_calendar(
     db: Session = Depends(get_session),
     customer: Optional[CustomerIdentity] = Depends(optional_customer),
):
     return promo_calendar(db, customer)


@router.post("/claim", response_model=ClaimResult, summary="Claim today's reward")
def claim(
     body: PromoClaimRequest,
     db: Session = Depends(get_session),
     customer: CustomerIdentity = Depends(current_customer),
):
     try:
          return claim_promo_day(db, customer, body.day)
     except LoyaltyError as e:
          raise http_error(e)
