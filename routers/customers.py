# routers/customers.py
"""
Customer lifecycle events from the ordering platform.

POST /api/customers/signup-bonus: grant the one-time welcome bonus after a
customer registers. Safe to retry; a second call returns the original grant.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_session
from dependencies import require_staff, identity_from_keys, http_error
from models import TransactionType
from schemas.ledger import AwardResult, SignupBonusRequest
from services.award_service import grant_bonus
from services.exceptions import LoyaltyError

router = APIRouter(prefix="/api/customers", tags=["customers"])


@router.post("/signup-bonus", response_model=AwardResult, summary="Grant the signup bonus")
def signup_bonus(
     body: SignupBonusRequest,
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff),
):
     try:
          identity = identity_from_keys(db, body.legacy_user_id, body.external_user_id)
          return grant_bonus(db, identity, TransactionType.SIGNUP)
     except LoyaltyError as e:
          raise http_error(e)
