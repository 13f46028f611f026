# routers/orders.py
"""
Order lifecycle facts from the ordering platform.

POST /api/orders/paid: award points for a paid order (safe to retry).
POST /api/orders/refunded: reverse the points of a refunded order.
Both are called by staff tools or the payment webhook handler after the
payment processor has confirmed the event; no processor call happens here.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_session
from dependencies import require_staff, identity_from_keys, http_error
from schemas.ledger import OrderPaidEvent, OrderRefundedEvent, AwardResult, RefundResult
from services.award_service import award_order_points
from services.exceptions import LoyaltyError
from services.refund_service import reverse_order_points

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post(
     "/paid",
     response_model=AwardResult,
     status_code=status.HTTP_200_OK,
     summary="Record a paid order",
)
def order_paid(
     body: OrderPaidEvent,
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff),
):
     """
     Award loyalty points for a completed, paid order.

     Repeated notifications for the same order return the original award
     with **already_processed** set instead of crediting twice.
     """
     try:
          identity = identity_from_keys(db, body.legacy_user_id, body.external_user_id)
          return award_order_points(
               db,
               identity,
               order_id=body.order_id,
               total=body.total,
               payment_succeeded=body.payment_succeeded,
          )
     except LoyaltyError as e:
          raise http_error(e)


@router.post("/refunded", response_model=RefundResult, summary="Record a refunded order")
def order_refunded(
     body: OrderRefundedEvent,
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff),
):
     try:
          identity = identity_from_keys(db, body.legacy_user_id, body.external_user_id)
          return reverse_order_points(
               db,
               identity,
               order_id=body.order_id,
               refunded_amount=body.refunded_amount,
          )
     except LoyaltyError as e:
          raise http_error(e)
