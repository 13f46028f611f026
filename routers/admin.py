# routers/admin.py
"""
Operator routes for the loyalty ledger (admin / manager roles only).

Reconciliation defaults to dry-run; the report should be reviewed before
running it again with dry_run=false.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_session
from dependencies import require_admin, identity_from_key, identity_from_keys, http_error
from schemas.ledger import (
     AdminAwardRequest,
     AdminCorrectionRequest,
     AwardResult,
     CustomerLedgerResponse,
     LedgerEntryResponse,
)
from schemas.reconciliation import ReconciliationRequest, ReconciliationSummary
from schemas.voucher import PromoClaimResetRequest
from services.award_service import admin_award, admin_correction
from services.balance_service import get_balance
from services.exceptions import LoyaltyError
from services.ledger_service import list_entries
from services.promo_service import reset_promo_claim
from services.reconciliation_service import reconcile_all, reconcile_identity
from services.voucher_service import expire_vouchers

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/loyalty/reconcile", response_model=ReconciliationSummary, summary="Audit / repair balances")
def reconcile(
     body: ReconciliationRequest,
     db: Session = Depends(get_session),
     token: dict = Depends(require_admin),
):
     """
     Recompute balances from the ledger.

     - **identity_key**: one customer ("legacy:7" / "external:abc"), or omit for all
     - **dry_run**: report only (default); false applies the repair
     """
     try:
          if body.identity_key is None:
               return reconcile_all(db, dry_run=body.dry_run)
          report = reconcile_identity(db, identity_from_key(db, body.identity_key), dry_run=body.dry_run)
     except LoyaltyError as e:
          raise http_error(e)
     return ReconciliationSummary(
          dry_run=body.dry_run,
          identities_checked=1,
          identities_with_discrepancy=int(report.discrepancy),
          missing_orders=len(report.missing_orders),
          duplicate_rows=len(report.duplicate_row_ids),
          reports=[report],
     )


@router.post("/loyalty/award", response_model=AwardResult, summary="Manual point award")
def award(
     body: AdminAwardRequest,
     db: Session = Depends(get_session),
     token: dict = Depends(require_admin),
):
     try:
          identity = identity_from_keys(db, body.legacy_user_id, body.external_user_id)
          return admin_award(db, identity, body.points, body.reason, performed_by=token.get("email"))
     except LoyaltyError as e:
          raise http_error(e)


@router.post("/loyalty/correct", response_model=AwardResult, summary="Manual point deduction")
def correct(
     body: AdminCorrectionRequest,
     db: Session = Depends(get_session),
     token: dict = Depends(require_admin),
):
     """
     Deduct points from a customer. The ledger keeps the original entries; the
     deduction is recorded as a new admin_correction entry.
     """
     try:
          identity = identity_from_keys(db, body.legacy_user_id, body.external_user_id)
          return admin_correction(db, identity, body.points, body.reason, performed_by=token.get("email"))
     except LoyaltyError as e:
          raise http_error(e)


@router.get(
     "/loyalty/customers/{identity_key}",
     response_model=CustomerLedgerResponse,
     summary="Customer balance and history",
)
def customer_ledger(
     identity_key: str,
     limit: int = Query(50, ge=1, le=200),
     offset: int = Query(0, ge=0),
     db: Session = Depends(get_session),
     token: dict = Depends(require_admin),
):
     try:
          identity = identity_from_key(db, identity_key)
     except LoyaltyError as e:
          raise http_error(e)
     entries, total = list_entries(db, identity, limit=limit, offset=offset)
     return CustomerLedgerResponse(
          balance=get_balance(db, identity),
          entries=[LedgerEntryResponse.model_validate(e) for e in entries],
          total_count=total,
     )


@router.post("/loyalty/vouchers/expire", summary="Expire overdue vouchers")
def expire(
     db: Session = Depends(get_session),
     token: dict = Depends(require_admin),
):
     return {"expired": expire_vouchers(db)}


@router.post("/promotions/claims/reset", summary="Reset a promotional claim")
def reset_claim(
     body: PromoClaimResetRequest,
     db: Session = Depends(get_session),
     token: dict = Depends(require_admin),
):
     try:
          identity = identity_from_key(db, body.identity_key)
     except LoyaltyError as e:
          raise http_error(e)
     return {"reset": reset_promo_claim(db, identity, body.day, body.year)}
