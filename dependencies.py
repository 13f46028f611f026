# dependencies.py
"""
Shared FastAPI dependencies: token verification and caller identity.
"""
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from config import JWT_SECRET, JWT_ALGORITHM
from database import get_session
from services.exceptions import (
     LoyaltyError,
     ValidationError,
     NotFoundError,
     ConflictError,
     InsufficientBalanceError,
     InvalidIdentityError,
)
from services.identity import CallerIdentity, CustomerIdentity, CustomerKey, resolve_identity

STAFF_ROLES = ("admin", "manager", "staff")
ADMIN_ROLES = ("admin", "manager")


# Token Auth Dependency
def verify_token(request: Request) -> dict:
     auth = request.headers.get("Authorization")
     if not auth or not auth.startswith("Bearer "):
          raise HTTPException(status_code=401, detail="Missing token")
     token = auth.split(" ")[1]
     try:
          payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
          return payload
     except JWTError:
          raise HTTPException(status_code=403, detail="Invalid token")


def caller_from_token(token: dict) -> CallerIdentity:
     """Legacy tokens carry a numeric "id"; provider tokens carry "external_id" (or "sub")."""
     legacy_id = token.get("id")
     external_id = token.get("external_id") or token.get("sub")
     if legacy_id is not None:
          try:
               legacy_id = int(CustomerKey.legacy(legacy_id).value)
          except InvalidIdentityError:
               raise HTTPException(status_code=403, detail="Invalid token")
     return CallerIdentity(
          legacy_id=legacy_id,
          external_id=str(external_id) if external_id else None,
     )


def current_customer(
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token),
) -> CustomerIdentity:
     try:
          return resolve_identity(db, caller_from_token(token))
     except LoyaltyError as e:
          raise http_error(e)


def require_staff(token: dict = Depends(verify_token)) -> dict:
     if token.get("role") not in STAFF_ROLES:
          raise HTTPException(status_code=403, detail="Staff access required")
     return token


def require_admin(token: dict = Depends(verify_token)) -> dict:
     if token.get("role") not in ADMIN_ROLES:
          raise HTTPException(status_code=403, detail="Admin access required")
     return token


def http_error(exc: LoyaltyError) -> HTTPException:
     """Translate a loyalty service error into the matching HTTP error."""
     if isinstance(exc, NotFoundError):
          code = status.HTTP_404_NOT_FOUND
     elif isinstance(exc, ConflictError):
          code = status.HTTP_409_CONFLICT
     elif isinstance(exc, (ValidationError, InsufficientBalanceError)):
          code = status.HTTP_400_BAD_REQUEST
     else:
          code = status.HTTP_500_INTERNAL_SERVER_ERROR
     return HTTPException(status_code=code, detail=str(exc))


def optional_customer(
     request: Request,
     db: Session = Depends(get_session),
) -> Optional[CustomerIdentity]:
     """Caller identity when a bearer token is present, otherwise None (public views)."""
     if not request.headers.get("Authorization"):
          return None
     return current_customer(db=db, token=verify_token(request))


def identity_from_key(db: Session, raw_key: str) -> CustomerIdentity:
     """Canonical identity for an operator-supplied key such as "legacy:7"."""
     parsed = CustomerIdentity.from_key(raw_key)
     return resolve_identity(db, CallerIdentity(parsed.legacy_id, parsed.external_id))


def identity_from_keys(db: Session, legacy_id: Optional[int], external_id: Optional[str]) -> CustomerIdentity:
     return resolve_identity(db, CallerIdentity(legacy_id, external_id))
