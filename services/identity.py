# services/identity.py
"""
Identity Resolver - canonical customer keys for every ledger operation.

Customers are addressed by a legacy numeric id, an external identity-provider
id, or both while the migration between the two schemes is in progress.
Everything downstream works with a CustomerIdentity; the canonical key is the
legacy id whenever one is known (directly or through profile linkage),
otherwise the external id.
"""
import enum
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import or_, false
from sqlalchemy.orm import Session

from models import CustomerProfile
from services.exceptions import InvalidIdentityError


class KeyKind(str, enum.Enum):
     LEGACY = "legacy"
     EXTERNAL = "external"


@dataclass(frozen=True)
class CustomerKey:
     """Tagged customer key, rendered as "legacy:7" or "external:abc"."""
     kind: KeyKind
     value: str

     def __str__(self) -> str:
          return f"{self.kind.value}:{self.value}"

     @classmethod
     def legacy(cls, user_id: int) -> "CustomerKey":
          value = str(user_id)
          if isinstance(user_id, bool) or not value.isdecimal():
               raise InvalidIdentityError(f"Legacy customer id must be numeric: {user_id!r}")
          return cls(KeyKind.LEGACY, str(int(value)))

     @classmethod
     def external(cls, user_id: str) -> "CustomerKey":
          return cls(KeyKind.EXTERNAL, user_id)

     @classmethod
     def parse(cls, raw: str) -> "CustomerKey":
          kind, sep, value = raw.partition(":")
          if not sep or not value:
               raise InvalidIdentityError(f"Malformed customer key: {raw!r}")
          try:
               key_kind = KeyKind(kind)
          except ValueError:
               raise InvalidIdentityError(f"Unknown customer key kind: {kind!r}")
          if key_kind is KeyKind.LEGACY:
               return cls.legacy(value)
          return cls(key_kind, value)


@dataclass(frozen=True)
class CallerIdentity:
     """Authenticated caller as delivered by the auth layer (either key may be missing)."""
     legacy_id: Optional[int] = None
     external_id: Optional[str] = None


@dataclass(frozen=True)
class CustomerIdentity:
     legacy_id: Optional[int] = None
     external_id: Optional[str] = None

     def __post_init__(self):
          if self.legacy_id is None and not self.external_id:
               raise InvalidIdentityError("A customer identity needs a legacy or external key")

     @property
     def canonical(self) -> CustomerKey:
          if self.legacy_id is not None:
               return CustomerKey.legacy(self.legacy_id)
          return CustomerKey.external(self.external_id)

     @property
     def key(self) -> str:
          return str(self.canonical)

     def keys(self) -> list[str]:
          """Every key string this customer may have been recorded under."""
          keys = []
          if self.legacy_id is not None:
               keys.append(str(CustomerKey.legacy(self.legacy_id)))
          if self.external_id:
               keys.append(str(CustomerKey.external(self.external_id)))
          return keys

     def columns(self) -> dict:
          """Identity column values for a new ledger/balance/voucher row."""
          return {
               "identity_key": self.key,
               "legacy_user_id": self.legacy_id,
               "external_user_id": self.external_id,
          }

     @classmethod
     def from_key(cls, raw: str) -> "CustomerIdentity":
          key = CustomerKey.parse(raw)
          if key.kind is KeyKind.LEGACY:
               return cls(legacy_id=int(key.value))
          return cls(external_id=key.value)


def identity_clause(model, identity: CustomerIdentity):
     """
     SQL filter matching rows recorded under either of the customer's keys.

     The model must expose legacy_user_id and external_user_id columns.
     """
     conditions = []
     if identity.legacy_id is not None:
          conditions.append(model.legacy_user_id == identity.legacy_id)
     if identity.external_id:
          conditions.append(model.external_user_id == identity.external_id)
     if hasattr(model, "identity_key"):
          conditions.append(model.identity_key.in_(identity.keys()))
     return or_(*conditions) if conditions else false()


def find_profile(db: Session, caller: CallerIdentity) -> Optional[CustomerProfile]:
     if caller.external_id:
          profile = (
               db.query(CustomerProfile)
               .filter(CustomerProfile.external_user_id == caller.external_id)
               .first()
          )
          if profile:
               return profile
     if caller.legacy_id is not None:
          return (
               db.query(CustomerProfile)
               .filter(CustomerProfile.legacy_user_id == caller.legacy_id)
               .first()
          )
     return None


def resolve_identity(db: Session, caller: CallerIdentity) -> CustomerIdentity:
     """
     Canonicalize an authenticated caller.

     Read-only: an existing profile linkage is preferred over the keys the
     caller supplied, but no linkage is ever created here.

     Raises:
          InvalidIdentityError: if the caller carries no key at all
     """
     if caller.legacy_id is None and not caller.external_id:
          raise InvalidIdentityError("Authenticated caller carries no customer key")

     legacy_id = caller.legacy_id
     external_id = caller.external_id

     profile = find_profile(db, caller)
     if profile is not None:
          if profile.legacy_user_id is not None:
               legacy_id = profile.legacy_user_id
          if profile.external_user_id:
               external_id = profile.external_user_id

     return CustomerIdentity(legacy_id=legacy_id, external_id=external_id)
