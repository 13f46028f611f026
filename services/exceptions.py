# services/exceptions.py
"""
Loyalty service error hierarchy.

Validation and not-found errors are rejected before anything is written.
Idempotent repeats (order already awarded, refund already reversed) are not
errors; services report them through their result objects instead.
"""


class LoyaltyError(Exception):
     """Base class for all loyalty ledger errors."""


class ValidationError(LoyaltyError):
     pass


class InvalidIdentityError(ValidationError):
     """Neither a legacy nor an external customer key was supplied."""


class InvalidPointsError(ValidationError):
     pass


class InvalidClaimDayError(ValidationError):
     pass


class ClaimNotAvailableError(ValidationError):
     """The promotional slot exists but cannot be claimed right now."""


class MinimumOrderNotMetError(ValidationError):
     pass


class NotFoundError(LoyaltyError):
     pass


class RewardNotFoundError(NotFoundError):
     pass


class VoucherNotFoundError(NotFoundError):
     pass


class SlotNotConfiguredError(NotFoundError):
     pass


class OrderNotFoundError(NotFoundError):
     pass


class InsufficientBalanceError(LoyaltyError):
     def __init__(self, required: int, available: int):
          self.required = required
          self.available = available
          super().__init__(
               f"Insufficient points. You need {required} points but have {available}"
          )


class ConflictError(LoyaltyError):
     pass


class AlreadyClaimedError(ConflictError):
     pass


class RewardUnavailableError(ConflictError):
     """Reward usage limit reached."""
