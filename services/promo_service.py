# services/promo_service.py
"""
Promotional calendar claims (free vouchers, one per campaign day).

A claim issues a voucher without touching the point balance. The campaign
runs in a fixed reference time zone: "today" and the voucher expiry (end of
the claim day) are both evaluated there, not in server time.
"""
import calendar
import logging
import secrets
import string
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import PROMO_DAYS, PROMO_MONTH, PROMO_TIMEZONE
from models import PromoCalendarSlot, PromoClaim, Reward
from schemas.voucher import CalendarDay, CalendarResponse, ClaimResult, VoucherResponse
from services.exceptions import (
     AlreadyClaimedError,
     ClaimNotAvailableError,
     InvalidClaimDayError,
     RewardNotFoundError,
     SlotNotConfiguredError,
)
from services.identity import CustomerIdentity, identity_clause
from services.voucher_service import issue_voucher
from utils.clock import utcnow, to_naive_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromoCampaign:
     """Campaign window: days 1..days of the given month, evaluated in tz_name."""
     month: int = PROMO_MONTH
     days: int = PROMO_DAYS
     tz_name: str = PROMO_TIMEZONE
     tz: ZoneInfo = field(init=False, repr=False, compare=False)

     def __post_init__(self):
          if not 1 <= self.month <= 12:
               raise ValueError(f"Campaign month must be between 1 and 12, got {self.month}")
          # leap years allowed for February
          longest = calendar.monthrange(2000, self.month)[1]
          if not 1 <= self.days <= longest:
               raise ValueError(f"Campaign days must be between 1 and {longest} for month {self.month}, got {self.days}")
          object.__setattr__(self, "tz", ZoneInfo(self.tz_name))

     def local_now(self, now: datetime) -> datetime:
          if now.tzinfo is None:
               now = now.replace(tzinfo=timezone.utc)
          return now.astimezone(self.tz)

     def end_of_day(self, local: datetime) -> datetime:
          """Next local midnight, as naive UTC."""
          midnight = datetime.combine(local.date() + timedelta(days=1), time.min, tzinfo=self.tz)
          return to_naive_utc(midnight)

     def validate_day(self, day: int) -> None:
          if isinstance(day, bool) or not isinstance(day, int) or not 1 <= day <= self.days:
               raise InvalidClaimDayError(f"Invalid day. Must be between 1 and {self.days}.")


DEFAULT_CAMPAIGN = PromoCampaign()

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def _promo_code(year: int, day: int) -> str:
     suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(6))
     return f"PROMO{year}-DAY{day}-{suffix}"


def _find_claims(db: Session, identity: CustomerIdentity, year: int, day: Optional[int] = None):
     query = db.query(PromoClaim).filter(
          identity_clause(PromoClaim, identity),
          PromoClaim.year == year,
     )
     if day is not None:
          query = query.filter(PromoClaim.day == day)
     return query


def claim_promo_day(
     db: Session,
     identity: CustomerIdentity,
     day: int,
     now: Optional[datetime] = None,
     campaign: PromoCampaign = DEFAULT_CAMPAIGN,
) -> ClaimResult:
     """
     Claim the reward assigned to today's campaign slot.

     Raises:
          InvalidClaimDayError: day outside 1..campaign.days
          ClaimNotAvailableError: day is not today, or the slot is closed
          AlreadyClaimedError: this customer already claimed the day this year
          SlotNotConfiguredError: no active slot / reward for the day
     """
     campaign.validate_day(day)
     local = campaign.local_now(now or utcnow())
     year = local.year

     if local.month != campaign.month or local.day != day:
          raise ClaimNotAvailableError(f"This reward is only available on day {day} of the campaign")

     if _find_claims(db, identity, year, day).first() is not None:
          raise AlreadyClaimedError("You have already claimed this reward")

     slot = (
          db.query(PromoCalendarSlot)
          .filter(
               PromoCalendarSlot.day == day,
               PromoCalendarSlot.year == year,
               PromoCalendarSlot.is_active.is_(True),
          )
          .first()
     )
     if slot is None or slot.reward_id is None:
          raise SlotNotConfiguredError("No reward available for this day")
     if slot.is_closed:
          raise ClaimNotAvailableError("This day has been closed")

     reward = db.get(Reward, slot.reward_id)
     if reward is None:
          raise RewardNotFoundError("Reward not found")

     try:
          with db.begin_nested():
               voucher = issue_voucher(
                    db,
                    identity,
                    reward,
                    code=reward.voucher_code or _promo_code(year, day),
                    expires_at=campaign.end_of_day(local),
                    points_used=0,
               )
               db.add(PromoClaim(
                    **identity.columns(),
                    day=day,
                    year=year,
                    reward_id=reward.id,
                    voucher_id=voucher.id,
               ))
               db.flush()
     except IntegrityError:
          raise AlreadyClaimedError("You have already claimed this reward")

     logger.info("Promo reward claimed: day %s, customer %s", day, identity.key)
     return ClaimResult(
          day=day,
          year=year,
          reward_id=reward.id,
          reward_name=reward.name,
          voucher=VoucherResponse.model_validate(voucher),
          message=f"You've claimed your reward for day {day}!",
     )


def reset_promo_claim(db: Session, identity: CustomerIdentity, day: int, year: int) -> bool:
     """
     Administrative reset: delete the claim and its voucher so the slot can be
     claimed again. Returns False when there was nothing to reset.
     """
     claims = _find_claims(db, identity, year, day).all()
     if not claims:
          return False

     with db.begin_nested():
          for claim in claims:
               voucher = claim.voucher
               db.delete(claim)
               if voucher is not None:
                    db.delete(voucher)
          db.flush()

     logger.info("Promo claim reset: day %s/%s, customer %s", day, year, identity.key)
     return True


def promo_calendar(
     db: Session,
     identity: Optional[CustomerIdentity] = None,
     now: Optional[datetime] = None,
     campaign: PromoCampaign = DEFAULT_CAMPAIGN,
) -> CalendarResponse:
     """Calendar view for the current campaign year with per-day claim state."""
     local = campaign.local_now(now or utcnow())
     year = local.year
     in_month = local.month == campaign.month

     slots = (
          db.query(PromoCalendarSlot)
          .filter(PromoCalendarSlot.year == year, PromoCalendarSlot.is_active.is_(True))
          .order_by(PromoCalendarSlot.day)
          .all()
     )
     claimed = set()
     if identity is not None:
          claimed = {c.day for c in _find_claims(db, identity, year).all()}

     days = []
     for slot in slots:
          is_current = in_month and local.day == slot.day
          is_past = (in_month and local.day > slot.day) or local.month > campaign.month
          is_claimed = slot.day in claimed
          reward = slot.reward
          days.append(CalendarDay(
               day=slot.day,
               reward_id=slot.reward_id,
               reward_name=reward.name if reward else None,
               reward_description=reward.description if reward else None,
               is_current_day=is_current,
               is_past_day=is_past,
               is_future_day=not is_current and not is_past,
               is_claimed=is_claimed,
               is_closed=bool(slot.is_closed),
               can_claim=(
                    is_current and not is_claimed and not slot.is_closed
                    and identity is not None and slot.reward_id is not None
               ),
          ))

     last_day = date(year, campaign.month, min(campaign.days, calendar.monthrange(year, campaign.month)[1]))
     return CalendarResponse(
          year=year,
          in_campaign_month=in_month,
          current_day=local.day if in_month else None,
          days_until_end=max((last_day - local.date()).days, 0),
          days=days,
     )
