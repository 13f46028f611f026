from .identity import (
     KeyKind,
     CustomerKey,
     CallerIdentity,
     CustomerIdentity,
     resolve_identity,
)
from .ledger_service import (
     append_entry,
     find_by_order,
     sum_by_type,
     list_entries,
)
from .balance_service import BalanceKind, upsert_increment, get_balance
from .award_service import award_order_points, grant_bonus, admin_award, admin_correction, calculate_order_points
from .voucher_service import redeem_reward, list_eligible_vouchers, apply_voucher, expire_vouchers
from .promo_service import PromoCampaign, claim_promo_day, reset_promo_claim, promo_calendar
from .refund_service import reverse_order_points
from .recovery_service import recover_orphan_orders
from .reconciliation_service import reconcile_identity, reconcile_all, ensure_balance_unique_index

__all__ = [
     "KeyKind",
     "CustomerKey",
     "CallerIdentity",
     "CustomerIdentity",
     "resolve_identity",
     "append_entry",
     "find_by_order",
     "sum_by_type",
     "list_entries",
     "BalanceKind",
     "upsert_increment",
     "get_balance",
     "award_order_points",
     "grant_bonus",
     "admin_award",
     "admin_correction",
     "calculate_order_points",
     "redeem_reward",
     "list_eligible_vouchers",
     "apply_voucher",
     "expire_vouchers",
     "PromoCampaign",
     "claim_promo_day",
     "reset_promo_claim",
     "promo_calendar",
     "reverse_order_points",
     "recover_orphan_orders",
     "reconcile_identity",
     "reconcile_all",
     "ensure_balance_unique_index",
]
