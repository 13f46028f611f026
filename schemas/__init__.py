# schemas/__init__.py
from .ledger import (
     OrderPaidEvent,
     OrderRefundedEvent,
     AdminAwardRequest,
     AdminCorrectionRequest,
     SignupBonusRequest,
     LedgerEntryResponse,
     BalanceResponse,
     LedgerHistoryResponse,
     CustomerLedgerResponse,
     AwardResult,
     RefundResult,
     RecoveredOrder,
     RecoveryResult,
)
from .voucher import (
     VoucherResponse,
     RedemptionResult,
     ApplyVoucherRequest,
     PromoClaimRequest,
     PromoClaimResetRequest,
     ClaimResult,
     CalendarDay,
     CalendarResponse,
)
from .reconciliation import (
     ReconciliationRequest,
     BalanceSnapshot,
     MissingAward,
     ReconciliationReport,
     ReconciliationSummary,
)

__all__ = [
     "OrderPaidEvent",
     "OrderRefundedEvent",
     "AdminAwardRequest",
     "AdminCorrectionRequest",
     "SignupBonusRequest",
     "LedgerEntryResponse",
     "BalanceResponse",
     "LedgerHistoryResponse",
     "CustomerLedgerResponse",
     "AwardResult",
     "RefundResult",
     "RecoveredOrder",
     "RecoveryResult",
     "VoucherResponse",
     "RedemptionResult",
     "ApplyVoucherRequest",
     "PromoClaimRequest",
     "PromoClaimResetRequest",
     "ClaimResult",
     "CalendarDay",
     "CalendarResponse",
     "ReconciliationRequest",
     "BalanceSnapshot",
     "MissingAward",
     "ReconciliationReport",
     "ReconciliationSummary",
]
