# models/__init__.py
from .base import Base
from .customer_profile import CustomerProfile
from .order import Order, PAID_PAYMENT_STATUSES
from .points_transaction import PointsTransaction, TransactionType, CREDIT_TYPES, DEBIT_TYPES
from .customer_balance import CustomerBalance, BALANCE_UNIQUE_INDEX
from .reward import Reward, DiscountType
from .voucher import UserVoucher, VoucherStatus
from .promo import PromoCalendarSlot, PromoClaim

__all__ = [
     "Base",
     "CustomerProfile",
     "Order",
     "PAID_PAYMENT_STATUSES",
     "PointsTransaction",
     "TransactionType",
     "CREDIT_TYPES",
     "DEBIT_TYPES",
     "CustomerBalance",
     "BALANCE_UNIQUE_INDEX",
     "Reward",
     "DiscountType",
     "UserVoucher",
     "VoucherStatus",
     "PromoCalendarSlot",
     "PromoClaim",
]
