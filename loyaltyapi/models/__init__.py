# 모든 테이블을 Base.metadata 에 등록
from .base import Base, BaseModel
from .customer import Customer, Branch
from .purchase import Purchase, PurchaseReturn
from .wallet import WalletTransaction, WalletTransactionType, BranchCoinTransaction
from .referral import ReferralReward, ReferralStatus
from .settings import SettingEntry
from .engagement import BranchCheckin, SpinResult, BranchReview

__all__ = [
    "Base",
    "BaseModel",
    "Customer",
    "Branch",
    "Purchase",
    "PurchaseReturn",
    "WalletTransaction",
    "WalletTransactionType",
    "BranchCoinTransaction",
    "ReferralReward",
    "ReferralStatus",
    "SettingEntry",
    "BranchCheckin",
    "SpinResult",
    "BranchReview",
]
