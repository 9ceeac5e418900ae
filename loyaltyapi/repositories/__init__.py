# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .settings_repository import SettingsRepository
from .customer_repository import CustomerRepository
from .branch_repository import BranchRepository
from .wallet_repository import WalletRepository
from .purchase_repository import PurchaseRepository
from .referral_repository import ReferralRepository
from .engagement_repository import EngagementRepository

__all__ = [
    "BaseRepository",
    "SettingsRepository",
    "CustomerRepository",
    "BranchRepository",
    "WalletRepository",
    "PurchaseRepository",
    "ReferralRepository",
    "EngagementRepository",
]
