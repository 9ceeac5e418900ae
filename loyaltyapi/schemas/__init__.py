from .settings import LoyaltySettings, EffectiveSettings
from .purchase import PurchaseSubmission, SettlementReceipt, SettlementResult
from .wallet import WalletBalanceResponse, WalletLedgerResponse, BranchWalletSummary
from .referral import ReferralRewardResponse, ReferralSummary
from .customer import CustomerResponse, BranchResponse
