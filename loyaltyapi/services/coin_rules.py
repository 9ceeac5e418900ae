"""
코인 적립/사용 규칙 - 순수 계산 함수

DB 에 접근하지 않는 계산만 모아둔 모듈입니다.
정산 서비스는 원장에서 읽은 값과 설정 스냅샷을 넘겨 결과만 받아갑니다.

- 잔액: 원장 코인 변동량의 합계 (fold)
- 적립: 결제 금액 × 적립률, 1회 상한, 시스템 상한(500)
- 매장 재원: 매장 가용 코인이 부족할 때의 처리 정책
- 사용: 평생 1회, 잔액 50% / 결제액 비율 / 요청량 중 최소값
- 등급: 누적 구매액 기준 (표시용)
"""

import enum
from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Union

from loyaltyapi.schemas.settings import EffectiveSettings

# 설정과 무관하게 적용되는 1회 적립 상한 (어뷰징 방지)
EARN_HARD_CAP = 500

# 1회 사용 가능한 잔액 비율
REDEEM_BALANCE_RATIO = Decimal("0.5")

Number = Union[int, float, str, Decimal]


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # float 는 문자열을 거쳐 이진 오차를 피함
    return Decimal(str(value))


def floor_coins(value: Number) -> int:
    return int(to_decimal(value).to_integral_value(rounding=ROUND_FLOOR))


def fold_customer_balance(coin_deltas: Iterable[int]) -> int:
    """고객 잔액 = 모든 지갑 원장 코인의 합"""
    return sum(coin_deltas, 0)


def fold_branch_available(
    branch_credits: Iterable[int], branch_wallet_deltas: Iterable[int]
) -> int:
    """매장 가용 코인 = 받은 코인 - 고객 지급 코인 + 고객 사용으로 회수된 코인"""
    received = sum(branch_credits, 0)
    given = 0
    reclaimed = 0
    for coins in branch_wallet_deltas:
        if coins > 0:
            given += coins
        else:
            reclaimed += -coins
    return received - given + reclaimed


def compute_earned_coins(bill_amount: Number, effective: EffectiveSettings) -> int:
    """결제 금액으로 적립 코인 계산 (매장 재원 확인 전)"""
    bill = to_decimal(bill_amount)
    if bill < effective.min_bill_to_earn:
        return 0

    earned = floor_coins(bill * effective.coin_percent / 100)
    if effective.max_coins_per_bill is not None:
        earned = min(earned, effective.max_coins_per_bill)
    return max(0, min(earned, EARN_HARD_CAP))


class BranchShortfallPolicy(str, enum.Enum):
    """매장 가용 코인이 적립 코인보다 적을 때의 처리"""

    DEGRADE = "degrade"  # 적립 0, 구매는 정상 기록
    PARTIAL = "partial"  # 가용 코인만큼만 적립
    REJECT = "reject"  # 구매 거절

    @classmethod
    def parse(cls, value: Union[str, "BranchShortfallPolicy"]) -> "BranchShortfallPolicy":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


@dataclass(frozen=True)
class FundingDecision:
    required: int
    available: int
    granted: int
    rejected: bool = False
    note: Optional[str] = None

    @property
    def reduced(self) -> bool:
        return self.granted < self.required


def apply_branch_funding(
    required: int,
    branch_available: int,
    policy: Union[str, BranchShortfallPolicy] = BranchShortfallPolicy.DEGRADE,
) -> FundingDecision:
    policy = BranchShortfallPolicy.parse(policy)

    if required <= 0 or branch_available >= required:
        return FundingDecision(
            required=required, available=branch_available, granted=max(required, 0)
        )

    if policy is BranchShortfallPolicy.PARTIAL:
        granted = max(0, branch_available)
        return FundingDecision(
            required=required,
            available=branch_available,
            granted=granted,
            note=f"coins earned reduced from {required} to {granted} - insufficient branch balance",
        )

    if policy is BranchShortfallPolicy.REJECT:
        return FundingDecision(
            required=required,
            available=branch_available,
            granted=0,
            rejected=True,
            note=f"branch balance {branch_available} cannot cover {required} coins",
        )

    return FundingDecision(
        required=required,
        available=branch_available,
        granted=0,
        note="coins earned reduced - insufficient branch balance",
    )


@dataclass(frozen=True)
class RedemptionDecision:
    eligible: bool
    redeemed_coins: int = 0
    max_by_balance: int = 0
    max_by_bill: int = 0
    reasons: List[str] = field(default_factory=list)


def redemption_bounds(
    bill_amount: Number, balance: int, effective: EffectiveSettings
) -> tuple:
    """(잔액 기준 최대, 결제액 기준 최대)"""
    bill = to_decimal(bill_amount)
    max_by_balance = floor_coins(Decimal(max(balance, 0)) * REDEEM_BALANCE_RATIO)
    max_by_bill = floor_coins(
        bill * effective.max_redeem_percent / 100 / effective.coin_value_inr
    )
    return max_by_balance, max(max_by_bill, 0)


def check_redemption(
    bill_amount: Number,
    balance: int,
    effective: EffectiveSettings,
    has_ever_redeemed: bool,
    requested: int,
) -> RedemptionDecision:
    """코인 사용 가능 여부와 실제 사용 코인 계산

    사용은 고객당 평생 1회만 허용됩니다.
    """
    bill = to_decimal(bill_amount)
    reasons = []
    if bill < effective.min_bill_to_redeem:
        reasons.append(f"bill below minimum {effective.min_bill_to_redeem} to redeem")
    if balance < effective.min_coins_to_redeem:
        reasons.append(f"balance below minimum {effective.min_coins_to_redeem} coins to redeem")
    if has_ever_redeemed:
        reasons.append("customer has already used their one-time redemption")

    max_by_balance, max_by_bill = redemption_bounds(bill, balance, effective)

    if reasons:
        return RedemptionDecision(
            eligible=False,
            max_by_balance=max_by_balance,
            max_by_bill=max_by_bill,
            reasons=reasons,
        )

    redeemed = min(max(requested, 0), max_by_balance, max_by_bill, balance)
    if redeemed < max(requested, 0):
        reasons.append(
            f"redemption clamped from {requested} to {redeemed} coins "
            f"(max {max_by_balance} by balance, {max_by_bill} by bill)"
        )

    return RedemptionDecision(
        eligible=True,
        redeemed_coins=redeemed,
        max_by_balance=max_by_balance,
        max_by_bill=max_by_bill,
        reasons=reasons,
    )


def compute_final_payable(
    bill_amount: Number, redeemed_coins: int, coin_value_inr: Number
) -> Decimal:
    payable = to_decimal(bill_amount) - Decimal(redeemed_coins) * to_decimal(coin_value_inr)
    return payable.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LoyaltyTier:
    name: str
    min_spend: Decimal
    coin_multiplier: Decimal


LOYALTY_TIERS = (
    LoyaltyTier("Bronze", Decimal("0"), Decimal("1")),
    LoyaltyTier("Silver", Decimal("10000"), Decimal("1.25")),
    LoyaltyTier("Gold", Decimal("50000"), Decimal("1.5")),
    LoyaltyTier("Platinum", Decimal("200000"), Decimal("2")),
)


def get_tier(total_spend: Number) -> LoyaltyTier:
    spend = to_decimal(total_spend)
    tier = LOYALTY_TIERS[0]
    for candidate in LOYALTY_TIERS:
        if spend >= candidate.min_spend:
            tier = candidate
    return tier


def get_next_tier(total_spend: Number) -> Optional[LoyaltyTier]:
    spend = to_decimal(total_spend)
    for candidate in LOYALTY_TIERS:
        if spend < candidate.min_spend:
            return candidate
    return None
