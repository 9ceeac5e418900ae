from pydantic import BaseModel, Field
from typing import List, Optional


class ReferralRewardResponse(BaseModel):
    id: int
    referrer_customer_id: int
    new_customer_id: int
    referrer_coins: int
    new_customer_coins: int
    status: str
    first_purchase_id: Optional[int] = None

    class Config:
        from_attributes = True


class ReferralSummary(BaseModel):
    """고객 추천 현황"""

    customer_id: int = Field(..., description="고객 ID")
    referral_code: str = Field(..., description="추천 코드")
    referred_count: int = Field(..., description="추천한 가입자 수")
    pending_count: int = Field(..., description="첫 구매 대기 중")
    paid_count: int = Field(..., description="보상 지급 완료")
    coins_earned: int = Field(..., description="추천으로 받은 코인")
    coins_pending: int = Field(..., description="첫 구매 시 받을 코인")

    class Config:
        from_attributes = True


class ReferralLeaderboardEntry(BaseModel):
    customer_id: int
    full_name: str
    referral_code: str
    paid_referrals: int
    coins_earned: int

    class Config:
        from_attributes = True


class ReferralLeaderboardResponse(BaseModel):
    entries: List[ReferralLeaderboardEntry] = Field(..., description="순위 목록")

    class Config:
        from_attributes = True
