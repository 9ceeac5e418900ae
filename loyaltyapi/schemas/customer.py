from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal


class CustomerResponse(BaseModel):
    id: int
    full_name: str
    phone: Optional[str] = None
    referral_code: str
    is_blocked: bool
    referred_by_customer_id: Optional[int] = None

    class Config:
        from_attributes = True


class CustomerRegistrationRequest(BaseModel):
    """고객 가입 요청"""

    full_name: str = Field(..., min_length=1, max_length=120, description="이름")
    phone: str = Field(..., min_length=6, max_length=20, description="전화번호")
    referral_code: Optional[str] = Field(None, max_length=16, description="추천인 코드")

    class Config:
        from_attributes = True


class BranchResponse(BaseModel):
    id: int
    name: str
    city: Optional[str] = None
    is_active: bool
    custom_coin_percent: Optional[Decimal] = None
    custom_max_coins_per_bill: Optional[int] = None
    custom_max_redeem_percent: Optional[Decimal] = None

    class Config:
        from_attributes = True


class BranchOverridesRequest(BaseModel):
    """매장별 설정 (None 이면 전역 설정 사용)"""

    custom_coin_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    custom_max_coins_per_bill: Optional[int] = Field(None, ge=0)
    custom_max_redeem_percent: Optional[Decimal] = Field(None, ge=0, le=100)

    class Config:
        from_attributes = True


class LoyaltyTierResponse(BaseModel):
    """누적 구매액 기준 등급"""

    name: str
    min_spend: Decimal
    coin_multiplier: Decimal
    total_spend: Decimal
    next_tier: Optional[str] = None
    spend_to_next_tier: Optional[Decimal] = None

    class Config:
        from_attributes = True
