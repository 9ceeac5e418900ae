"""
경제 파라미터 스냅샷

settings 테이블(key → JSON value)을 읽어 만든 불변 스냅샷입니다.
정산 엔진은 전역 싱글톤이 아닌 이 스냅샷을 주입받아 계산합니다.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

# JSON null 이 "제한 없음"을 뜻하는 항목
NULLABLE_SETTING_KEYS = frozenset({"max_coins_per_bill"})


class EffectiveSettings(BaseModel):
    """매장 설정을 전역 설정 위에 병합한 결과"""

    coin_percent: Decimal = Field(..., ge=0, description="적립률 (%)")
    min_bill_to_earn: Decimal = Field(..., ge=0, description="적립 최소 결제 금액")
    max_coins_per_bill: Optional[int] = Field(None, ge=0, description="1회 최대 적립 코인")
    max_redeem_percent: Decimal = Field(..., ge=0, le=100, description="결제액 대비 최대 사용률 (%)")
    min_bill_to_redeem: Decimal = Field(..., ge=0, description="사용 최소 결제 금액")
    min_coins_to_redeem: int = Field(..., ge=0, description="사용 최소 보유 코인")
    coin_value_inr: Decimal = Field(..., gt=0, description="코인 1개의 INR 가치")

    class Config:
        frozen = True


class LoyaltySettings(BaseModel):
    """전역 경제 파라미터 (기본값은 운영 초기값과 동일)"""

    purchase_coin_percent: Decimal = Field(Decimal("5"), ge=0)
    min_bill_to_earn: Decimal = Field(Decimal("500"), ge=0)
    max_coins_per_bill: Optional[int] = Field(None, ge=0)
    welcome_bonus_first_purchase: int = Field(50, ge=0)
    max_redeem_percent: Decimal = Field(Decimal("10"), ge=0, le=100)
    min_bill_to_redeem: Decimal = Field(Decimal("500"), ge=0)
    min_coins_to_redeem: int = Field(50, ge=0)
    coin_value_inr: Decimal = Field(Decimal("1"), gt=0)
    referral_referrer_coins: int = Field(100, ge=0)
    referral_new_customer_coins: int = Field(50, ge=0)
    referral_min_first_bill: Decimal = Field(Decimal("0"), ge=0)
    coin_expiry_days: int = Field(0, ge=0, description="0 = 만료 없음")

    class Config:
        frozen = True

    @classmethod
    def from_map(cls, values: Dict[str, Any]) -> "LoyaltySettings":
        """settings 테이블 key/value 맵에서 스냅샷 생성

        - 알 수 없는 키는 무시
        - null / 빈 문자열은 nullable 항목에서만 '제한 없음', 그 외에는 기본값
        """
        cleaned: Dict[str, Any] = {}
        for key, value in values.items():
            if key not in cls.model_fields:
                continue
            if value is None or value == "":
                if key in NULLABLE_SETTING_KEYS:
                    cleaned[key] = None
                continue
            cleaned[key] = value
        return cls(**cleaned)

    def to_map(self) -> Dict[str, Any]:
        """settings 테이블 저장용 JSON 호환 맵"""
        return self.model_dump(mode="json")

    def for_branch(self, branch: Any = None) -> EffectiveSettings:
        """매장 오버라이드(custom_*)가 있고 NULL 이 아니면 우선 적용"""
        coin_percent = getattr(branch, "custom_coin_percent", None)
        max_coins = getattr(branch, "custom_max_coins_per_bill", None)
        max_redeem = getattr(branch, "custom_max_redeem_percent", None)

        return EffectiveSettings(
            coin_percent=(
                coin_percent if coin_percent is not None else self.purchase_coin_percent
            ),
            min_bill_to_earn=self.min_bill_to_earn,
            max_coins_per_bill=(
                max_coins if max_coins is not None else self.max_coins_per_bill
            ),
            max_redeem_percent=(
                max_redeem if max_redeem is not None else self.max_redeem_percent
            ),
            min_bill_to_redeem=self.min_bill_to_redeem,
            min_coins_to_redeem=self.min_coins_to_redeem,
            coin_value_inr=self.coin_value_inr,
        )


class SettingEntryResponse(BaseModel):
    """settings 테이블 한 행"""

    key: str = Field(..., description="설정 키")
    value: Optional[Any] = Field(None, description="JSON 값")

    class Config:
        from_attributes = True
