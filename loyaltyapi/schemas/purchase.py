from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from decimal import Decimal


class PurchaseSubmission(BaseModel):
    """매장 운영자가 입력한 구매 정보"""

    branch_id: int = Field(..., description="매장 ID")
    customer_id: int = Field(..., description="고객 ID")
    bill_amount: Decimal = Field(..., description="결제 금액 (INR)")
    invoice_no: str = Field("", max_length=64, description="인보이스 번호 (매장 내 유일)")
    category: Optional[str] = Field("mobile", description="구매 카테고리")
    payment_method: Optional[str] = Field("cash", description="결제 수단")
    redeem: bool = Field(False, description="코인 사용 여부")
    redeem_amount: int = Field(0, description="운영자가 요청한 사용 코인")
    created_by: Optional[str] = Field(None, description="입력한 운영자 ID")

    class Config:
        from_attributes = True


class SettlementReceipt(BaseModel):
    """정산 영수증 - new_balance 는 표시용 산술값 (원장 합계가 기준)"""

    purchase_id: Optional[int] = Field(None, description="구매 ID (미리보기 시 None)")
    invoice_no: str = Field(..., description="인보이스 번호")
    bill_amount: Decimal = Field(..., description="결제 금액")
    earned_coins: int = Field(..., description="적립 코인")
    redeemed_coins: int = Field(..., description="사용 코인")
    welcome_bonus_coins: int = Field(0, description="환영 보너스 (가입 시 지급되므로 0)")
    final_payable: Decimal = Field(..., description="최종 결제 금액")
    previous_balance: int = Field(..., description="정산 전 잔액")
    new_balance: int = Field(..., description="정산 후 잔액")
    referral_paid: bool = Field(False, description="추천 보상 지급 여부")
    notes: List[str] = Field(default_factory=list, description="감액/조정 안내")

    class Config:
        from_attributes = True


class SettlementResult(BaseModel):
    """정산 결과 - 성공 영수증 또는 구조화된 실패"""

    success: bool = Field(..., description="성공 여부")
    receipt: Optional[SettlementReceipt] = Field(None, description="성공 시 영수증")
    error_code: Optional[str] = Field(None, description="실패 코드")
    message: str = Field(..., description="운영자에게 표시할 메시지")
    retryable: bool = Field(False, description="재시도 가능 여부")
    details: Dict[str, Any] = Field(default_factory=dict, description="실패 상세")

    class Config:
        from_attributes = True


class PurchaseResponse(BaseModel):
    id: int
    branch_id: int
    customer_id: int
    invoice_no: str
    bill_amount: Decimal
    category: Optional[str] = None
    payment_method: Optional[str] = None
    earned_coins: int
    redeemed_coins: int
    welcome_bonus_coins: int
    final_payable: Decimal

    class Config:
        from_attributes = True


class PurchaseReturnResponse(BaseModel):
    """반품 처리 결과"""

    return_id: int = Field(..., description="반품 ID")
    purchase_id: int = Field(..., description="원 구매 ID")
    return_amount: Decimal = Field(..., description="반품 금액")
    coins_deducted: int = Field(..., description="회수한 코인")
    remaining_returnable: Decimal = Field(..., description="추가 반품 가능 금액")

    class Config:
        from_attributes = True
