from pydantic import BaseModel, Field
from typing import List, Optional


class WalletBalanceResponse(BaseModel):
    """코인 잔액 응답"""

    customer_id: int = Field(..., description="고객 ID")
    balance: int = Field(..., description="현재 코인 잔액 (원장 합계)")

    class Config:
        from_attributes = True


class WalletLedgerEntry(BaseModel):
    """지갑 원장 항목"""

    id: int = Field(..., description="원장 항목 ID")
    type: str = Field(..., description="거래 유형")
    coins: int = Field(..., description="코인 변화량")
    branch_id: Optional[int] = Field(None, description="매장 ID")
    purchase_id: Optional[int] = Field(None, description="구매 ID")
    description: Optional[str] = Field(None, description="거래 사유")
    expires_at: Optional[str] = Field(None, description="만료 시간")
    created_at: str = Field(..., description="생성 시간")

    class Config:
        from_attributes = True


class WalletLedgerResponse(BaseModel):
    """지갑 원장 조회 응답"""

    balance: int = Field(..., description="현재 잔액")
    entries: List[WalletLedgerEntry] = Field(..., description="원장 항목 목록")
    total_count: int = Field(..., description="전체 항목 수")
    has_next: bool = Field(..., description="다음 페이지 존재 여부")

    class Config:
        from_attributes = True


class WalletAdjustmentResponse(BaseModel):
    """관리자 코인 조정 응답"""

    customer_id: int = Field(..., description="고객 ID")
    transaction_id: Optional[int] = Field(None, description="원장 항목 ID (변동 없으면 None)")
    type: Optional[str] = Field(None, description="거래 유형")
    coins: int = Field(..., description="실제 반영된 코인 변화량")
    balance_after: int = Field(..., description="조정 후 잔액")
    message: str = Field(..., description="응답 메시지")

    class Config:
        from_attributes = True


class BranchWalletSummary(BaseModel):
    """매장 코인 지갑 요약"""

    branch_id: int = Field(..., description="매장 ID")
    received: int = Field(..., description="관리자로부터 받은 코인")
    given: int = Field(..., description="고객에게 지급한 코인")
    redeemed: int = Field(..., description="고객 사용으로 회수된 코인")
    available: int = Field(..., description="가용 코인 = received - given + redeemed")

    class Config:
        from_attributes = True


class LedgerIntegrityCheckResponse(BaseModel):
    """원장 정합성 검증 응답"""

    status: str = Field(..., description="검증 상태 (OK, MISMATCH)")
    customer_id: int = Field(..., description="고객 ID")
    sql_balance: int = Field(..., description="SQL SUM 잔액")
    folded_balance: int = Field(..., description="행 단위 합산 잔액")
    entry_count: int = Field(..., description="항목 수")
    verified_at: str = Field(..., description="검증 시간")

    class Config:
        from_attributes = True
