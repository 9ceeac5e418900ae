"""
코인 원장 데이터 모델

이 파일은 고객 지갑과 매장 코인 할당량의 모든 거래 내역을 저장하는
원장(Ledger) 테이블을 정의합니다.

원칙:
1. 불변성(Immutable): 한번 생성된 레코드는 수정되지 않음 (append-only)
2. 완전성(Complete): 모든 코인 변동사항이 기록됨
3. 잔액 = SUM(coins): 별도의 잔액 컬럼을 두지 않음
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from loyaltyapi.models.base import BaseModel, BigIntPK


class WalletTransactionType(str, enum.Enum):
    EARN = "EARN"  # 구매 적립
    REDEEM = "REDEEM"  # 구매 시 사용 (음수)
    BONUS = "BONUS"  # 가입 환영 보너스
    REFERRAL = "REFERRAL"  # 추천 보상
    ADMIN_CREDIT = "ADMIN_CREDIT"
    ADMIN_DEBIT = "ADMIN_DEBIT"
    ADMIN_RESET = "ADMIN_RESET"
    CHECKIN = "CHECKIN"  # 매장 체크인
    SPIN = "SPIN"  # 일일 룰렛
    REVIEW_BONUS = "REVIEW_BONUS"
    RETURN = "RETURN"  # 반품 회수 (음수)


class WalletTransaction(BaseModel):
    """고객 지갑 원장 - 부호 있는 코인 변동량을 저장"""

    __tablename__ = "wallet_transactions"
    __table_args__ = (
        Index("idx_wallet_tx_customer_type", "customer_id", "type"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("customers.id"), nullable=False, index=True
    )
    # 코인 변동량 - 양수면 증가, 음수면 감소
    coins: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[WalletTransactionType] = mapped_column(
        Enum(WalletTransactionType, native_enum=False, length=20), nullable=False
    )
    # 코인을 지급/회수한 매장 (매장 가용 코인 계산에 사용)
    branch_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("branches.id"), nullable=True, index=True
    )
    purchase_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("purchases.id"), nullable=True
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class BranchCoinTransaction(BaseModel):
    """매장 코인 할당 원장 - 관리자가 매장에 지급한 코인"""

    __tablename__ = "branch_coin_transactions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    branch_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("branches.id"), nullable=False, index=True
    )
    coins: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
