"""
고객 / 매장 데이터 모델

잔액 컬럼은 의도적으로 존재하지 않습니다.
고객 잔액과 매장 가용 코인은 항상 원장(wallet_transactions,
branch_coin_transactions)의 합계로 계산됩니다.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from loyaltyapi.models.base import BaseModel, BigIntPK


class Customer(BaseModel):
    __tablename__ = "customers"
    __table_args__ = (
        Index("idx_customers_phone", "phone"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(120), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    # 공유 가능한 추천 코드 (예: "RAVI4K2Q")
    referral_code: Mapped[str] = mapped_column(
        String(16), unique=True, nullable=False, index=True
    )
    is_blocked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    referred_by_customer_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("customers.id"), nullable=True
    )

    def __repr__(self):
        return f"<Customer(id={self.id}, code={self.referral_code}, blocked={self.is_blocked})>"


class Branch(BaseModel):
    __tablename__ = "branches"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    city: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # 전역 Settings 를 덮어쓰는 매장별 설정 (NULL 이면 전역값 사용)
    custom_coin_percent: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2), nullable=True
    )
    custom_max_coins_per_bill: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )
    custom_max_redeem_percent: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2), nullable=True
    )
