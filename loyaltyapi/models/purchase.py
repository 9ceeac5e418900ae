from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from loyaltyapi.models.base import BaseModel, BigIntPK


class Purchase(BaseModel):
    """
    구매 기록 - 생성 후 수정/삭제되지 않는 불변 레코드

    반품은 purchase_returns 의 보상 레코드로 표현됩니다.
    """

    __tablename__ = "purchases"
    __table_args__ = (
        # 인보이스 번호는 매장 단위로만 유일
        UniqueConstraint("branch_id", "invoice_no", name="uq_purchase_branch_invoice"),
        CheckConstraint("bill_amount > 0", name="ck_purchase_bill_positive"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    branch_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("branches.id"), nullable=False, index=True
    )
    customer_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("customers.id"), nullable=False, index=True
    )
    invoice_no: Mapped[str] = mapped_column(String(64), nullable=False)
    bill_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    earned_coins: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    redeemed_coins: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    welcome_bonus_coins: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    final_payable: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)


class PurchaseReturn(BaseModel):
    __tablename__ = "purchase_returns"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    purchase_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("purchases.id"), nullable=False, index=True
    )
    customer_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("customers.id"), nullable=False
    )
    branch_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("branches.id"), nullable=False
    )
    return_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    coins_deducted: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
