from datetime import date
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, Date, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from loyaltyapi.models.base import BaseModel, BigIntPK


class BranchCheckin(BaseModel):
    __tablename__ = "branch_checkins"
    __table_args__ = (
        # 고객/매장/영업일 당 1회
        UniqueConstraint(
            "customer_id", "branch_id", "checkin_date", name="uq_checkin_per_day"
        ),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("customers.id"), nullable=False
    )
    branch_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("branches.id"), nullable=False
    )
    checkin_date: Mapped[date] = mapped_column(Date, nullable=False)
    coins_earned: Mapped[int] = mapped_column(Integer, nullable=False)


class SpinResult(BaseModel):
    __tablename__ = "spin_results"
    __table_args__ = (
        UniqueConstraint("customer_id", "spin_date", name="uq_spin_per_day"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("customers.id"), nullable=False
    )
    spin_date: Mapped[date] = mapped_column(Date, nullable=False)
    coins_won: Mapped[int] = mapped_column(Integer, nullable=False)


class BranchReview(BaseModel):
    __tablename__ = "branch_reviews"
    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_review_rating_range"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("customers.id"), nullable=False
    )
    branch_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("branches.id"), nullable=False
    )
    # 구매 1건당 리뷰 1개
    purchase_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("purchases.id"), nullable=False, unique=True
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    coins_earned: Mapped[int] = mapped_column(Integer, nullable=False)
