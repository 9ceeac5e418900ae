import enum
from typing import Optional, Union

from sqlalchemy import BigInteger, Enum, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from loyaltyapi.models.base import BaseModel, BigIntPK


class ReferralStatus(str, enum.Enum):
    """추천 보상 상태 - PENDING → PAID 단방향 전이만 허용"""

    PENDING = "pending"
    PAID = "paid"

    @classmethod
    def can_transition(
        cls, current: Union[str, "ReferralStatus"], target: Union[str, "ReferralStatus"]
    ) -> bool:
        """허용된 상태 전이인지 확인"""
        return cls(current) is cls.PENDING and cls(target) is cls.PAID

    @property
    def is_terminal(self) -> bool:
        return self is ReferralStatus.PAID


class ReferralReward(BaseModel):
    """
    추천 보상 - 추천 가입 1건당 1행

    가입 시 PENDING 으로 생성되고 (코인 미지급),
    신규 고객의 첫 구매 시 PAID 로 한 번만 전이되며 양측에 코인이 지급됩니다.
    """

    __tablename__ = "referral_rewards"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    referrer_customer_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("customers.id"), nullable=False, index=True
    )
    new_customer_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("customers.id"), nullable=False, unique=True
    )
    referrer_coins: Mapped[int] = mapped_column(Integer, nullable=False)
    new_customer_coins: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ReferralStatus] = mapped_column(
        Enum(
            ReferralStatus,
            native_enum=False,
            length=10,
            values_callable=lambda e: [member.value for member in e],
        ),
        default=ReferralStatus.PENDING,
        nullable=False,
    )
    first_purchase_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("purchases.id"), nullable=True
    )
