"""
추천 보상 서비스

흐름:
1. 가입 시 register_referral - 추천 코드로 추천인을 찾고 PENDING 보상 생성 (코인 없음)
2. 첫 구매 정산 중 unlock_on_first_purchase - PENDING → PAID 조건부 전이에
   성공한 경우에만 추천인 / 신규 고객에게 REFERRAL 코인 지급

같은 구매로 여러 번 호출되어도 조건부 UPDATE 가 한 번만 성공하므로
코인은 정확히 한 번만 지급됩니다.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from loyaltyapi.core.exceptions import NotFoundError, ValidationError
from loyaltyapi.models.customer import Customer
from loyaltyapi.models.purchase import Purchase
from loyaltyapi.models.referral import ReferralReward, ReferralStatus
from loyaltyapi.models.wallet import WalletTransactionType
from loyaltyapi.repositories.customer_repository import CustomerRepository
from loyaltyapi.repositories.referral_repository import ReferralRepository
from loyaltyapi.repositories.wallet_repository import WalletRepository
from loyaltyapi.schemas.referral import ReferralLeaderboardResponse, ReferralSummary
from loyaltyapi.schemas.settings import LoyaltySettings
from loyaltyapi.services.coin_rules import to_decimal

logger = logging.getLogger(__name__)


class ReferralService:
    """추천 보상 서비스"""

    def __init__(self, db: Session, loyalty_settings: Optional[LoyaltySettings] = None):
        self.db = db
        self.loyalty_settings = loyalty_settings or LoyaltySettings()
        self.customer_repo = CustomerRepository(db)
        self.referral_repo = ReferralRepository(db)
        self.wallet_repo = WalletRepository(db)

    def register_referral(
        self, new_customer: Customer, referral_code: str, commit: bool = True
    ) -> ReferralReward:
        """가입 시 추천 관계 등록 - 코인은 첫 구매 때 지급

        Raises:
            ValidationError: 알 수 없는 코드, 자기 자신 추천, 이미 추천된 고객
        """
        code = (referral_code or "").strip().upper()
        if not code:
            raise ValidationError("Referral code is empty")

        referrer = self.customer_repo.get_model_by_referral_code(code)
        if referrer is None:
            raise ValidationError(
                f"Unknown referral code: {code}", {"referral_code": code}
            )
        if referrer.id == new_customer.id:
            raise ValidationError("Customers cannot refer themselves")
        if new_customer.referred_by_customer_id is not None:
            raise ValidationError(
                "Customer already has a referrer",
                {"referred_by_customer_id": new_customer.referred_by_customer_id},
            )

        new_customer.referred_by_customer_id = referrer.id
        reward = self.referral_repo.create_pending(
            referrer_customer_id=referrer.id,
            new_customer_id=new_customer.id,
            referrer_coins=self.loyalty_settings.referral_referrer_coins,
            new_customer_coins=self.loyalty_settings.referral_new_customer_coins,
            commit=commit,
        )
        logger.info(
            f"Referral registered: customer {new_customer.id} referred by {referrer.id}"
        )
        return reward

    def unlock_on_first_purchase(
        self,
        customer: Customer,
        purchase: Purchase,
        branch_id: int,
        is_first_purchase: bool,
        commit: bool = False,
    ) -> Optional[ReferralReward]:
        """첫 구매 시 추천 보상 지급 - 지급했으면 보상을, 아니면 None 반환

        정산 트랜잭션 안에서 호출되므로 기본값은 commit=False 입니다.
        """
        if not is_first_purchase or customer.referred_by_customer_id is None:
            return None

        reward = self.referral_repo.get_pending_for_new_customer(customer.id)
        if reward is None:
            return None

        min_bill = self.loyalty_settings.referral_min_first_bill
        if to_decimal(purchase.bill_amount) < min_bill:
            # 보상은 PENDING 으로 남고 이후 구매로는 풀리지 않음 (첫 구매 한정)
            logger.info(
                f"Referral {reward.id} kept pending: first bill "
                f"{purchase.bill_amount} below {min_bill}"
            )
            return None

        if not self.referral_repo.mark_paid_if_pending(reward.id, purchase.id):
            logger.warning(f"Referral {reward.id} was already paid, skipping")
            return None

        self.wallet_repo.append_batch(
            [
                {
                    "customer_id": reward.referrer_customer_id,
                    "coins": reward.referrer_coins,
                    "type": WalletTransactionType.REFERRAL,
                    "branch_id": branch_id,
                    "purchase_id": purchase.id,
                    "description": f"Referral reward for customer {customer.id}",
                },
                {
                    "customer_id": customer.id,
                    "coins": reward.new_customer_coins,
                    "type": WalletTransactionType.REFERRAL,
                    "branch_id": branch_id,
                    "purchase_id": purchase.id,
                    "description": "Referral welcome reward",
                },
            ],
            commit=commit,
        )
        logger.info(
            f"Referral {reward.id} paid: {reward.referrer_coins} to "
            f"{reward.referrer_customer_id}, {reward.new_customer_coins} to {customer.id}"
        )
        return reward

    def get_referral_summary(self, customer_id: int) -> ReferralSummary:
        customer = self.customer_repo.get_model(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")

        rewards = self.referral_repo.get_rewards_as_referrer(customer_id)
        paid = [r for r in rewards if r.status == ReferralStatus.PAID.value]
        pending = [r for r in rewards if r.status == ReferralStatus.PENDING.value]

        return ReferralSummary(
            customer_id=customer.id,
            referral_code=customer.referral_code,
            referred_count=len(rewards),
            pending_count=len(pending),
            paid_count=len(paid),
            coins_earned=sum(r.referrer_coins for r in paid),
            coins_pending=sum(r.referrer_coins for r in pending),
        )

    def get_referral_leaderboard(self, limit: int = 10) -> ReferralLeaderboardResponse:
        if limit > 100:
            limit = 100
        return ReferralLeaderboardResponse(
            entries=self.referral_repo.get_leaderboard(limit=limit)
        )
