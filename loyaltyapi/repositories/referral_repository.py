"""
추천 보상 리포지토리

PENDING → PAID 전이는 조건부 UPDATE 한 번으로 처리합니다.
    UPDATE referral_rewards SET status='paid', first_purchase_id=:pid
    WHERE id=:id AND status='pending'
영향받은 행이 1개일 때만 전이에 성공한 것으로 보며,
동시에 재시도된 요청은 0행이 되어 코인을 다시 지급하지 않습니다.
"""

from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import case, desc, func, update

from loyaltyapi.models.customer import Customer
from loyaltyapi.models.referral import ReferralReward, ReferralStatus
from loyaltyapi.schemas.referral import (
    ReferralLeaderboardEntry,
    ReferralRewardResponse,
)
from loyaltyapi.repositories.base import BaseRepository


class ReferralRepository(BaseRepository[ReferralReward, ReferralRewardResponse]):
    """추천 보상 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(ReferralReward, ReferralRewardResponse, db)

    def _to_schema(self, model_instance) -> Optional[ReferralRewardResponse]:
        if model_instance is None:
            return None
        return ReferralRewardResponse(
            id=model_instance.id,
            referrer_customer_id=model_instance.referrer_customer_id,
            new_customer_id=model_instance.new_customer_id,
            referrer_coins=model_instance.referrer_coins,
            new_customer_coins=model_instance.new_customer_coins,
            status=ReferralStatus(model_instance.status).value,
            first_purchase_id=model_instance.first_purchase_id,
        )

    def create_pending(
        self,
        referrer_customer_id: int,
        new_customer_id: int,
        referrer_coins: int,
        new_customer_coins: int,
        commit: bool = True,
    ) -> ReferralReward:
        """가입 시 대기 상태 보상 생성 (코인은 아직 지급하지 않음)"""
        return self.add(
            commit=commit,
            referrer_customer_id=referrer_customer_id,
            new_customer_id=new_customer_id,
            referrer_coins=referrer_coins,
            new_customer_coins=new_customer_coins,
            status=ReferralStatus.PENDING,
        )

    def get_pending_for_new_customer(self, new_customer_id: int) -> Optional[ReferralReward]:
        return (
            self.db.query(self.model_class)
            .filter(
                self.model_class.new_customer_id == new_customer_id,
                self.model_class.status == ReferralStatus.PENDING,
            )
            .first()
        )

    def mark_paid_if_pending(self, reward_id: int, first_purchase_id: int) -> bool:
        """조건부 상태 전이 (compare-and-swap) - 성공 시 True"""
        result = self.db.execute(
            update(self.model_class)
            .where(
                self.model_class.id == reward_id,
                self.model_class.status == ReferralStatus.PENDING,
            )
            .values(status=ReferralStatus.PAID, first_purchase_id=first_purchase_id)
            .execution_options(synchronize_session=False)
        )
        won = result.rowcount == 1
        if won:
            # 세션에 남아있는 PENDING 사본 갱신
            reward = self.db.get(self.model_class, reward_id)
            if reward is not None:
                self.db.refresh(reward)
        return won

    def get_rewards_as_referrer(self, referrer_customer_id: int) -> List[ReferralRewardResponse]:
        return self.find_all(
            filters={"referrer_customer_id": referrer_customer_id}, order_by="id"
        )

    def get_leaderboard(self, limit: int = 10) -> List[ReferralLeaderboardEntry]:
        """지급 완료된 추천 수 기준 순위"""
        paid_count = func.sum(
            case((ReferralReward.status == ReferralStatus.PAID, 1), else_=0)
        )
        coins_earned = func.sum(
            case(
                (ReferralReward.status == ReferralStatus.PAID, ReferralReward.referrer_coins),
                else_=0,
            )
        )
        rows = (
            self.db.query(
                Customer.id,
                Customer.full_name,
                Customer.referral_code,
                paid_count.label("paid_referrals"),
                coins_earned.label("coins_earned"),
            )
            .join(ReferralReward, ReferralReward.referrer_customer_id == Customer.id)
            .group_by(Customer.id, Customer.full_name, Customer.referral_code)
            .order_by(desc("paid_referrals"), desc("coins_earned"), Customer.id)
            .limit(limit)
            .all()
        )
        return [
            ReferralLeaderboardEntry(
                customer_id=row.id,
                full_name=row.full_name,
                referral_code=row.referral_code,
                paid_referrals=int(row.paid_referrals or 0),
                coins_earned=int(row.coins_earned or 0),
            )
            for row in rows
        ]
