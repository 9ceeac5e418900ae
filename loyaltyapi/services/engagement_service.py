"""
참여 보상 서비스 - 매장 체크인, 일일 룰렛, 구매 리뷰

모두 "1회 한정" 규칙이 있으며 DB 유니크 제약이 최종 보증입니다.
사전 조회는 친절한 오류 메시지를 위한 것이고, 동시에 들어온 요청은
IntegrityError 로 걸러져 ConflictError 가 됩니다.
"""

import logging
import random
from datetime import date, datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from loyaltyapi.config import settings
from loyaltyapi.core.exceptions import (
    ConflictError,
    CustomerBlockedError,
    NotFoundError,
    ValidationError,
)
from loyaltyapi.models.engagement import BranchCheckin, BranchReview, SpinResult
from loyaltyapi.models.wallet import WalletTransactionType
from loyaltyapi.repositories.branch_repository import BranchRepository
from loyaltyapi.repositories.customer_repository import CustomerRepository
from loyaltyapi.repositories.engagement_repository import EngagementRepository
from loyaltyapi.repositories.purchase_repository import PurchaseRepository
from loyaltyapi.repositories.wallet_repository import WalletRepository
from loyaltyapi.schemas.engagement import CheckinResponse, ReviewResponse, SpinResponse
from loyaltyapi.utils.time_utils import expiry_from_now, get_business_date

logger = logging.getLogger(__name__)

# 룰렛 칸 (시계 방향)
SPIN_SEGMENTS = (10, 25, 5, 50, 0, 15, 100, 0)


class EngagementService:
    def __init__(self, db: Session):
        self.db = db
        self.engagement_repo = EngagementRepository(db)
        self.customer_repo = CustomerRepository(db)
        self.branch_repo = BranchRepository(db)
        self.purchase_repo = PurchaseRepository(db)
        self.wallet_repo = WalletRepository(db)

    def check_in(
        self, customer_id: int, branch_id: int, today: Optional[date] = None
    ) -> CheckinResponse:
        """매장 QR 체크인 - 고객/매장/영업일 당 1회"""
        self._require_active_customer(customer_id)
        branch = self.branch_repo.get_model(branch_id)
        if branch is None:
            raise NotFoundError(f"Branch {branch_id} not found")

        checkin_date = today or get_business_date()
        if self.engagement_repo.has_checked_in(customer_id, branch_id, checkin_date):
            raise ConflictError(
                "Already checked in today",
                {"customer_id": customer_id, "branch_id": branch_id},
            )

        coins = settings.CHECKIN_COINS
        try:
            checkin = self.engagement_repo.add_record(
                BranchCheckin(
                    customer_id=customer_id,
                    branch_id=branch_id,
                    checkin_date=checkin_date,
                    coins_earned=coins,
                ),
                commit=False,
            )
            self.wallet_repo.append(
                customer_id=customer_id,
                coins=coins,
                tx_type=WalletTransactionType.CHECKIN,
                branch_id=branch_id,
                description=f"Check-in reward at {branch.name}",
                commit=False,
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(
                "Already checked in today",
                {"customer_id": customer_id, "branch_id": branch_id},
            )
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Customer {customer_id} checked in at branch {branch_id} (+{coins})")
        return CheckinResponse(
            checkin_id=checkin.id,
            customer_id=customer_id,
            branch_id=branch_id,
            checkin_date=checkin_date.isoformat(),
            coins_earned=coins,
        )

    def spin(
        self,
        customer_id: int,
        rng: Optional[random.Random] = None,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> SpinResponse:
        """일일 룰렛 - 영업일당 1회, 당첨 코인은 일정 기간 뒤 만료"""
        self._require_active_customer(customer_id)

        spin_date = today or get_business_date()
        if self.engagement_repo.get_spin(customer_id, spin_date) is not None:
            raise ConflictError(
                "Already spun today", {"customer_id": customer_id}
            )

        coins = (rng or random.SystemRandom()).choice(SPIN_SEGMENTS)
        expires_at = (
            expiry_from_now(settings.SPIN_COIN_EXPIRY_DAYS, now) if coins > 0 else None
        )

        try:
            result = self.engagement_repo.add_record(
                SpinResult(customer_id=customer_id, spin_date=spin_date, coins_won=coins),
                commit=False,
            )
            if coins > 0:
                self.wallet_repo.append(
                    customer_id=customer_id,
                    coins=coins,
                    tx_type=WalletTransactionType.SPIN,
                    description=f"Spin wheel reward: {coins} coins",
                    expires_at=expires_at,
                    commit=False,
                )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Already spun today", {"customer_id": customer_id})
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Customer {customer_id} spun the wheel: {coins} coins")
        return SpinResponse(
            spin_id=result.id,
            spin_date=spin_date.isoformat(),
            coins_won=coins,
            expires_at=expires_at.strftime("%Y-%m-%d %H:%M:%S") if expires_at else None,
        )

    def submit_review(
        self,
        customer_id: int,
        purchase_id: int,
        rating: int,
        comment: Optional[str] = None,
    ) -> ReviewResponse:
        """구매 리뷰 작성 - 본인 구매 1건당 1회"""
        if rating < 1 or rating > 5:
            raise ValidationError("Rating must be between 1 and 5", {"rating": rating})

        self._require_active_customer(customer_id)
        purchase = self.purchase_repo.get_model(purchase_id)
        if purchase is None or purchase.customer_id != customer_id:
            raise NotFoundError(f"Purchase {purchase_id} not found for this customer")

        if self.engagement_repo.get_review_for_purchase(purchase_id) is not None:
            raise ConflictError(
                "Purchase already reviewed", {"purchase_id": purchase_id}
            )

        coins = settings.REVIEW_BONUS_COINS
        try:
            review = self.engagement_repo.add_record(
                BranchReview(
                    customer_id=customer_id,
                    branch_id=purchase.branch_id,
                    purchase_id=purchase_id,
                    rating=rating,
                    comment=(comment or "").strip() or None,
                    coins_earned=coins,
                ),
                commit=False,
            )
            self.wallet_repo.append(
                customer_id=customer_id,
                coins=coins,
                tx_type=WalletTransactionType.REVIEW_BONUS,
                description=f"Review bonus for purchase #{purchase.invoice_no}",
                commit=False,
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Purchase already reviewed", {"purchase_id": purchase_id})
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Customer {customer_id} reviewed purchase {purchase_id} (+{coins})")
        return ReviewResponse(
            review_id=review.id,
            purchase_id=purchase_id,
            rating=rating,
            coins_earned=coins,
        )

    def _require_active_customer(self, customer_id: int) -> None:
        customer = self.customer_repo.get_model(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        if customer.is_blocked:
            raise CustomerBlockedError(details={"customer_id": customer_id})
