from datetime import date
from typing import Optional
from sqlalchemy.orm import Session

from loyaltyapi.models.engagement import BranchCheckin, BranchReview, SpinResult
from loyaltyapi.schemas.engagement import CheckinResponse
from loyaltyapi.repositories.base import BaseRepository


class EngagementRepository(BaseRepository[BranchCheckin, CheckinResponse]):
    """체크인 / 룰렛 / 리뷰 기록 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(BranchCheckin, CheckinResponse, db)

    def has_checked_in(self, customer_id: int, branch_id: int, checkin_date: date) -> bool:
        return self.exists(
            {
                "customer_id": customer_id,
                "branch_id": branch_id,
                "checkin_date": checkin_date,
            }
        )

    def get_spin(self, customer_id: int, spin_date: date) -> Optional[SpinResult]:
        return (
            self.db.query(SpinResult)
            .filter(SpinResult.customer_id == customer_id, SpinResult.spin_date == spin_date)
            .first()
        )

    def get_review_for_purchase(self, purchase_id: int) -> Optional[BranchReview]:
        return (
            self.db.query(BranchReview)
            .filter(BranchReview.purchase_id == purchase_id)
            .first()
        )

    def add_record(self, instance, commit: bool = True):
        """체크인/룰렛/리뷰 레코드 추가"""
        self.db.add(instance)
        try:
            self.db.flush()
            if commit:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return instance
