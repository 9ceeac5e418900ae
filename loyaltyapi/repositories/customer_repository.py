from typing import List, Optional
from sqlalchemy.orm import Session

from loyaltyapi.models.customer import Customer
from loyaltyapi.schemas.customer import CustomerResponse
from loyaltyapi.repositories.base import BaseRepository


class CustomerRepository(BaseRepository[Customer, CustomerResponse]):
    """고객 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(Customer, CustomerResponse, db)

    def get_model_by_referral_code(self, referral_code: str) -> Optional[Customer]:
        """추천 코드로 조회 (대소문자 무시)"""
        return (
            self.db.query(self.model_class)
            .filter(self.model_class.referral_code == referral_code.strip().upper())
            .first()
        )

    def referral_code_exists(self, referral_code: str) -> bool:
        return self.exists({"referral_code": referral_code})

    def find_by_phone(self, phone: str) -> List[CustomerResponse]:
        return self.find_all(filters={"phone": phone.strip()}, order_by="id")

    def set_blocked(
        self, customer_id: int, is_blocked: bool, commit: bool = True
    ) -> Optional[CustomerResponse]:
        return self.update(customer_id, commit=commit, is_blocked=is_blocked)
