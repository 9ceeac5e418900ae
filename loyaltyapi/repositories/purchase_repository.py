from decimal import Decimal
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy import func

from loyaltyapi.models.purchase import Purchase, PurchaseReturn
from loyaltyapi.schemas.purchase import PurchaseResponse
from loyaltyapi.repositories.base import BaseRepository


class PurchaseRepository(BaseRepository[Purchase, PurchaseResponse]):
    """구매 및 반품 리포지토리 (구매 행은 생성 후 변경하지 않음)"""

    def __init__(self, db: Session):
        super().__init__(Purchase, PurchaseResponse, db)

    def has_prior_purchase(self, customer_id: int) -> bool:
        """이 고객의 구매 기록이 이미 있는지 (첫 구매 판정)"""
        return (
            self.db.query(self.model_class.id)
            .filter(self.model_class.customer_id == customer_id)
            .first()
            is not None
        )

    def get_model_by_invoice(self, branch_id: int, invoice_no: str) -> Optional[Purchase]:
        return (
            self.db.query(self.model_class)
            .filter(
                self.model_class.branch_id == branch_id,
                self.model_class.invoice_no == invoice_no.strip(),
            )
            .first()
        )

    def get_total_spend(self, customer_id: int) -> Decimal:
        """누적 구매액 (등급 계산용)"""
        result = (
            self.db.query(func.coalesce(func.sum(self.model_class.bill_amount), 0))
            .filter(self.model_class.customer_id == customer_id)
            .scalar()
        )
        return Decimal(str(result or 0))

    def get_returned_amount(self, purchase_id: int) -> Decimal:
        result = (
            self.db.query(func.coalesce(func.sum(PurchaseReturn.return_amount), 0))
            .filter(PurchaseReturn.purchase_id == purchase_id)
            .scalar()
        )
        return Decimal(str(result or 0))

    def add_return(self, commit: bool = True, **kwargs) -> PurchaseReturn:
        entry = PurchaseReturn(**kwargs)
        self.db.add(entry)
        try:
            self.db.flush()
            if commit:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return entry
