"""
반품 처리 서비스

구매 기록은 수정하지 않고 purchase_returns 보상 레코드와
RETURN 원장 항목(음수)으로 반품을 표현합니다.
회수 코인 = round(적립 코인 × 반품 금액 / 결제 금액), 현재 잔액까지만 회수합니다.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy.orm import Session

from loyaltyapi.core.exceptions import NotFoundError, ValidationError
from loyaltyapi.models.wallet import WalletTransactionType
from loyaltyapi.repositories.customer_repository import CustomerRepository
from loyaltyapi.repositories.purchase_repository import PurchaseRepository
from loyaltyapi.repositories.wallet_repository import WalletRepository
from loyaltyapi.schemas.purchase import PurchaseReturnResponse
from loyaltyapi.services.coin_rules import Number, to_decimal

logger = logging.getLogger(__name__)


def compute_return_deduction(
    earned_coins: int, bill_amount: Number, return_amount: Number
) -> int:
    """반품 비율만큼의 적립 코인 (반올림)"""
    bill = to_decimal(bill_amount)
    if bill <= 0 or earned_coins <= 0:
        return 0
    ratio = to_decimal(return_amount) / bill
    return int((Decimal(earned_coins) * ratio).to_integral_value(rounding=ROUND_HALF_UP))


class ReturnService:
    def __init__(self, db: Session):
        self.db = db
        self.purchase_repo = PurchaseRepository(db)
        self.wallet_repo = WalletRepository(db)
        self.customer_repo = CustomerRepository(db)

    def process_return(
        self,
        branch_id: int,
        invoice_no: str,
        return_amount: Number,
        reason: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> PurchaseReturnResponse:
        amount = to_decimal(return_amount)
        if amount <= 0:
            raise ValidationError(
                "Return amount must be greater than zero",
                {"return_amount": str(return_amount)},
            )

        purchase = self.purchase_repo.get_model_by_invoice(branch_id, invoice_no or "")
        if purchase is None:
            raise NotFoundError(
                f"No purchase with invoice {invoice_no} at branch {branch_id}",
                {"branch_id": branch_id, "invoice_no": invoice_no},
            )

        try:
            # 같은 고객의 정산 / 반품과 직렬화
            self.customer_repo.lock_by_id(purchase.customer_id)

            already_returned = self.purchase_repo.get_returned_amount(purchase.id)
            returnable = to_decimal(purchase.bill_amount) - already_returned
            if amount > returnable:
                raise ValidationError(
                    f"Return amount exceeds remaining returnable amount {returnable}",
                    {"returnable": str(returnable), "return_amount": str(amount)},
                )

            coins = compute_return_deduction(
                purchase.earned_coins, purchase.bill_amount, amount
            )
            balance = self.wallet_repo.get_customer_balance(purchase.customer_id)
            deducted = min(coins, max(balance, 0))
            if deducted < coins:
                logger.warning(
                    f"Return on purchase {purchase.id}: deduction capped from {coins} to {deducted}"
                )

            entry = self.purchase_repo.add_return(
                commit=False,
                purchase_id=purchase.id,
                customer_id=purchase.customer_id,
                branch_id=branch_id,
                return_amount=amount,
                coins_deducted=deducted,
                reason=reason,
                created_by=created_by,
            )
            if deducted > 0:
                self.wallet_repo.append(
                    customer_id=purchase.customer_id,
                    coins=-deducted,
                    tx_type=WalletTransactionType.RETURN,
                    branch_id=branch_id,
                    purchase_id=purchase.id,
                    description=f"Return on invoice {purchase.invoice_no}: -{deducted} coins",
                    commit=False,
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Processed return {entry.id} on purchase {purchase.id}: "
            f"amount {amount}, coins deducted {deducted}"
        )
        return PurchaseReturnResponse(
            return_id=entry.id,
            purchase_id=purchase.id,
            return_amount=amount,
            coins_deducted=deducted,
            remaining_returnable=returnable - amount,
        )
