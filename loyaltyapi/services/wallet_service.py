from typing import List, Optional
from sqlalchemy.orm import Session

from loyaltyapi.repositories.customer_repository import CustomerRepository
from loyaltyapi.repositories.wallet_repository import WalletRepository
from loyaltyapi.core.exceptions import NotFoundError, ValidationError
from loyaltyapi.models.wallet import WalletTransactionType
from loyaltyapi.schemas.wallet import (
    LedgerIntegrityCheckResponse,
    WalletAdjustmentResponse,
    WalletBalanceResponse,
    WalletLedgerResponse,
)
import logging

logger = logging.getLogger(__name__)


class WalletService:
    """고객 지갑 조회 및 관리자 코인 조정 서비스"""

    def __init__(self, db: Session):
        self.db = db
        self.wallet_repo = WalletRepository(db)
        self.customer_repo = CustomerRepository(db)

    def get_balance(self, customer_id: int) -> WalletBalanceResponse:
        """고객 코인 잔액 조회 (원장 합계)"""
        self._require_customer(customer_id)
        balance = self.wallet_repo.get_customer_balance(customer_id)
        logger.info(f"Retrieved balance for customer {customer_id}: {balance}")
        return WalletBalanceResponse(customer_id=customer_id, balance=balance)

    def get_ledger(
        self, customer_id: int, limit: int = 50, offset: int = 0
    ) -> WalletLedgerResponse:
        """고객 코인 거래 내역 조회

        Args:
            customer_id: 고객 ID
            limit: 페이지 크기 (최대 100)
            offset: 오프셋
        """
        if limit > 100:
            limit = 100
        self._require_customer(customer_id)
        return self.wallet_repo.get_customer_ledger(
            customer_id=customer_id, limit=limit, offset=offset
        )

    def admin_adjust(
        self,
        customer_id: int,
        coins: int,
        description: Optional[str] = None,
        commit: bool = True,
    ) -> WalletAdjustmentResponse:
        """관리자 코인 조정 - 양수는 ADMIN_CREDIT, 음수는 ADMIN_DEBIT

        차감은 현재 잔액까지만 적용되어 잔액이 음수가 되지 않습니다.
        """
        if coins == 0:
            raise ValidationError("Adjustment must be non-zero")

        customer = self.customer_repo.lock_by_id(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")

        balance = self.wallet_repo.get_customer_balance(customer_id)
        applied = coins
        if coins < 0:
            applied = -min(-coins, max(balance, 0))
            if applied == 0:
                if commit:
                    self.db.commit()
                logger.warning(
                    f"Admin debit of {-coins} skipped for customer {customer_id}: balance is 0"
                )
                return WalletAdjustmentResponse(
                    customer_id=customer_id,
                    coins=0,
                    balance_after=balance,
                    message="Nothing to debit, balance is 0",
                )

        tx_type = (
            WalletTransactionType.ADMIN_CREDIT
            if applied > 0
            else WalletTransactionType.ADMIN_DEBIT
        )
        entry = self.wallet_repo.append(
            customer_id=customer_id,
            coins=applied,
            tx_type=tx_type,
            description=description or f"Admin {'credit' if applied > 0 else 'debit'}",
            commit=commit,
        )

        if applied != coins:
            logger.warning(
                f"Admin debit for customer {customer_id} capped from {-coins} to {-applied}"
            )
        logger.info(f"Admin adjusted customer {customer_id} by {applied} coins")
        return WalletAdjustmentResponse(
            customer_id=customer_id,
            transaction_id=entry.id,
            type=tx_type.value,
            coins=applied,
            balance_after=balance + applied,
            message="Adjustment applied" if applied == coins else "Debit capped at balance",
        )

    def bulk_adjust(
        self, customer_ids: List[int], coins: int, description: Optional[str] = None
    ) -> List[WalletAdjustmentResponse]:
        """여러 고객에게 같은 양을 한 트랜잭션으로 지급/차감"""
        if not customer_ids:
            raise ValidationError("No customers selected")

        try:
            results = [
                self.admin_adjust(customer_id, coins, description, commit=False)
                for customer_id in dict.fromkeys(customer_ids)
            ]
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Bulk adjusted {len(results)} customers by {coins} coins")
        return results

    def admin_reset(
        self, customer_id: int, description: Optional[str] = None
    ) -> WalletAdjustmentResponse:
        """잔액을 0 으로 되돌리는 ADMIN_RESET 기록 (잔액이 0 이면 기록 없음)"""
        customer = self.customer_repo.lock_by_id(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")

        balance = self.wallet_repo.get_customer_balance(customer_id)
        if balance == 0:
            self.db.commit()
            return WalletAdjustmentResponse(
                customer_id=customer_id,
                coins=0,
                balance_after=0,
                message="Balance already 0",
            )

        entry = self.wallet_repo.append(
            customer_id=customer_id,
            coins=-balance,
            tx_type=WalletTransactionType.ADMIN_RESET,
            description=description or "Admin balance reset",
        )
        logger.info(f"Admin reset customer {customer_id} balance from {balance} to 0")
        return WalletAdjustmentResponse(
            customer_id=customer_id,
            transaction_id=entry.id,
            type=WalletTransactionType.ADMIN_RESET.value,
            coins=-balance,
            balance_after=0,
            message="Balance reset",
        )

    def verify_integrity(self, customer_id: int) -> LedgerIntegrityCheckResponse:
        """원장 정합성 검증 (SQL 합계 vs 행 단위 합산)"""
        self._require_customer(customer_id)
        result = self.wallet_repo.verify_integrity(customer_id)
        if result.status != "OK":
            logger.error(
                f"Ledger mismatch for customer {customer_id}: "
                f"sql={result.sql_balance} folded={result.folded_balance}"
            )
        return result

    def _require_customer(self, customer_id: int) -> None:
        if self.customer_repo.get_model(customer_id) is None:
            raise NotFoundError(f"Customer {customer_id} not found")
