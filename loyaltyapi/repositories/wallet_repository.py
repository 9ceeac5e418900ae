"""
지갑 원장 리포지토리 - 고객 코인 원장의 조회/추가

핵심 특징:
- 잔액은 저장하지 않고 항상 SUM(coins) 으로 계산합니다
- 원장 행은 추가만 하며 수정/삭제 메서드를 제공하지 않습니다
- 정산 트랜잭션 안에서 쓰일 수 있도록 commit 여부를 호출자가 결정합니다
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import asc, desc, func

from loyaltyapi.models.wallet import WalletTransaction, WalletTransactionType
from loyaltyapi.schemas.wallet import (
    LedgerIntegrityCheckResponse,
    WalletLedgerEntry,
    WalletLedgerResponse,
)
from loyaltyapi.repositories.base import BaseRepository
from loyaltyapi.services.coin_rules import fold_customer_balance


class WalletRepository(BaseRepository[WalletTransaction, WalletLedgerEntry]):
    """고객 지갑 원장 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(WalletTransaction, WalletLedgerEntry, db)

    def _to_ledger_entry(self, model_instance: WalletTransaction) -> WalletLedgerEntry:
        """SQLAlchemy 모델을 Pydantic 스키마로 변환"""
        tx_type = model_instance.type
        data = {
            "id": model_instance.id,
            "type": getattr(tx_type, "value", tx_type),
            "coins": model_instance.coins,
            "branch_id": model_instance.branch_id,
            "purchase_id": model_instance.purchase_id,
            "description": model_instance.description,
            "expires_at": (
                model_instance.expires_at.strftime("%Y-%m-%d %H:%M:%S")
                if model_instance.expires_at
                else None
            ),
            "created_at": (
                model_instance.created_at.strftime("%Y-%m-%d %H:%M:%S")
                if model_instance.created_at
                else ""
            ),
        }
        return WalletLedgerEntry(**data)

    def get_customer_balance(self, customer_id: int) -> int:
        """고객 잔액 = SUM(coins) (거래 내역이 없으면 0)"""
        result = (
            self.db.query(func.coalesce(func.sum(self.model_class.coins), 0))
            .filter(self.model_class.customer_id == customer_id)
            .scalar()
        )
        return int(result or 0)

    def get_coin_deltas(self, customer_id: int) -> List[int]:
        rows = (
            self.db.query(self.model_class.coins)
            .filter(self.model_class.customer_id == customer_id)
            .order_by(asc(self.model_class.id))
            .all()
        )
        return [row.coins for row in rows]

    def has_redeemed(self, customer_id: int) -> bool:
        """REDEEM 거래가 한 번이라도 있으면 True (평생 1회 사용 규칙)"""
        return (
            self.db.query(self.model_class.id)
            .filter(
                self.model_class.customer_id == customer_id,
                self.model_class.type == WalletTransactionType.REDEEM,
            )
            .first()
            is not None
        )

    def append(
        self,
        customer_id: int,
        coins: int,
        tx_type: WalletTransactionType,
        branch_id: Optional[int] = None,
        purchase_id: Optional[int] = None,
        description: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        commit: bool = True,
    ) -> WalletTransaction:
        """원장 항목 1건 추가"""
        return self.add(
            commit=commit,
            customer_id=customer_id,
            coins=coins,
            type=tx_type,
            branch_id=branch_id,
            purchase_id=purchase_id,
            description=description,
            expires_at=expires_at,
        )

    def append_batch(
        self, rows: List[Dict[str, Any]], commit: bool = True
    ) -> List[WalletTransaction]:
        """원장 항목 여러 건을 한 번에 추가 (빈 목록이면 아무것도 하지 않음)"""
        if not rows:
            return []

        instances = [self.model_class(**row) for row in rows]
        self.db.add_all(instances)
        try:
            self.db.flush()
            if commit:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return instances

    def get_customer_ledger(
        self, customer_id: int, limit: int = 50, offset: int = 0
    ) -> WalletLedgerResponse:
        """고객 원장 조회 (페이징, 최신순)"""
        total_count = (
            self.db.query(self.model_class)
            .filter(self.model_class.customer_id == customer_id)
            .count()
        )

        model_instances = (
            self.db.query(self.model_class)
            .filter(self.model_class.customer_id == customer_id)
            .order_by(desc(self.model_class.id))
            .limit(limit)
            .offset(offset)
            .all()
        )

        return WalletLedgerResponse(
            balance=self.get_customer_balance(customer_id),
            entries=[self._to_ledger_entry(instance) for instance in model_instances],
            total_count=total_count,
            has_next=offset + limit < total_count,
        )

    def get_purchase_entries(self, purchase_id: int) -> List[WalletLedgerEntry]:
        """특정 구매에 연결된 원장 항목"""
        model_instances = (
            self.db.query(self.model_class)
            .filter(self.model_class.purchase_id == purchase_id)
            .order_by(asc(self.model_class.id))
            .all()
        )
        return [self._to_ledger_entry(instance) for instance in model_instances]

    def verify_integrity(self, customer_id: int) -> LedgerIntegrityCheckResponse:
        """
        SQL SUM 과 행 단위 합산이 같은지 검증

        두 값이 다르면 원장 외의 경로로 잔액이 계산되고 있거나
        집계 쿼리에 문제가 있다는 뜻입니다.
        """
        deltas = self.get_coin_deltas(customer_id)
        sql_balance = self.get_customer_balance(customer_id)
        folded_balance = fold_customer_balance(deltas)

        return LedgerIntegrityCheckResponse(
            status="OK" if sql_balance == folded_balance else "MISMATCH",
            customer_id=customer_id,
            sql_balance=sql_balance,
            folded_balance=folded_balance,
            entry_count=len(deltas),
            verified_at=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
        )
