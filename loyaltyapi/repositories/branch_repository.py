"""
매장 리포지토리 - 매장 정보와 매장 코인 할당 원장

매장 가용 코인 = SUM(branch_coin_transactions.coins)
              - SUM(해당 매장에서 고객에게 지급한 코인)
              + SUM(해당 매장에서 고객 사용으로 회수된 코인)
"""

from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy import case, func

from loyaltyapi.models.customer import Branch
from loyaltyapi.models.wallet import BranchCoinTransaction, WalletTransaction
from loyaltyapi.schemas.customer import BranchResponse
from loyaltyapi.schemas.wallet import BranchWalletSummary
from loyaltyapi.repositories.base import BaseRepository


class BranchRepository(BaseRepository[Branch, BranchResponse]):
    """매장 및 매장 코인 원장 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(Branch, BranchResponse, db)

    def credit(
        self,
        branch_id: int,
        coins: int,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
        commit: bool = True,
    ) -> BranchCoinTransaction:
        """관리자 → 매장 코인 지급 (음수면 회수)"""
        entry = BranchCoinTransaction(
            branch_id=branch_id,
            coins=coins,
            description=description,
            created_by=created_by,
        )
        self.db.add(entry)
        try:
            self.db.flush()
            if commit:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return entry

    def get_received(self, branch_id: int) -> int:
        result = (
            self.db.query(func.coalesce(func.sum(BranchCoinTransaction.coins), 0))
            .filter(BranchCoinTransaction.branch_id == branch_id)
            .scalar()
        )
        return int(result or 0)

    def get_given_and_reclaimed(self, branch_id: int) -> tuple:
        """(고객에게 지급한 코인, 고객 사용으로 회수된 코인)"""
        given_expr = func.coalesce(
            func.sum(
                case((WalletTransaction.coins > 0, WalletTransaction.coins), else_=0)
            ),
            0,
        )
        reclaimed_expr = func.coalesce(
            func.sum(
                case((WalletTransaction.coins < 0, -WalletTransaction.coins), else_=0)
            ),
            0,
        )
        given, reclaimed = (
            self.db.query(given_expr, reclaimed_expr)
            .filter(WalletTransaction.branch_id == branch_id)
            .one()
        )
        return int(given or 0), int(reclaimed or 0)

    def get_branch_available(self, branch_id: int) -> int:
        """매장 가용 코인 (원장에서 매번 계산)"""
        return self.get_wallet_summary(branch_id).available

    def get_wallet_summary(self, branch_id: int) -> BranchWalletSummary:
        received = self.get_received(branch_id)
        given, reclaimed = self.get_given_and_reclaimed(branch_id)
        return BranchWalletSummary(
            branch_id=branch_id,
            received=received,
            given=given,
            redeemed=reclaimed,
            available=received - given + reclaimed,
        )
