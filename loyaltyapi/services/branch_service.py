import logging
from typing import Optional

from sqlalchemy.orm import Session

from loyaltyapi.core.exceptions import NotFoundError, ValidationError
from loyaltyapi.repositories.branch_repository import BranchRepository
from loyaltyapi.schemas.customer import BranchOverridesRequest, BranchResponse
from loyaltyapi.schemas.wallet import BranchWalletSummary

logger = logging.getLogger(__name__)


class BranchService:
    """매장 관리 및 매장 코인 할당 서비스"""

    def __init__(self, db: Session):
        self.db = db
        self.branch_repo = BranchRepository(db)

    def create_branch(
        self,
        name: str,
        city: Optional[str] = None,
        overrides: Optional[BranchOverridesRequest] = None,
    ) -> BranchResponse:
        if not name or not name.strip():
            raise ValidationError("Branch name is required")

        values = overrides.model_dump() if overrides else {}
        branch = self.branch_repo.create(
            name=name.strip(), city=city, is_active=True, **values
        )
        logger.info(f"Created branch {branch.id} ({branch.name})")
        return branch

    def get_branch(self, branch_id: int) -> BranchResponse:
        branch = self.branch_repo.get_by_id(branch_id)
        if branch is None:
            raise NotFoundError(f"Branch {branch_id} not found")
        return branch

    def update_overrides(
        self, branch_id: int, overrides: BranchOverridesRequest
    ) -> BranchResponse:
        """매장별 적립률 / 적립 상한 / 사용률 변경 (None 은 전역값으로 되돌림)"""
        branch = self.branch_repo.update(branch_id, **overrides.model_dump())
        if branch is None:
            raise NotFoundError(f"Branch {branch_id} not found")
        logger.info(f"Updated overrides for branch {branch_id}: {overrides.model_dump()}")
        return branch

    def set_active(self, branch_id: int, is_active: bool) -> BranchResponse:
        branch = self.branch_repo.update(branch_id, is_active=is_active)
        if branch is None:
            raise NotFoundError(f"Branch {branch_id} not found")
        return branch

    def credit_branch(
        self,
        branch_id: int,
        coins: int,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> BranchWalletSummary:
        """관리자 → 매장 코인 할당 (음수면 회수)"""
        if coins == 0:
            raise ValidationError("Coins must be non-zero")
        self.get_branch(branch_id)

        self.branch_repo.credit(
            branch_id,
            coins,
            description=description or "Admin coin allocation",
            created_by=created_by,
        )
        summary = self.branch_repo.get_wallet_summary(branch_id)
        logger.info(
            f"Branch {branch_id} credited {coins} coins, available {summary.available}"
        )
        return summary

    def get_wallet_summary(self, branch_id: int) -> BranchWalletSummary:
        self.get_branch(branch_id)
        return self.branch_repo.get_wallet_summary(branch_id)
