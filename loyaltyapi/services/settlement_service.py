"""
구매 정산 서비스

매장 운영자가 입력한 구매 1건을 하나의 트랜잭션으로 정산합니다.

순서:
1. 입력 검증 (쓰기 없음)
2. 고객 / 매장 행 잠금 (SELECT ... FOR UPDATE)
3. 원장에서 잔액, 사용 이력, 매장 가용 코인, 첫 구매 여부 조회
4. 적립 코인 + 매장 재원 정책, 코인 사용 계산
5. 구매 기록, EARN / REDEEM 원장 추가
6. 첫 구매라면 추천 보상 지급
7. 한 번만 커밋 - 중간에 어떤 예외가 나도 전부 롤백

적립 감액 / 사용 한도 조정은 실패가 아니라 영수증의 notes 로 안내합니다.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from loyaltyapi.config import settings as app_settings
from loyaltyapi.core.exceptions import (
    BaseLoyaltyException,
    BranchFundsError,
    ConflictError,
    CustomerBlockedError,
    InsufficientBalanceError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from loyaltyapi.models.customer import Branch, Customer
from loyaltyapi.models.wallet import WalletTransactionType
from loyaltyapi.repositories.branch_repository import BranchRepository
from loyaltyapi.repositories.customer_repository import CustomerRepository
from loyaltyapi.repositories.purchase_repository import PurchaseRepository
from loyaltyapi.repositories.wallet_repository import WalletRepository
from loyaltyapi.schemas.purchase import (
    PurchaseSubmission,
    SettlementReceipt,
    SettlementResult,
)
from loyaltyapi.schemas.settings import LoyaltySettings
from loyaltyapi.services.coin_rules import (
    BranchShortfallPolicy,
    FundingDecision,
    RedemptionDecision,
    apply_branch_funding,
    check_redemption,
    compute_earned_coins,
    compute_final_payable,
    to_decimal,
)
from loyaltyapi.services.referral_service import ReferralService
from loyaltyapi.services.settings_provider import SettingsProvider
from loyaltyapi.utils.time_utils import expiry_from_now

logger = logging.getLogger(__name__)


@dataclass
class SettlementComputation:
    """잠금 후 원장 값으로 계산한 정산 결과 (아직 저장 전)"""

    bill_amount: Decimal
    previous_balance: int
    branch_available: int
    is_first_purchase: bool
    required_coins: int
    funding: FundingDecision
    redemption: Optional[RedemptionDecision]
    final_payable: Decimal
    notes: List[str] = field(default_factory=list)

    @property
    def earned_coins(self) -> int:
        return self.funding.granted

    @property
    def redeemed_coins(self) -> int:
        if self.redemption is None:
            return 0
        return self.redemption.redeemed_coins


class SettlementService:
    """구매 정산 서비스"""

    def __init__(
        self,
        db: Session,
        loyalty_settings: Optional[LoyaltySettings] = None,
        settings_provider: Optional[SettingsProvider] = None,
        shortfall_policy: Union[str, BranchShortfallPolicy, None] = None,
    ):
        self.db = db
        self.settings_provider = settings_provider or SettingsProvider(
            db, ttl_seconds=app_settings.SETTINGS_CACHE_TTL_SECONDS
        )
        self._loyalty_settings = loyalty_settings
        self.shortfall_policy = BranchShortfallPolicy.parse(
            shortfall_policy or app_settings.BRANCH_SHORTFALL_POLICY
        )

        self.customer_repo = CustomerRepository(db)
        self.branch_repo = BranchRepository(db)
        self.purchase_repo = PurchaseRepository(db)
        self.wallet_repo = WalletRepository(db)

    @property
    def loyalty_settings(self) -> LoyaltySettings:
        """주입된 스냅샷이 있으면 그것을, 없으면 provider 캐시 스냅샷 사용"""
        if self._loyalty_settings is not None:
            return self._loyalty_settings
        return self.settings_provider.get_snapshot()

    def settle_purchase(self, submission: PurchaseSubmission) -> SettlementResult:
        """구매 1건 정산 - 성공 영수증 또는 구조화된 실패를 반환"""
        invoice_no = (submission.invoice_no or "").strip()

        try:
            snapshot = self.loyalty_settings
            self._validate_submission(submission)

            customer, branch = self._lock_participants(submission)

            if self.purchase_repo.get_model_by_invoice(branch.id, invoice_no):
                raise ConflictError(
                    f"Invoice {invoice_no} already recorded at this branch",
                    {"branch_id": branch.id, "invoice_no": invoice_no},
                )

            computation = self._compute(submission, customer, branch, snapshot)

            if computation.funding.rejected:
                raise BranchFundsError(
                    computation.funding.note or "Insufficient branch balance",
                    {
                        "branch_id": branch.id,
                        "required": computation.required_coins,
                        "available": computation.branch_available,
                    },
                )

            purchase = self.purchase_repo.add(
                commit=False,
                branch_id=branch.id,
                customer_id=customer.id,
                invoice_no=invoice_no,
                bill_amount=computation.bill_amount,
                category=submission.category,
                payment_method=submission.payment_method,
                earned_coins=computation.earned_coins,
                redeemed_coins=computation.redeemed_coins,
                welcome_bonus_coins=0,
                final_payable=computation.final_payable,
                created_by=submission.created_by,
            )

            self.wallet_repo.append_batch(
                self._ledger_rows(computation, customer, branch, purchase.id, snapshot),
                commit=False,
            )

            referral_service = ReferralService(self.db, snapshot)
            reward = referral_service.unlock_on_first_purchase(
                customer,
                purchase,
                branch_id=branch.id,
                is_first_purchase=computation.is_first_purchase,
                commit=False,
            )

            self._verify_before_commit(customer.id, computation)

            self.db.commit()

        except BaseLoyaltyException as e:
            self.db.rollback()
            logger.warning(
                f"Settlement rejected for customer {submission.customer_id} "
                f"at branch {submission.branch_id}: {e.error_code} {e.message}"
            )
            return self._failure(e)
        except IntegrityError as e:
            self.db.rollback()
            if self._is_duplicate_invoice(e):
                logger.warning(f"Duplicate invoice {invoice_no} at branch {submission.branch_id}")
                return self._failure(
                    ConflictError(
                        f"Invoice {invoice_no} already recorded at this branch",
                        {"branch_id": submission.branch_id, "invoice_no": invoice_no},
                    )
                )
            logger.error(f"Settlement integrity failure: {str(e)}")
            return self._failure(PersistenceError(details={"reason": str(e.orig)}))
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Settlement persistence failure: {str(e)}")
            return self._failure(PersistenceError(details={"reason": str(e)}))
        except Exception:
            self.db.rollback()
            logger.exception("Unexpected settlement failure")
            raise

        receipt = SettlementReceipt(
            purchase_id=purchase.id,
            invoice_no=invoice_no,
            bill_amount=computation.bill_amount,
            earned_coins=computation.earned_coins,
            redeemed_coins=computation.redeemed_coins,
            welcome_bonus_coins=0,
            final_payable=computation.final_payable,
            previous_balance=computation.previous_balance,
            new_balance=computation.previous_balance
            + computation.earned_coins
            - computation.redeemed_coins,
            referral_paid=reward is not None,
            notes=computation.notes,
        )

        if computation.notes:
            logger.warning(
                f"Purchase {purchase.id} settled with adjustments: {'; '.join(computation.notes)}"
            )
        logger.info(
            f"Purchase {purchase.id} settled: customer {customer.id}, branch {branch.id}, "
            f"earned {receipt.earned_coins}, redeemed {receipt.redeemed_coins}"
        )
        return SettlementResult(success=True, receipt=receipt, message="Purchase recorded")

    def preview_settlement(self, submission: PurchaseSubmission) -> SettlementResult:
        """저장 없이 정산 결과 미리보기 (입력 화면의 실시간 계산)"""
        try:
            snapshot = self.loyalty_settings
            self._validate_submission(submission)
            customer = self.customer_repo.get_model(submission.customer_id)
            branch = self.branch_repo.get_model(submission.branch_id)
            self._check_participants(submission, customer, branch)
            computation = self._compute(submission, customer, branch, snapshot)
        except BaseLoyaltyException as e:
            return self._failure(e)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Settlement preview persistence failure: {str(e)}")
            return self._failure(PersistenceError(details={"reason": str(e)}))

        receipt = SettlementReceipt(
            purchase_id=None,
            invoice_no=(submission.invoice_no or "").strip(),
            bill_amount=computation.bill_amount,
            earned_coins=computation.earned_coins,
            redeemed_coins=computation.redeemed_coins,
            final_payable=computation.final_payable,
            previous_balance=computation.previous_balance,
            new_balance=computation.previous_balance
            + computation.earned_coins
            - computation.redeemed_coins,
            notes=computation.notes,
        )
        if computation.funding.rejected:
            return SettlementResult(
                success=False,
                receipt=receipt,
                error_code=BranchFundsError().error_code,
                message=computation.funding.note or "Insufficient branch balance",
            )
        return SettlementResult(success=True, receipt=receipt, message="Preview")

    def _validate_submission(self, submission: PurchaseSubmission) -> None:
        bill = to_decimal(submission.bill_amount)
        if bill <= 0:
            raise ValidationError(
                "Bill amount must be greater than zero",
                {"bill_amount": str(submission.bill_amount)},
            )
        if not (submission.invoice_no or "").strip():
            raise ValidationError("Invoice number is required")
        if submission.redeem_amount < 0:
            raise ValidationError(
                "Redeem amount cannot be negative",
                {"redeem_amount": submission.redeem_amount},
            )

    def _check_participants(
        self,
        submission: PurchaseSubmission,
        customer: Optional[Customer],
        branch: Optional[Branch],
    ) -> None:
        if customer is None:
            raise NotFoundError(f"Customer {submission.customer_id} not found")
        if customer.is_blocked:
            raise CustomerBlockedError(
                "Customer is blocked and cannot record purchases",
                {"customer_id": customer.id},
            )
        if branch is None:
            raise NotFoundError(f"Branch {submission.branch_id} not found")
        if not branch.is_active:
            raise ValidationError(
                f"Branch {branch.id} is inactive", {"branch_id": branch.id}
            )

    def _lock_participants(self, submission: PurchaseSubmission):
        """고객 → 매장 순서로 잠금 (잠금 순서를 고정해 교착 방지)"""
        customer = self.customer_repo.lock_by_id(submission.customer_id)
        branch = self.branch_repo.lock_by_id(submission.branch_id)
        self._check_participants(submission, customer, branch)
        return customer, branch

    def _compute(
        self,
        submission: PurchaseSubmission,
        customer: Customer,
        branch: Branch,
        snapshot: LoyaltySettings,
    ) -> SettlementComputation:
        effective = snapshot.for_branch(branch)
        bill = to_decimal(submission.bill_amount)

        previous_balance = self.wallet_repo.get_customer_balance(customer.id)
        branch_available = self.branch_repo.get_branch_available(branch.id)
        is_first_purchase = not self.purchase_repo.has_prior_purchase(customer.id)

        notes: List[str] = []

        required = compute_earned_coins(bill, effective)
        funding = apply_branch_funding(required, branch_available, self.shortfall_policy)
        if funding.note:
            notes.append(funding.note)

        redemption = None
        if submission.redeem:
            has_redeemed = self.wallet_repo.has_redeemed(customer.id)
            redemption = check_redemption(
                bill, previous_balance, effective, has_redeemed, submission.redeem_amount
            )
            if not redemption.eligible:
                notes.append("redemption not eligible: " + "; ".join(redemption.reasons))
            else:
                notes.extend(redemption.reasons)

        redeemed = redemption.redeemed_coins if redemption else 0
        return SettlementComputation(
            bill_amount=bill,
            previous_balance=previous_balance,
            branch_available=branch_available,
            is_first_purchase=is_first_purchase,
            required_coins=required,
            funding=funding,
            redemption=redemption,
            final_payable=compute_final_payable(bill, redeemed, effective.coin_value_inr),
            notes=notes,
        )

    def _ledger_rows(
        self,
        computation: SettlementComputation,
        customer: Customer,
        branch: Branch,
        purchase_id: int,
        snapshot: LoyaltySettings,
    ) -> List[dict]:
        rows = []
        if computation.earned_coins > 0:
            rows.append(
                {
                    "customer_id": customer.id,
                    "coins": computation.earned_coins,
                    "type": WalletTransactionType.EARN,
                    "branch_id": branch.id,
                    "purchase_id": purchase_id,
                    "description": f"Coins earned on purchase {purchase_id}",
                    "expires_at": expiry_from_now(snapshot.coin_expiry_days),
                }
            )
        if computation.redeemed_coins > 0:
            rows.append(
                {
                    "customer_id": customer.id,
                    "coins": -computation.redeemed_coins,
                    "type": WalletTransactionType.REDEEM,
                    "branch_id": branch.id,
                    "purchase_id": purchase_id,
                    "description": f"Coins redeemed on purchase {purchase_id}",
                }
            )
        return rows

    def _verify_before_commit(
        self, customer_id: int, computation: SettlementComputation
    ) -> None:
        """커밋 직전 재검증 - 원장 기준으로 잔액 음수 / 중복 사용이 없어야 함"""
        if computation.redeemed_coins <= 0:
            return

        balance_after = self.wallet_repo.get_customer_balance(customer_id)
        redeem_count = self.wallet_repo.count(
            {"customer_id": customer_id, "type": WalletTransactionType.REDEEM}
        )
        if balance_after < 0 or redeem_count > 1:
            raise InsufficientBalanceError(
                "Redemption no longer valid, please recalculate",
                {
                    "customer_id": customer_id,
                    "balance_after": balance_after,
                    "redeem_count": redeem_count,
                },
            )

    @staticmethod
    def _is_duplicate_invoice(error: IntegrityError) -> bool:
        # PostgreSQL 은 제약 이름, SQLite 는 "UNIQUE constraint failed: 컬럼 목록" 으로 보고
        message = str(error.orig)
        if "uq_purchase_branch_invoice" in message:
            return True
        return (
            "UNIQUE constraint failed" in message
            and "purchases.branch_id" in message
            and "purchases.invoice_no" in message
        )

    @staticmethod
    def _failure(error: BaseLoyaltyException) -> SettlementResult:
        return SettlementResult(
            success=False,
            error_code=error.error_code,
            message=error.message,
            retryable=error.retryable,
            details=error.details,
        )
