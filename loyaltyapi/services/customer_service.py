import logging
import re
import secrets
import string
from typing import List, Optional

from sqlalchemy.orm import Session

from loyaltyapi.core.exceptions import NotFoundError, ValidationError
from loyaltyapi.models.wallet import WalletTransactionType
from loyaltyapi.repositories.customer_repository import CustomerRepository
from loyaltyapi.repositories.purchase_repository import PurchaseRepository
from loyaltyapi.repositories.wallet_repository import WalletRepository
from loyaltyapi.schemas.customer import (
    CustomerRegistrationRequest,
    CustomerResponse,
    LoyaltyTierResponse,
)
from loyaltyapi.schemas.settings import LoyaltySettings
from loyaltyapi.services.coin_rules import get_next_tier, get_tier
from loyaltyapi.services.referral_service import ReferralService

logger = logging.getLogger(__name__)

# 혼동되는 문자(0/O, 1/I) 제외
REFERRAL_CODE_ALPHABET = "".join(
    c for c in string.ascii_uppercase + string.digits if c not in "0O1I"
)
REFERRAL_CODE_PREFIX_LENGTH = 4
REFERRAL_CODE_SUFFIX_LENGTH = 4


class CustomerService:
    """고객 가입 / 조회 / 차단 서비스"""

    def __init__(self, db: Session, loyalty_settings: Optional[LoyaltySettings] = None):
        self.db = db
        self.loyalty_settings = loyalty_settings or LoyaltySettings()
        self.customer_repo = CustomerRepository(db)
        self.wallet_repo = WalletRepository(db)
        self.purchase_repo = PurchaseRepository(db)
        self.referral_service = ReferralService(db, self.loyalty_settings)

    def register_customer(self, request: CustomerRegistrationRequest) -> CustomerResponse:
        """고객 가입

        1. 공유용 추천 코드 생성
        2. 가입 환영 보너스 (BONUS) 지급
        3. 추천 코드가 있으면 PENDING 추천 보상 생성
        한 트랜잭션으로 처리되며 추천 코드가 잘못되면 가입 자체가 취소됩니다.
        """
        try:
            customer = self.customer_repo.add(
                commit=False,
                full_name=request.full_name.strip(),
                phone=request.phone.strip(),
                referral_code=self._generate_referral_code(request.full_name),
                is_blocked=False,
            )

            bonus = self.loyalty_settings.welcome_bonus_first_purchase
            if bonus > 0:
                self.wallet_repo.append(
                    customer_id=customer.id,
                    coins=bonus,
                    tx_type=WalletTransactionType.BONUS,
                    description="Welcome bonus on signup",
                    commit=False,
                )

            if request.referral_code:
                self.referral_service.register_referral(
                    customer, request.referral_code, commit=False
                )

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Registered customer {customer.id} ({customer.referral_code})")
        return self.customer_repo.get_by_id(customer.id)

    def get_customer(self, customer_id: int) -> CustomerResponse:
        customer = self.customer_repo.get_by_id(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        return customer

    def find_by_phone(self, phone: str) -> List[CustomerResponse]:
        return self.customer_repo.find_by_phone(phone)

    def get_by_referral_code(self, referral_code: str) -> CustomerResponse:
        customer = self.customer_repo.get_model_by_referral_code(referral_code)
        if customer is None:
            raise NotFoundError(f"No customer with referral code {referral_code}")
        return self.customer_repo._to_schema(customer)

    def block_customer(self, customer_id: int) -> CustomerResponse:
        return self._set_blocked(customer_id, True)

    def unblock_customer(self, customer_id: int) -> CustomerResponse:
        return self._set_blocked(customer_id, False)

    def get_tier(self, customer_id: int) -> LoyaltyTierResponse:
        """누적 구매액 기준 등급 (표시용 - 적립률에는 반영하지 않음)"""
        self.get_customer(customer_id)
        total_spend = self.purchase_repo.get_total_spend(customer_id)
        tier = get_tier(total_spend)
        next_tier = get_next_tier(total_spend)
        return LoyaltyTierResponse(
            name=tier.name,
            min_spend=tier.min_spend,
            coin_multiplier=tier.coin_multiplier,
            total_spend=total_spend,
            next_tier=next_tier.name if next_tier else None,
            spend_to_next_tier=(next_tier.min_spend - total_spend) if next_tier else None,
        )

    def _set_blocked(self, customer_id: int, is_blocked: bool) -> CustomerResponse:
        customer = self.customer_repo.set_blocked(customer_id, is_blocked)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        logger.info(f"Customer {customer_id} {'blocked' if is_blocked else 'unblocked'}")
        return customer

    def _generate_referral_code(self, full_name: str, max_attempts: int = 10) -> str:
        """이름 앞 4글자 + 무작위 4글자 (예: RAVI4K2Q)"""
        prefix = re.sub(r"[^A-Z]", "", full_name.upper())[:REFERRAL_CODE_PREFIX_LENGTH]
        prefix = prefix or "CUST"
        for _ in range(max_attempts):
            suffix = "".join(
                secrets.choice(REFERRAL_CODE_ALPHABET)
                for _ in range(REFERRAL_CODE_SUFFIX_LENGTH)
            )
            code = prefix + suffix
            if not self.customer_repo.referral_code_exists(code):
                return code
        raise ValidationError("Could not generate a unique referral code")
