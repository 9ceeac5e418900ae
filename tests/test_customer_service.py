from decimal import Decimal

import pytest

from loyaltyapi.core.exceptions import NotFoundError, ValidationError
from loyaltyapi.models.customer import Customer
from loyaltyapi.models.referral import ReferralReward, ReferralStatus
from loyaltyapi.models.wallet import WalletTransaction, WalletTransactionType
from loyaltyapi.schemas.customer import CustomerRegistrationRequest
from loyaltyapi.schemas.purchase import PurchaseSubmission
from loyaltyapi.schemas.settings import LoyaltySettings
from loyaltyapi.services.customer_service import CustomerService
from loyaltyapi.services.settlement_service import SettlementService


@pytest.fixture
def service(db, loyalty_settings):
    return CustomerService(db, loyalty_settings)


def register(service, name="Ravi Kumar", phone="9876543210", code=None):
    return service.register_customer(
        CustomerRegistrationRequest(full_name=name, phone=phone, referral_code=code)
    )


class TestRegisterCustomer:
    """고객 가입"""

    def test_signup_grants_welcome_bonus(self, db, service):
        customer = register(service)

        rows = db.query(WalletTransaction).filter(WalletTransaction.customer_id == customer.id).all()
        assert [(row.type, row.coins) for row in rows] == [(WalletTransactionType.BONUS, 50)]

    def test_referral_code_shape(self, service):
        customer = register(service, name="Ravi Kumar")

        assert customer.referral_code.startswith("RAVI")
        assert len(customer.referral_code) == 8

    def test_name_without_letters_gets_default_prefix(self, service):
        assert register(service, name="123").referral_code.startswith("CUST")

    def test_zero_bonus_setting_writes_no_row(self, db):
        service = CustomerService(db, LoyaltySettings(welcome_bonus_first_purchase=0))
        register(service)
        assert db.query(WalletTransaction).count() == 0

    def test_signup_with_referral_creates_pending_reward(self, db, service):
        referrer = register(service, name="Asha", phone="9000000001")

        newcomer = register(service, phone="9000000002", code=referrer.referral_code.lower())

        assert newcomer.referred_by_customer_id == referrer.id
        reward = db.query(ReferralReward).one()
        assert reward.status == ReferralStatus.PENDING

    def test_bad_referral_code_cancels_signup(self, db, service):
        with pytest.raises(ValidationError):
            register(service, code="NOPE2345")

        assert db.query(Customer).count() == 0
        assert db.query(WalletTransaction).count() == 0


class TestCustomerLookup:
    def test_find_by_phone(self, service):
        register(service, phone="9876543210")
        assert len(service.find_by_phone(" 9876543210 ")) == 1
        assert service.find_by_phone("1111111111") == []

    def test_get_by_referral_code(self, service):
        customer = register(service)
        assert service.get_by_referral_code(customer.referral_code.lower()).id == customer.id

    def test_unknown_referral_code(self, service):
        with pytest.raises(NotFoundError):
            service.get_by_referral_code("ZZZZ9999")

    def test_block_and_unblock(self, service):
        customer = register(service)

        assert service.block_customer(customer.id).is_blocked
        assert not service.unblock_customer(customer.id).is_blocked

    def test_block_unknown(self, service):
        with pytest.raises(NotFoundError):
            service.block_customer(404)


class TestTier:
    def test_tier_follows_total_spend(self, db, service, loyalty_settings, make_branch):
        customer = register(service)
        branch = make_branch(available=5000)
        settlement = SettlementService(db, loyalty_settings=loyalty_settings, shortfall_policy="degrade")
        for index, bill in enumerate(["6000", "5000"]):
            settlement.settle_purchase(
                PurchaseSubmission(
                    branch_id=branch.id,
                    customer_id=customer.id,
                    bill_amount=Decimal(bill),
                    invoice_no=f"T-{index}",
                )
            )

        tier = service.get_tier(customer.id)

        assert tier.name == "Silver"
        assert tier.total_spend == Decimal("11000")
        assert tier.next_tier == "Gold"
        assert tier.spend_to_next_tier == Decimal("39000")
