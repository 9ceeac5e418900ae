from decimal import Decimal

import pytest

from loyaltyapi.core.exceptions import NotFoundError, ValidationError
from loyaltyapi.models.purchase import Purchase
from loyaltyapi.models.referral import ReferralReward, ReferralStatus
from loyaltyapi.models.wallet import WalletTransaction, WalletTransactionType
from loyaltyapi.repositories.referral_repository import ReferralRepository
from loyaltyapi.schemas.settings import LoyaltySettings
from loyaltyapi.services.referral_service import ReferralService


@pytest.fixture
def service(db, loyalty_settings):
    return ReferralService(db, loyalty_settings)


def record_purchase(db, customer, branch, bill="1000", invoice="INV-1"):
    purchase = Purchase(
        branch_id=branch.id,
        customer_id=customer.id,
        invoice_no=invoice,
        bill_amount=Decimal(bill),
        earned_coins=0,
        redeemed_coins=0,
        welcome_bonus_coins=0,
        final_payable=Decimal(bill),
    )
    db.add(purchase)
    db.flush()
    return purchase


def referral_rows(db):
    return (
        db.query(WalletTransaction)
        .filter(WalletTransaction.type == WalletTransactionType.REFERRAL)
        .all()
    )


class TestReferralStatus:
    def test_only_pending_to_paid_allowed(self):
        assert ReferralStatus.can_transition("pending", "paid")
        assert not ReferralStatus.can_transition(ReferralStatus.PAID, ReferralStatus.PENDING)
        assert not ReferralStatus.can_transition("paid", "paid")
        assert ReferralStatus.PAID.is_terminal
        assert not ReferralStatus.PENDING.is_terminal


class TestRegisterReferral:
    """가입 시 추천 등록"""

    def test_creates_pending_reward_without_coins(self, db, service, make_customer):
        # Arrange
        referrer = make_customer(full_name="Asha", referral_code="ASHA7KQ2")
        newcomer = make_customer(full_name="Vikram")

        # Act
        reward = service.register_referral(newcomer, "asha7kq2")

        # Assert
        assert reward.status == ReferralStatus.PENDING
        assert reward.referrer_customer_id == referrer.id
        assert reward.referrer_coins == 100
        assert reward.new_customer_coins == 50
        assert newcomer.referred_by_customer_id == referrer.id
        assert referral_rows(db) == []

    def test_unknown_code_rejected(self, service, make_customer):
        with pytest.raises(ValidationError):
            service.register_referral(make_customer(), "NOPE0000")

    def test_self_referral_rejected(self, service, make_customer):
        customer = make_customer(referral_code="SELF2345")
        with pytest.raises(ValidationError):
            service.register_referral(customer, "SELF2345")

    def test_second_referrer_rejected(self, service, make_customer):
        make_customer(referral_code="FIRST234")
        make_customer(referral_code="OTHER234")
        newcomer = make_customer()
        service.register_referral(newcomer, "FIRST234")

        with pytest.raises(ValidationError):
            service.register_referral(newcomer, "OTHER234")


class TestUnlockOnFirstPurchase:
    """첫 구매 시 추천 보상 지급"""

    @pytest.fixture
    def referral(self, db, service, make_customer, make_branch):
        make_customer(full_name="Asha", referral_code="ASHA7KQ2")
        newcomer = make_customer(full_name="Vikram")
        service.register_referral(newcomer, "ASHA7KQ2")
        branch = make_branch(available=1000)
        return newcomer, branch

    def test_pays_both_sides_once(self, db, service, referral):
        newcomer, branch = referral
        purchase = record_purchase(db, newcomer, branch)

        reward = service.unlock_on_first_purchase(newcomer, purchase, branch.id, True)
        db.commit()

        assert reward is not None
        assert reward.status == ReferralStatus.PAID
        assert sorted(row.coins for row in referral_rows(db)) == [50, 100]
        assert all(row.purchase_id == purchase.id for row in referral_rows(db))

    def test_retry_with_same_purchase_pays_once(self, db, service, referral):
        """재시도로 두 번 호출되어도 PAID 전이 1회, REFERRAL 2행"""
        newcomer, branch = referral
        purchase = record_purchase(db, newcomer, branch)

        first = service.unlock_on_first_purchase(newcomer, purchase, branch.id, True)
        second = service.unlock_on_first_purchase(newcomer, purchase, branch.id, True)
        db.commit()

        assert first is not None
        assert second is None
        assert len(referral_rows(db)) == 2
        assert db.query(ReferralReward).filter(ReferralReward.status == ReferralStatus.PAID).count() == 1

    def test_conditional_update_has_single_winner(self, db, referral):
        newcomer, branch = referral
        purchase = record_purchase(db, newcomer, branch)
        repo = ReferralRepository(db)
        reward = repo.get_pending_for_new_customer(newcomer.id)

        assert repo.mark_paid_if_pending(reward.id, purchase.id) is True
        assert repo.mark_paid_if_pending(reward.id, purchase.id) is False

    def test_not_first_purchase_does_nothing(self, db, service, referral):
        newcomer, branch = referral
        purchase = record_purchase(db, newcomer, branch)

        assert service.unlock_on_first_purchase(newcomer, purchase, branch.id, False) is None
        assert referral_rows(db) == []

    def test_customer_without_referrer_does_nothing(self, db, service, make_customer, make_branch):
        customer = make_customer()
        branch = make_branch()
        purchase = record_purchase(db, customer, branch)

        assert service.unlock_on_first_purchase(customer, purchase, branch.id, True) is None

    def test_minimum_first_bill_keeps_reward_pending(self, db, make_customer, make_branch):
        service = ReferralService(db, LoyaltySettings(referral_min_first_bill=Decimal("2000")))
        make_customer(referral_code="ASHA7KQ2")
        newcomer = make_customer()
        service.register_referral(newcomer, "ASHA7KQ2")
        branch = make_branch()
        purchase = record_purchase(db, newcomer, branch, bill="1000")

        assert service.unlock_on_first_purchase(newcomer, purchase, branch.id, True) is None
        assert db.query(ReferralReward).one().status == ReferralStatus.PENDING


class TestReferralReports:
    def test_summary_and_leaderboard(self, db, service, make_customer, make_branch):
        # Arrange
        asha = make_customer(full_name="Asha", referral_code="ASHA7KQ2")
        first = make_customer(full_name="Vikram")
        second = make_customer(full_name="Meera")
        service.register_referral(first, "ASHA7KQ2")
        service.register_referral(second, "ASHA7KQ2")
        branch = make_branch(available=1000)
        purchase = record_purchase(db, first, branch)
        service.unlock_on_first_purchase(first, purchase, branch.id, True)
        db.commit()

        # Act
        summary = service.get_referral_summary(asha.id)
        leaderboard = service.get_referral_leaderboard()

        # Assert
        assert summary.referred_count == 2
        assert summary.paid_count == 1
        assert summary.pending_count == 1
        assert summary.coins_earned == 100
        assert summary.coins_pending == 100
        assert leaderboard.entries[0].customer_id == asha.id
        assert leaderboard.entries[0].paid_referrals == 1
        assert leaderboard.entries[0].coins_earned == 100

    def test_summary_unknown_customer(self, service):
        with pytest.raises(NotFoundError):
            service.get_referral_summary(404)
