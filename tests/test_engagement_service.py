import random
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from loyaltyapi.core.exceptions import (
    ConflictError,
    CustomerBlockedError,
    NotFoundError,
    ValidationError,
)
from loyaltyapi.models.purchase import Purchase
from loyaltyapi.models.wallet import WalletTransaction, WalletTransactionType
from loyaltyapi.repositories.wallet_repository import WalletRepository
from loyaltyapi.services.engagement_service import SPIN_SEGMENTS, EngagementService

TODAY = date(2026, 3, 14)


class FixedRandom(random.Random):
    """choice() 가 항상 지정한 값을 돌려주는 난수기"""

    def __init__(self, value):
        super().__init__()
        self.value = value

    def choice(self, seq):
        assert self.value in seq
        return self.value


@pytest.fixture
def service(db):
    return EngagementService(db)


class TestCheckIn:
    """매장 체크인"""

    def test_first_checkin_credits_coins(self, db, service, make_customer, make_branch):
        customer = make_customer()
        branch = make_branch()

        result = service.check_in(customer.id, branch.id, today=TODAY)

        assert result.coins_earned == 5
        assert result.checkin_date == "2026-03-14"
        row = db.query(WalletTransaction).one()
        assert row.type == WalletTransactionType.CHECKIN
        assert row.branch_id == branch.id

    def test_second_checkin_same_day_conflicts(self, db, service, make_customer, make_branch):
        customer = make_customer()
        branch = make_branch()
        service.check_in(customer.id, branch.id, today=TODAY)

        with pytest.raises(ConflictError):
            service.check_in(customer.id, branch.id, today=TODAY)

        assert WalletRepository(db).get_customer_balance(customer.id) == 5

    def test_next_day_and_other_branch_allowed(self, db, service, make_customer, make_branch):
        customer = make_customer()
        branch = make_branch()
        other = make_branch(name="Station Road")

        service.check_in(customer.id, branch.id, today=TODAY)
        service.check_in(customer.id, other.id, today=TODAY)
        service.check_in(customer.id, branch.id, today=TODAY + timedelta(days=1))

        assert WalletRepository(db).get_customer_balance(customer.id) == 15

    def test_blocked_customer(self, service, make_customer, make_branch):
        with pytest.raises(CustomerBlockedError):
            service.check_in(make_customer(is_blocked=True).id, make_branch().id, today=TODAY)

    def test_unknown_branch(self, service, make_customer):
        with pytest.raises(NotFoundError):
            service.check_in(make_customer().id, 404, today=TODAY)


class TestSpin:
    """일일 룰렛"""

    def test_winning_spin_expires_in_thirty_days(self, db, service, make_customer):
        customer = make_customer()
        now = datetime(2026, 3, 14, 10, 0, tzinfo=timezone.utc)

        result = service.spin(customer.id, rng=FixedRandom(50), today=TODAY, now=now)

        assert result.coins_won == 50
        assert result.expires_at == "2026-04-13 10:00:00"
        row = db.query(WalletTransaction).one()
        assert row.type == WalletTransactionType.SPIN
        assert row.coins == 50

    def test_zero_segment_writes_no_ledger_row(self, db, service, make_customer):
        result = service.spin(make_customer().id, rng=FixedRandom(0), today=TODAY)

        assert result.coins_won == 0
        assert result.expires_at is None
        assert db.query(WalletTransaction).count() == 0

    def test_once_per_day(self, service, make_customer):
        customer = make_customer()
        service.spin(customer.id, rng=FixedRandom(10), today=TODAY)

        with pytest.raises(ConflictError):
            service.spin(customer.id, rng=FixedRandom(10), today=TODAY)

    def test_default_rng_picks_a_segment(self, service, make_customer):
        result = service.spin(make_customer().id, today=TODAY)
        assert result.coins_won in SPIN_SEGMENTS


class TestReview:
    """구매 리뷰"""

    @pytest.fixture
    def purchase(self, db, make_customer, make_branch):
        customer = make_customer()
        branch = make_branch()
        purchase = Purchase(
            branch_id=branch.id,
            customer_id=customer.id,
            invoice_no="INV-7",
            bill_amount=Decimal("1200"),
            final_payable=Decimal("1200"),
        )
        db.add(purchase)
        db.commit()
        return purchase

    def test_review_credits_bonus(self, db, service, purchase):
        result = service.submit_review(purchase.customer_id, purchase.id, 4, " Great staff ")

        assert result.coins_earned == 10
        row = db.query(WalletTransaction).one()
        assert row.type == WalletTransactionType.REVIEW_BONUS
        assert row.description == "Review bonus for purchase #INV-7"

    def test_one_review_per_purchase(self, service, purchase):
        service.submit_review(purchase.customer_id, purchase.id, 5)
        with pytest.raises(ConflictError):
            service.submit_review(purchase.customer_id, purchase.id, 3)

    def test_only_own_purchases(self, service, purchase, make_customer):
        stranger = make_customer(phone="9000000009")
        with pytest.raises(NotFoundError):
            service.submit_review(stranger.id, purchase.id, 5)

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_range(self, service, purchase, rating):
        with pytest.raises(ValidationError):
            service.submit_review(purchase.customer_id, purchase.id, rating)
