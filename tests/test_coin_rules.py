from decimal import Decimal

import pytest

from loyaltyapi.schemas.settings import LoyaltySettings
from loyaltyapi.services.coin_rules import (
    EARN_HARD_CAP,
    BranchShortfallPolicy,
    apply_branch_funding,
    check_redemption,
    compute_earned_coins,
    compute_final_payable,
    fold_branch_available,
    fold_customer_balance,
    get_next_tier,
    get_tier,
)


@pytest.fixture
def effective():
    return LoyaltySettings().for_branch(None)


class TestComputeEarnedCoins:
    """적립 코인 계산"""

    def test_five_percent_of_thousand(self, effective):
        """₹1000, 5% → 50 코인"""
        assert compute_earned_coins(Decimal("1000"), effective) == 50

    def test_below_minimum_bill_earns_nothing(self, effective):
        assert compute_earned_coins(Decimal("499.99"), effective) == 0

    def test_exactly_minimum_bill_earns(self, effective):
        assert compute_earned_coins(Decimal("500"), effective) == 25

    def test_fractional_coins_are_floored(self, effective):
        # 1039 * 5% = 51.95
        assert compute_earned_coins(Decimal("1039"), effective) == 51

    def test_float_input_does_not_round_up(self, effective):
        # 1019.99 * 5% = 50.9995
        assert compute_earned_coins(1019.99, effective) == 50

    def test_hard_cap_applies_without_configured_cap(self, effective):
        assert effective.max_coins_per_bill is None
        assert compute_earned_coins(Decimal("1000000"), effective) == EARN_HARD_CAP

    def test_configured_cap_applies_first(self):
        effective = LoyaltySettings(max_coins_per_bill=80).for_branch(None)
        assert compute_earned_coins(Decimal("5000"), effective) == 80

    def test_configured_cap_above_hard_cap_is_still_bounded(self):
        effective = LoyaltySettings(
            max_coins_per_bill=10000, purchase_coin_percent=Decimal("50")
        ).for_branch(None)
        assert compute_earned_coins(Decimal("100000"), effective) == EARN_HARD_CAP

    @pytest.mark.parametrize(
        "bill", ["0.01", "499", "500", "999.99", "10000", "250000", "99999999.99"]
    )
    def test_earned_never_exceeds_hard_cap(self, bill):
        effective = LoyaltySettings(purchase_coin_percent=Decimal("100")).for_branch(None)
        earned = compute_earned_coins(Decimal(bill), effective)
        assert 0 <= earned <= EARN_HARD_CAP
        if Decimal(bill) < effective.min_bill_to_earn:
            assert earned == 0

    def test_branch_override_percent(self):
        class BranchStub:
            custom_coin_percent = Decimal("10")
            custom_max_coins_per_bill = None
            custom_max_redeem_percent = None

        effective = LoyaltySettings().for_branch(BranchStub())
        assert compute_earned_coins(Decimal("1000"), effective) == 100


class TestBranchFunding:
    """매장 재원 부족 처리 정책"""

    def test_enough_funds_grants_full_amount(self):
        decision = apply_branch_funding(50, 1000)
        assert decision.granted == 50
        assert decision.note is None
        assert not decision.reduced

    def test_degrade_zeroes_grant(self):
        """Scenario B: 필요 50, 가용 30 → 0"""
        decision = apply_branch_funding(50, 30, BranchShortfallPolicy.DEGRADE)
        assert decision.granted == 0
        assert decision.reduced
        assert not decision.rejected
        assert "insufficient branch balance" in decision.note

    def test_partial_grants_available(self):
        decision = apply_branch_funding(50, 30, "partial")
        assert decision.granted == 30
        assert not decision.rejected

    def test_partial_with_negative_available_grants_nothing(self):
        decision = apply_branch_funding(50, -20, "partial")
        assert decision.granted == 0

    def test_reject_marks_rejected(self):
        decision = apply_branch_funding(50, 30, "REJECT")
        assert decision.rejected
        assert decision.granted == 0

    def test_nothing_required_never_rejects(self):
        decision = apply_branch_funding(0, 0, "reject")
        assert not decision.rejected
        assert decision.granted == 0

    def test_unknown_policy_raises(self):
        with pytest.raises(ValueError):
            apply_branch_funding(50, 30, "maybe")


class TestCheckRedemption:
    """코인 사용 가능 여부 / 한도"""

    def test_scenario_c_clamped_by_balance(self, effective):
        """잔액 200, ₹2000, 요청 150 → 100 사용, 결제 ₹1900"""
        # Act
        decision = check_redemption(Decimal("2000"), 200, effective, False, 150)

        # Assert
        assert decision.eligible
        assert decision.max_by_balance == 100
        assert decision.max_by_bill == 200
        assert decision.redeemed_coins == 100
        assert compute_final_payable(Decimal("2000"), 100, effective.coin_value_inr) == Decimal("1900.00")
        assert any("clamped" in reason for reason in decision.reasons)

    def test_scenario_d_second_redemption_refused(self, effective):
        decision = check_redemption(Decimal("5000"), 10000, effective, True, 100)
        assert not decision.eligible
        assert decision.redeemed_coins == 0

    def test_bill_below_minimum(self, effective):
        decision = check_redemption(Decimal("400"), 200, effective, False, 20)
        assert not decision.eligible

    def test_balance_below_minimum(self, effective):
        decision = check_redemption(Decimal("2000"), 49, effective, False, 20)
        assert not decision.eligible

    def test_request_within_bounds_is_unchanged(self, effective):
        decision = check_redemption(Decimal("2000"), 200, effective, False, 60)
        assert decision.redeemed_coins == 60
        assert decision.reasons == []

    def test_negative_request_redeems_nothing(self, effective):
        decision = check_redemption(Decimal("2000"), 200, effective, False, -5)
        assert decision.redeemed_coins == 0

    def test_bill_bound_uses_coin_value(self):
        effective = LoyaltySettings(coin_value_inr=Decimal("2")).for_branch(None)
        # 2000 * 10% / 2 = 100
        decision = check_redemption(Decimal("2000"), 1000, effective, False, 400)
        assert decision.max_by_bill == 100
        assert decision.redeemed_coins == 100

    @pytest.mark.parametrize("balance", [50, 51, 99, 200, 1001])
    @pytest.mark.parametrize("bill", ["500", "777.77", "2000", "50000"])
    def test_redemption_bounds_hold(self, effective, balance, bill):
        decision = check_redemption(Decimal(bill), balance, effective, False, 10**6)
        assert decision.redeemed_coins <= balance // 2
        assert decision.redeemed_coins <= int(Decimal(bill) * 10 / 100)
        assert decision.redeemed_coins <= balance


class TestFolds:
    def test_customer_balance_is_sum_of_deltas(self):
        assert fold_customer_balance([50, -20, 100, -30]) == 100
        assert fold_customer_balance([]) == 0

    def test_branch_available(self):
        # 받은 1000, 지급 50+20, 회수 30
        assert fold_branch_available([1000], [50, 20, -30]) == 960


class TestTiers:
    def test_tier_boundaries(self):
        assert get_tier(Decimal("0")).name == "Bronze"
        assert get_tier(Decimal("9999.99")).name == "Bronze"
        assert get_tier(Decimal("10000")).name == "Silver"
        assert get_tier(Decimal("50000")).name == "Gold"
        assert get_tier(Decimal("250000")).name == "Platinum"

    def test_next_tier(self):
        assert get_next_tier(Decimal("12000")).name == "Gold"
        assert get_next_tier(Decimal("200000")) is None
