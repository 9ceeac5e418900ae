from decimal import Decimal

import pytest

from loyaltyapi.core.exceptions import ValidationError
from loyaltyapi.repositories.settings_repository import SettingsRepository
from loyaltyapi.schemas.settings import LoyaltySettings
from loyaltyapi.services.settings_provider import SettingsProvider


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestLoyaltySettings:
    """설정 스냅샷 변환"""

    def test_empty_map_uses_defaults(self):
        snapshot = LoyaltySettings.from_map({})
        assert snapshot.purchase_coin_percent == Decimal("5")
        assert snapshot.max_coins_per_bill is None

    def test_unknown_keys_ignored_and_null_means_default(self):
        snapshot = LoyaltySettings.from_map(
            {"purchase_coin_percent": "7.5", "min_bill_to_earn": None, "legacy_flag": True}
        )
        assert snapshot.purchase_coin_percent == Decimal("7.5")
        assert snapshot.min_bill_to_earn == Decimal("500")

    def test_null_cap_means_unlimited(self):
        assert LoyaltySettings.from_map({"max_coins_per_bill": None}).max_coins_per_bill is None
        assert LoyaltySettings.from_map({"max_coins_per_bill": 80}).max_coins_per_bill == 80

    def test_branch_overrides_merge(self):
        class BranchStub:
            custom_coin_percent = None
            custom_max_coins_per_bill = 30
            custom_max_redeem_percent = Decimal("15")

        effective = LoyaltySettings().for_branch(BranchStub())

        assert effective.coin_percent == Decimal("5")
        assert effective.max_coins_per_bill == 30
        assert effective.max_redeem_percent == Decimal("15")

    def test_snapshot_is_immutable(self):
        snapshot = LoyaltySettings()
        with pytest.raises(Exception):
            snapshot.purchase_coin_percent = Decimal("9")


class TestSettingsProvider:
    """TTL 캐시"""

    def test_cached_until_ttl_expires(self, db):
        clock = FakeClock()
        repo = SettingsRepository(db)
        provider = SettingsProvider(db, ttl_seconds=60, clock=clock)
        repo.upsert("purchase_coin_percent", 5)
        assert provider.get_snapshot().purchase_coin_percent == Decimal("5")

        repo.upsert("purchase_coin_percent", 8)
        clock.now += 59
        assert provider.get_snapshot().purchase_coin_percent == Decimal("5")

        clock.now += 2
        assert provider.get_snapshot().purchase_coin_percent == Decimal("8")

    def test_invalidate_forces_reload(self, db):
        repo = SettingsRepository(db)
        provider = SettingsProvider(db, ttl_seconds=3600, clock=FakeClock())
        provider.get_snapshot()

        repo.upsert("min_coins_to_redeem", 75)
        provider.invalidate()

        assert provider.get_snapshot().min_coins_to_redeem == 75

    def test_update_setting(self, db):
        provider = SettingsProvider(db, ttl_seconds=3600, clock=FakeClock())

        snapshot = provider.update_setting("coin_expiry_days", 90)

        assert snapshot.coin_expiry_days == 90
        assert SettingsRepository(db).get_value("coin_expiry_days") == 90

    def test_update_rejects_unknown_key_and_bad_value(self, db):
        provider = SettingsProvider(db, clock=FakeClock())

        with pytest.raises(ValidationError):
            provider.update_setting("free_money", 1)
        with pytest.raises(ValidationError):
            provider.update_setting("max_redeem_percent", 150)

        assert SettingsRepository(db).get_settings_map() == {}

    def test_seed_defaults_keeps_existing_values(self, db):
        repo = SettingsRepository(db)
        repo.upsert("purchase_coin_percent", 6)

        written = repo.seed_defaults(LoyaltySettings())

        assert "purchase_coin_percent" not in written
        assert repo.get_value("purchase_coin_percent") == 6
        assert LoyaltySettings.from_map(repo.get_settings_map()).min_bill_to_earn == Decimal("500")
