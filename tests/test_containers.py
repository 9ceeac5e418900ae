from dependency_injector import providers

from loyaltyapi.containers import Container
from loyaltyapi.services.customer_service import CustomerService
from loyaltyapi.services.settlement_service import SettlementService
from loyaltyapi.services.coin_rules import BranchShortfallPolicy


class TestContainer:
    """DI 컨테이너 구성"""

    def test_services_share_injected_session(self, db):
        # Arrange
        container = Container()
        container.repositories.get_db.override(providers.Object(db))

        # Act
        settlement = container.services.settlement_service()
        customers = container.services.customer_service()

        # Assert
        assert isinstance(settlement, SettlementService)
        assert isinstance(customers, CustomerService)
        assert settlement.db is db
        assert customers.db is db
        assert settlement.shortfall_policy is BranchShortfallPolicy.DEGRADE
        assert customers.loyalty_settings.purchase_coin_percent == 5

        container.repositories.get_db.reset_override()
