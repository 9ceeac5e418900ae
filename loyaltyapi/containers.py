from dependency_injector import containers, providers

from loyaltyapi.database.session import get_db
from loyaltyapi.config import Settings
from loyaltyapi.services.settings_provider import SettingsProvider
from loyaltyapi.services.settlement_service import SettlementService
from loyaltyapi.services.referral_service import ReferralService
from loyaltyapi.services.customer_service import CustomerService
from loyaltyapi.services.wallet_service import WalletService
from loyaltyapi.services.branch_service import BranchService
from loyaltyapi.services.return_service import ReturnService
from loyaltyapi.services.engagement_service import EngagementService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class RepositoryModule(containers.DeclarativeContainer):
    """Database session."""

    get_db = providers.Resource(get_db)


class ServiceModule(containers.DeclarativeContainer):
    """Service layer dependencies."""

    config = providers.DependenciesContainer()
    repositories = providers.DependenciesContainer()

    settings_provider = providers.Singleton(
        SettingsProvider,
        db=repositories.get_db,
        ttl_seconds=config.config.provided.SETTINGS_CACHE_TTL_SECONDS,
    )
    loyalty_settings = providers.Callable(
        SettingsProvider.get_snapshot, settings_provider
    )

    settlement_service = providers.Factory(
        SettlementService,
        db=repositories.get_db,
        settings_provider=settings_provider,
        shortfall_policy=config.config.provided.BRANCH_SHORTFALL_POLICY,
    )
    referral_service = providers.Factory(
        ReferralService, db=repositories.get_db, loyalty_settings=loyalty_settings
    )
    customer_service = providers.Factory(
        CustomerService, db=repositories.get_db, loyalty_settings=loyalty_settings
    )
    wallet_service = providers.Factory(WalletService, db=repositories.get_db)
    branch_service = providers.Factory(BranchService, db=repositories.get_db)
    return_service = providers.Factory(ReturnService, db=repositories.get_db)
    engagement_service = providers.Factory(EngagementService, db=repositories.get_db)


class Container(containers.DeclarativeContainer):
    """Application container."""

    config = providers.Container(ConfigModule)
    repositories = providers.Container(RepositoryModule)
    services = providers.Container(
        ServiceModule, config=config, repositories=repositories
    )
