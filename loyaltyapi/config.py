from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="loyaltyapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Coin Loyalty Engine"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./loyalty.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Settings 테이블 스냅샷 캐시 (초)
    SETTINGS_CACHE_TTL_SECONDS: int = 60

    # Business Rules
    BRANCH_SHORTFALL_POLICY: str = "degrade"  # degrade | partial | reject
    CHECKIN_COINS: int = 5  # 매장 체크인 보상
    REVIEW_BONUS_COINS: int = 10  # 리뷰 작성 보상
    SPIN_COIN_EXPIRY_DAYS: int = 30  # 룰렛 코인 만료일

    # Timezone (IST = UTC+5:30)
    BUSINESS_TIMEZONE_OFFSET_MINUTES: int = 330

    ADMIN_OPERATOR_ID: Optional[str] = None

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Return a process-wide Settings instance."""

    return Settings()


settings = get_settings()
