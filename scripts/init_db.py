import sys
import os
import logging

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from loyaltyapi.config import settings
from loyaltyapi.database.connection import engine
from loyaltyapi.database.session import get_db_context
from loyaltyapi.logging_config import setup_logging
from loyaltyapi.models.base import Base
import loyaltyapi.models  # noqa: F401  (테이블 등록)
from loyaltyapi.repositories.settings_repository import SettingsRepository
from loyaltyapi.schemas.settings import LoyaltySettings

logger = logging.getLogger("loyaltyapi.scripts.init_db")


def init_db(overwrite_settings: bool = False):
    """데이터베이스 초기화 - 테이블 생성 후 기본 경제 파라미터 입력"""
    try:
        Base.metadata.create_all(bind=engine)

        with get_db_context() as db:
            written = SettingsRepository(db).seed_defaults(
                LoyaltySettings(), overwrite=overwrite_settings
            )

        logger.info(
            f"Database initialized ({settings.DATABASE_URL}), seeded settings: {written}"
        )
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    setup_logging(settings.LOG_LEVEL)
    init_db(overwrite_settings="--overwrite" in sys.argv)
