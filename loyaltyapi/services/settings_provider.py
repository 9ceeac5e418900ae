"""
경제 파라미터 스냅샷 제공자

settings 테이블을 읽어 LoyaltySettings 스냅샷을 만들고
프로세스 내에서 TTL 동안 캐시합니다. 캐시는 최적화일 뿐이며
관리자가 값을 바꾼 뒤에는 invalidate() 로 즉시 반영할 수 있습니다.
"""

import logging
import time
from typing import Any, Callable, Optional

import pydantic
from sqlalchemy.orm import Session

from loyaltyapi.core.exceptions import ValidationError
from loyaltyapi.repositories.settings_repository import SettingsRepository
from loyaltyapi.schemas.settings import LoyaltySettings

logger = logging.getLogger(__name__)


class SettingsProvider:
    def __init__(
        self,
        db: Session,
        ttl_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.db = db
        self.settings_repo = SettingsRepository(db)
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._snapshot: Optional[LoyaltySettings] = None
        self._loaded_at: float = 0.0

    def get_snapshot(self) -> LoyaltySettings:
        """캐시가 유효하면 캐시를, 아니면 DB 에서 새로 읽은 스냅샷 반환"""
        now = self._clock()
        if self._snapshot is not None and now - self._loaded_at < self.ttl_seconds:
            return self._snapshot

        values = self.settings_repo.get_settings_map()
        self._snapshot = LoyaltySettings.from_map(values)
        self._loaded_at = now
        logger.debug(f"Loaded loyalty settings snapshot ({len(values)} rows)")
        return self._snapshot

    def invalidate(self) -> None:
        self._snapshot = None
        self._loaded_at = 0.0

    def update_setting(self, key: str, value: Any) -> LoyaltySettings:
        """관리자 설정 변경 - 저장 후 캐시를 비우고 새 스냅샷 반환"""
        if key not in LoyaltySettings.model_fields:
            raise ValidationError(f"Unknown setting key: {key}", {"key": key})

        # 저장 전에 병합된 값이 유효한지 먼저 확인
        merged = self.settings_repo.get_settings_map()
        merged[key] = value
        try:
            LoyaltySettings.from_map(merged)
        except pydantic.ValidationError as e:
            raise ValidationError(
                f"Invalid value for {key}: {value!r}", {"key": key, "errors": e.errors()}
            )

        self.settings_repo.upsert(key, value)
        self.invalidate()
        logger.info(f"Setting {key} updated to {value!r}")
        return self.get_snapshot()
