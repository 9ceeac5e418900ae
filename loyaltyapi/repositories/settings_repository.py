from typing import Any, Dict, List
from sqlalchemy.orm import Session

from loyaltyapi.models.settings import SettingEntry
from loyaltyapi.schemas.settings import LoyaltySettings, SettingEntryResponse
from loyaltyapi.repositories.base import BaseRepository


class SettingsRepository(BaseRepository[SettingEntry, SettingEntryResponse]):
    """전역 경제 파라미터 리포지토리 (key → JSON value)"""

    def __init__(self, db: Session):
        super().__init__(SettingEntry, SettingEntryResponse, db)

    def get_settings_map(self) -> Dict[str, Any]:
        """전체 설정을 key → value 맵으로 조회"""
        rows = self.db.query(self.model_class).all()
        return {row.key: row.value for row in rows}

    def get_value(self, key: str, default: Any = None) -> Any:
        row = self.db.get(self.model_class, key)
        return row.value if row is not None else default

    def upsert(self, key: str, value: Any, commit: bool = True) -> SettingEntryResponse:
        """설정 값 저장 (없으면 생성)"""
        row = self.db.get(self.model_class, key)
        if row is None:
            row = self.model_class(key=key, value=value)
            self.db.add(row)
        else:
            row.value = value

        try:
            self.db.flush()
            if commit:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return self._to_schema(row)

    def seed_defaults(
        self, defaults: LoyaltySettings, overwrite: bool = False
    ) -> List[str]:
        """기본 설정 행 생성 - 생성/갱신된 키 목록 반환"""
        existing = self.get_settings_map()
        written = []
        for key, value in defaults.to_map().items():
            if key in existing and not overwrite:
                continue
            self.upsert(key, value, commit=False)
            written.append(key)

        self.db.commit()
        return written
