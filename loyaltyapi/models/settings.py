from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from loyaltyapi.models.base import BaseModel


class SettingEntry(BaseModel):
    """전역 경제 파라미터 key/value 테이블 (값은 JSON, null 허용)"""

    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
