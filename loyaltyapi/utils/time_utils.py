"""
타임존 유틸리티

매장 영업일(IST 기준) 처리를 위한 유틸리티 함수들
체크인 / 룰렛의 "하루 1회" 판정은 UTC 가 아닌 영업일 기준입니다.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from loyaltyapi.config import settings

# 인도 표준시 (IST = UTC+5:30)
BUSINESS_TZ = timezone(timedelta(minutes=settings.BUSINESS_TIMEZONE_OFFSET_MINUTES))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_business_now() -> datetime:
    """현재 영업 시간대 시간을 반환합니다."""
    return datetime.now(BUSINESS_TZ)


def to_business_tz(dt: datetime) -> datetime:
    """UTC 또는 다른 타임존의 datetime 을 영업 시간대로 변환합니다."""
    if dt.tzinfo is None:
        # naive datetime 은 UTC 로 가정
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(BUSINESS_TZ)


def get_business_date(dt: Optional[datetime] = None) -> date:
    """영업일 (dt 가 없으면 오늘)"""
    if dt is None:
        return get_business_now().date()
    return to_business_tz(dt).date()


def expiry_from_now(days: int, now: Optional[datetime] = None) -> Optional[datetime]:
    """days 일 뒤 만료 시각 (0 이하면 만료 없음)"""
    if days <= 0:
        return None
    base = now or utc_now()
    return base + timedelta(days=days)
