from pydantic import BaseModel, Field
from typing import Optional


class CheckinResponse(BaseModel):
    """매장 체크인 결과"""

    checkin_id: int = Field(..., description="체크인 ID")
    customer_id: int = Field(..., description="고객 ID")
    branch_id: int = Field(..., description="매장 ID")
    checkin_date: str = Field(..., description="영업일 (YYYY-MM-DD)")
    coins_earned: int = Field(..., description="지급 코인")

    class Config:
        from_attributes = True


class SpinResponse(BaseModel):
    """일일 룰렛 결과"""

    spin_id: int = Field(..., description="룰렛 결과 ID")
    spin_date: str = Field(..., description="영업일 (YYYY-MM-DD)")
    coins_won: int = Field(..., description="당첨 코인")
    expires_at: Optional[str] = Field(None, description="코인 만료 시간")

    class Config:
        from_attributes = True


class ReviewResponse(BaseModel):
    """구매 리뷰 결과"""

    review_id: int = Field(..., description="리뷰 ID")
    purchase_id: int = Field(..., description="구매 ID")
    rating: int = Field(..., ge=1, le=5, description="평점")
    coins_earned: int = Field(..., description="지급 코인")

    class Config:
        from_attributes = True
