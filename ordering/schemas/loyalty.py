"""
Pydantic schemas for loyalty points
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from decimal import Decimal


class LoyaltyAccountResponse(BaseModel):
    user_id: int
    balance: int
    total_earned: int
    total_used: int

    model_config = ConfigDict(from_attributes=True)


class LoyaltyAccountListItem(LoyaltyAccountResponse):
    user_name: Optional[str] = None
    user_email: Optional[str] = None


class PointsRedeemRequest(BaseModel):
    points: int = Field(..., description="Points to convert into a discount")


class PointsRedeemResponse(BaseModel):
    message: str = "Points redeemed successfully"
    points_used: int
    discount_value: Decimal
    new_balance: int


class PointsAdjustRequest(BaseModel):
    user_id: int = Field(..., gt=0)
    points: int
    reason: Optional[str] = None


class PointsAdjustResponse(BaseModel):
    message: str
    reason: str
    new_balance: int
