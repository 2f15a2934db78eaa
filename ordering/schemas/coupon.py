"""
Pydantic schemas for coupons
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Literal, Optional
from datetime import datetime
from decimal import Decimal


class CouponCreate(BaseModel):
    """Schema for creating a coupon"""
    code: str = Field(..., min_length=1, max_length=64)
    description: str = Field(..., min_length=1)
    discount_type: str = Field("percentage", description="percentage or fixed")
    discount_value: Decimal = Field(..., gt=0)
    min_order_value: Decimal = Field(Decimal("0"), ge=0)
    usage_limit: Optional[int] = Field(None, gt=0, description="NULL means unlimited")
    usage_per_user: int = Field(1, gt=0)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None


class CouponUpdate(BaseModel):
    """Schema for updating a coupon (all fields optional)"""
    description: Optional[str] = Field(None, min_length=1)
    discount_value: Optional[Decimal] = Field(None, gt=0)
    min_order_value: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, gt=0)
    usage_per_user: Optional[int] = Field(None, gt=0)
    valid_until: Optional[datetime] = None
    is_active: Optional[bool] = None


class CouponResponse(BaseModel):
    id: int
    code: str
    description: str
    discount_type: Literal["percentage", "fixed"]
    discount_value: Decimal
    min_order_value: Decimal
    usage_limit: Optional[int] = None
    usage_count: int
    usage_per_user: int
    valid_from: datetime
    valid_until: Optional[datetime] = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1)
    order_value: Optional[Decimal] = Field(None, ge=0)


class CouponSummary(BaseModel):
    code: str
    description: str
    discount_type: str
    discount_value: Decimal


class CouponValidationResult(BaseModel):
    """Boolean validity plus computed discount, or the reason it is invalid"""
    valid: bool
    discount: Decimal = Decimal("0.00")
    message: str
    error: Optional[str] = None
    coupon: Optional[CouponSummary] = None


class CouponRedemptionRecord(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    order_id: Optional[int] = None
    used_at: datetime


class CouponStatistics(BaseModel):
    code: str
    description: str
    total_uses: int
    limit: Optional[int] = None
    users: List[CouponRedemptionRecord]
