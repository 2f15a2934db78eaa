"""
Pydantic schemas for order request/response validation
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional, Union
from datetime import datetime
from decimal import Decimal


class DeliveryAddress(BaseModel):
    """Structured delivery address"""
    street: str
    number: str
    complement: Optional[str] = None
    neighborhood: str
    city: str
    state: str

    def format(self) -> str:
        line = f"{self.street}, {self.number}"
        if self.complement:
            line += f" - {self.complement}"
        return f"{line}\n{self.neighborhood}, {self.city}/{self.state}"


class OrderItemCreate(BaseModel):
    """Cart line"""
    plate_id: int = Field(..., gt=0, description="Menu plate ID")
    quantity: int = Field(1, gt=0, description="Quantity to order")
    notes: Optional[str] = Field(None, max_length=500, description="Line notes")


class OrderCreate(BaseModel):
    """Schema for creating a new order"""
    items: List[OrderItemCreate] = Field(default_factory=list)
    delivery_type: str = Field("delivery", description="delivery or pickup")
    delivery_address: Optional[Union[str, DeliveryAddress]] = None
    delivery_phone: Optional[str] = Field(None, max_length=32)
    delivery_notes: Optional[str] = None
    coupon_code: Optional[str] = Field(None, max_length=64)
    payment_method: Optional[str] = Field(None, description="cash, card or pix (default cash)")


class OrderStatusUpdate(BaseModel):
    """Schema for updating order status"""
    status: str = Field(..., description="Target fulfillment status")


class PixPaymentInfo(BaseModel):
    code: str
    qr_code: str
    expires_at: datetime
    instructions: str


class OrderCreatedResponse(BaseModel):
    """Schema for order creation result"""
    order_id: int
    order_number: str
    total: Decimal
    estimated_time: int
    loyalty_points_earned: int
    payment_method: str
    payment_status: str
    instructions: Optional[str] = None
    pix: Optional[PixPaymentInfo] = None
    message: str = "Order created successfully"


class OrderItemResponse(BaseModel):
    id: int
    plate_id: int
    plate_name: str
    unit_price: Decimal
    quantity: int
    subtotal: Decimal
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CustomerInfo(BaseModel):
    id: int
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    """Schema for order response"""
    id: int
    user_id: int
    order_number: str
    subtotal: Decimal
    delivery_fee: Decimal
    discount: Decimal
    total: Decimal
    status: str
    delivery_type: str
    delivery_address: Optional[str] = None
    delivery_phone: Optional[str] = None
    delivery_notes: Optional[str] = None
    estimated_time: Optional[int] = None
    loyalty_points_earned: int
    coupon_code: Optional[str] = None
    payment_method: str
    payment_status: str
    pix_code: Optional[str] = None
    pix_expires_at: Optional[datetime] = None
    pix_expired: Optional[bool] = None
    paid_at: Optional[datetime] = None
    confirmed_by: Optional[int] = None
    confirmed_at: Optional[datetime] = None
    payment_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse] = []
    user: Optional[CustomerInfo] = None

    model_config = ConfigDict(from_attributes=True)


class OrderActionResponse(BaseModel):
    """Acknowledgement for status and payment actions"""
    message: str
    order_number: str
    status: str
    payment_status: str


class PaymentConfirm(BaseModel):
    notes: Optional[str] = None


class PaymentReject(BaseModel):
    reason: Optional[str] = None


class PaymentConfirmationRecord(BaseModel):
    id: int
    order_number: str
    total: Decimal
    payment_method: str
    payment_status: str
    confirmed_at: Optional[datetime] = None
    payment_notes: Optional[str] = None
    payment_manually_confirmed: bool
    user_name: Optional[str] = None
    confirmed_by_name: Optional[str] = None
