from pydantic import field_validator
from typing import Optional, List
from datetime import datetime

from lastpiece.shared.security_config import sanitize_input
from lastpiece.shared.utils import APIModel
from lastpiece.orders.models import OrderStatus, PaymentMethod, PaymentStatus

class Address(APIModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None

class AddressIn(Address):
    @field_validator('first_name', 'last_name', 'street', 'city', 'state', 'country')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

class OrderCreate(APIModel):
    billing_address: Optional[AddressIn] = None
    shipping_address: Optional[AddressIn] = None
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None

    @field_validator('notes')
    def sanitize_notes(cls, v):
        return sanitize_input(v)

class OrderStatusUpdate(APIModel):
    status: Optional[OrderStatus] = None
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    payment_status: Optional[PaymentStatus] = None

class OrderItemResponse(APIModel):
    product_id: str
    product_name: str
    sku: Optional[str] = None
    quantity: int
    price: float
    subtotal: float

class StatusEntry(APIModel):
    status: str
    timestamp: datetime
    notes: Optional[str] = None

class Shipping(APIModel):
    method: Optional[str] = None
    cost: float = 0
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None

class Payment(APIModel):
    method: str
    status: str
    transaction_id: Optional[str] = None
    amount: float = 0
    currency: str = "USD"

class Pricing(APIModel):
    subtotal: float
    tax: float
    shipping: float
    discount: float
    coupon_code: Optional[str] = None
    total: float

class Coupon(APIModel):
    code: str
    discount_amount: float = 0
    discount_percent: float = 0

class OrderResponse(APIModel):
    id: str
    order_number: str
    user_id: str
    items: List[OrderItemResponse]
    status: str
    status_timeline: List[StatusEntry]
    billing_address: Address
    shipping_address: Address
    shipping: Shipping
    payment: Payment
    pricing: Pricing
    coupon: Optional[Coupon] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    created_by: str = "customer"
    created_at: datetime
    updated_at: Optional[datetime] = None
