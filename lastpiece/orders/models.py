from datetime import datetime
from typing import Optional, List, Literal
from pydantic import BaseModel, ConfigDict, Field

OrderStatus = Literal[
    "pending", "confirmed", "processing", "dispatched",
    "in_transit", "delivered", "cancelled", "returned",
]
PaymentMethod = Literal["stripe", "paypal", "bank_transfer", "cash_on_delivery", "card", "cod"]
PaymentStatus = Literal["pending", "completed", "failed", "refunded"]

# entering one of these gives the order's stock back to the catalog
RESTOCK_STATUSES = ("cancelled", "returned")

class OrderItemDB(BaseModel):
    product_id: str
    product_name: str
    sku: Optional[str] = None
    quantity: int
    price: float
    subtotal: float

class StatusEntryDB(BaseModel):
    status: OrderStatus
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    notes: Optional[str] = None

class AddressDB(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None

class ShippingDB(BaseModel):
    method: str = "standard"
    cost: float = 0
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None

class PaymentDB(BaseModel):
    method: PaymentMethod
    status: PaymentStatus = "pending"
    transaction_id: Optional[str] = None
    amount: float = 0
    currency: str = "USD"

class PricingDB(BaseModel):
    subtotal: float = 0
    tax: float = 0
    shipping: float = 0
    discount: float = 0
    coupon_code: Optional[str] = None
    total: float = 0

class CouponDB(BaseModel):
    code: str
    discount_amount: float = 0
    discount_percent: float = 0

class OrderDB(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    order_number: str
    user_id: str
    items: List[OrderItemDB]
    status: OrderStatus = "pending"
    status_timeline: List[StatusEntryDB] = []
    billing_address: AddressDB
    shipping_address: AddressDB
    shipping: ShippingDB = Field(default_factory=ShippingDB)
    payment: PaymentDB
    pricing: PricingDB
    coupon: Optional[CouponDB] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    created_by: Literal["customer", "admin"] = "customer"
    stock_released: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
