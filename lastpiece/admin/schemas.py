from pydantic import EmailStr, Field, field_validator
from typing import Optional, List

from lastpiece.auth.models import Role, UserStatus
from lastpiece.orders.schemas import OrderResponse
from lastpiece.shared.security_config import sanitize_input
from lastpiece.shared.utils import APIModel, settings

# --- Requests ---

class UserAdminUpdate(APIModel):
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[Role] = None
    status: Optional[UserStatus] = None

    @field_validator('first_name', 'last_name', 'phone')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

class RoleUpdate(APIModel):
    role: Role

class SystemSettings(APIModel):
    site_name: str = "Last Piece"
    currency: str = settings.CURRENCY
    tax_rate: float = Field(settings.TAX_RATE, ge=0, le=1)
    free_shipping_threshold: float = Field(100, ge=0)
    default_shipping_cost: float = Field(10, ge=0)
    allow_guest_checkout: bool = True
    require_email_verification: bool = settings.REQUIRE_EMAIL_VERIFICATION
    max_order_items: int = Field(10, ge=1)

class SystemSettingsUpdate(APIModel):
    site_name: Optional[str] = None
    currency: Optional[str] = None
    tax_rate: Optional[float] = Field(None, ge=0, le=1)
    free_shipping_threshold: Optional[float] = Field(None, ge=0)
    default_shipping_cost: Optional[float] = Field(None, ge=0)
    allow_guest_checkout: Optional[bool] = None
    require_email_verification: Optional[bool] = None
    max_order_items: Optional[int] = Field(None, ge=1)

# --- Responses ---

class CountBucket(APIModel):
    key: Optional[str] = None
    count: int

class CustomerSummary(APIModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None

class AdminOrderResponse(OrderResponse):
    customer: Optional[CustomerSummary] = None

class DashboardOverview(APIModel):
    total_users: int
    total_orders: int
    total_products: int
    total_revenue: float

class DashboardStats(APIModel):
    stats: DashboardOverview
    recent_orders: List[AdminOrderResponse]
    orders_by_status: List[CountBucket]

class RevenuePoint(APIModel):
    year: int
    month: int
    day: Optional[int] = None
    revenue: float
    orders: int

class SuperAdminOverview(DashboardOverview):
    pending_revenue: float
    new_users_this_month: int
    new_orders_this_month: int
    low_stock_products: int

class SuperAdminStats(APIModel):
    overview: SuperAdminOverview
    users_by_role: List[CountBucket]
    users_by_status: List[CountBucket]
    orders_by_status: List[CountBucket]
    products_by_status: List[CountBucket]
    monthly_revenue: List[RevenuePoint]

class FinancialSummary(APIModel):
    total_revenue: float = 0
    subtotal: float = 0
    total_shipping: float = 0
    total_discount: float = 0
    completed_orders: int = 0
    cancelled_loss: float = 0
    cancelled_count: int = 0

class PaymentMethodRevenue(APIModel):
    method: Optional[str] = None
    total: float
    count: int

class TopProduct(APIModel):
    product_id: str
    name: Optional[str] = None
    total_quantity: int
    total_revenue: float

class FinancialReport(APIModel):
    summary: FinancialSummary
    revenue_by_payment_method: List[PaymentMethodRevenue]
    daily_revenue: List[RevenuePoint]
    top_products: List[TopProduct]
