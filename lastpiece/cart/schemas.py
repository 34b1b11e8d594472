from pydantic import Field
from typing import Optional, List
from datetime import datetime

from lastpiece.catalog.schemas import ProductSummary
from lastpiece.shared.utils import APIModel

class CartItemAdd(APIModel):
    product_id: Optional[str] = None
    quantity: int = Field(1, gt=0)

class CartItemUpdate(APIModel):
    product_id: Optional[str] = None
    quantity: Optional[int] = Field(None, gt=0)

class CartItemRemove(APIModel):
    product_id: Optional[str] = None

class CouponApply(APIModel):
    coupon_code: Optional[str] = None

class CartItemResponse(APIModel):
    product_id: str
    quantity: int
    price: float
    product: Optional[ProductSummary] = None

class CartResponse(APIModel):
    id: str
    user_id: str
    items: List[CartItemResponse]
    subtotal: float
    tax: float
    shipping: float
    discount: float
    total: float
    coupon_code: Optional[str] = None
    last_updated: datetime
