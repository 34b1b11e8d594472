from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

class CartItemDB(BaseModel):
    product_id: str
    quantity: int
    price: float

class CartDB(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    user_id: str
    items: List[CartItemDB] = []
    subtotal: float = 0
    tax: float = 0
    shipping: float = 0
    discount: float = 0
    discount_percent: float = 0
    total: float = 0
    coupon_code: Optional[str] = None
    last_updated: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(default_factory=datetime.utcnow)

