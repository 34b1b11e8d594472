from typing import Optional, List
from datetime import datetime

from lastpiece.catalog.schemas import ProductSummary
from lastpiece.shared.utils import APIModel

class WishlistItemAdd(APIModel):
    product_id: Optional[str] = None

class WishlistItemResponse(APIModel):
    product_id: str
    added_at: datetime
    product: Optional[ProductSummary] = None

class WishlistResponse(APIModel):
    id: str
    user_id: str
    items: List[WishlistItemResponse]
    updated_at: Optional[datetime] = None
