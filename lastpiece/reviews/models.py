from datetime import datetime
from typing import Optional, List, Literal
from pydantic import BaseModel, ConfigDict, Field

ReviewStatus = Literal["pending", "approved", "rejected"]

class ReviewDB(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    # None for store reviews shown on the homepage
    product_id: Optional[str] = None
    user_id: str
    order_id: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = None
    comment: str
    verified: bool = False
    helpful: int = 0
    unhelpful: int = 0
    status: ReviewStatus = "approved"
    images: List[str] = []
    is_featured: bool = False
    is_store_review: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
