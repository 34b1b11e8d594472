from pydantic import Field, field_validator
from typing import Optional, List
from datetime import datetime

from lastpiece.shared.security_config import sanitize_input
from lastpiece.shared.utils import APIModel, PaginatedResponse
from lastpiece.reviews.models import ReviewStatus

class ReviewCreate(APIModel):
    product_id: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    title: Optional[str] = Field(None, max_length=200)
    comment: Optional[str] = None
    is_store_review: bool = False

    @field_validator('title', 'comment')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

class ReviewStatusUpdate(APIModel):
    status: ReviewStatus

class ReviewAuthor(APIModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None

class ReviewedProduct(APIModel):
    id: str
    name: str
    slug: Optional[str] = None
    thumbnail: Optional[str] = None

class ReviewResponse(APIModel):
    id: str
    product_id: Optional[str] = None
    user_id: str
    user: Optional[ReviewAuthor] = None
    product: Optional[ReviewedProduct] = None
    rating: int
    title: Optional[str] = None
    comment: Optional[str] = None
    verified: bool = False
    helpful: int = 0
    unhelpful: int = 0
    status: str
    images: List[str] = []
    is_featured: bool = False
    is_store_review: bool = False
    created_at: datetime

class RatingBucket(APIModel):
    rating: int
    count: int

class ProductReviewsResponse(PaginatedResponse[List[ReviewResponse]]):
    stats: List[RatingBucket] = []
