from fastapi import APIRouter, Depends, Query, status
from typing import Optional, List

from lastpiece.shared.auth import get_current_user, require_admin
from lastpiece.shared.database import Database, require_db
from lastpiece.shared.utils import SuccessResponse, PaginatedResponse

from lastpiece.reviews import service
from lastpiece.reviews.schemas import (
    ProductReviewsResponse, ReviewCreate, ReviewResponse, ReviewStatusUpdate,
)

router = APIRouter(prefix="/api/reviews", tags=["reviews"])

@router.get("/admin", response_model=PaginatedResponse[List[ReviewResponse]])
async def list_reviews(
    page: int = Query(1),
    limit: int = Query(10),
    status: Optional[str] = None,
    is_store_review: Optional[bool] = Query(None, alias="isStoreReview"),
    user: dict = Depends(require_admin),
    db: Database = Depends(require_db),
):
    reviews, pagination = await service.list_reviews(db, page, limit, status, is_store_review)
    return PaginatedResponse(data=reviews, pagination=pagination)

@router.get("/featured", response_model=SuccessResponse[List[ReviewResponse]])
async def featured_reviews(limit: int = Query(6), db: Database = Depends(require_db)):
    return SuccessResponse(data=await service.featured_reviews(db, limit))

@router.get("/product/{product_id}", response_model=ProductReviewsResponse)
async def product_reviews(
    product_id: str,
    page: int = Query(1),
    limit: int = Query(10),
    db: Database = Depends(require_db),
):
    reviews, stats, pagination = await service.product_reviews(db, product_id, page, limit)
    return ProductReviewsResponse(data=reviews, stats=stats, pagination=pagination)

@router.post("", response_model=SuccessResponse[ReviewResponse], status_code=status.HTTP_201_CREATED)
async def create_review(
    review: ReviewCreate,
    user: dict = Depends(get_current_user),
    db: Database = Depends(require_db),
):
    created = await service.create_review(db, user, review)
    return SuccessResponse(data=created, message="Review submitted successfully")

@router.put("/{review_id}/status", response_model=SuccessResponse[ReviewResponse])
async def update_review_status(
    review_id: str,
    body: ReviewStatusUpdate,
    user: dict = Depends(require_admin),
    db: Database = Depends(require_db),
):
    review = await service.set_review_status(db, review_id, body.status)
    return SuccessResponse(data=review, message="Review status updated")

@router.put("/{review_id}/featured", response_model=SuccessResponse[ReviewResponse])
async def toggle_featured(
    review_id: str,
    user: dict = Depends(require_admin),
    db: Database = Depends(require_db),
):
    review = await service.toggle_featured(db, review_id)
    state = "featured" if review["is_featured"] else "unfeatured"
    return SuccessResponse(data=review, message=f"Review {state} successfully")

@router.delete("/{review_id}", response_model=SuccessResponse[dict])
async def delete_review(
    review_id: str,
    user: dict = Depends(require_admin),
    db: Database = Depends(require_db),
):
    await service.delete_review(db, review_id)
    return SuccessResponse(message="Review deleted successfully")
