import logging
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from pymongo import ReturnDocument

from lastpiece.cart.service import load_products
from lastpiece.reviews.models import ReviewDB
from lastpiece.reviews.schemas import ReviewCreate
from lastpiece.shared.database import Database
from lastpiece.shared.helpers import (
    calculate_pagination, is_object_id, pagination_meta, resolve_image_url, serialize_doc, to_object_id,
)
from lastpiece.shared.utils import NotFoundException, ValidationException

logger = logging.getLogger(__name__)

PUBLIC_AUTHOR_FIELDS = {"first_name": 1, "last_name": 1}
ADMIN_AUTHOR_FIELDS = {"first_name": 1, "last_name": 1, "email": 1}


async def _attach_authors(db: Database, reviews: List[dict], fields: dict) -> None:
    user_ids = {ObjectId(r["user_id"]) for r in reviews if is_object_id(r.get("user_id"))}
    if not user_ids:
        return
    cursor = db.users.find({"_id": {"$in": list(user_ids)}}, fields)
    users = {str(u["_id"]): serialize_doc(u) for u in await cursor.to_list(length=None)}
    for review in reviews:
        review["user"] = users.get(review["user_id"])


async def _attach_products(db: Database, reviews: List[dict]) -> None:
    products = await load_products(db, (r["product_id"] for r in reviews if r.get("product_id")))
    for review in reviews:
        product = products.get(review.get("product_id"))
        if product:
            review["product"] = {
                "id": str(product["_id"]),
                "name": product["name"],
                "slug": product.get("slug"),
                "thumbnail": resolve_image_url(product.get("thumbnail")),
            }


async def _find(db: Database, query: dict, skip: int = 0, limit: int = 10) -> List[dict]:
    cursor = db.reviews.find(query, sort=[("created_at", -1)], skip=skip, limit=limit)
    return [serialize_doc(doc) for doc in await cursor.to_list(length=limit)]


async def recompute_product_rating(db: Database, product_id: Optional[str]) -> None:
    """Average of the approved product reviews, to one decimal; zero when none remain."""
    if not product_id or not is_object_id(product_id):
        return
    cursor = db.reviews.find(
        {"product_id": product_id, "status": "approved", "is_store_review": False},
        {"rating": 1},
    )
    ratings = [r["rating"] for r in await cursor.to_list(length=None)]
    average = round(sum(ratings) / len(ratings), 1) if ratings else 0
    await db.products.update_one(
        {"_id": ObjectId(product_id)},
        {"$set": {"rating.average": average, "rating.count": len(ratings)}},
    )


# --- Queries ---

async def list_reviews(db: Database, page=1, limit=10, status: Optional[str] = None,
                       is_store_review: Optional[bool] = None):
    paging = calculate_pagination(page, limit)
    query = {}
    if status:
        query["status"] = status
    if is_store_review is not None:
        query["is_store_review"] = is_store_review

    reviews = await _find(db, query, paging["skip"], paging["limit"])
    await _attach_authors(db, reviews, ADMIN_AUTHOR_FIELDS)
    await _attach_products(db, reviews)
    total = await db.reviews.count_documents(query)
    return reviews, pagination_meta(total, paging["page"], paging["limit"])


async def featured_reviews(db: Database, limit=6) -> List[dict]:
    paging = calculate_pagination(1, limit)
    reviews = await _find(
        db,
        {"status": "approved", "$or": [{"is_featured": True}, {"is_store_review": True}]},
        limit=paging["limit"],
    )
    await _attach_authors(db, reviews, PUBLIC_AUTHOR_FIELDS)
    return reviews


async def rating_histogram(db: Database, product_id: str) -> List[dict]:
    pipeline = [
        {"$match": {"product_id": product_id, "status": "approved", "is_store_review": False}},
        {"$group": {"_id": "$rating", "count": {"$sum": 1}}},
    ]
    buckets = await db.reviews.aggregate(pipeline).to_list(length=None)
    return sorted(
        ({"rating": b["_id"], "count": b["count"]} for b in buckets),
        key=lambda b: b["rating"],
        reverse=True,
    )


async def product_reviews(db: Database, product_id: str, page=1, limit=10):
    paging = calculate_pagination(page, limit)
    query = {"product_id": product_id, "status": "approved", "is_store_review": False}

    reviews = await _find(db, query, paging["skip"], paging["limit"])
    await _attach_authors(db, reviews, PUBLIC_AUTHOR_FIELDS)
    total = await db.reviews.count_documents(query)
    stats = await rating_histogram(db, product_id)
    return reviews, stats, pagination_meta(total, paging["page"], paging["limit"])


# --- Mutations ---

async def _has_delivered_order(db: Database, user_id: str, product_id: str) -> bool:
    order = await db.orders.find_one(
        {"user_id": user_id, "items.product_id": product_id, "status": "delivered"},
        {"_id": 1},
    )
    return order is not None


async def create_review(db: Database, user: dict, body: ReviewCreate) -> dict:
    if not body.rating or not body.comment:
        raise ValidationException("Rating and comment are required")

    product_id = None if body.is_store_review else body.product_id
    if product_id:
        if not await db.products.find_one({"_id": to_object_id(product_id, "Product")}, {"_id": 1}):
            raise NotFoundException("Product not found")
        existing = await db.reviews.find_one(
            {"user_id": user["id"], "product_id": product_id, "is_store_review": False},
            {"_id": 1},
        )
        if existing:
            raise ValidationException("You have already reviewed this product")

    review = ReviewDB(
        product_id=product_id,
        user_id=user["id"],
        rating=body.rating,
        title=body.title,
        comment=body.comment,
        verified=await _has_delivered_order(db, user["id"], product_id) if product_id else False,
        is_store_review=body.is_store_review,
    )
    doc = review.model_dump(by_alias=True, exclude={"id"})
    result = await db.reviews.insert_one(doc)
    doc["_id"] = result.inserted_id

    await recompute_product_rating(db, product_id)
    logger.info("Review submitted", extra={"user_id": user["id"]})

    out = serialize_doc(doc)
    out["user"] = {"id": user["id"], "first_name": user.get("first_name"), "last_name": user.get("last_name")}
    return out


async def set_review_status(db: Database, review_id: str, status: str) -> dict:
    review = await db.reviews.find_one_and_update(
        {"_id": to_object_id(review_id, "Review")},
        {"$set": {"status": status, "updated_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not review:
        raise NotFoundException("Review not found")

    if not review.get("is_store_review"):
        await recompute_product_rating(db, review.get("product_id"))
    return serialize_doc(review)


async def toggle_featured(db: Database, review_id: str) -> dict:
    review_oid = to_object_id(review_id, "Review")
    review = await db.reviews.find_one({"_id": review_oid})
    if not review:
        raise NotFoundException("Review not found")

    review["is_featured"] = not review.get("is_featured", False)
    await db.reviews.update_one(
        {"_id": review_oid},
        {"$set": {"is_featured": review["is_featured"], "updated_at": datetime.utcnow()}},
    )
    return serialize_doc(review)


async def delete_review(db: Database, review_id: str) -> None:
    review = await db.reviews.find_one_and_delete({"_id": to_object_id(review_id, "Review")})
    if not review:
        raise NotFoundException("Review not found")

    if not review.get("is_store_review"):
        await recompute_product_rating(db, review.get("product_id"))
