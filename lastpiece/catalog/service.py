import logging
import re
from datetime import datetime
from typing import Optional

from pymongo import ReturnDocument

from lastpiece.catalog.models import CategoryDB, ProductDB, VISIBLE_STATUSES
from lastpiece.catalog.schemas import CategoryCreate, CategoryUpdate, ProductCreate, ProductUpdate
from lastpiece.shared.database import Database
from lastpiece.shared.helpers import (
    calculate_pagination, generate_sku, generate_slug, is_object_id,
    pagination_meta, resolve_product_image_urls, serialize_doc, to_object_id,
)
from lastpiece.shared.utils import ConflictException, NotFoundException, ValidationException

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "createdAt": "created_at",
    "price": "price",
    "name": "name",
    "rating": "rating.average",
    "viewCount": "view_count",
}


def parse_sort(sort: Optional[str]):
    """'-createdAt' style sort strings to a pymongo sort list."""
    if not sort:
        sort = "-createdAt"
    direction = -1 if sort.startswith("-") else 1
    field = SORT_FIELDS.get(sort.lstrip("-+"), "created_at")
    return [(field, direction)]


def product_out(product: dict) -> dict:
    return resolve_product_image_urls(serialize_doc(product))


async def resolve_category_filter(db: Database, category: str) -> Optional[str]:
    """Category may arrive as an id or as a name/slug."""
    if is_object_id(category):
        return category
    doc = await db.categories.find_one({
        "$or": [
            {"name": {"$regex": f"^{re.escape(category)}$", "$options": "i"}},
            {"slug": generate_slug(category)},
        ]
    })
    return str(doc["_id"]) if doc else None


async def list_products(
    db: Database,
    page=1,
    limit=10,
    category: Optional[str] = None,
    search: Optional[str] = None,
    sort: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
):
    paging = calculate_pagination(page, limit)
    query = {"status": {"$in": VISIBLE_STATUSES}}

    if category:
        category_id = await resolve_category_filter(db, category)
        if category_id is None:
            return [], pagination_meta(0, paging["page"], paging["limit"])
        query["category"] = category_id

    if search:
        pattern = re.escape(search)
        query["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]

    price_query = {}
    if min_price is not None:
        price_query["$gte"] = float(min_price)
    if max_price is not None:
        price_query["$lte"] = float(max_price)
    if price_query:
        query["price"] = price_query

    total = await db.products.count_documents(query)
    cursor = db.products.find(query, sort=parse_sort(sort), skip=paging["skip"], limit=paging["limit"])
    products = [product_out(p) for p in await cursor.to_list(length=paging["limit"])]
    return products, pagination_meta(total, paging["page"], paging["limit"])


async def search_products(db: Database, query: Optional[str], limit=10):
    if not query:
        return []
    pattern = re.escape(query)
    cursor = db.products.find(
        {
            "$or": [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"description": {"$regex": pattern, "$options": "i"}},
                {"brand": {"$regex": pattern, "$options": "i"}},
            ],
            "status": {"$in": VISIBLE_STATUSES},
        },
        limit=calculate_pagination(1, limit)["limit"],
    )
    return [product_out(p) for p in await cursor.to_list(length=None)]


async def get_product(db: Database, slug_or_id: str) -> dict:
    if is_object_id(slug_or_id):
        query = {"_id": to_object_id(slug_or_id)}
    else:
        query = {"slug": slug_or_id}
    query["status"] = {"$in": VISIBLE_STATUSES}

    product = await db.products.find_one_and_update(
        query,
        {"$inc": {"view_count": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if not product:
        raise NotFoundException("Product not found")
    return product_out(product)


async def related_products(db: Database, product_id: str, limit=4):
    product = await db.products.find_one({"_id": to_object_id(product_id, "Product")})
    if not product:
        raise NotFoundException("Product not found")

    cursor = db.products.find(
        {
            "$or": [{"category": product["category"]}, {"tags": {"$in": product.get("tags", [])}}],
            "_id": {"$ne": product["_id"]},
            "status": {"$in": VISIBLE_STATUSES},
        },
        limit=calculate_pagination(1, limit)["limit"],
    )
    return [product_out(p) for p in await cursor.to_list(length=None)]


async def create_product(db: Database, body: ProductCreate, user_id: str) -> dict:
    if not body.name or not body.description or body.price is None or not body.category:
        raise ValidationException("Missing required fields")

    if await db.products.find_one({"name": body.name}):
        raise ConflictException("Product with this name already exists")

    product = ProductDB(
        name=body.name,
        slug=generate_slug(body.name),
        sku=generate_sku(body.name),
        created_by=user_id,
        **body.model_dump(exclude={"name"}),
    )
    doc = product.model_dump(by_alias=True, exclude={"id"})
    result = await db.products.insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Product created", extra={"user_id": user_id})
    return product_out(doc)


async def update_product(db: Database, product_id: str, body: ProductUpdate, user_id: str) -> dict:
    update_data = body.model_dump(exclude_unset=True)
    if "name" in update_data and update_data["name"]:
        update_data["slug"] = generate_slug(update_data["name"])
    update_data["updated_by"] = user_id
    update_data["updated_at"] = datetime.utcnow()

    product = await db.products.find_one_and_update(
        {"_id": to_object_id(product_id, "Product")},
        {"$set": update_data},
        return_document=ReturnDocument.AFTER,
    )
    if not product:
        raise NotFoundException("Product not found")
    return product_out(product)


async def delete_product(db: Database, product_id: str):
    result = await db.products.update_one(
        {"_id": to_object_id(product_id, "Product")},
        {"$set": {"status": "discontinued", "updated_at": datetime.utcnow()}},
    )
    if result.matched_count == 0:
        raise NotFoundException("Product not found")


# --- Categories ---

async def list_categories(db: Database):
    cursor = db.categories.find({"is_active": True}, sort=[("order", 1)])
    return [serialize_doc(c) for c in await cursor.to_list(length=None)]


async def get_category(db: Database, slug: str) -> dict:
    category = await db.categories.find_one({"slug": slug, "is_active": True})
    if not category:
        raise NotFoundException("Category not found")
    return serialize_doc(category)


async def create_category(db: Database, body: CategoryCreate) -> dict:
    if not body.name:
        raise ValidationException("Category name is required")

    slug = generate_slug(body.name)
    if await db.categories.find_one({"slug": slug}):
        raise ConflictException("Category with this name already exists")

    category = CategoryDB(slug=slug, **body.model_dump())
    doc = category.model_dump(by_alias=True, exclude={"id"})
    result = await db.categories.insert_one(doc)
    doc["_id"] = result.inserted_id
    return serialize_doc(doc)


async def update_category(db: Database, category_id: str, body: CategoryUpdate) -> dict:
    update_data = body.model_dump(exclude_unset=True)
    if update_data.get("name"):
        update_data["slug"] = generate_slug(update_data["name"])
    update_data["updated_at"] = datetime.utcnow()

    category = await db.categories.find_one_and_update(
        {"_id": to_object_id(category_id, "Category")},
        {"$set": update_data},
        return_document=ReturnDocument.AFTER,
    )
    if not category:
        raise NotFoundException("Category not found")
    return serialize_doc(category)


async def delete_category(db: Database, category_id: str):
    result = await db.categories.update_one(
        {"_id": to_object_id(category_id, "Category")},
        {"$set": {"is_active": False, "updated_at": datetime.utcnow()}},
    )
    if result.matched_count == 0:
        raise NotFoundException("Category not found")
