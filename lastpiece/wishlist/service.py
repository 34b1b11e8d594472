import logging
from datetime import datetime
from typing import Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from lastpiece.cart.service import load_products
from lastpiece.shared.database import Database
from lastpiece.shared.helpers import resolve_product_image_urls, serialize_doc, to_object_id
from lastpiece.shared.utils import NotFoundException, ValidationException
from lastpiece.wishlist.models import WishlistDB

logger = logging.getLogger(__name__)


async def wishlist_out(db: Database, wishlist: dict) -> dict:
    products = await load_products(db, (item["product_id"] for item in wishlist.get("items", [])))
    out = serialize_doc(wishlist)
    out["items"] = [
        {
            **item,
            "product": resolve_product_image_urls(serialize_doc(products[item["product_id"]]))
            if item["product_id"] in products else None,
        }
        for item in wishlist.get("items", [])
    ]
    return out


async def get_or_create_wishlist(db: Database, user_id: str) -> dict:
    wishlist = await db.wishlists.find_one({"user_id": user_id})
    if wishlist:
        return wishlist

    doc = WishlistDB(user_id=user_id).model_dump(by_alias=True, exclude={"id"})
    try:
        result = await db.wishlists.insert_one(doc)
    except DuplicateKeyError:
        return await db.wishlists.find_one({"user_id": user_id})
    doc["_id"] = result.inserted_id
    return doc


async def get_wishlist(db: Database, user_id: str) -> dict:
    return await wishlist_out(db, await get_or_create_wishlist(db, user_id))


async def add_item(db: Database, user_id: str, product_id: Optional[str]) -> dict:
    if not product_id:
        raise ValidationException("Product ID is required")

    product_oid = to_object_id(product_id, "Product")
    if not await db.products.find_one({"_id": product_oid}, {"_id": 1}):
        raise NotFoundException("Product not found")

    wishlist = await get_or_create_wishlist(db, user_id)
    if any(item["product_id"] == product_id for item in wishlist.get("items", [])):
        raise ValidationException("Product already in wishlist")

    item = {"product_id": product_id, "added_at": datetime.utcnow()}
    wishlist = await db.wishlists.find_one_and_update(
        {"_id": wishlist["_id"]},
        {"$push": {"items": item}, "$set": {"updated_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    await db.products.update_one({"_id": product_oid}, {"$inc": {"wishlist_count": 1}})

    logger.info("Product added to wishlist", extra={"user_id": user_id})
    return await wishlist_out(db, wishlist)


async def remove_item(db: Database, user_id: str, product_id: Optional[str]) -> dict:
    wishlist = await db.wishlists.find_one({"user_id": user_id})
    if not wishlist:
        raise NotFoundException("Wishlist not found")
    if not any(item["product_id"] == product_id for item in wishlist.get("items", [])):
        raise NotFoundException("Item not in wishlist")

    wishlist = await db.wishlists.find_one_and_update(
        {"_id": wishlist["_id"]},
        {"$pull": {"items": {"product_id": product_id}}, "$set": {"updated_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    # wishlist_count never drops below zero
    await db.products.update_one(
        {"_id": to_object_id(product_id, "Product"), "wishlist_count": {"$gt": 0}},
        {"$inc": {"wishlist_count": -1}},
    )
    return await wishlist_out(db, wishlist)


async def clear_wishlist(db: Database, user_id: str) -> dict:
    wishlist = await db.wishlists.find_one_and_update(
        {"user_id": user_id},
        {"$set": {"items": [], "updated_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not wishlist:
        raise NotFoundException("Wishlist not found")
    return await wishlist_out(db, wishlist)
