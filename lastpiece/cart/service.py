import logging
from datetime import datetime
from typing import Dict, Iterable, Optional, Tuple

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from lastpiece.cart.models import CartDB
from lastpiece.cart.pricing import compute_totals, price_items, resolve_coupon
from lastpiece.catalog.models import VISIBLE_STATUSES
from lastpiece.shared.database import Database
from lastpiece.shared.helpers import is_object_id, resolve_product_image_urls, serialize_doc
from lastpiece.shared.utils import (
    InsufficientStockException, ItemNotInCartException, NotFoundException, ValidationException,
)

logger = logging.getLogger(__name__)

CART_FIELDS = (
    "items", "subtotal", "tax", "shipping", "discount",
    "discount_percent", "total", "coupon_code", "last_updated",
)


async def load_products(db: Database, product_ids: Iterable[str]) -> Dict[str, dict]:
    oids = [ObjectId(pid) for pid in set(product_ids) if is_object_id(pid)]
    if not oids:
        return {}
    cursor = db.products.find({"_id": {"$in": oids}})
    return {str(p["_id"]): p for p in await cursor.to_list(length=None)}


def cart_out(cart: dict, products: Dict[str, dict]) -> dict:
    """Cart document with each line item's product summary attached."""
    out = serialize_doc(cart)
    items = []
    for item in cart.get("items", []):
        product = products.get(item["product_id"])
        items.append({
            **item,
            "product": resolve_product_image_urls(serialize_doc(product)) if product else None,
        })
    out["items"] = items
    return out


async def find_cart(db: Database, user_id: str) -> Optional[dict]:
    return await db.carts.find_one({"user_id": user_id})


async def get_or_create_cart(db: Database, user_id: str) -> dict:
    cart = await find_cart(db, user_id)
    if cart:
        return cart

    doc = CartDB(user_id=user_id).model_dump(by_alias=True, exclude={"id"})
    try:
        result = await db.carts.insert_one(doc)
    except DuplicateKeyError:
        # another request created it first
        return await find_cart(db, user_id)
    doc["_id"] = result.inserted_id
    return doc


async def recalculate(db: Database, cart: dict) -> Tuple[dict, Dict[str, dict]]:
    """Reprice every line item from its product's live price and refresh the totals.

    Lines whose product is gone or no longer on sale are dropped.
    """
    loaded = await load_products(db, (item["product_id"] for item in cart.get("items", [])))
    products = {pid: p for pid, p in loaded.items() if p.get("status") in VISIBLE_STATUSES}
    items, subtotal = price_items(cart.get("items", []), products)
    totals = compute_totals(subtotal, cart.get("shipping", 0), cart.get("discount_percent", 0))
    cart.update(items=items, last_updated=datetime.utcnow(), **totals)
    return cart, products


async def save_cart(db: Database, cart: dict) -> dict:
    await db.carts.update_one(
        {"_id": cart["_id"]},
        {"$set": {field: cart.get(field) for field in CART_FIELDS}},
    )
    return cart


async def _recalculate_and_save(db: Database, cart: dict) -> dict:
    cart, products = await recalculate(db, cart)
    await save_cart(db, cart)
    return cart_out(cart, products)


async def get_cart(db: Database, user_id: str) -> dict:
    cart = await get_or_create_cart(db, user_id)
    products = await load_products(db, (item["product_id"] for item in cart.get("items", [])))
    return cart_out(cart, products)


async def add_item(db: Database, user_id: str, product_id: Optional[str], quantity: int = 1) -> dict:
    if not product_id:
        raise ValidationException("Product ID is required")
    if not is_object_id(product_id):
        raise NotFoundException("Product not found")

    product = await db.products.find_one({
        "_id": ObjectId(product_id),
        "status": {"$in": VISIBLE_STATUSES},
    })
    if not product:
        raise NotFoundException("Product not found")
    if product.get("stock", 0) < quantity:
        raise InsufficientStockException()

    cart = await get_or_create_cart(db, user_id)
    items = cart.setdefault("items", [])
    existing = next((item for item in items if item["product_id"] == product_id), None)
    if existing:
        existing["quantity"] += quantity
    else:
        items.append({"product_id": product_id, "quantity": quantity, "price": float(product["price"])})

    logger.info("Product added to cart", extra={"user_id": user_id})
    return await _recalculate_and_save(db, cart)


async def remove_item(db: Database, user_id: str, product_id: Optional[str]) -> dict:
    cart = await find_cart(db, user_id)
    if not cart:
        raise NotFoundException("Cart not found")

    cart["items"] = [item for item in cart.get("items", []) if item["product_id"] != product_id]
    return await _recalculate_and_save(db, cart)


async def update_item_quantity(db: Database, user_id: str, product_id: Optional[str], quantity: Optional[int]) -> dict:
    if not product_id or not quantity:
        raise ValidationException("Product ID and quantity are required")

    cart = await find_cart(db, user_id)
    if not cart:
        raise NotFoundException("Cart not found")

    item = next((item for item in cart.get("items", []) if item["product_id"] == product_id), None)
    if item is None:
        raise ItemNotInCartException()

    # no ceiling against live stock here; stock is enforced at checkout
    item["quantity"] = quantity
    return await _recalculate_and_save(db, cart)


async def clear_cart(db: Database, user_id: str) -> dict:
    cart = await get_or_create_cart(db, user_id)
    cart.update(
        items=[],
        subtotal=0,
        tax=0,
        shipping=0,
        discount=0,
        discount_percent=0,
        total=0,
        coupon_code=None,
        last_updated=datetime.utcnow(),
    )
    await save_cart(db, cart)
    return cart_out(cart, {})


async def apply_coupon(db: Database, user_id: str, code: Optional[str]) -> dict:
    if not code:
        raise ValidationException("Coupon code is required")

    cart = await find_cart(db, user_id)
    if not cart:
        raise ValidationException("Cart not found")

    cart["coupon_code"] = code
    cart["discount_percent"] = resolve_coupon(code)
    return await _recalculate_and_save(db, cart)
