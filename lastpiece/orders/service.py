"""Checkout and order lifecycle.

Checkout touches several documents (product stock, the order, the cart and
the customer's stats) without a multi-document transaction, so each write
that can fail after stock has been taken undoes the earlier ones before
the error propagates.
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from lastpiece.cart import service as cart_service
from lastpiece.cart.pricing import to_money
from lastpiece.orders.models import OrderDB, RESTOCK_STATUSES
from lastpiece.orders.schemas import OrderCreate, OrderStatusUpdate
from lastpiece.shared.database import Database
from lastpiece.shared.email import Mailer
from lastpiece.shared.helpers import (
    calculate_pagination, generate_order_number, pagination_meta, serialize_doc, to_object_id,
)
from lastpiece.shared.utils import (
    InsufficientStockException, InvalidStateException, NotFoundException, ValidationException,
)

logger = logging.getLogger(__name__)


# --- Inventory ---

async def reserve_stock(db: Database, items: List[dict]) -> None:
    """Take each item's quantity out of stock, all or nothing."""
    reserved = []
    try:
        for item in items:
            result = await db.products.update_one(
                {"_id": to_object_id(item["product_id"], "Product"), "stock": {"$gte": item["quantity"]}},
                {"$inc": {"stock": -item["quantity"]}},
            )
            if result.modified_count == 0:
                raise InsufficientStockException(f"Insufficient stock for {item['product_name']}")
            reserved.append(item)
    except (InsufficientStockException, PyMongoError):
        await release_stock(db, reserved)
        raise


async def release_stock(db: Database, items: Iterable[dict]) -> None:
    for item in items:
        await db.products.update_one(
            {"_id": to_object_id(item["product_id"], "Product")},
            {"$inc": {"stock": item["quantity"]}},
        )


async def _restock_once(db: Database, order: dict) -> None:
    # the stock_released flag makes repeated cancel/return updates restock only once
    claimed = await db.orders.update_one(
        {"_id": order["_id"], "stock_released": {"$ne": True}},
        {"$set": {"stock_released": True}},
    )
    if claimed.modified_count:
        await release_stock(db, order["items"])
        order["stock_released"] = True
        logger.info("Stock released for order %s", order["order_number"])


async def _reserve_again(db: Database, order: dict) -> None:
    """Take stock back for an order leaving cancelled/returned."""
    claimed = await db.orders.update_one(
        {"_id": order["_id"], "stock_released": True},
        {"$set": {"stock_released": False}},
    )
    if not claimed.modified_count:
        return
    try:
        await reserve_stock(db, order["items"])
    except (InsufficientStockException, PyMongoError):
        await db.orders.update_one({"_id": order["_id"]}, {"$set": {"stock_released": True}})
        raise
    logger.info("Stock reserved again for order %s", order["order_number"])


# --- Checkout ---

def _snapshot_items(cart_items: List[dict], products: dict) -> List[dict]:
    items = []
    for item in cart_items:
        product = products[item["product_id"]]
        items.append({
            "product_id": item["product_id"],
            "product_name": product["name"],
            "sku": product.get("sku"),
            "quantity": item["quantity"],
            "price": item["price"],
            "subtotal": float(to_money(item["price"]) * item["quantity"]),
        })
    return items


async def _update_user_stats(db: Database, user_id: str, total: float) -> None:
    user_oid = to_object_id(user_id, "User")
    try:
        user = await db.users.find_one_and_update(
            {"_id": user_oid},
            {"$inc": {"metadata.total_orders": 1, "metadata.total_spent": total}},
            return_document=ReturnDocument.AFTER,
        )
        metadata = (user or {}).get("metadata") or {}
        if metadata.get("total_orders"):
            await db.users.update_one(
                {"_id": user_oid},
                {"$set": {"metadata.average_order_value": round(metadata["total_spent"] / metadata["total_orders"], 2)}},
            )
    except PyMongoError:
        logger.exception("Failed to update order stats for user %s", user_id)


async def create_order(db: Database, mailer: Mailer, user: dict, body: OrderCreate) -> dict:
    if not body.billing_address or not body.shipping_address or not body.payment_method:
        raise ValidationException("Missing required fields")

    user_id = user["id"]
    cart = await cart_service.find_cart(db, user_id)
    if not cart or not cart.get("items"):
        raise ValidationException("Cart is empty")

    # price the order from live product data, exactly as the cart does
    cart, products = await cart_service.recalculate(db, cart)
    if not cart["items"]:
        raise ValidationException("Cart is empty")

    items = _snapshot_items(cart["items"], products)
    coupon = None
    if cart.get("coupon_code"):
        coupon = {
            "code": cart["coupon_code"],
            "discount_amount": cart["discount"],
            "discount_percent": cart.get("discount_percent", 0),
        }

    order = OrderDB(
        order_number=generate_order_number(),
        user_id=user_id,
        items=items,
        status_timeline=[{"status": "pending", "notes": "Order created"}],
        billing_address={**body.billing_address.model_dump(), "email": user["email"]},
        shipping_address=body.shipping_address.model_dump(),
        shipping={"method": "standard", "cost": cart["shipping"]},
        payment={"method": body.payment_method, "amount": cart["total"]},
        pricing={
            "subtotal": cart["subtotal"],
            "tax": cart["tax"],
            "shipping": cart["shipping"],
            "discount": cart["discount"],
            "coupon_code": cart.get("coupon_code"),
            "total": cart["total"],
        },
        coupon=coupon,
        notes=body.notes,
    )
    doc = order.model_dump(by_alias=True, exclude={"id"})

    await reserve_stock(db, items)

    try:
        result = await db.orders.insert_one(doc)
    except PyMongoError:
        logger.exception("Order insert failed, releasing stock")
        await release_stock(db, items)
        raise
    doc["_id"] = result.inserted_id

    try:
        await cart_service.clear_cart(db, user_id)
    except PyMongoError:
        logger.exception("Cart clear failed, rolling back order %s", doc["order_number"])
        await db.orders.delete_one({"_id": doc["_id"]})
        await release_stock(db, items)
        raise

    logger.info("Order %s created", doc["order_number"], extra={"user_id": user_id})

    await mailer.send_order_confirmation(user["email"], doc)
    await _update_user_stats(db, user_id, doc["pricing"]["total"])

    return serialize_doc(doc)


# --- Queries ---

async def list_orders(db: Database, user_id: str, page=1, limit=10, status: Optional[str] = None):
    paging = calculate_pagination(page, limit)
    query = {"user_id": user_id}
    if status:
        query["status"] = status

    cursor = db.orders.find(
        query,
        sort=[("created_at", -1)],
        skip=paging["skip"],
        limit=paging["limit"],
    )
    orders = [serialize_doc(doc) for doc in await cursor.to_list(length=paging["limit"])]
    total = await db.orders.count_documents(query)
    return orders, pagination_meta(total, paging["page"], paging["limit"])


async def get_order(db: Database, user_id: str, order_id: str) -> dict:
    order = await db.orders.find_one({"_id": to_object_id(order_id, "Order"), "user_id": user_id})
    if not order:
        raise NotFoundException("Order not found")
    return serialize_doc(order)


# --- Status changes ---

async def _notify(db: Database, mailer: Mailer, order: dict, status: str) -> None:
    user = await db.users.find_one({"_id": to_object_id(order["user_id"], "User")}, {"email": 1})
    if user and user.get("email"):
        await mailer.send_order_status_update(user["email"], order, status)


async def update_order_status(db: Database, mailer: Mailer, order_id: str, body: OrderStatusUpdate) -> dict:
    """Set any status from any other status; every call adds one timeline entry.

    Moving into cancelled/returned gives the stock back once; moving a
    restocked order back to a live status takes it again, and fails with
    InsufficientStock (leaving the order untouched) when it is gone.
    """
    if not body.status:
        raise ValidationException("Status is required")

    order_oid = to_object_id(order_id, "Order")
    current = await db.orders.find_one({"_id": order_oid})
    if not current:
        raise NotFoundException("Order not found")
    if body.status not in RESTOCK_STATUSES and current.get("stock_released"):
        await _reserve_again(db, current)

    now = datetime.utcnow()
    changes = {"status": body.status, "updated_at": now}
    if body.tracking_number:
        changes["shipping.tracking_number"] = body.tracking_number
    if body.carrier:
        changes["shipping.carrier"] = body.carrier
    if body.payment_status:
        changes["payment.status"] = body.payment_status
    if body.status == "delivered":
        changes["shipping.actual_delivery"] = now

    order = await db.orders.find_one_and_update(
        {"_id": order_oid},
        {
            "$set": changes,
            "$push": {"status_timeline": {"status": body.status, "timestamp": now, "notes": body.notes}},
        },
        return_document=ReturnDocument.AFTER,
    )
    if not order:
        raise NotFoundException("Order not found")

    if body.status in RESTOCK_STATUSES:
        await _restock_once(db, order)

    logger.info("Order %s moved to %s", order["order_number"], body.status)
    await _notify(db, mailer, order, body.status)
    return serialize_doc(order)


async def cancel_order(db: Database, mailer: Mailer, user: dict, order_id: str) -> dict:
    order_oid = to_object_id(order_id, "Order")
    order = await db.orders.find_one({"_id": order_oid, "user_id": user["id"]})
    if not order:
        raise NotFoundException("Order not found")
    if order["status"] != "pending":
        raise InvalidStateException("Only pending orders can be cancelled")

    now = datetime.utcnow()
    order = await db.orders.find_one_and_update(
        {"_id": order_oid, "status": "pending"},
        {
            "$set": {"status": "cancelled", "updated_at": now},
            "$push": {"status_timeline": {
                "status": "cancelled", "timestamp": now, "notes": "Order cancelled by customer",
            }},
        },
        return_document=ReturnDocument.AFTER,
    )
    if not order:
        # status moved on between the read and the write
        raise InvalidStateException("Only pending orders can be cancelled")

    await _restock_once(db, order)
    await mailer.send_order_status_update(user["email"], order, "cancelled")
    return serialize_doc(order)
