"""Admin reads and reports.

Every report is aggregated from the live collections on each call; nothing
is cached.
"""
import logging
import re
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from bson import ObjectId
from pymongo import ReturnDocument

from lastpiece.admin.schemas import RoleUpdate, SystemSettings, SystemSettingsUpdate, UserAdminUpdate
from lastpiece.shared.auth import ROLE_SUPER_ADMIN
from lastpiece.shared.database import Database
from lastpiece.shared.helpers import (
    calculate_pagination, is_object_id, pagination_meta, sanitize_user, serialize_doc, to_object_id,
)
from lastpiece.shared.security_config import password_policy_message, validate_password_strength
from lastpiece.shared.utils import (
    ForbiddenException, NotFoundException, ValidationException, get_password_hash,
)

logger = logging.getLogger(__name__)

# an order counts as revenue once delivered or paid
REVENUE_MATCH = {"$or": [{"status": "delivered"}, {"payment.status": "completed"}]}
PENDING_REVENUE_STATUSES = ["confirmed", "processing", "dispatched", "in_transit"]
LOW_STOCK_THRESHOLD = 5
TOP_PRODUCTS_LIMIT = 10
DAILY_REVENUE_DAYS = 30
SETTINGS_DOC_ID = "system"


# --- Aggregation helpers ---

async def _total(collection, match: dict, field: str = "pricing.total") -> float:
    pipeline = [
        {"$match": match},
        {"$group": {"_id": None, "total": {"$sum": f"${field}"}}},
    ]
    result = await collection.aggregate(pipeline).to_list(length=1)
    return round(result[0]["total"], 2) if result else 0


async def _count_by(collection, field: str) -> List[dict]:
    pipeline = [{"$group": {"_id": f"${field}", "count": {"$sum": 1}}}]
    buckets = await collection.aggregate(pipeline).to_list(length=None)
    return sorted(
        ({"key": b["_id"], "count": b["count"]} for b in buckets),
        key=lambda b: -b["count"],
    )


async def _revenue_series(db: Database, since: datetime, daily: bool = False) -> List[dict]:
    period = {"year": {"$year": "$created_at"}, "month": {"$month": "$created_at"}}
    if daily:
        period["day"] = {"$dayOfMonth": "$created_at"}

    pipeline = [
        {"$match": {"created_at": {"$gte": since}, **REVENUE_MATCH}},
        {"$group": {"_id": period, "revenue": {"$sum": "$pricing.total"}, "orders": {"$sum": 1}}},
    ]
    points = [
        {**p["_id"], "revenue": round(p["revenue"], 2), "orders": p["orders"]}
        for p in await db.orders.aggregate(pipeline).to_list(length=None)
    ]
    return sorted(points, key=lambda p: (p["year"], p["month"], p.get("day") or 0))


def _start_of_month(now: datetime) -> datetime:
    return datetime(now.year, now.month, 1)


def _months_back(now: datetime, months: int) -> datetime:
    """First day of the month `months` months before the current one."""
    year, month = now.year, now.month - months
    while month <= 0:
        month += 12
        year -= 1
    return datetime(year, month, 1)


def _date_filter(start_date: Optional[date], end_date: Optional[date]) -> dict:
    created = {}
    if start_date:
        created["$gte"] = datetime.combine(start_date, time.min)
    if end_date:
        created["$lte"] = datetime.combine(end_date, time.max)
    return {"created_at": created} if created else {}


async def attach_customers(db: Database, orders: List[dict]) -> List[dict]:
    user_ids = {ObjectId(o["user_id"]) for o in orders if is_object_id(o.get("user_id"))}
    if not user_ids:
        return orders
    cursor = db.users.find(
        {"_id": {"$in": list(user_ids)}},
        {"first_name": 1, "last_name": 1, "email": 1},
    )
    users = {str(u["_id"]): serialize_doc(u) for u in await cursor.to_list(length=None)}
    for order in orders:
        order["customer"] = users.get(order["user_id"])
    return orders


# --- Dashboard ---

async def dashboard_stats(db: Database) -> dict:
    cursor = db.orders.find({}, sort=[("created_at", -1)], limit=5)
    recent = [serialize_doc(o) for o in await cursor.to_list(length=5)]

    return {
        "stats": {
            "total_users": await db.users.count_documents({}),
            "total_orders": await db.orders.count_documents({}),
            "total_products": await db.products.count_documents({"status": {"$in": ["active", "draft"]}}),
            "total_revenue": await _total(db.orders, REVENUE_MATCH),
        },
        "recent_orders": await attach_customers(db, recent),
        "orders_by_status": await _count_by(db.orders, "status"),
    }


async def super_admin_stats(db: Database) -> dict:
    now = datetime.utcnow()
    month_start = _start_of_month(now)

    return {
        "overview": {
            "total_users": await db.users.count_documents({}),
            "total_orders": await db.orders.count_documents({}),
            "total_products": await db.products.count_documents({}),
            "total_revenue": await _total(db.orders, REVENUE_MATCH),
            "pending_revenue": await _total(db.orders, {"status": {"$in": PENDING_REVENUE_STATUSES}}),
            "new_users_this_month": await db.users.count_documents({"created_at": {"$gte": month_start}}),
            "new_orders_this_month": await db.orders.count_documents({"created_at": {"$gte": month_start}}),
            "low_stock_products": await db.products.count_documents(
                {"status": "active", "stock": {"$lte": LOW_STOCK_THRESHOLD}}
            ),
        },
        "users_by_role": await _count_by(db.users, "role"),
        "users_by_status": await _count_by(db.users, "status"),
        "orders_by_status": await _count_by(db.orders, "status"),
        "products_by_status": await _count_by(db.products, "status"),
        "monthly_revenue": await _revenue_series(db, _months_back(now, 11)),
    }


async def _top_products(db: Database, date_filter: dict) -> List[dict]:
    pipeline = [
        {"$match": date_filter},
        {"$unwind": "$items"},
        {"$group": {
            "_id": "$items.product_id",
            "name": {"$first": "$items.product_name"},
            "total_quantity": {"$sum": "$items.quantity"},
            "total_revenue": {"$sum": "$items.subtotal"},
        }},
        {"$sort": {"total_revenue": -1}},
        {"$limit": TOP_PRODUCTS_LIMIT},
    ]
    rows = await db.orders.aggregate(pipeline).to_list(length=TOP_PRODUCTS_LIMIT)

    # prefer the live product name; fall back to the name captured on the order
    product_ids = [ObjectId(r["_id"]) for r in rows if is_object_id(r["_id"])]
    cursor = db.products.find({"_id": {"$in": product_ids}}, {"name": 1})
    names = {str(p["_id"]): p["name"] for p in await cursor.to_list(length=None)}
    return [
        {
            "product_id": r["_id"],
            "name": names.get(r["_id"], r.get("name")),
            "total_quantity": r["total_quantity"],
            "total_revenue": round(r["total_revenue"], 2),
        }
        for r in rows
    ]


async def financial_report(db: Database, start_date: Optional[date] = None,
                           end_date: Optional[date] = None) -> dict:
    date_filter = _date_filter(start_date, end_date)
    revenue_match = {**date_filter, **REVENUE_MATCH}

    totals = await db.orders.aggregate([
        {"$match": revenue_match},
        {"$group": {
            "_id": None,
            "total": {"$sum": "$pricing.total"},
            "subtotal": {"$sum": "$pricing.subtotal"},
            "shipping": {"$sum": "$pricing.shipping"},
            "discount": {"$sum": "$pricing.discount"},
            "count": {"$sum": 1},
        }},
    ]).to_list(length=1)
    totals = totals[0] if totals else {}

    cancelled = await db.orders.aggregate([
        {"$match": {**date_filter, "status": "cancelled"}},
        {"$group": {"_id": None, "total": {"$sum": "$pricing.total"}, "count": {"$sum": 1}}},
    ]).to_list(length=1)
    cancelled = cancelled[0] if cancelled else {}

    by_method = await db.orders.aggregate([
        {"$match": revenue_match},
        {"$group": {"_id": "$payment.method", "total": {"$sum": "$pricing.total"}, "count": {"$sum": 1}}},
    ]).to_list(length=None)

    since = datetime.utcnow() - timedelta(days=DAILY_REVENUE_DAYS)

    return {
        "summary": {
            "total_revenue": round(totals.get("total", 0), 2),
            "subtotal": round(totals.get("subtotal", 0), 2),
            "total_shipping": round(totals.get("shipping", 0), 2),
            "total_discount": round(totals.get("discount", 0), 2),
            "completed_orders": totals.get("count", 0),
            "cancelled_loss": round(cancelled.get("total", 0), 2),
            "cancelled_count": cancelled.get("count", 0),
        },
        "revenue_by_payment_method": sorted(
            ({"method": m["_id"], "total": round(m["total"], 2), "count": m["count"]} for m in by_method),
            key=lambda m: -m["total"],
        ),
        "daily_revenue": await _revenue_series(db, since, daily=True),
        "top_products": await _top_products(db, date_filter),
    }


# --- Users ---

async def list_users(db: Database, page=1, limit=10, search: Optional[str] = None,
                     role: Optional[str] = None, status: Optional[str] = None):
    paging = calculate_pagination(page, limit)
    query = {}
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"first_name": pattern}, {"last_name": pattern}, {"email": pattern}]
    if role:
        query["role"] = role
    if status:
        query["status"] = status

    cursor = db.users.find(query, sort=[("created_at", -1)], skip=paging["skip"], limit=paging["limit"])
    users = [sanitize_user(u) for u in await cursor.to_list(length=paging["limit"])]
    total = await db.users.count_documents(query)
    return users, pagination_meta(total, paging["page"], paging["limit"])


async def _find_user(db: Database, user_id: str) -> dict:
    user = await db.users.find_one({"_id": to_object_id(user_id, "User")})
    if not user:
        raise NotFoundException("User not found")
    return user


async def get_user(db: Database, user_id: str) -> dict:
    return sanitize_user(await _find_user(db, user_id))


async def _set_user_fields(db: Database, user_id: str, changes: dict) -> dict:
    changes["updated_at"] = datetime.utcnow()
    user = await db.users.find_one_and_update(
        {"_id": to_object_id(user_id, "User")},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not user:
        raise NotFoundException("User not found")
    return sanitize_user(user)


async def update_user(db: Database, user_id: str, body: UserAdminUpdate) -> dict:
    changes = body.model_dump(exclude_none=True)
    if "email" in changes:
        changes["email"] = changes["email"].lower()
    if "password" in changes:
        if not validate_password_strength(changes["password"]):
            raise ValidationException(password_policy_message())
        changes["password"] = get_password_hash(changes["password"])

    user = await _set_user_fields(db, user_id, changes)
    logger.info("User %s updated by admin", user_id)
    return user


async def update_user_role(db: Database, user_id: str, body: RoleUpdate) -> dict:
    return await _set_user_fields(db, user_id, {"role": body.role})


async def block_user(db: Database, user_id: str) -> dict:
    user = await _find_user(db, user_id)
    if user.get("role") == ROLE_SUPER_ADMIN:
        raise ForbiddenException("Cannot block super-admin accounts")
    return await _set_user_fields(db, user_id, {"status": "blocked"})


async def delete_user(db: Database, user_id: str) -> None:
    user = await _find_user(db, user_id)
    if user.get("role") == ROLE_SUPER_ADMIN:
        raise ForbiddenException("Cannot delete super-admin accounts")
    await db.users.delete_one({"_id": user["_id"]})
    logger.info("User %s deleted", user_id)


# --- Orders ---

async def list_orders(db: Database, page=1, limit=10, status: Optional[str] = None,
                      search: Optional[str] = None):
    paging = calculate_pagination(page, limit)
    query = {}
    if status:
        query["status"] = status
    if search:
        query["order_number"] = {"$regex": re.escape(search), "$options": "i"}

    cursor = db.orders.find(query, sort=[("created_at", -1)], skip=paging["skip"], limit=paging["limit"])
    orders = [serialize_doc(o) for o in await cursor.to_list(length=paging["limit"])]
    total = await db.orders.count_documents(query)
    return await attach_customers(db, orders), pagination_meta(total, paging["page"], paging["limit"])


async def get_order(db: Database, order_id: str) -> dict:
    order = await db.orders.find_one({"_id": to_object_id(order_id, "Order")})
    if not order:
        raise NotFoundException("Order not found")
    orders = await attach_customers(db, [serialize_doc(order)])
    return orders[0]


# --- System settings ---

async def get_system_settings(db: Database) -> dict:
    stored = await db.settings.find_one({"_id": SETTINGS_DOC_ID}) or {}
    stored.pop("_id", None)
    return SystemSettings(**stored).model_dump()


async def update_system_settings(db: Database, body: SystemSettingsUpdate) -> dict:
    changes = body.model_dump(exclude_none=True)
    if changes:
        await db.settings.update_one({"_id": SETTINGS_DOC_ID}, {"$set": changes}, upsert=True)
        logger.info("System settings updated: %s", ", ".join(sorted(changes)))
    return await get_system_settings(db)
