"""Spreadsheet exports of the catalog, customers and orders."""
from io import BytesIO
from typing import Iterable, List, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font

from lastpiece.admin.service import attach_customers
from lastpiece.shared.database import Database
from lastpiece.shared.helpers import serialize_doc

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

PRODUCT_COLUMNS = ["ID", "Name", "SKU", "Brand", "Category", "Price", "Original Price", "Status", "Stock", "Created At"]
USER_COLUMNS = ["ID", "First Name", "Last Name", "Email", "Phone", "Role", "Status", "Email Verified", "Created At", "Last Login"]
ORDER_COLUMNS = [
    "Order Number", "Customer Name", "Customer Email", "Status", "Payment Method", "Payment Status",
    "Subtotal", "Tax", "Shipping", "Discount", "Total", "Items Count", "Shipping Address", "Created At",
]


def _date(value) -> str:
    return value.strftime("%Y-%m-%d") if value else ""


def build_workbook(title: str, columns: Sequence[str], rows: Iterable[Sequence]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title
    sheet.append(list(columns))
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for row in rows:
        sheet.append(list(row))

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


async def export_products(db: Database) -> bytes:
    products = await db.products.find({}, sort=[("created_at", -1)]).to_list(length=None)
    rows = (
        [
            str(p["_id"]), p.get("name", ""), p.get("sku") or "", p.get("brand") or "",
            p.get("category") or "", p.get("price", 0), p.get("original_price") or "",
            p.get("status", ""), p.get("stock", 0), _date(p.get("created_at")),
        ]
        for p in products
    )
    return build_workbook("Products", PRODUCT_COLUMNS, rows)


async def export_users(db: Database) -> bytes:
    users = await db.users.find(
        {}, {"password": 0, "email_verification_token": 0, "password_reset_token": 0},
        sort=[("created_at", -1)],
    ).to_list(length=None)
    rows = (
        [
            str(u["_id"]), u.get("first_name", ""), u.get("last_name", ""), u.get("email", ""),
            u.get("phone") or "", u.get("role", ""), u.get("status", ""),
            "Yes" if u.get("email_verified") else "No",
            _date(u.get("created_at")), _date(u.get("last_login")),
        ]
        for u in users
    )
    return build_workbook("Users", USER_COLUMNS, rows)


def _format_address(address: dict) -> str:
    if not address:
        return ""
    parts: List[str] = [address.get("street"), address.get("city"),
                        " ".join(filter(None, [address.get("state"), address.get("postal_code")])),
                        address.get("country")]
    return ", ".join(p for p in parts if p)


async def export_orders(db: Database) -> bytes:
    orders = await db.orders.find({}, sort=[("created_at", -1)]).to_list(length=None)
    orders = await attach_customers(db, [serialize_doc(o) for o in orders])

    rows = []
    for o in orders:
        customer = o.get("customer") or {}
        pricing = o.get("pricing") or {}
        payment = o.get("payment") or {}
        name = " ".join(filter(None, [customer.get("first_name"), customer.get("last_name")]))
        rows.append([
            o["order_number"],
            name or "Guest",
            customer.get("email") or (o.get("billing_address") or {}).get("email") or "",
            o.get("status", ""),
            payment.get("method", ""),
            payment.get("status", ""),
            pricing.get("subtotal", 0),
            pricing.get("tax", 0),
            pricing.get("shipping", 0),
            pricing.get("discount", 0),
            pricing.get("total", 0),
            len(o.get("items") or []),
            _format_address(o.get("shipping_address")),
            _date(o.get("created_at")),
        ])
    return build_workbook("Orders", ORDER_COLUMNS, rows)


EXPORTERS = {
    "products": export_products,
    "users": export_users,
    "orders": export_orders,
}
