import hashlib
import math
import re
import secrets
import string
import time
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId

from lastpiece.shared.utils import settings, NotFoundException

SENSITIVE_USER_FIELDS = (
    "password",
    "email_verification_token",
    "password_reset_token",
)

_ALNUM = string.ascii_uppercase + string.digits


def _random_code(length: int) -> str:
    return "".join(secrets.choice(_ALNUM) for _ in range(length))


def calculate_pagination(page: Any = 1, limit: Any = 10) -> dict:
    try:
        page_num = max(1, int(page))
    except (TypeError, ValueError):
        page_num = 1
    try:
        limit_num = min(100, max(1, int(limit)))
    except (TypeError, ValueError):
        limit_num = 10
    return {"skip": (page_num - 1) * limit_num, "limit": limit_num, "page": page_num}


def pagination_meta(total: int, page: int, limit: int) -> dict:
    return {
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
        "current_page": page,
        "page_size": limit,
    }


def generate_slug(text: str) -> str:
    slug = text.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    return re.sub(r"^-+|-+$", "", slug)


def generate_sku(product_name: str, prefix: str = "LP") -> str:
    timestamp = str(int(time.time() * 1000))[-6:]
    return f"{prefix}-{product_name[:3].upper()}-{timestamp}-{_random_code(3)}"


def generate_order_number() -> str:
    """ORD-<last 8 digits of the ms timestamp>-<4 uppercase alnum>."""
    timestamp = str(int(time.time() * 1000))[-8:]
    return f"ORD-{timestamp}-{_random_code(4)}"


def generate_verification_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def calculate_discount(original_price: Optional[float], discount_percent: Optional[float]) -> Optional[float]:
    if not original_price or not discount_percent:
        return original_price
    return original_price - (original_price * discount_percent) / 100


def to_object_id(value: str, label: str = "Resource") -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundException(f"{label} not found")


def is_object_id(value: str) -> bool:
    return ObjectId.is_valid(value)


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d


def sanitize_user(user: dict) -> dict:
    clean = serialize_doc(user)
    for field in SENSITIVE_USER_FIELDS:
        clean.pop(field, None)
    return clean


def resolve_image_url(url: Any) -> Any:
    """Prefix relative image paths with the public backend URL."""
    if not url or not isinstance(url, str):
        return url
    if url.startswith("http://") or url.startswith("https://"):
        return url
    base = re.sub(r"/api/?$", "", settings.BACKEND_PUBLIC_URL or "").rstrip("/")
    if not base:
        return url
    return f"{base}{url if url.startswith('/') else '/' + url}"


def resolve_product_image_urls(product: Optional[dict]) -> Optional[dict]:
    if not product:
        return product
    resolved = {**product}
    if isinstance(resolved.get("images"), list):
        resolved["images"] = [
            {"url": resolve_image_url(img), "alt": ""} if isinstance(img, str)
            else {**img, "url": resolve_image_url(img.get("url"))}
            for img in resolved["images"]
        ]
    if resolved.get("thumbnail"):
        resolved["thumbnail"] = resolve_image_url(resolved["thumbnail"])
    return resolved
