"""Tests for shared helpers."""

import re

import pytest
from bson import ObjectId

from lastpiece.shared.helpers import (
    calculate_discount,
    calculate_pagination,
    generate_order_number,
    generate_sku,
    generate_slug,
    hash_token,
    pagination_meta,
    resolve_image_url,
    sanitize_user,
    serialize_doc,
    to_object_id,
)
from lastpiece.shared.security_config import sanitize_input, validate_password_strength
from lastpiece.shared.utils import NotFoundException, settings

ORDER_NUMBER = re.compile(r"^ORD-\d{8}-[A-Z0-9]{4}$")


class TestOrderNumber:
    def test_format(self):
        assert ORDER_NUMBER.match(generate_order_number())

    def test_consecutive_numbers_differ(self):
        assert generate_order_number() != generate_order_number()


class TestPagination:
    def test_defaults(self):
        assert calculate_pagination() == {"skip": 0, "limit": 10, "page": 1}

    def test_skip_from_page(self):
        assert calculate_pagination(3, 20) == {"skip": 40, "limit": 20, "page": 3}

    @pytest.mark.parametrize("page,limit,expected", [
        (0, 10, {"skip": 0, "limit": 10, "page": 1}),
        ("abc", "x", {"skip": 0, "limit": 10, "page": 1}),
        (1, 500, {"skip": 0, "limit": 100, "page": 1}),
        (2, 0, {"skip": 1, "limit": 1, "page": 2}),
    ])
    def test_clamps_bad_input(self, page, limit, expected):
        assert calculate_pagination(page, limit) == expected

    def test_meta(self):
        assert pagination_meta(21, 2, 10) == {"total": 21, "pages": 3, "current_page": 2, "page_size": 10}


def test_generate_slug():
    assert generate_slug("  Brass Lamp, Vintage!  ") == "brass-lamp-vintage"
    assert generate_slug("one_of a kind") == "one-of-a-kind"


def test_generate_sku():
    assert re.match(r"^LP-LAM-\d{6}-[A-Z0-9]{3}$", generate_sku("lamp"))


def test_hash_token_is_stable_sha256():
    assert hash_token("abc") == hash_token("abc")
    assert len(hash_token("abc")) == 64


def test_calculate_discount():
    assert calculate_discount(200, 25) == 150
    assert calculate_discount(200, None) == 200


def test_to_object_id_rejects_garbage():
    oid = ObjectId()
    assert to_object_id(str(oid)) == oid
    with pytest.raises(NotFoundException) as exc:
        to_object_id("not-an-id", "Order")
    assert exc.value.detail == "Order not found"


def test_serialize_doc_renames_id():
    oid = ObjectId()
    assert serialize_doc({"_id": oid, "name": "x"}) == {"id": str(oid), "name": "x"}
    assert serialize_doc(None) is None


def test_sanitize_user_strips_secrets():
    user = sanitize_user({
        "_id": ObjectId(),
        "email": "a@mail.com",
        "password": "hash",
        "email_verification_token": "t",
        "password_reset_token": "r",
    })
    assert set(user) == {"id", "email"}


def test_resolve_image_url(monkeypatch):
    monkeypatch.setattr(settings, "BACKEND_PUBLIC_URL", "https://api.lastpiece.shop/api")
    assert resolve_image_url("/uploads/a.jpg") == "https://api.lastpiece.shop/uploads/a.jpg"
    assert resolve_image_url("uploads/a.jpg") == "https://api.lastpiece.shop/uploads/a.jpg"
    assert resolve_image_url("https://cdn.example.org/a.jpg") == "https://cdn.example.org/a.jpg"


def test_sanitize_input_escapes_html():
    assert sanitize_input("  <b>hi</b> ") == "&lt;b&gt;hi&lt;/b&gt;"


def test_password_policy(monkeypatch):
    assert validate_password_strength("abcdef")
    assert not validate_password_strength("abc")
    monkeypatch.setattr(settings, "PASSWORD_REQUIRE_MIXED", True)
    assert not validate_password_strength("abcdefgh")
    assert validate_password_strength("Abcdefg1")
