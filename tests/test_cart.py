"""Tests for the cart API."""

import pytest
from bson import ObjectId


@pytest.fixture
def lamp(seed):
    return seed.product(name="Brass Lamp", price=150.0, stock=5)


def add(client, user, product_id, quantity=1):
    return client.post("/api/cart/add", json={"productId": product_id, "quantity": quantity},
                       headers=user["headers"])


class TestAddItem:
    def test_add_prices_from_product(self, client, customer, lamp):
        response = add(client, customer, lamp, 2)
        assert response.status_code == 200
        cart = response.json()["data"]
        assert cart["subtotal"] == 300.0
        assert cart["tax"] == 30.0
        assert cart["discount"] == 0.0
        assert cart["total"] == 330.0
        assert cart["items"][0]["productId"] == lamp
        assert cart["items"][0]["price"] == 150.0
        assert cart["items"][0]["product"]["name"] == "Brass Lamp"

    def test_add_existing_line_increments_quantity(self, client, customer, lamp):
        add(client, customer, lamp, 2)
        cart = add(client, customer, lamp, 1).json()["data"]
        assert len(cart["items"]) == 1
        assert cart["items"][0]["quantity"] == 3

    def test_add_over_stock_leaves_cart_unchanged(self, client, customer, seed, lamp):
        add(client, customer, lamp, 1)
        response = add(client, customer, lamp, 6)
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Insufficient stock"}
        cart = seed.find("carts", user_id=customer["id"])
        assert cart["items"][0]["quantity"] == 1
        assert cart["total"] == 165.0

    def test_missing_product_id(self, client, customer):
        response = client.post("/api/cart/add", json={"quantity": 1}, headers=customer["headers"])
        assert response.status_code == 400
        assert response.json()["message"] == "Product ID is required"

    def test_unknown_product(self, client, customer):
        response = add(client, customer, str(ObjectId()))
        assert response.status_code == 404
        assert response.json()["message"] == "Product not found"

    def test_discontinued_product_is_not_found(self, client, customer, seed):
        product_id = seed.product(status="discontinued")
        assert add(client, customer, product_id).status_code == 404

    def test_requires_auth(self, client, lamp):
        response = client.post("/api/cart/add", json={"productId": lamp})
        assert response.status_code == 401
        assert response.json()["success"] is False


class TestRepricing:
    def test_every_mutation_uses_live_price(self, client, customer, seed, lamp):
        add(client, customer, lamp, 1)
        seed.update("products", lamp, {"price": 200.0})
        other = seed.product(price=10.0, stock=3)
        cart = add(client, customer, other, 1).json()["data"]
        prices = {item["productId"]: item["price"] for item in cart["items"]}
        assert prices[lamp] == 200.0
        assert cart["subtotal"] == 210.0

    def test_vanished_product_is_dropped(self, client, customer, seed, lamp):
        other = seed.product(price=10.0, stock=3)
        add(client, customer, lamp, 1)
        add(client, customer, other, 1)
        seed.delete("products", other)
        cart = client.put("/api/cart/update", json={"productId": lamp, "quantity": 2},
                          headers=customer["headers"]).json()["data"]
        assert [item["productId"] for item in cart["items"]] == [lamp]
        assert cart["subtotal"] == 300.0

    def test_withdrawn_product_is_dropped(self, client, customer, seed, lamp):
        other = seed.product(price=10.0, stock=3)
        add(client, customer, lamp, 1)
        add(client, customer, other, 1)
        seed.update("products", other, {"status": "discontinued"})
        cart = client.put("/api/cart/update", json={"productId": lamp, "quantity": 1},
                          headers=customer["headers"]).json()["data"]
        assert [item["productId"] for item in cart["items"]] == [lamp]
        assert cart["subtotal"] == 150.0


class TestUpdateAndRemove:
    def test_update_quantity(self, client, customer, lamp):
        add(client, customer, lamp, 1)
        response = client.put("/api/cart/update", json={"productId": lamp, "quantity": 4},
                              headers=customer["headers"])
        assert response.status_code == 200
        assert response.json()["data"]["items"][0]["quantity"] == 4
        assert response.json()["data"]["subtotal"] == 600.0

    def test_update_item_not_in_cart(self, client, customer, seed, lamp):
        add(client, customer, lamp, 1)
        other = seed.product()
        response = client.put("/api/cart/update", json={"productId": other, "quantity": 1},
                              headers=customer["headers"])
        assert response.status_code == 404
        assert response.json()["message"] == "Item not in cart"

    def test_update_without_cart(self, client, customer, lamp):
        response = client.put("/api/cart/update", json={"productId": lamp, "quantity": 1},
                              headers=customer["headers"])
        assert response.status_code == 404
        assert response.json()["message"] == "Cart not found"

    def test_update_requires_fields(self, client, customer):
        response = client.put("/api/cart/update", json={}, headers=customer["headers"])
        assert response.status_code == 400
        assert response.json()["message"] == "Product ID and quantity are required"

    def test_remove_item(self, client, customer, lamp):
        add(client, customer, lamp, 2)
        cart = client.post("/api/cart/remove", json={"productId": lamp},
                           headers=customer["headers"]).json()["data"]
        assert cart["items"] == []
        assert cart["total"] == 0

    def test_remove_absent_item_is_a_no_op(self, client, customer, seed, lamp):
        add(client, customer, lamp, 2)
        response = client.post("/api/cart/remove", json={"productId": str(ObjectId())},
                               headers=customer["headers"])
        assert response.status_code == 200
        cart = response.json()["data"]
        assert len(cart["items"]) == 1
        assert cart["total"] == 330.0

    def test_remove_without_cart(self, client, customer, lamp):
        response = client.post("/api/cart/remove", json={"productId": lamp}, headers=customer["headers"])
        assert response.status_code == 404


class TestCoupon:
    def test_apply_coupon(self, client, customer, lamp):
        add(client, customer, lamp, 2)
        response = client.post("/api/cart/apply-coupon", json={"couponCode": "XYZ"},
                               headers=customer["headers"])
        assert response.status_code == 200
        cart = response.json()["data"]
        assert cart["couponCode"] == "XYZ"
        assert cart["discount"] == 30.0
        assert cart["total"] == 300.0

    def test_discount_follows_later_changes(self, client, customer, lamp):
        add(client, customer, lamp, 1)
        client.post("/api/cart/apply-coupon", json={"couponCode": "XYZ"}, headers=customer["headers"])
        cart = add(client, customer, lamp, 1).json()["data"]
        assert cart["discount"] == 30.0

    def test_coupon_required(self, client, customer, lamp):
        add(client, customer, lamp)
        response = client.post("/api/cart/apply-coupon", json={}, headers=customer["headers"])
        assert response.status_code == 400
        assert response.json()["message"] == "Coupon code is required"

    def test_coupon_without_cart(self, client, customer):
        response = client.post("/api/cart/apply-coupon", json={"couponCode": "XYZ"},
                               headers=customer["headers"])
        assert response.status_code == 400
        assert response.json()["message"] == "Cart not found"


class TestGetAndClear:
    def test_get_creates_empty_cart(self, client, customer):
        response = client.get("/api/cart", headers=customer["headers"])
        assert response.status_code == 200
        cart = response.json()["data"]
        assert cart["userId"] == customer["id"]
        assert cart["items"] == []
        assert cart["total"] == 0

    def test_clear(self, client, customer, lamp):
        add(client, customer, lamp, 2)
        client.post("/api/cart/apply-coupon", json={"couponCode": "XYZ"}, headers=customer["headers"])
        cart = client.delete("/api/cart/clear", headers=customer["headers"]).json()["data"]
        assert cart["items"] == []
        assert cart["subtotal"] == cart["tax"] == cart["discount"] == cart["total"] == 0
        assert cart["couponCode"] is None

    def test_clear_is_idempotent(self, client, customer):
        assert client.delete("/api/cart/clear", headers=customer["headers"]).status_code == 200
        assert client.delete("/api/cart/clear", headers=customer["headers"]).status_code == 200
