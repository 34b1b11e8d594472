"""Tests for the wishlist API."""

import pytest
from bson import ObjectId


@pytest.fixture
def lamp(seed):
    return seed.product(name="Brass Lamp")


def add(client, user, product_id):
    return client.post("/api/wishlist/add", json={"productId": product_id}, headers=user["headers"])


def remove(client, user, product_id):
    return client.post("/api/wishlist/remove", json={"productId": product_id}, headers=user["headers"])


def test_get_creates_empty_wishlist(client, customer):
    response = client.get("/api/wishlist", headers=customer["headers"])
    assert response.status_code == 200
    assert response.json()["data"]["items"] == []
    assert response.json()["data"]["userId"] == customer["id"]


def test_add_counts_on_product(client, seed, customer, lamp):
    response = add(client, customer, lamp)
    assert response.status_code == 200
    items = response.json()["data"]["items"]
    assert [item["productId"] for item in items] == [lamp]
    assert items[0]["product"]["name"] == "Brass Lamp"
    assert seed.find("products", _id=lamp)["wishlist_count"] == 1


def test_add_twice(client, customer, lamp):
    add(client, customer, lamp)
    response = add(client, customer, lamp)
    assert response.status_code == 400
    assert response.json()["message"] == "Product already in wishlist"


def test_add_unknown_product(client, customer):
    assert add(client, customer, str(ObjectId())).status_code == 404


def test_add_requires_product(client, customer):
    response = client.post("/api/wishlist/add", json={}, headers=customer["headers"])
    assert response.status_code == 400
    assert response.json()["message"] == "Product ID is required"


def test_remove(client, seed, customer, lamp):
    add(client, customer, lamp)
    response = remove(client, customer, lamp)
    assert response.status_code == 200
    assert response.json()["data"]["items"] == []
    assert seed.find("products", _id=lamp)["wishlist_count"] == 0


def test_remove_absent_item(client, customer, seed, lamp):
    add(client, customer, lamp)
    response = remove(client, customer, seed.product())
    assert response.status_code == 404
    assert response.json()["message"] == "Item not in wishlist"


def test_remove_without_wishlist(client, customer, lamp):
    response = remove(client, customer, lamp)
    assert response.status_code == 404
    assert response.json()["message"] == "Wishlist not found"


def test_count_never_goes_negative(client, seed, customer, lamp):
    add(client, customer, lamp)
    seed.update("products", lamp, {"wishlist_count": 0})
    remove(client, customer, lamp)
    assert seed.find("products", _id=lamp)["wishlist_count"] == 0


def test_clear(client, seed, customer, lamp):
    add(client, customer, lamp)
    add(client, customer, seed.product())
    response = client.delete("/api/wishlist/clear", headers=customer["headers"])
    assert response.status_code == 200
    assert response.json()["data"]["items"] == []


def test_clear_without_wishlist(client, customer):
    assert client.delete("/api/wishlist/clear", headers=customer["headers"]).status_code == 404
