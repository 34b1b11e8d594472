"""Tests for products and categories."""

from bson import ObjectId


def create_product(client, user, **overrides):
    body = {
        "name": "Brass Lamp",
        "description": "One of a kind",
        "price": 150.0,
        "category": str(ObjectId()),
        "stock": 1,
        "tags": ["lighting"],
    }
    body.update(overrides)
    return client.post("/api/products", json=body, headers=user["headers"])


class TestProducts:
    def test_create(self, client, admin):
        response = create_product(client, admin)
        assert response.status_code == 201
        product = response.json()["data"]
        assert product["slug"] == "brass-lamp"
        assert product["sku"].startswith("LP-BRA-")
        assert product["status"] == "draft"
        assert product["rating"] == {"average": 0, "count": 0}

    def test_create_requires_admin(self, client, customer):
        assert create_product(client, customer).status_code == 403

    def test_missing_fields(self, client, admin):
        response = create_product(client, admin, description=None)
        assert response.status_code == 400
        assert response.json()["message"] == "Missing required fields"

    def test_negative_price(self, client, admin):
        assert create_product(client, admin, price=-10).status_code == 400

    def test_duplicate_name(self, client, admin):
        create_product(client, admin)
        response = create_product(client, admin)
        assert response.status_code == 409

    def test_update_renames_slug(self, client, admin):
        product_id = create_product(client, admin).json()["data"]["id"]
        response = client.put(f"/api/products/{product_id}", json={"name": "Copper Lamp", "status": "active"},
                              headers=admin["headers"])
        assert response.status_code == 200
        assert response.json()["data"]["slug"] == "copper-lamp"
        assert response.json()["data"]["status"] == "active"

    def test_update_unknown(self, client, admin):
        response = client.put(f"/api/products/{ObjectId()}", json={"price": 1}, headers=admin["headers"])
        assert response.status_code == 404

    def test_delete_hides_product(self, client, admin, seed):
        product_id = seed.product(name="Gone Lamp")
        assert client.delete(f"/api/products/{product_id}", headers=admin["headers"]).status_code == 200
        assert seed.find("products", _id=product_id)["status"] == "discontinued"
        assert client.get("/api/products/gone-lamp").status_code == 404

    def test_get_by_slug_counts_views(self, client, seed):
        product_id = seed.product(name="Oak Chair")
        response = client.get("/api/products/oak-chair")
        assert response.status_code == 200
        assert response.json()["data"]["id"] == product_id
        assert response.json()["data"]["viewCount"] == 1
        assert client.get(f"/api/products/{product_id}").json()["data"]["viewCount"] == 2

    def test_unknown_slug(self, client):
        response = client.get("/api/products/no-such-thing")
        assert response.status_code == 404
        assert response.json()["message"] == "Product not found"


class TestListing:
    def test_only_storefront_statuses(self, client, seed):
        seed.product(name="Visible", status="active")
        seed.product(name="Draft", status="draft")
        seed.product(name="Hidden", status="inactive")
        body = client.get("/api/products").json()
        assert sorted(p["name"] for p in body["data"]) == ["Draft", "Visible"]
        assert body["pagination"]["total"] == 2

    def test_pagination(self, client, seed):
        for i in range(3):
            seed.product(name=f"Item {i}")
        body = client.get("/api/products", params={"page": 2, "limit": 2}).json()
        assert len(body["data"]) == 1
        assert body["pagination"] == {"total": 3, "pages": 2, "currentPage": 2, "pageSize": 2}

    def test_price_filter_and_sort(self, client, seed):
        seed.product(name="Cheap", price=10)
        seed.product(name="Middle", price=50)
        seed.product(name="Dear", price=500)
        body = client.get("/api/products", params={"minPrice": 20, "sort": "-price"}).json()
        assert [p["name"] for p in body["data"]] == ["Dear", "Middle"]

    def test_search(self, client, seed):
        seed.product(name="Brass Lamp")
        seed.product(name="Oak Chair")
        body = client.get("/api/products", params={"search": "lamp"}).json()
        assert [p["name"] for p in body["data"]] == ["Brass Lamp"]

    def test_category_by_name(self, client, admin, seed):
        category = client.post("/api/categories", json={"name": "Lighting"}, headers=admin["headers"]).json()["data"]
        seed.product(name="Brass Lamp", category=category["id"])
        seed.product(name="Oak Chair")
        body = client.get("/api/products", params={"category": "lighting"}).json()
        assert [p["name"] for p in body["data"]] == ["Brass Lamp"]

    def test_unknown_category_is_empty(self, client, seed):
        seed.product()
        body = client.get("/api/products", params={"category": "nothing-here"}).json()
        assert body["data"] == []

    def test_search_endpoint(self, client, seed):
        seed.product(name="Brass Lamp", brand="Lumen")
        assert [p["name"] for p in client.get("/api/products/search", params={"query": "lumen"}).json()["data"]] == [
            "Brass Lamp"
        ]
        assert client.get("/api/products/search").json()["data"] == []

    def test_related(self, client, seed):
        category = str(ObjectId())
        lamp = seed.product(name="Brass Lamp", category=category)
        seed.product(name="Floor Lamp", category=category)
        seed.product(name="Oak Chair")
        body = client.get(f"/api/products/{lamp}/related").json()
        assert [p["name"] for p in body["data"]] == ["Floor Lamp"]


class TestCategories:
    def test_crud(self, client, admin):
        response = client.post("/api/categories", json={"name": "Home Decor", "order": 2}, headers=admin["headers"])
        assert response.status_code == 201
        category = response.json()["data"]
        assert category["slug"] == "home-decor"

        assert client.get("/api/categories/home-decor").json()["data"]["id"] == category["id"]

        response = client.put(f"/api/categories/{category['id']}", json={"description": "Things"},
                              headers=admin["headers"])
        assert response.json()["data"]["description"] == "Things"

        assert client.delete(f"/api/categories/{category['id']}", headers=admin["headers"]).status_code == 200
        assert client.get("/api/categories").json()["data"] == []
        assert client.get("/api/categories/home-decor").status_code == 404

    def test_name_required(self, client, admin):
        response = client.post("/api/categories", json={}, headers=admin["headers"])
        assert response.status_code == 400
        assert response.json()["message"] == "Category name is required"

    def test_duplicate(self, client, admin):
        client.post("/api/categories", json={"name": "Lighting"}, headers=admin["headers"])
        response = client.post("/api/categories", json={"name": "lighting"}, headers=admin["headers"])
        assert response.status_code == 409

    def test_listed_in_order(self, client, admin):
        client.post("/api/categories", json={"name": "Second", "order": 2}, headers=admin["headers"])
        client.post("/api/categories", json={"name": "First", "order": 1}, headers=admin["headers"])
        names = [c["name"] for c in client.get("/api/categories").json()["data"]]
        assert names == ["First", "Second"]
