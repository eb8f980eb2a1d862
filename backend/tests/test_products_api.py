"""
Product catalog HTTP tests.
"""

import pytest


def _body(**overrides) -> dict:
    body = {
        "name": "Desk Lamp",
        "category": "Lighting",
        "brand": "Lumo",
        "stock_quantity": 12,
        "min_stock": 2,
        "price": 39.9,
        "is_active": True,
    }
    body.update(overrides)
    return body


class TestCreateProduct:

    def test_create(self, client, db_session):
        resp = client.post("/products", json=_body(images=["front.jpg", "side.jpg"]))

        assert resp.status_code == 201
        data = resp.get_json()
        assert data["id"] is not None
        assert data["name"] == "Desk Lamp"
        assert data["stock_quantity"] == 12
        assert data["images"] == ["front.jpg", "side.jpg"]
        assert data["is_active"] is True
        assert data["created_at"].endswith("Z")

    def test_active_flag_accepts_numeric(self, client, db_session):
        resp = client.post("/products", json=_body(is_active=0))

        assert resp.status_code == 201
        assert resp.get_json()["is_active"] is False

    def test_without_images(self, client, db_session):
        resp = client.post("/products", json=_body())
        assert resp.get_json()["images"] == []

    @pytest.mark.parametrize("missing", ["name", "price", "stock_quantity", "is_active"])
    def test_required_fields(self, client, db_session, missing):
        body = _body()
        del body[missing]

        resp = client.post("/products", json=body)

        assert resp.status_code == 400
        assert missing in resp.get_json()["error"]

    @pytest.mark.parametrize("field,value", [
        ("stock_quantity", -1),
        ("stock_quantity", 2.5),
        ("price", -0.01),
        ("price", "cheap"),
        ("promo_price", -5),
        ("min_stock", -1),
        ("images", "front.jpg"),
        ("images", [1, 2]),
        ("name", ""),
        ("id", 7),
        ("sku", "ABC"),
    ])
    def test_rejects_bad_values(self, client, db_session, field, value):
        resp = client.post("/products", json=_body(**{field: value}))
        assert resp.status_code == 400


class TestReadProducts:

    def test_get_is_repeatable(self, client, db_session):
        created = client.post("/products", json=_body()).get_json()

        first = client.get(f"/products/{created['id']}")
        second = client.get(f"/products/{created['id']}")

        assert first.status_code == 200
        assert first.get_json() == second.get_json() == created

    def test_get_missing(self, client, db_session):
        assert client.get("/products/99999").status_code == 404

    def test_list_and_filter(self, client, db_session):
        client.post("/products", json=_body(name="B lamp"))
        client.post("/products", json=_body(name="A lamp", is_active=False))

        everything = client.get("/products").get_json()
        active = client.get("/products?active=true").get_json()

        assert [p["name"] for p in everything["items"]] == ["A lamp", "B lamp"]
        assert [p["name"] for p in active["items"]] == ["B lamp"]

    def test_pagination(self, client, db_session):
        for i in range(5):
            client.post("/products", json=_body(name=f"Lamp {i}"))

        page = client.get("/products?page=2&per_page=2").get_json()

        assert page["count"] == 2
        assert page["pagination"]["total"] == 5
        assert page["pagination"]["total_pages"] == 3
        assert page["pagination"]["has_prev"] is True

    @pytest.mark.parametrize("per_page", [-2, 0])
    def test_non_positive_per_page_falls_back(self, client, db_session, per_page):
        for i in range(3):
            client.post("/products", json=_body(name=f"Lamp {i}"))

        page = client.get(f"/products?page=1&per_page={per_page}").get_json()

        expected = 20 if per_page == 0 else 1
        assert page["pagination"]["per_page"] == expected
        assert page["count"] == min(3, expected)
        assert page["pagination"]["total_pages"] == (3 + expected - 1) // expected


class TestUpdateProduct:

    def test_partial_update(self, client, db_session):
        created = client.post("/products", json=_body()).get_json()

        resp = client.put(f"/products/{created['id']}", json={"price": 35.0, "images": ["new.jpg"]})

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["price"] == 35.0
        assert data["images"] == ["new.jpg"]
        assert data["name"] == "Desk Lamp"
        assert data["created_at"] == created["created_at"]

    def test_empty_payload(self, client, db_session):
        created = client.post("/products", json=_body()).get_json()
        assert client.put(f"/products/{created['id']}", json={}).status_code == 400

    def test_unknown_field(self, client, db_session):
        created = client.post("/products", json=_body()).get_json()

        resp = client.put(f"/products/{created['id']}", json={"price = 0 --": 1})

        assert resp.status_code == 400
        assert client.get(f"/products/{created['id']}").get_json()["price"] == 39.9

    def test_missing(self, client, db_session):
        assert client.put("/products/99999", json={"price": 1.0}).status_code == 404


class TestDeleteProduct:

    def test_delete(self, client, db_session):
        created = client.post("/products", json=_body()).get_json()

        assert client.delete(f"/products/{created['id']}").status_code == 204
        assert client.get(f"/products/{created['id']}").status_code == 404

    def test_delete_missing(self, client, db_session):
        assert client.delete("/products/99999").status_code == 404


def test_health(client, db_session):
    resp = client.get("/")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["database"] == "connected"
    assert body["checks"]["database"]["status"] == "healthy"
