"""
HTTP tests for the product catalog.
"""

import pytest

pytestmark = pytest.mark.integration


@pytest.fixture
def product(client, auth_headers) -> dict:
    response = client.post(
        "/products", json={"name": "Widget", "price": 19.99}, headers=auth_headers
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestAuthentication:
    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("GET", "/products"),
            ("GET", "/products/1"),
            ("POST", "/products"),
            ("PUT", "/products/1"),
            ("DELETE", "/products/1"),
        ],
    )
    def test_every_route_requires_a_token(self, client, method, path):
        response = client.request(method, path, json={"name": "x", "price": 1})

        assert response.status_code == 401
        assert response.json()["success"] is False


class TestCrud:
    def test_create(self, product):
        assert product["id"] >= 1
        assert product["name"] == "Widget"
        assert product["price"] == 19.99

    def test_list(self, client, auth_headers, product):
        response = client.get("/products", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Products retrieved successfully"
        assert [p["id"] for p in response.json()["data"]] == [product["id"]]

    def test_get(self, client, auth_headers, product):
        response = client.get(f"/products/{product['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Widget"

    def test_get_missing(self, client, auth_headers):
        response = client.get("/products/999", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": "Product not found",
            "error": "NOT_FOUND",
        }

    def test_partial_update_keeps_other_fields(self, client, auth_headers, product):
        response = client.put(
            f"/products/{product['id']}", json={"price": 25.5}, headers=auth_headers
        )

        assert response.status_code == 200
        updated = response.json()["data"]
        assert updated["price"] == 25.5
        assert updated["name"] == "Widget"

    def test_update_missing(self, client, auth_headers):
        response = client.put("/products/999", json={"name": "Gadget"}, headers=auth_headers)
        assert response.status_code == 404

    def test_delete_returns_the_deleted_product(self, client, auth_headers, product):
        response = client.delete(f"/products/{product['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["id"] == product["id"]
        assert client.get(f"/products/{product['id']}", headers=auth_headers).status_code == 404


class TestValidation:
    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "Widget"},
            {"price": 10},
            {"name": "", "price": 10},
            {"name": "Widget", "price": 0},
            {"name": "Widget", "price": -1},
            {"name": "Widget", "price": 1.234},
        ],
    )
    def test_create_rejects_bad_payloads(self, client, auth_headers, payload):
        response = client.post("/products", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_non_positive_id(self, client, auth_headers):
        response = client.get("/products/0", headers=auth_headers)
        assert response.status_code == 400
