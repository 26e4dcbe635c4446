"""Tests for the product catalogue endpoints."""
from tests.conftest import auth, create_test_user, create_test_product


class TestProducts:

    def test_create_product_normalizes_prices(self, client, admin):
        product = create_test_product(client, admin, original_price="89.9", group_price=59)
        assert product["original_price"] == "89.90"
        assert product["group_price"] == "59.00"
        assert product["now_price"] is None
        assert product["sale_mode"] == "group"

    def test_create_requires_admin(self, client):
        user = create_test_user(client)
        resp = client.post("/api/products/", json={
            "name": "X", "original_price": "1.00", "group_price": "1.00",
        }, headers=auth(user))
        assert resp.status_code == 403

    def test_validation(self, client, admin):
        resp = client.post("/api/products/", json={
            "name": "X", "original_price": "-1", "group_price": "1.00", "min_people": 0,
        }, headers=auth(admin))
        assert resp.status_code == 400
        assert "original_price" in resp.json()["detail"]
        assert "min_people" in resp.json()["detail"]

    def test_now_mode_requires_now_price(self, client, admin):
        resp = client.post("/api/products/", json={
            "name": "X", "original_price": "10", "group_price": "8", "sale_mode": "now",
        }, headers=auth(admin))
        assert resp.status_code == 400

    def test_list_filters_and_hides_inactive(self, client, admin):
        create_test_product(client, admin, name="Arabica Beans", category="Coffee")
        create_test_product(client, admin, name="Green Tea", category="Tea")
        create_test_product(client, admin, name="Old Beans", category="Coffee", active=False)

        names = [p["name"] for p in client.get("/api/products/").json()]
        assert names == ["Arabica Beans", "Green Tea"]

        coffee = client.get("/api/products/", params={"category": "Coffee"}).json()
        assert [p["name"] for p in coffee] == ["Arabica Beans"]

        search = client.get("/api/products/", params={"search": "tea"}).json()
        assert [p["name"] for p in search] == ["Green Tea"]

    def test_get_and_update(self, client, admin):
        product = create_test_product(client, admin)
        resp = client.patch(f"/api/products/{product['id']}", json={"group_price": "49.5"}, headers=auth(admin))
        assert resp.status_code == 200
        assert resp.json()["group_price"] == "49.50"
        assert client.get(f"/api/products/{product['id']}").json()["group_price"] == "49.50"

    def test_not_found(self, client, admin):
        assert client.get("/api/products/999").status_code == 404
        assert client.patch("/api/products/999", json={"stock": 1}, headers=auth(admin)).status_code == 404
