"""Cart aggregate through the HTTP API."""
from decimal import Decimal

from conftest import auth, add_to_cart
from models.cart import Cart, CartItem
from models.product import Product


class TestGetCart:
    def test_no_cart_is_not_an_error(self, client, users):
        response = client.get("/cart", headers=auth(users["alice"]))
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"] is None
        assert body["error"] is None

    def test_view_uses_live_prices(self, client, db, users, products):
        add_to_cart(client, users["alice"], products["mug"], 2)

        product = db.get(Product, products["mug"])
        product.price = Decimal("12.25")
        db.commit()

        data = client.get("/cart", headers=auth(users["alice"])).json()["data"]
        assert data["items"][0]["product"]["price"] == "12.25"
        assert data["items"][0]["subtotal"] == "24.50"
        assert data["total"] == "24.50"


class TestAddItem:
    def test_first_add_creates_active_cart(self, client, db, users, products):
        response = add_to_cart(client, users["alice"], products["mug"], 2)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["userId"] == users["alice"]
        assert len(data["items"]) == 1
        assert data["items"][0]["quantity"] == 2
        assert data["items"][0]["subtotal"] == "20.00"
        assert data["total"] == "20.00"

        carts = db.query(Cart).filter(Cart.user_id == users["alice"]).all()
        assert len(carts) == 1
        assert carts[0].is_active is True

    def test_same_product_twice_sums_quantity(self, client, db, users, products):
        add_to_cart(client, users["alice"], products["filters"], 2)
        response = add_to_cart(client, users["alice"], products["filters"], 3)

        data = response.json()["data"]
        assert len(data["items"]) == 1
        assert data["items"][0]["quantity"] == 5
        assert data["total"] == "27.50"
        assert db.query(CartItem).count() == 1

    def test_repeated_adds_reuse_the_active_cart(self, client, db, users, products):
        add_to_cart(client, users["alice"], products["mug"])
        add_to_cart(client, users["alice"], products["filters"])
        add_to_cart(client, users["alice"], products["mug"])
        assert db.query(Cart).filter(Cart.user_id == users["alice"]).count() == 1

    def test_quantity_above_stock_is_rejected(self, client, db, users, products):
        response = add_to_cart(client, users["alice"], products["mug"], 6)
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "STOCK_LIMIT"
        assert db.query(Cart).count() == 0

    def test_total_quantity_above_stock_is_rejected(self, client, db, users, products):
        add_to_cart(client, users["alice"], products["mug"], 3)
        response = add_to_cart(client, users["alice"], products["mug"], 3)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "STOCK_LIMIT"
        db.expire_all()
        assert db.query(CartItem).one().quantity == 3

    def test_unknown_product(self, client, users, products):
        response = add_to_cart(client, users["alice"], 9999)
        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["data"] is None
        assert body["error"]["code"] == "PRODUCT_NOT_FOUND"

    def test_inactive_product(self, client, users, products):
        response = add_to_cart(client, users["alice"], products["retired"])
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "BAD_REQUEST"

    def test_zero_quantity_fails_validation(self, client, users, products):
        response = add_to_cart(client, users["alice"], products["mug"], 0)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_defaults_to_one(self, client, users, products):
        response = client.post("/cart/items", json={"productId": products["mug"]}, headers=auth(users["alice"]))
        assert response.json()["data"]["items"][0]["quantity"] == 1


class TestUpdateItem:
    def _item_id(self, client, user_id, product_id, quantity=1):
        return add_to_cart(client, user_id, product_id, quantity).json()["data"]["items"][0]["id"]

    def test_update_is_reflected_in_next_view(self, client, users, products):
        item_id = self._item_id(client, users["alice"], products["filters"], 1)

        response = client.patch(f"/cart/items/{item_id}", json={"quantity": 4}, headers=auth(users["alice"]))
        assert response.status_code == 200
        assert response.json()["data"]["total"] == "22.00"

        view = client.get("/cart", headers=auth(users["alice"])).json()["data"]
        assert view["items"][0]["quantity"] == 4
        assert view["total"] == "22.00"

    def test_update_above_stock_conflicts(self, client, users, products):
        item_id = self._item_id(client, users["alice"], products["mug"])
        response = client.patch(f"/cart/items/{item_id}", json={"quantity": 6}, headers=auth(users["alice"]))
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    def test_update_someone_elses_item_is_forbidden(self, client, db, users, products):
        item_id = self._item_id(client, users["alice"], products["mug"], 2)

        response = client.patch(f"/cart/items/{item_id}", json={"quantity": 1}, headers=auth(users["bob"]))
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"
        db.expire_all()
        assert db.get(CartItem, item_id).quantity == 2

    def test_update_missing_item(self, client, users, products):
        response = client.patch("/cart/items/4242", json={"quantity": 1}, headers=auth(users["alice"]))
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_invalid_item_id(self, client, users):
        response = client.patch("/cart/items/0", json={"quantity": 1}, headers=auth(users["alice"]))
        assert response.status_code == 400


class TestRemoveItem:
    def test_remove_and_view(self, client, users, products):
        add_to_cart(client, users["alice"], products["mug"], 1)
        data = add_to_cart(client, users["alice"], products["filters"], 2).json()["data"]
        filters_line = next(i for i in data["items"] if i["product"]["id"] == products["filters"])

        response = client.delete(f"/cart/items/{filters_line['id']}", headers=auth(users["alice"]))
        assert response.status_code == 200
        assert [i["product"]["id"] for i in response.json()["data"]["items"]] == [products["mug"]]

        view = client.get("/cart", headers=auth(users["alice"])).json()["data"]
        assert len(view["items"]) == 1
        assert view["total"] == "10.00"

    def test_remove_last_item_leaves_empty_cart(self, client, users, products):
        item_id = add_to_cart(client, users["alice"], products["mug"]).json()["data"]["items"][0]["id"]
        data = client.delete(f"/cart/items/{item_id}", headers=auth(users["alice"])).json()["data"]
        assert data["items"] == []
        assert data["total"] == "0.00"

    def test_remove_someone_elses_item_is_forbidden(self, client, db, users, products):
        item_id = add_to_cart(client, users["alice"], products["mug"]).json()["data"]["items"][0]["id"]

        response = client.delete(f"/cart/items/{item_id}", headers=auth(users["bob"]))
        assert response.status_code == 403
        db.expire_all()
        assert db.get(CartItem, item_id) is not None


class TestAuthentication:
    def test_mutations_require_identity(self, client, db, users, products):
        assert client.post("/cart/items", json={"productId": products["mug"], "quantity": 1}).status_code == 401
        assert client.patch("/cart/items/1", json={"quantity": 1}).status_code == 401
        assert client.delete("/cart/items/1").status_code == 401
        assert client.get("/cart").status_code == 401
        assert db.query(Cart).count() == 0

    def test_invalid_token(self, client, users, products):
        response = client.post(
            "/cart/items",
            json={"productId": products["mug"], "quantity": 1},
            headers={"Authorization": "Bearer not-a-token"},
        )
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_token_for_unknown_user(self, client, users, products):
        response = add_to_cart(client, "user_ghost", products["mug"])
        assert response.status_code == 401


class TestConcurrentFirstAdd:
    def test_lost_race_reuses_the_existing_active_cart(self, db, users, products, monkeypatch):
        from services import cart as cart_service

        existing = Cart(user_id=users["alice"], is_active=True)
        db.add(existing)
        db.commit()
        existing_id = existing.id

        # The first active-cart lookup runs before the other request commits
        real_query = db.query
        missed = []

        class _NotYetVisible:
            def filter(self, *criteria):
                return self

            def first(self):
                return None

        def racing_query(*entities, **kwargs):
            if entities == (Cart,) and not missed:
                missed.append(True)
                return _NotYetVisible()
            return real_query(*entities, **kwargs)

        monkeypatch.setattr(db, "query", racing_query)

        out = cart_service.add_item(db, users["alice"], products["mug"], 2)

        assert missed == [True]
        assert out.id == existing_id
        assert [(i.product.id, i.quantity) for i in out.items] == [(products["mug"], 2)]

        monkeypatch.undo()
        db.expire_all()
        active = db.query(Cart).filter(Cart.user_id == users["alice"], Cart.is_active.is_(True)).all()
        assert [c.id for c in active] == [existing_id]
