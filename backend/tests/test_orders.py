"""Tests for checkout and the order status workflow."""
from datetime import datetime, timedelta, timezone

from app.models.order import Order, OrderStatusHistory
from tests.conftest import auth, create_test_user


def _place_order(client, user, **overrides):
    body = {
        "items": [
            {"product_id": 1, "name": "Coffee Beans 1kg", "quantity": 2, "unit_price": "59.90"},
            {"product_id": 2, "name": "Filter Papers", "quantity": 1, "unit_price": "7.35"},
        ],
        "fulfillment_type": "pickup",
        "pickup_point_id": 3,
    }
    body.update(overrides)
    return client.post("/api/orders/", json=body, headers=auth(user))


def _set_status(client, admin, order_id, status, reason=None):
    body = {"status": status}
    if reason is not None:
        body["reason"] = reason
    return client.patch(f"/api/orders/{order_id}/status", json=body, headers=auth(admin))


def _enable_override(client, admin, enabled=True):
    resp = client.put("/api/admin/order-settings", json={"admin_override": enabled}, headers=auth(admin))
    assert resp.status_code == 200, resp.text


class TestCheckout:
    """POST /api/orders turns cart lines into an order snapshot."""

    def test_create_order_computes_exact_total(self, client):
        user = create_test_user(client)
        resp = _place_order(client, user)
        assert resp.status_code == 201, resp.text
        order = resp.json()
        assert order["total"] == "127.15"
        assert order["status"] == "received"
        assert order["user_id"] == user["user_id"]
        assert order["items"][0]["line_total"] == "119.80"
        assert order["pickup_deadline"] is None

    def test_create_order_writes_initial_history(self, client):
        user = create_test_user(client, name="Carla")
        order = _place_order(client, user).json()
        history = client.get(f"/api/orders/{order['id']}/history", headers=auth(user)).json()
        assert len(history) == 1
        assert history[0]["from_status"] is None
        assert history[0]["to_status"] == "received"
        assert history[0]["actor_name"] == "Carla"

    def test_pickup_requires_pickup_point(self, client):
        user = create_test_user(client)
        resp = _place_order(client, user, pickup_point_id=None)
        assert resp.status_code == 400
        assert "pickup_point_id" in resp.json()["detail"]

    def test_delivery_rejects_pickup_point(self, client):
        user = create_test_user(client)
        resp = _place_order(client, user, fulfillment_type="delivery", pickup_point_id=3)
        assert resp.status_code == 400

    def test_delivery_without_pickup_point(self, client):
        user = create_test_user(client)
        resp = _place_order(client, user, fulfillment_type="delivery", pickup_point_id=None)
        assert resp.status_code == 201
        assert resp.json()["fulfillment_type"] == "delivery"

    def test_empty_cart_rejected(self, client):
        user = create_test_user(client)
        assert _place_order(client, user, items=[]).status_code == 400

    def test_requires_auth(self, client):
        resp = client.post("/api/orders/", json={
            "items": [{"product_id": 1, "name": "Tea", "unit_price": "5.00"}],
            "fulfillment_type": "delivery",
        })
        assert resp.status_code == 401


class TestOrderAccess:
    """Owner/admin visibility rules."""

    def test_owner_and_admin_can_read(self, client, admin):
        owner = create_test_user(client, name="Owner")
        order = _place_order(client, owner).json()
        assert client.get(f"/api/orders/{order['id']}", headers=auth(owner)).status_code == 200
        assert client.get(f"/api/orders/{order['id']}", headers=auth(admin)).status_code == 200

    def test_other_user_forbidden(self, client):
        owner = create_test_user(client, name="Owner")
        other = create_test_user(client, name="Other")
        order = _place_order(client, owner).json()
        assert client.get(f"/api/orders/{order['id']}", headers=auth(other)).status_code == 403
        assert client.get(f"/api/orders/{order['id']}/history", headers=auth(other)).status_code == 403

    def test_history_not_found(self, client, admin):
        assert client.get("/api/orders/404/history", headers=auth(admin)).status_code == 404

    def test_list_orders_scoped_to_caller(self, client, admin):
        a = create_test_user(client, name="A")
        b = create_test_user(client, name="B")
        _place_order(client, a)
        _place_order(client, b)
        assert len(client.get("/api/orders/", headers=auth(a)).json()) == 1
        assert len(client.get("/api/orders/", headers=auth(admin)).json()) == 2


class TestStatusWorkflow:
    """PATCH /api/orders/{id}/status against the transition table."""

    def test_happy_path_to_picked_up(self, client, admin):
        user = create_test_user(client)
        order = _place_order(client, user).json()
        for status in ("preparing", "ready_for_pickup", "picked_up"):
            resp = _set_status(client, admin, order["id"], status)
            assert resp.status_code == 200, resp.text
            assert resp.json()["status"] == status

        history = client.get(f"/api/orders/{order['id']}/history", headers=auth(admin)).json()
        assert [(h["from_status"], h["to_status"]) for h in history] == [
            (None, "received"),
            ("received", "preparing"),
            ("preparing", "ready_for_pickup"),
            ("ready_for_pickup", "picked_up"),
        ]

    def test_ready_for_pickup_sets_deadline(self, client, admin):
        user = create_test_user(client)
        order = _place_order(client, user).json()
        _set_status(client, admin, order["id"], "preparing")
        resp = _set_status(client, admin, order["id"], "ready_for_pickup")
        assert resp.json()["pickup_deadline"] is not None

    def test_cancel_then_terminal(self, client, admin):
        """received -> cancelled is allowed; cancelled -> preparing is not."""
        user = create_test_user(client)
        order = _place_order(client, user).json()

        resp = _set_status(client, admin, order["id"], "cancelled", reason="Customer asked")
        assert resp.status_code == 200
        history = client.get(f"/api/orders/{order['id']}/history", headers=auth(user)).json()
        assert (history[-1]["from_status"], history[-1]["to_status"]) == ("received", "cancelled")

        resp = _set_status(client, admin, order["id"], "preparing")
        assert resp.status_code == 400
        assert "cancelled" in resp.json()["detail"]
        assert "preparing" in resp.json()["detail"]

    def test_terminal_picked_up_refused_without_override(self, client, admin):
        user = create_test_user(client)
        order = _place_order(client, user).json()
        for status in ("preparing", "ready_for_pickup", "picked_up"):
            _set_status(client, admin, order["id"], status)

        for target in ("received", "preparing", "ready_for_pickup", "not_picked_up", "cancelled"):
            assert _set_status(client, admin, order["id"], target).status_code == 400

        assert client.get(f"/api/orders/{order['id']}", headers=auth(admin)).json()["status"] == "picked_up"
        history = client.get(f"/api/orders/{order['id']}/history", headers=auth(admin)).json()
        assert len(history) == 4

    def test_override_allows_off_graph_move_and_records_it(self, client, admin):
        user = create_test_user(client)
        order = _place_order(client, user).json()
        for status in ("preparing", "ready_for_pickup", "picked_up"):
            _set_status(client, admin, order["id"], status)

        _enable_override(client, admin)
        resp = _set_status(client, admin, order["id"], "ready_for_pickup", reason="Mis-click")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ready_for_pickup"

        history = client.get(f"/api/orders/{order['id']}/history", headers=auth(admin)).json()
        last = history[-1]
        assert (last["from_status"], last["to_status"]) == ("picked_up", "ready_for_pickup")
        assert last["reason"] == "Mis-click"
        assert last["actor_id"] == admin["user_id"]
        assert last["actor_name"] == "Admin"
        assert last["override_applied"] is True

    def test_override_on_graph_move_not_flagged(self, client, admin):
        user = create_test_user(client)
        order = _place_order(client, user).json()
        _enable_override(client, admin)
        _set_status(client, admin, order["id"], "preparing")
        history = client.get(f"/api/orders/{order['id']}/history", headers=auth(admin)).json()
        assert history[-1]["override_applied"] is False

    def test_each_change_appends_exactly_one_history_row(self, client, admin, session_factory):
        user = create_test_user(client)
        order = _place_order(client, user).json()
        _set_status(client, admin, order["id"], "preparing", reason="Kitchen started")
        _set_status(client, admin, order["id"], "picked_up")  # refused
        _enable_override(client, admin)
        _set_status(client, admin, order["id"], "picked_up", reason="Forced")

        with session_factory() as s:
            rows = (
                s.query(OrderStatusHistory)
                .filter(OrderStatusHistory.order_id == order["id"])
                .order_by(OrderStatusHistory.id)
                .all()
            )
            summary = [(r.to_status.value, r.reason, r.override_applied) for r in rows]
        assert summary == [
            ("received", "Order placed", False),
            ("preparing", "Kitchen started", False),
            ("picked_up", "Forced", True),
        ]

    def test_transition_uses_live_table(self, client, admin):
        """An admin edit to the table applies on the very next request."""
        user = create_test_user(client)
        order = _place_order(client, user).json()
        assert _set_status(client, admin, order["id"], "ready_for_pickup").status_code == 400

        resp = client.put(
            "/api/admin/order-settings",
            json={"transitions": {"received": ["ready_for_pickup", "preparing", "cancelled"]}},
            headers=auth(admin),
        )
        assert resp.status_code == 200
        assert _set_status(client, admin, order["id"], "ready_for_pickup").status_code == 200

    def test_status_change_requires_admin(self, client):
        user = create_test_user(client)
        order = _place_order(client, user).json()
        assert _set_status(client, user, order["id"], "preparing").status_code == 403

    def test_status_change_order_not_found(self, client, admin):
        assert _set_status(client, admin, 9999, "preparing").status_code == 404

    def test_status_change_unknown_status(self, client, admin):
        user = create_test_user(client)
        order = _place_order(client, user).json()
        assert _set_status(client, admin, order["id"], "shipped").status_code == 400


class TestOverdue:
    """Overdue detection and the auto-mark sweep."""

    def _ready_order(self, client, admin, session_factory, hours_ago: int):
        user = create_test_user(client)
        order = _place_order(client, user).json()
        _set_status(client, admin, order["id"], "preparing")
        _set_status(client, admin, order["id"], "ready_for_pickup")
        with session_factory() as s:
            row = s.get(Order, order["id"])
            row.pickup_deadline = datetime.now(timezone.utc) - timedelta(hours=hours_ago)
            s.commit()
        return order

    def test_overdue_respects_tolerance(self, client, admin, session_factory):
        client.put("/api/admin/order-settings", json={"pickup_tolerance_hours": 24}, headers=auth(admin))
        late = self._ready_order(client, admin, session_factory, hours_ago=30)
        self._ready_order(client, admin, session_factory, hours_ago=2)

        resp = client.get("/api/admin/orders/overdue", headers=auth(admin))
        assert resp.status_code == 200
        assert [o["id"] for o in resp.json()] == [late["id"]]

    def test_terminal_orders_never_overdue(self, client, admin, session_factory):
        client.put("/api/admin/order-settings", json={"pickup_tolerance_hours": 0}, headers=auth(admin))
        order = self._ready_order(client, admin, session_factory, hours_ago=5)
        _set_status(client, admin, order["id"], "picked_up")
        assert client.get("/api/admin/orders/overdue", headers=auth(admin)).json() == []

    def test_overdue_requires_admin(self, client):
        user = create_test_user(client)
        assert client.get("/api/admin/orders/overdue", headers=auth(user)).status_code == 403

    def test_mark_overdue_disabled_by_default(self, client, admin, session_factory):
        client.put("/api/admin/order-settings", json={"pickup_tolerance_hours": 0}, headers=auth(admin))
        self._ready_order(client, admin, session_factory, hours_ago=5)
        resp = client.post("/api/admin/orders/overdue/mark", headers=auth(admin))
        assert resp.status_code == 200
        assert resp.json() == []

    def test_mark_overdue_moves_to_not_picked_up(self, client, admin, session_factory):
        client.put(
            "/api/admin/order-settings",
            json={"pickup_tolerance_hours": 0, "overdue_auto_mark": True},
            headers=auth(admin),
        )
        order = self._ready_order(client, admin, session_factory, hours_ago=5)

        resp = client.post("/api/admin/orders/overdue/mark", headers=auth(admin))
        assert [o["status"] for o in resp.json()] == ["not_picked_up"]

        history = client.get(f"/api/orders/{order['id']}/history", headers=auth(admin)).json()
        assert history[-1]["to_status"] == "not_picked_up"
        assert history[-1]["reason"] == "Pickup deadline passed"

        # Still overdue (not_picked_up is not terminal) but not marked twice
        assert client.post("/api/admin/orders/overdue/mark", headers=auth(admin)).json() == []
