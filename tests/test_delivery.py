from fastapi import status

from aqva.services import delivery


def _claim(client, order, headers):
    response = client.post(f"/api/riders/orders/{order.id}/claim", headers=headers)
    assert response.status_code == status.HTTP_200_OK


def test_full_delivery_progression(client, paid_order, rider, rider_headers, db):
    _claim(client, paid_order, rider_headers)

    started = client.post(f"/api/riders/orders/{paid_order.id}/start", headers=rider_headers)
    assert started.status_code == status.HTTP_200_OK
    assert started.json()["order"]["status"] == "en_route"
    assert started.json()["order"]["eta_minutes"] == 10

    delivered = client.post(f"/api/riders/orders/{paid_order.id}/delivered", headers=rider_headers)
    assert delivered.status_code == status.HTTP_200_OK
    assert delivered.json()["order"]["status"] == "delivered"
    assert delivered.json()["order"]["delivered_at"] is not None


def test_deliver_requires_en_route(client, paid_order, rider_headers, db):
    _claim(client, paid_order, rider_headers)

    response = client.post(f"/api/riders/orders/{paid_order.id}/delivered", headers=rider_headers)

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["status"] == "assigned"
    db.refresh(paid_order)
    assert paid_order.delivered_at is None


def test_status_never_moves_backwards(client, paid_order, rider_headers):
    _claim(client, paid_order, rider_headers)
    client.post(f"/api/riders/orders/{paid_order.id}/start", headers=rider_headers)
    client.post(f"/api/riders/orders/{paid_order.id}/delivered", headers=rider_headers)

    restart = client.post(f"/api/riders/orders/{paid_order.id}/start", headers=rider_headers)
    fail = client.post(f"/api/riders/orders/{paid_order.id}/undeliverable", headers=rider_headers)

    assert restart.status_code == status.HTTP_409_CONFLICT
    assert fail.status_code == status.HTTP_409_CONFLICT
    assert fail.json()["status"] == "delivered"


def test_other_rider_cannot_progress_order(client, paid_order, rider_headers, rider2_headers, db):
    _claim(client, paid_order, rider_headers)

    response = client.post(f"/api/riders/orders/{paid_order.id}/start", headers=rider2_headers)

    assert response.status_code == status.HTTP_409_CONFLICT
    db.refresh(paid_order)
    assert paid_order.status == "assigned"


def test_undeliverable_sets_failed_not_cancelled(client, paid_order, rider_headers):
    _claim(client, paid_order, rider_headers)

    response = client.post(f"/api/riders/orders/{paid_order.id}/undeliverable", headers=rider_headers)

    assert response.status_code == status.HTTP_200_OK
    order = response.json()["order"]
    assert order["status"] == "failed"
    assert order["failed_at"] is not None
    assert order["cancelled_at"] is None


def test_rider_transition_after_customer_cancel_conflicts(client, paid_order, rider, rider_headers, auth_headers, db):
    _claim(client, paid_order, rider_headers)
    cancelled = client.post(f"/api/orders/{paid_order.id}/cancel", headers=auth_headers)
    assert cancelled.status_code == status.HTTP_200_OK

    result = delivery.start_delivery(db, rider, paid_order.id)

    assert result.conflict
    assert result.order.status == "cancelled"
    assert result.reason == delivery.STALE_ORDER


def test_cancel_after_delivery_keeps_delivered(paid_order, rider, test_user, db):
    delivery_order = paid_order
    delivery_order.status = "en_route"
    delivery_order.rider_id = rider.id
    db.commit()
    assert delivery.mark_delivered(db, rider, delivery_order.id).applied

    result = delivery.cancel_order(db, test_user.id, delivery_order.id)

    assert result.conflict
    assert result.order.status == "delivered"
    assert "status=delivered" in result.reason


def test_my_deliveries_lists_held_orders(client, paid_order, rider_headers):
    _claim(client, paid_order, rider_headers)

    response = client.get("/api/riders/orders/mine", headers=rider_headers)

    assert response.status_code == status.HTTP_200_OK
    assert [o["id"] for o in response.json()] == [paid_order.id]
