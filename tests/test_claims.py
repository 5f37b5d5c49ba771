import threading
from concurrent.futures import ThreadPoolExecutor

from fastapi import status
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from aqva.models import Address, Pack, Rider, User, Zone
from aqva.models.database import Base
from aqva.models.order import Order
from aqva.services import claims
from aqva.services.claims import ORDER_UNAVAILABLE


def test_claim_assigns_order_to_rider(client, paid_order, rider, rider_headers, db):
    response = client.post(f"/api/riders/orders/{paid_order.id}/claim", headers=rider_headers)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["applied"] is True
    assert data["order"]["status"] == "assigned"
    assert data["order"]["rider_id"] == rider.id


def test_second_claim_loses(client, paid_order, rider, rider_headers, rider2_headers, db):
    first = client.post(f"/api/riders/orders/{paid_order.id}/claim", headers=rider_headers)
    second = client.post(f"/api/riders/orders/{paid_order.id}/claim", headers=rider2_headers)

    assert first.status_code == status.HTTP_200_OK
    assert second.status_code == status.HTTP_409_CONFLICT
    assert second.json()["detail"] == ORDER_UNAVAILABLE
    assert second.json()["status"] == "assigned"

    db.refresh(paid_order)
    assert paid_order.rider_id == rider.id


def test_claim_unpaid_order_conflicts(client, test_user, test_address, make_order, rider_headers, db):
    order = make_order(test_user, paid=False)

    response = client.post(f"/api/riders/orders/{order.id}/claim", headers=rider_headers)

    assert response.status_code == status.HTTP_409_CONFLICT
    db.refresh(order)
    assert order.status == "pending"
    assert order.rider_id is None


def test_claim_cancelled_order_conflicts(client, test_user, test_address, make_order, rider_headers):
    order = make_order(test_user, status="cancelled")

    response = client.post(f"/api/riders/orders/{order.id}/claim", headers=rider_headers)

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["status"] == "cancelled"


def test_offline_rider_cannot_claim(client, paid_order, rider, rider_headers, db):
    rider.is_online = False
    db.commit()

    response = client.post(f"/api/riders/orders/{paid_order.id}/claim", headers=rider_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "offline" in response.json()["detail"].lower()


def test_busy_rider_cannot_claim_second_order(client, paid_order, test_user2, make_order, rider, rider_headers):
    make_order(test_user2, status="assigned", rider=rider)

    response = client.post(f"/api/riders/orders/{paid_order.id}/claim", headers=rider_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "active delivery" in response.json()["detail"].lower()


def test_claim_statement_rechecks_rider_busy(paid_order, test_user2, make_order, rider, db, monkeypatch):
    """Even if the pre-check is stale, the UPDATE itself refuses a busy rider."""
    make_order(test_user2, status="en_route", rider=rider)
    monkeypatch.setattr(claims, "rider_has_active_order", lambda db, rider_id: False)

    result = claims.claim_order(db, rider, paid_order.id)

    assert result.conflict
    assert result.reason == ORDER_UNAVAILABLE
    assert db.query(Order).filter(Order.rider_id == rider.id).count() == 1


def test_claim_statement_rechecks_rider_online(paid_order, rider, db, monkeypatch):
    monkeypatch.setattr(claims, "rider_is_online", lambda db, rider_id: True)
    rider.is_online = False
    db.commit()

    result = claims.claim_order(db, rider, paid_order.id)

    assert result.conflict
    db.refresh(paid_order)
    assert paid_order.rider_id is None


def test_claim_requires_rider_profile(client, paid_order, auth_headers):
    response = client.post(f"/api/riders/orders/{paid_order.id}/claim", headers=auth_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_available_orders_lists_only_claimable(client, test_user, test_user2, test_address, make_order, rider, rider_headers):
    claimable = make_order(test_user)
    make_order(test_user2, paid=False)

    response = client.get("/api/riders/orders/available", headers=rider_headers)

    assert response.status_code == status.HTTP_200_OK
    assert [o["id"] for o in response.json()] == [claimable.id]


def test_concurrent_claims_have_one_winner(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'claims.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    claimants = 6

    with SessionLocal() as setup:
        customer = User(email="buyer@example.com", full_name="Buyer", hashed_password="x")
        zone = Zone(name="Sea Point", is_active=True)
        pack = Pack(name="AQVA Pack 6 x 1.5L", units_per_pack=6, price_cents=7999, is_active=True)
        setup.add_all([customer, zone, pack])
        setup.flush()
        address = Address(user_id=customer.id, line1="1 Beach Road", is_default=True)
        setup.add(address)
        rider_users = [
            User(email=f"rider{i}@example.com", full_name=f"Rider {i}", hashed_password="x") for i in range(claimants)
        ]
        setup.add_all(rider_users)
        setup.flush()
        riders = [Rider(user_id=u.id, display_name=u.full_name, is_online=True) for u in rider_users]
        setup.add_all(riders)
        setup.flush()
        order = Order(
            user_id=customer.id,
            address_id=address.id,
            zone_id=zone.id,
            pack_id=pack.id,
            quantity=1,
            total_cents=7999,
            status="pending",
            payment_status="paid",
            payment_method="card",
        )
        setup.add(order)
        setup.commit()
        order_id = order.id
        rider_ids = [r.id for r in riders]

    barrier = threading.Barrier(claimants)

    def attempt(rider_id: int) -> bool:
        with SessionLocal() as session:
            rider = session.get(Rider, rider_id)
            barrier.wait()
            return claims.claim_order(session, rider, order_id).applied

    try:
        with ThreadPoolExecutor(max_workers=claimants) as pool:
            outcomes = list(pool.map(attempt, rider_ids))

        assert outcomes.count(True) == 1
        with SessionLocal() as check:
            claimed = check.get(Order, order_id)
            assert claimed.status == "assigned"
            assert claimed.rider_id == rider_ids[outcomes.index(True)]
    finally:
        engine.dispose()
