from fastapi import status

from aqva.models import Pack, Zone


def test_list_zones_only_active(client, test_zone, db):
    db.add(Zone(name="Closed Zone", is_active=False))
    db.commit()

    response = client.get("/api/zones")

    assert response.status_code == status.HTTP_200_OK
    assert [z["name"] for z in response.json()] == ["Sea Point"]


def test_list_packs_only_active(client, test_pack, db):
    db.add(Pack(name="Retired Pack", units_per_pack=12, price_cents=9999, is_active=False))
    db.commit()

    response = client.get("/api/packs")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert len(data) == 1
    assert data[0]["price_cents"] == 7999
    assert data[0]["units_per_pack"] == 6


def test_first_address_becomes_default(client, auth_headers):
    first = client.post("/api/addresses", json={"line1": "1 Beach Road", "city": "Cape Town"}, headers=auth_headers)
    second = client.post("/api/addresses", json={"line1": "5 Long Street", "label": "Work"}, headers=auth_headers)

    assert first.status_code == status.HTTP_200_OK
    assert first.json()["is_default"] is True
    assert first.json()["label"] == "Home"
    assert first.json()["country"] == "ZA"
    assert second.json()["is_default"] is False
    assert second.json()["label"] == "Work"

    listed = client.get("/api/addresses", headers=auth_headers)
    assert [a["line1"] for a in listed.json()] == ["1 Beach Road", "5 Long Street"]


def test_address_requires_line1(client, auth_headers):
    response = client.post("/api/addresses", json={"line1": "   "}, headers=auth_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_addresses_are_private(client, test_user2, make_headers, auth_headers):
    client.post("/api/addresses", json={"line1": "1 Beach Road"}, headers=auth_headers)

    response = client.get("/api/addresses", headers=make_headers(test_user2))

    assert response.json() == []
