from datetime import datetime

import pytest

from tattoo_crm.models import Member
from tattoo_crm.models_booking import Appointment

SNAPSHOT = {
    "items": [
        {"serviceId": None, "serviceName": "Sleeve session", "basePrice": 4000, "finalPrice": 4000},
        {"serviceId": None, "serviceName": "Touch up", "basePrice": 1000, "finalPrice": 1000},
    ]
}


@pytest.fixture
def appointment_id(seed, db):
    appointment = Appointment(
        branch_id=seed.branch_id,
        artist_id=seed.artist_id,
        user_id=seed.customer_id,
        start_at=datetime(2030, 1, 15, 14, 0),
        end_at=datetime(2030, 1, 15, 16, 0),
        status="CONFIRMED",
        cart_snapshot=SNAPSHOT,
    )
    db.add(appointment)
    db.commit()
    return appointment.id


def pay(client, seed, appointment_id, amount, method="CASH", headers=None):
    return client.post(
        f"/admin/billing/appointments/{appointment_id}/payments",
        json={"amount": amount, "method": method},
        headers=headers or seed.boss_headers,
    )


def test_bill_is_built_from_the_cart_snapshot(client, seed, appointment_id):
    response = client.post(f"/admin/billing/appointments/{appointment_id}/ensure", headers=seed.boss_headers)
    assert response.status_code == 200
    bill = response.json()
    assert bill["billTotal"] == 5000
    assert bill["status"] == "OPEN"
    assert [i["nameSnapshot"] for i in bill["items"]] == ["Sleeve session", "Touch up"]


def test_payments_allocate_and_settle(client, seed, appointment_id):
    first = pay(client, seed, appointment_id, 2000)
    assert first.status_code == 200
    assert first.json()["status"] == "OPEN"
    assert first.json()["summary"] == {"paidTotal": 2000, "dueTotal": 3000}

    second = pay(client, seed, appointment_id, 3000, method="card")
    bill = second.json()
    assert bill["status"] == "SETTLED"
    assert bill["summary"]["dueTotal"] == 0

    allocations = [a for p in bill["payments"] for a in p["allocations"]]
    artist_total = sum(a["amount"] for a in allocations if a["target"] == "ARTIST")
    shop_total = sum(a["amount"] for a in allocations if a["target"] == "SHOP")
    assert (artist_total, shop_total) == (3500, 1500)
    assert {p["method"] for p in bill["payments"]} == {"CASH", "CARD"}


def test_stored_value_payment_spends_balance(client, seed, appointment_id, db):
    response = pay(client, seed, appointment_id, 600, method="STORED_VALUE")
    assert response.status_code == 200

    member = db.get(Member, seed.member_id)
    db.refresh(member)
    assert member.balance == 400
    assert member.total_spent == 600


def test_stored_value_rejects_insufficient_balance(client, seed, appointment_id, db):
    response = pay(client, seed, appointment_id, 1500, method="STORED_VALUE")
    assert response.status_code == 400

    member = db.get(Member, seed.member_id)
    db.refresh(member)
    assert member.balance == 1000


def test_zero_amount_is_invalid(client, seed, appointment_id):
    assert pay(client, seed, appointment_id, 0).status_code == 422


def test_artist_scope(client, seed, appointment_id):
    assert client.get(
        f"/admin/billing/appointments/{appointment_id}", headers=seed.other_artist_headers
    ).status_code == 403
    assert pay(client, seed, appointment_id, 100, headers=seed.artist_headers).status_code == 200


def test_member_stored_value_endpoints(client, seed):
    topup = client.post(
        f"/admin/members/{seed.member_id}/topup", json={"amount": 500}, headers=seed.boss_headers
    )
    assert topup.status_code == 200
    assert topup.json()["balance"] == 1500

    overspend = client.post(
        f"/admin/members/{seed.member_id}/spend", json={"amount": 5000}, headers=seed.boss_headers
    )
    assert overspend.status_code == 400

    history = client.get(f"/admin/members/{seed.member_id}/topup-history", headers=seed.boss_headers)
    assert [h["type"] for h in history.json()] == ["TOPUP"]
