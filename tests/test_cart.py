from datetime import datetime, timedelta

from tattoo_crm.domain.cart.service import CartService
from tattoo_crm.models_catalog import Cart

GUEST = {"X-Session-Id": "guest-session-1"}
OTHER_GUEST = {"X-Session-Id": "guest-session-2"}


def add_item(client, seed, headers=GUEST):
    return client.post(
        "/cart/items",
        json={"serviceId": seed.service_id, "selectedVariants": {"size": "5cm", "color": "黑白"}},
        headers=headers,
    )


def test_guest_cart_add_update_remove(client, seed):
    response = add_item(client, seed)
    assert response.status_code == 200
    cart = response.json()
    assert len(cart["items"]) == 1
    assert cart["totalPrice"] == 3000
    item_id = cart["items"][0]["id"]

    response = client.patch(
        f"/cart/items/{item_id}", json={"selectedVariants": {"custom_addon": 500}}, headers=GUEST
    )
    assert response.status_code == 200
    item = response.json()["items"][0]
    assert item["finalPrice"] == 3500
    assert item["addonTotal"] == 500
    assert item["selectedVariants"]["size"] == "5cm"

    response = client.delete(f"/cart/items/{item_id}", headers=GUEST)
    assert response.status_code == 200
    assert response.json()["items"] == []


def test_other_guest_cannot_touch_item(client, seed):
    item_id = add_item(client, seed).json()["items"][0]["id"]
    assert client.delete(f"/cart/items/{item_id}", headers=OTHER_GUEST).status_code == 400
    assert client.get("/cart", headers=OTHER_GUEST).json()["items"] == []


def test_size_and_color_are_required(client, seed):
    response = client.post(
        "/cart/items", json={"serviceId": seed.service_id, "selectedVariants": {"size": "5cm"}}, headers=GUEST
    )
    assert response.status_code == 400


def test_cart_requires_an_owner(client, seed):
    response = client.post(
        "/cart/items", json={"serviceId": seed.service_id, "selectedVariants": {"size": "5cm", "color": "黑白"}}
    )
    assert response.status_code == 400


def test_checkout_creates_appointment_and_order(client, seed):
    add_item(client, seed)
    checkout = {
        "branchId": seed.branch_id,
        "preferredDate": "2030-01-15",
        "preferredTimeSlot": "14:00",
        "customerName": "Walk In",
        "customerPhone": "0912000111",
    }
    response = client.post("/cart/checkout", json=checkout, headers=GUEST)
    assert response.status_code == 200
    body = response.json()
    assert body["appointmentId"] > 0
    assert body["orderId"] > 0

    assert client.get("/cart", headers=GUEST).json()["items"] == []
    assert client.post("/cart/checkout", json=checkout, headers=GUEST).status_code == 400


def test_invalid_checkout_fields_are_422(client, seed):
    add_item(client, seed)
    checkout = {
        "branchId": seed.branch_id,
        "preferredDate": "2030-01-15",
        "preferredTimeSlot": "25:00",
        "customerName": "Walk In",
        "customerPhone": "0912000111",
    }
    response = client.post("/cart/checkout", json=checkout, headers=GUEST)
    assert response.status_code == 422
    assert response.json()["detail"][0]["loc"][-1] == "preferredTimeSlot"

    bad_phone = {**checkout, "preferredTimeSlot": "14:00", "customerPhone": "12"}
    response = client.post("/cart/checkout", json=bad_phone, headers=GUEST)
    assert response.status_code == 422


def test_overlong_notes_are_rejected(client, seed):
    response = client.post(
        "/cart/items",
        json={"serviceId": seed.service_id, "selectedVariants": {"size": "5cm", "color": "黑白"}, "notes": "x" * 6000},
        headers=GUEST,
    )
    assert response.status_code == 422
    assert client.get("/cart", headers=GUEST).json()["items"] == []


def test_notes_keep_plain_text(client, seed):
    response = client.post(
        "/cart/items",
        json={
            "serviceId": seed.service_id,
            "selectedVariants": {"size": "5cm", "color": "黑白"},
            "notes": "Tom & Jerry <3 <b>bold</b>",
        },
        headers=GUEST,
    )
    assert response.status_code == 200
    assert response.json()["items"][0]["notes"] == "Tom & Jerry <3 bold"


def test_cleanup_marks_only_expired_carts(client, seed, db):
    expired_id = add_item(client, seed).json()["id"]
    live_id = add_item(client, seed, headers=OTHER_GUEST).json()["id"]
    db.query(Cart).filter(Cart.id == expired_id).update({"expires_at": datetime.utcnow() - timedelta(minutes=1)})
    db.commit()

    assert CartService(db).cleanup_expired_carts() == 1
    assert CartService(db).cleanup_expired_carts() == 0

    statuses = dict(db.query(Cart.id, Cart.status).all())
    assert statuses == {expired_id: "expired", live_id: "active"}
    assert client.get("/cart", headers=GUEST).json()["items"] == []
    assert len(client.get("/cart", headers=OTHER_GUEST).json()["items"]) == 1
