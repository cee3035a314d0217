from tattoo_crm.models_booking import Installment


def create_order(client, seed, total=10000):
    response = client.post(
        "/admin/orders",
        json={"branchId": seed.branch_id, "memberId": seed.customer_id, "totalAmount": total},
        headers=seed.boss_headers,
    )
    assert response.status_code == 200
    return response.json()


def generate(client, seed, order_id, count=3, headers=None):
    return client.post(
        f"/admin/orders/{order_id}/installments",
        json={"count": count},
        headers=headers or seed.boss_headers,
    )


def test_member_sees_own_order(client, seed):
    order = create_order(client, seed)
    assert order["status"] == "PENDING_PAYMENT"
    assert order["finalAmount"] == 10000

    mine = client.get("/orders/my", headers=seed.member_headers).json()
    assert [o["id"] for o in mine] == [order["id"]]
    assert client.get(f"/orders/{order['id']}", headers=seed.member_headers).status_code == 200


def test_generate_installments_splits_total(client, seed):
    order = create_order(client, seed)
    response = generate(client, seed, order["id"])
    assert response.status_code == 200
    installments = response.json()
    assert [i["installmentNo"] for i in installments] == [1, 2, 3]
    assert [i["amount"] for i in installments] == [3333, 3333, 3334]
    assert all(i["status"] == "UNPAID" for i in installments)

    order = client.get(f"/admin/orders/{order['id']}", headers=seed.boss_headers).json()
    assert order["status"] == "INSTALLMENT_ACTIVE"
    assert order["paymentType"] == "INSTALLMENT"


def test_generate_twice_conflicts(client, seed):
    order = create_order(client, seed)
    assert generate(client, seed, order["id"]).status_code == 200
    response = generate(client, seed, order["id"], count=2)
    assert response.status_code == 409
    assert len(client.get(f"/admin/orders/{order['id']}", headers=seed.boss_headers).json()["installments"]) == 3


def test_generate_rejects_zero_count(client, seed):
    order = create_order(client, seed)
    assert generate(client, seed, order["id"], count=0).status_code == 400


def test_other_branch_artist_cannot_generate(client, seed):
    order = create_order(client, seed)
    assert generate(client, seed, order["id"], headers=seed.other_artist_headers).status_code == 403


def test_paying_installments_advances_order_status(client, seed):
    order = create_order(client, seed)
    installments = generate(client, seed, order["id"]).json()

    first, *rest = installments
    response = client.patch(
        f"/admin/orders/installments/{first['id']}/paid", json={"note": "cash"}, headers=seed.boss_headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "PAID"
    assert response.json()["paidAt"] is not None
    status = client.get(f"/admin/orders/{order['id']}", headers=seed.boss_headers).json()["status"]
    assert status == "PARTIALLY_PAID"

    for installment in rest:
        response = client.patch(
            f"/admin/orders/installments/{installment['id']}/paid", json={}, headers=seed.boss_headers
        )
        assert response.status_code == 200
    status = client.get(f"/admin/orders/{order['id']}", headers=seed.boss_headers).json()["status"]
    assert status == "PAID_COMPLETE"


def test_marking_paid_without_note_keeps_existing_note(client, seed, db):
    order = create_order(client, seed)
    installment_id = generate(client, seed, order["id"]).json()[0]["id"]
    db.query(Installment).filter(Installment.id == installment_id).update({"note": "transfer ref 8812"})
    db.commit()

    response = client.patch(
        f"/admin/orders/installments/{installment_id}/paid", json={}, headers=seed.boss_headers
    )
    assert response.status_code == 200
    assert response.json()["note"] == "transfer ref 8812"

    response = client.patch(
        f"/admin/orders/installments/{installment_id}/paid",
        json={"note": "<b>card</b>"},
        headers=seed.boss_headers,
    )
    assert response.json()["note"] == "card"


def test_unknown_installment_is_404(client, seed):
    response = client.patch("/admin/orders/installments/9999/paid", json={}, headers=seed.boss_headers)
    assert response.status_code == 404
