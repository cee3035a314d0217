def test_contact_converts_once(client, seed):
    response = client.post(
        "/public/contacts", json={"name": "Lead", "phone": "0922333444", "branchId": seed.branch_id}
    )
    assert response.status_code == 200
    contact_id = response.json()["id"]

    converted = client.post(f"/contacts/{contact_id}/convert", headers=seed.boss_headers)
    assert converted.status_code == 200
    assert converted.json()["status"] == "CONVERTED"

    again = client.post(f"/contacts/{contact_id}/convert", headers=seed.boss_headers)
    assert again.status_code == 409


def test_artist_cannot_read_unrelated_contact(client, seed):
    contact_id = client.post("/public/contacts", json={"name": "Lead", "branchId": seed.branch_id}).json()["id"]
    assert client.get(f"/contacts/{contact_id}", headers=seed.artist_headers).status_code == 403
    assert client.get(f"/contacts/{contact_id}", headers=seed.boss_headers).status_code == 200


def test_phone_conflicts_reports_known_numbers(client, seed):
    response = client.get("/public/phone-conflicts", params={"phone": "0912-345-678"})
    assert response.status_code == 200
    assert response.json() == {
        "normalizedPhone": "0912345678",
        "userExists": True,
        "contactExists": False,
        "messageCode": "USER_EXISTS",
    }

    client.post("/public/contacts", json={"name": "Lead", "phone": "0922333444", "branchId": seed.branch_id})
    body = client.get("/public/phone-conflicts", params={"phone": " 0922 333 444 "}).json()
    assert (body["contactExists"], body["userExists"], body["messageCode"]) == (True, False, "CONTACT_EXISTS")

    body = client.get("/public/phone-conflicts", params={"phone": "0933000111"}).json()
    assert body["messageCode"] == "OK"


def test_phone_conflicts_flags_invalid_numbers(client, seed):
    for params in ({"phone": "12"}, {}):
        body = client.get("/public/phone-conflicts", params=params).json()
        assert body == {"normalizedPhone": None, "userExists": False, "contactExists": False, "messageCode": "INVALID"}
