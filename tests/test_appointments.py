DAY = "2030-01-15"


def book(client, seed, start, end, artist_id=None, service_id=None, headers=None):
    return client.post(
        "/appointments",
        json={
            "branchId": seed.branch_id,
            "artistId": artist_id,
            "serviceId": service_id,
            "startAt": f"{DAY}T{start}:00",
            "endAt": f"{DAY}T{end}:00",
        },
        headers=headers or seed.member_headers,
    )


def test_member_books_an_appointment(client, seed):
    response = book(client, seed, "14:00", "15:00", seed.artist_id, seed.service_id)
    assert response.status_code == 200
    assert response.json()["status"] == "PENDING"

    mine = client.get("/appointments/my", headers=seed.member_headers)
    assert [a["id"] for a in mine.json()] == [response.json()["id"]]


def test_same_artist_overlap_is_refused(client, seed):
    assert book(client, seed, "14:00", "15:00", seed.artist_id, seed.service_id).status_code == 200
    assert book(client, seed, "14:30", "15:30", artist_id=seed.artist_id).status_code == 400


def test_same_service_overlap_is_refused(client, seed):
    assert book(client, seed, "14:00", "15:00", seed.artist_id, seed.service_id).status_code == 200
    response = book(client, seed, "14:30", "15:30", seed.other_artist_id, seed.service_id)
    assert response.status_code == 400


def test_back_to_back_bookings_are_allowed(client, seed):
    assert book(client, seed, "14:00", "15:00", seed.artist_id, seed.service_id).status_code == 200
    assert book(client, seed, "15:00", "16:00", seed.artist_id, seed.service_id).status_code == 200
    assert book(client, seed, "13:00", "14:00", seed.artist_id, seed.service_id).status_code == 200


def test_other_artist_without_service_may_overlap(client, seed):
    assert book(client, seed, "14:00", "15:00", seed.artist_id, seed.service_id).status_code == 200
    assert book(client, seed, "14:00", "15:00", artist_id=seed.other_artist_id).status_code == 200


def test_end_before_start_is_invalid(client, seed):
    assert book(client, seed, "15:00", "14:00", seed.artist_id).status_code == 422


def test_public_availability_skips_booked_window(client, seed):
    assert book(client, seed, "14:00", "15:00", seed.artist_id, seed.service_id).status_code == 200

    response = client.get(
        "/public/appointments/availability",
        params={"branchId": seed.branch_id, "artistId": seed.artist_id, "date": DAY},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["date"] == DAY
    slots = body["slots"]
    # default hours 10:00-22:00, hour-long sessions every 30 minutes
    assert slots[0] == "10:00"
    assert slots[-1] == "21:00"
    assert "13:00" in slots
    assert "13:30" not in slots
    assert "14:30" not in slots
    assert "15:00" in slots


def test_public_availability_validates_input(client, seed):
    params = {"branchId": seed.branch_id, "date": DAY, "durationMin": 10}
    assert client.get("/public/appointments/availability", params=params).status_code == 422

    params = {"branchId": seed.branch_id, "date": "not-a-date"}
    assert client.get("/public/appointments/availability", params=params).status_code == 400

    params = {"branchId": 99999, "date": DAY}
    assert client.get("/public/appointments/availability", params=params).status_code == 404


def test_public_booking_creates_customer(client, seed):
    response = client.post(
        "/public/appointments",
        json={
            "name": "Walk In",
            "email": "walkin@example.com",
            "phone": "0912000333",
            "artistId": seed.artist_id,
            "serviceId": seed.service_id,
            "startAt": f"{DAY}T18:00:00",
            "endAt": f"{DAY}T19:00:00",
        },
    )
    assert response.status_code == 200
    assert response.json()["branchId"] == seed.branch_id
