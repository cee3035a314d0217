from tattoo_crm.security_utils import hash_password
from tattoo_crm.models import User


def test_admin_endpoint_requires_a_token(client, seed):
    assert client.get("/admin/members").status_code in (401, 403)
    response = client.get("/admin/members", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_members_and_artists_cannot_reach_boss_endpoints(client, seed):
    assert client.get("/admin/members", headers=seed.member_headers).status_code == 403
    assert client.get("/admin/members", headers=seed.artist_headers).status_code == 403
    assert client.get("/admin/members", headers=seed.boss_headers).status_code == 200


def test_disabled_account_token_is_rejected(client, seed, db):
    user = db.get(User, seed.boss_id)
    user.is_active = False
    db.commit()
    assert client.get("/admin/members", headers=seed.boss_headers).status_code == 401


def test_login_issues_tokens(client, seed, db):
    user = db.get(User, seed.boss_id)
    user.hashed_password = hash_password("boss-password")
    db.commit()

    response = client.post("/auth/login", json={"email": "boss@example.com", "password": "boss-password"})
    assert response.status_code == 200
    token = response.json()["accessToken"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200

    wrong = client.post("/auth/login", json={"email": "boss@example.com", "password": "nope-nope"})
    assert wrong.status_code == 401


def test_security_headers_are_set(client, seed):
    response = client.get("/branches")
    assert response.status_code == 200
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_bootstrap_boss_hidden_without_secret(client):
    response = client.post(
        "/auth/bootstrap-boss", json={"secret": "x", "email": "owner@example.com", "password": "password123"}
    )
    assert response.status_code == 404


def test_bootstrap_boss_only_once(client, monkeypatch):
    monkeypatch.setattr("tattoo_crm.domain.auth.service.BOSS_INIT_SECRET", "init-secret")
    payload = {"secret": "init-secret", "email": "owner@example.com", "password": "password123"}

    wrong = client.post("/auth/bootstrap-boss", json={**payload, "secret": "nope"})
    assert wrong.status_code == 403

    first = client.post("/auth/bootstrap-boss", json=payload)
    assert first.status_code == 200
    assert first.json()["accessToken"]

    second = client.post("/auth/bootstrap-boss", json={**payload, "email": "second@example.com"})
    assert second.status_code == 409


def test_register_rejects_short_phone(client):
    response = client.post(
        "/auth/register",
        json={"email": "new@example.com", "password": "password123", "name": "New", "phone": "12"},
    )
    assert response.status_code == 422
    assert response.json()["detail"][0]["loc"][-1] == "phone"
