from tattoo_crm.domain.maintenance.middleware import is_allowed_path
from tattoo_crm.domain.maintenance.service import enable_ephemeral, enable_from_environment


def test_whitelist():
    assert is_allowed_path("/health")
    assert is_allowed_path("/api/auth/login")
    assert is_allowed_path("/admin/backup/export/abc/download")
    assert is_allowed_path("/admin/backup/restore")
    assert not is_allowed_path("/admin/backup/restore/extra")
    assert not is_allowed_path("/branches")
    assert not is_allowed_path("/api/cart")


def test_ephemeral_maintenance_blocks_other_routes(client, seed):
    enable_ephemeral("Restoring backup")

    response = client.get("/branches")
    assert response.status_code == 503
    assert response.json()["maintenance"] is True
    assert response.json()["message"] == "Restoring backup"
    assert response.headers["Retry-After"] == "120"
    assert response.headers["Cache-Control"] == "no-store"

    assert client.get("/health").status_code == 200
    public = client.get("/public/maintenance")
    assert public.status_code == 200
    assert public.json()["enabled"] is True


def test_boss_toggles_persisted_maintenance(client, seed):
    response = client.patch(
        "/admin/maintenance", json={"enabled": True, "reason": "Upgrading"}, headers=seed.boss_headers
    )
    assert response.status_code == 200
    assert client.get("/branches").status_code == 503

    response = client.patch("/admin/maintenance", json={"enabled": False}, headers=seed.boss_headers)
    assert response.status_code == 200
    assert client.get("/branches").status_code == 200


def test_maintenance_mode_env_raises_ephemeral_flag(client, seed):
    assert enable_from_environment({"MAINTENANCE_MODE": "false"}) is False
    assert client.get("/branches").status_code == 200

    assert enable_from_environment({"MAINTENANCE_MODE": "true", "MAINTENANCE_REASON": "Restoring backup"})
    response = client.get("/branches")
    assert response.status_code == 503
    assert response.json()["message"] == "Restoring backup"

    response = client.patch("/admin/maintenance", json={"enabled": False}, headers=seed.boss_headers)
    assert response.status_code == 200
    assert client.get("/branches").status_code == 200
