import asyncio
import io
import json
import tarfile
import zipfile
from datetime import datetime

import pytest

from tattoo_crm.database import SessionLocal
from tattoo_crm.domain.backup import router as backup_router
from tattoo_crm.domain.backup import service as backup_service
from tattoo_crm.domain.backup.crypto import decrypt_bytes, encrypt_file
from tattoo_crm.domain.backup.service import (
    BackupError,
    BackupExportManager,
    acquire_restore_lock,
    backup_filename,
    build_secrets_env_text,
    extract_payload,
    release_restore_lock,
    restore_from_encrypted_file,
)
from tattoo_crm.domain.maintenance.service import MaintenanceService
from tattoo_crm.models import SiteConfig


def run_job(manager):
    async def run():
        job = manager.start("export-password", 1)
        while job.status in ("queued", "running"):
            await asyncio.sleep(0.01)
        return job

    return asyncio.run(run())


def test_backup_filename():
    assert backup_filename(datetime(2025, 1, 2, 3, 4, 5)) == "tattoo-crm-backup_20250102_030405.zip.enc"


def test_secrets_env_text_escapes_values():
    text = build_secrets_env_text({"DATABASE_URL": "postgres://db/crm", "JWT_ACCESS_SECRET": 'a"b'})
    assert 'DATABASE_URL="postgres://db/crm"' in text
    assert 'JWT_ACCESS_SECRET="a\\"b"' in text
    assert "JWT_REFRESH_SECRET" not in text


def test_export_job_becomes_downloadable(tmp_path):
    archive = tmp_path / "tattoo-crm-backup_20250101_000000.zip.enc"
    archive.write_bytes(b"encrypted")
    manager = BackupExportManager(builder=lambda password: str(archive))

    job = run_job(manager)
    assert job.status == "ready"
    payload = job.to_dict()
    assert payload["filename"] == archive.name
    token = payload["download"]["dlToken"]

    assert manager.resolve_download(job.id, token) is job
    with pytest.raises(BackupError):
        manager.resolve_download("another-job", token)
    with pytest.raises(BackupError):
        manager.resolve_download(job.id, "forged-token")


def test_failed_export_records_the_error():
    def broken_builder(password):
        raise BackupError("pg_dump exited with code 1")

    job = run_job(BackupExportManager(builder=broken_builder))
    assert job.status == "failed"
    assert "pg_dump" in job.error
    assert job.to_dict()["download"] is None


def test_restore_lock_is_exclusive(tmp_path):
    lock = acquire_restore_lock(str(tmp_path))
    with pytest.raises(BackupError):
        acquire_restore_lock(str(tmp_path))
    release_restore_lock(lock)
    release_restore_lock(acquire_restore_lock(str(tmp_path)))


def test_payload_requires_all_members(tmp_path):
    zip_path = tmp_path / "payload.zip"
    with zipfile.ZipFile(zip_path, "w") as zf:
        zf.writestr("db.dump", b"dump")
        zf.writestr("manifest.json", "{}")
    with pytest.raises(BackupError, match="uploads.tar.gz"):
        extract_payload(str(zip_path), str(tmp_path / "out"))


def test_http_restore_is_gone(client, seed):
    assert client.post("/admin/backup/restore", headers=seed.boss_headers).status_code == 410
    assert client.post("/admin/backup/restore", headers=seed.artist_headers).status_code == 403


def test_secrets_export_is_encrypted(client, seed):
    response = client.post(
        "/admin/backup/export-secrets", json={"password": "secret-export-pw"}, headers=seed.boss_headers
    )
    assert response.status_code == 200
    plaintext = decrypt_bytes("secret-export-pw", response.content).decode("utf-8")
    assert 'JWT_ACCESS_SECRET="test-access-secret"' in plaintext


def test_secrets_export_runs_off_the_event_loop(client, seed, monkeypatch):
    calls = []

    def fake_encrypt_secrets(password):
        try:
            asyncio.get_running_loop()
            calls.append("event loop")
        except RuntimeError:
            calls.append("worker thread")
        return "secrets.env.enc", b"payload"

    monkeypatch.setattr(backup_router, "encrypt_secrets", fake_encrypt_secrets)
    response = client.post(
        "/admin/backup/export-secrets", json={"password": "secret-export-pw"}, headers=seed.boss_headers
    )
    assert response.status_code == 200
    assert response.content == b"payload"
    assert calls == ["worker thread"]


def write_encrypted_backup(tmp_path, password):
    uploads = io.BytesIO()
    with tarfile.open(fileobj=uploads, mode="w:gz") as tar:
        data = b"ink"
        info = tarfile.TarInfo("portfolio/piece.jpg")
        info.size = len(data)
        tar.addfile(info, io.BytesIO(data))

    zip_path = tmp_path / "payload.zip"
    with zipfile.ZipFile(zip_path, "w") as zf:
        zf.writestr("db.dump", b"pg_dump custom format")
        zf.writestr("uploads.tar.gz", uploads.getvalue())
        zf.writestr("manifest.json", json.dumps({"createdAt": "2025-01-02T03:04:05Z"}))

    enc_path = tmp_path / "backup.zip.enc"
    encrypt_file(str(zip_path), str(enc_path), password, n=2**10, r=8, p=1)
    return str(enc_path)


def maintenance_enabled():
    db = SessionLocal()
    try:
        return MaintenanceService(db).get_state()["enabled"]
    finally:
        db.close()


def test_restore_keeps_maintenance_on_until_uploads_are_back(tmp_path, monkeypatch):
    enc_path = write_encrypted_backup(tmp_path, "restore-password")
    uploads_dir = tmp_path / "uploads"
    uploads_dir.mkdir()
    (uploads_dir / "stale.jpg").write_bytes(b"old")

    def fake_pg_restore(args):
        assert args[0] == "pg_restore"
        # the dump carries its own site_config table without the flag
        db = SessionLocal()
        db.query(SiteConfig).delete()
        db.commit()
        db.close()

    seen = []
    real_empty_directory = backup_service.empty_directory

    def watching_empty_directory(path):
        seen.append(maintenance_enabled())
        real_empty_directory(path)

    def maintenance_on(reason):
        db = SessionLocal()
        MaintenanceService(db).enable_persistent(reason)
        db.close()

    def maintenance_off():
        db = SessionLocal()
        MaintenanceService(db).disable_persistent()
        db.close()

    monkeypatch.setattr(backup_service, "_require_database_url", lambda: "postgresql://crm/test")
    monkeypatch.setattr(backup_service, "run_command", fake_pg_restore)
    monkeypatch.setattr(backup_service, "empty_directory", watching_empty_directory)

    result = restore_from_encrypted_file(
        enc_path,
        "restore-password",
        uploads_path=str(uploads_dir),
        maintenance_on=maintenance_on,
        maintenance_off=maintenance_off,
    )

    assert result["manifest"]["createdAt"] == "2025-01-02T03:04:05Z"
    assert seen == [True]
    assert (uploads_dir / "portfolio" / "piece.jpg").read_bytes() == b"ink"
    assert not (uploads_dir / "stale.jpg").exists()
    assert maintenance_enabled() is False
