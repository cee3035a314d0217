"""
Backup export jobs and the operator restore routine.

An export runs pg_dump, tars the uploads directory, zips both with a
manifest and encrypts the zip to BACKUP_DIR. Jobs live in process memory
and run one at a time.
"""

import asyncio
import json
import logging
import os
import shutil
import subprocess
import tarfile
import tempfile
import uuid
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ...config import BACKUP_DIR, BACKUP_DOWNLOAD_TTL_SECONDS, DATABASE_URL, REQUIRED_ENV_KEYS, UPLOADS_DIR
from ...security_utils import generate_timed_token, verify_timed_token
from .crypto import decrypt_file, encrypt_bytes, encrypt_file

logger = logging.getLogger(__name__)

DOWNLOAD_TOKEN_SALT = "backup-download"
RESTORE_LOCK_NAME = "backup-restore.lock"
BACKUP_MEMBERS = ("db.dump", "uploads.tar.gz", "manifest.json")


class BackupError(RuntimeError):
    pass


def timestamp_slug(now: Optional[datetime] = None) -> str:
    return (now or datetime.utcnow()).strftime("%Y%m%d_%H%M%S")


def backup_filename(now: Optional[datetime] = None) -> str:
    return f"tattoo-crm-backup_{timestamp_slug(now)}.zip.enc"


def build_manifest(uploads_path: str, now: Optional[datetime] = None) -> dict:
    return {
        "schemaVersion": 1,
        "createdAt": (now or datetime.utcnow()).isoformat() + "Z",
        "db": {"format": "pg_dump_custom", "filename": "db.dump"},
        "uploads": {"path": uploads_path, "filename": "uploads.tar.gz"},
        "requiredEnvKeys": list(REQUIRED_ENV_KEYS),
    }


def build_secrets_env_text(environ=None) -> str:
    environ = os.environ if environ is None else environ
    lines = ["# Tattoo CRM secrets export", f"# GeneratedAt: {datetime.utcnow().isoformat()}Z"]
    for key in REQUIRED_ENV_KEYS:
        value = environ.get(key)
        if value is None:
            continue
        escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
        lines.append(f'{key}="{escaped}"')
    lines.append("")
    return "\n".join(lines)


def encrypt_secrets(password: str) -> tuple[str, bytes]:
    return f"tattoo-crm-secrets_{timestamp_slug()}.env.enc", encrypt_bytes(password, build_secrets_env_text().encode("utf-8"))


def run_command(args: list[str]) -> None:
    result = subprocess.run(args, capture_output=True, text=True)  # noqa: S603
    if result.returncode != 0:
        raise BackupError(f"{args[0]} exited with code {result.returncode}. {result.stderr.strip()}")


def _require_database_url() -> str:
    if not DATABASE_URL or not DATABASE_URL.startswith("postgres"):
        raise BackupError("DATABASE_URL must point at PostgreSQL for backups")
    return DATABASE_URL


def build_encrypted_backup(password: str, out_dir: str = BACKUP_DIR, uploads_path: str = UPLOADS_DIR) -> str:
    """Produce the encrypted archive on disk and return its path"""
    db_url = _require_database_url()
    os.makedirs(out_dir, exist_ok=True)
    os.makedirs(uploads_path, exist_ok=True)

    with tempfile.TemporaryDirectory(prefix="backup-") as tmp:
        db_dump = os.path.join(tmp, "db.dump")
        uploads_tar = os.path.join(tmp, "uploads.tar.gz")
        zip_path = os.path.join(tmp, "payload.zip")

        run_command(["pg_dump", "-Fc", "--no-owner", "--no-privileges", f"--dbname={db_url}", "-f", db_dump])
        with tarfile.open(uploads_tar, "w:gz") as tar:
            tar.add(uploads_path, arcname=".")

        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.write(db_dump, "db.dump")
            zf.write(uploads_tar, "uploads.tar.gz")
            zf.writestr("manifest.json", json.dumps(build_manifest(uploads_path), indent=2))

        out_path = os.path.join(out_dir, backup_filename())
        encrypt_file(zip_path, out_path, password)
    return out_path


# ============================================================================
# EXPORT JOBS
# ============================================================================


@dataclass
class ExportJob:
    id: str
    created_by: Optional[int]
    status: str = "queued"  # queued, running, ready, failed
    created_at: datetime = field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    filename: Optional[str] = None
    path: Optional[str] = None
    error: Optional[str] = None
    dl_token: Optional[str] = None

    def to_dict(self) -> dict:
        download = None
        if self.status == "ready" and self.dl_token:
            download = {"dlToken": self.dl_token, "expiresInSeconds": BACKUP_DOWNLOAD_TTL_SECONDS}
        return {
            "jobId": self.id,
            "status": self.status,
            "createdAt": self.created_at,
            "startedAt": self.started_at,
            "finishedAt": self.finished_at,
            "filename": self.filename,
            "error": self.error,
            "download": download,
        }


class BackupExportManager:
    def __init__(self, builder=build_encrypted_backup):
        self.jobs: dict[str, ExportJob] = {}
        self._lock = asyncio.Lock()
        self._builder = builder
        self._tasks: set = set()

    def start(self, password: str, actor_id: Optional[int]) -> ExportJob:
        job = ExportJob(id=uuid.uuid4().hex, created_by=actor_id)
        self.jobs[job.id] = job
        task = asyncio.get_running_loop().create_task(self._run(job, password))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"💾 Backup export job {job.id} queued")
        return job

    async def _run(self, job: ExportJob, password: str) -> None:
        async with self._lock:
            job.status = "running"
            job.started_at = datetime.utcnow()
            try:
                path = await asyncio.to_thread(self._builder, password)
            except Exception as e:
                job.status = "failed"
                job.error = str(e)
                logger.error(f"❌ Backup export job {job.id} failed: {e}")
            else:
                job.path = path
                job.filename = os.path.basename(path)
                job.dl_token = generate_timed_token({"jobId": job.id}, salt=DOWNLOAD_TOKEN_SALT)
                job.status = "ready"
                logger.info(f"✅ Backup export job {job.id} ready: {job.filename}")
            finally:
                job.finished_at = datetime.utcnow()

    def get(self, job_id: str) -> Optional[ExportJob]:
        return self.jobs.get(job_id)

    def resolve_download(self, job_id: str, dl_token: str) -> ExportJob:
        """The job behind a valid, unexpired token bound to it"""
        data = verify_timed_token(dl_token, salt=DOWNLOAD_TOKEN_SALT, max_age=BACKUP_DOWNLOAD_TTL_SECONDS)
        if not data or data.get("jobId") != job_id:
            raise BackupError("Invalid or expired download token")
        job = self.get(job_id)
        if not job or job.status != "ready" or not job.path or not os.path.exists(job.path):
            raise BackupError("Backup file is not available")
        return job


export_manager = BackupExportManager()


# ============================================================================
# RESTORE (operator CLI)
# ============================================================================


def acquire_restore_lock(lock_dir: Optional[str] = None) -> str:
    path = os.path.join(lock_dir or tempfile.gettempdir(), RESTORE_LOCK_NAME)
    try:
        fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError as e:
        raise BackupError("Restore is already running") from e
    with os.fdopen(fd, "w") as f:
        f.write(datetime.utcnow().isoformat())
    return path


def release_restore_lock(path: str) -> None:
    if os.path.exists(path):
        os.remove(path)


def empty_directory(path: str) -> None:
    os.makedirs(path, exist_ok=True)
    for name in os.listdir(path):
        full = os.path.join(path, name)
        if os.path.isdir(full) and not os.path.islink(full):
            shutil.rmtree(full)
        else:
            os.remove(full)


def extract_payload(zip_path: str, dest: str) -> dict[str, str]:
    """Unzip the payload and return the paths of its three required members"""
    with zipfile.ZipFile(zip_path) as zf:
        names = set(zf.namelist())
        missing = [m for m in BACKUP_MEMBERS if m not in names]
        if missing:
            raise BackupError(f"Backup is missing {', '.join(missing)}")
        for member in BACKUP_MEMBERS:
            zf.extract(member, dest)
    return {m: os.path.join(dest, m) for m in BACKUP_MEMBERS}


def restore_from_encrypted_file(
    encrypted_path: str,
    password: str,
    uploads_path: str = UPLOADS_DIR,
    maintenance_on=None,
    maintenance_off=None,
) -> dict:
    """
    Restore the database and uploads from an encrypted archive.

    Maintenance is switched on for the duration through the given callbacks
    and switched off again whether or not the restore succeeds.
    """
    db_url = _require_database_url()
    lock = acquire_restore_lock()
    if maintenance_on:
        maintenance_on("Restoring backup")
    try:
        with tempfile.TemporaryDirectory(prefix="restore-") as tmp:
            zip_path = os.path.join(tmp, "payload.zip")
            decrypt_file(encrypted_path, zip_path, password)
            files = extract_payload(zip_path, os.path.join(tmp, "unzipped"))
            with open(files["manifest.json"], encoding="utf-8") as f:
                manifest = json.load(f)

            logger.info("🗄️ Restoring database with pg_restore")
            run_command(
                [
                    "pg_restore",
                    "--clean",
                    "--if-exists",
                    "--no-owner",
                    "--no-privileges",
                    f"--dbname={db_url}",
                    files["db.dump"],
                ]
            )
            # pg_restore --clean replaced site_configs; set the flag again
            if maintenance_on:
                maintenance_on("Restoring uploads")

            logger.info(f"📁 Restoring uploads into {uploads_path}")
            empty_directory(uploads_path)
            with tarfile.open(files["uploads.tar.gz"], "r:gz") as tar:
                tar.extractall(uploads_path, filter="data")
        logger.info("✅ Restore finished")
        return {"success": True, "manifest": manifest}
    finally:
        if maintenance_off:
            maintenance_off()
        release_restore_lock(lock)
