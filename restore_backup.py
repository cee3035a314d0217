"""
Restore the database and uploads from an encrypted backup
Usage: python restore_backup.py <backup.zip.enc> --password <password> --confirm RESTORE

Maintenance mode is persisted for the duration so every API instance
answers 503 while the restore runs.
"""
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from tattoo_crm import models, models_billing, models_booking, models_catalog  # noqa: F401
from tattoo_crm.database import SessionLocal
from tattoo_crm.domain.backup.crypto import BackupFormatError
from tattoo_crm.domain.backup.service import BackupError, restore_from_encrypted_file
from tattoo_crm.domain.maintenance.service import MaintenanceService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def maintenance_on(reason: str) -> None:
    db = SessionLocal()
    try:
        MaintenanceService(db).enable_persistent(reason)
    finally:
        db.close()


def maintenance_off() -> None:
    db = SessionLocal()
    try:
        MaintenanceService(db).disable_persistent()
    except Exception as e:
        logger.error(f"❌ Could not switch maintenance off, do it from the admin panel: {e}")
    finally:
        db.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Restore an encrypted tattoo CRM backup")
    parser.add_argument("file", help="Path to the .zip.enc backup")
    parser.add_argument("--password", required=True, help="Backup password")
    parser.add_argument("--confirm", required=True, help='Must be "RESTORE"')
    args = parser.parse_args()

    if args.confirm != "RESTORE":
        logger.error('❌ Pass --confirm RESTORE to overwrite the current database and uploads')
        sys.exit(1)
    if not Path(args.file).is_file():
        logger.error(f"❌ Backup file not found: {args.file}")
        sys.exit(1)

    try:
        result = restore_from_encrypted_file(
            args.file, args.password, maintenance_on=maintenance_on, maintenance_off=maintenance_off
        )
    except (BackupError, BackupFormatError) as e:
        logger.error(f"❌ Restore failed: {e}")
        sys.exit(1)
    logger.info(f"✅ Restore complete (backup created {result['manifest'].get('createdAt')})")
