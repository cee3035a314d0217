"""
Manual migration tool

    python run_migration.py migrations/<name>.sql   apply one file and record it
    python run_migration.py --pending               apply everything not yet applied
    python run_migration.py --status                list recorded migrations
    python run_migration.py --rollback <name>       mark a failed migration rolled back
"""
import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from tattoo_crm.database import engine
from tattoo_crm.deploy import (
    STATUS_APPLIED,
    STATUS_ROLLED_BACK,
    apply_migration_file,
    apply_pending_migrations,
    ensure_migrations_table,
    list_migration_files,
    mark_migration,
    recorded_migrations,
)

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def apply_one(path: Path) -> None:
    if not path.exists():
        raise FileNotFoundError(f"Migration file not found: {path}")
    apply_migration_file(engine, path)
    mark_migration(engine, path.stem, STATUS_APPLIED)


def print_status() -> None:
    recorded = recorded_migrations(engine)
    for path in list_migration_files():
        logger.info(f"{recorded.get(path.stem, 'pending'):>12}  {path.stem}")
    for name in sorted(set(recorded) - {p.stem for p in list_migration_files()}):
        logger.info(f"{recorded[name]:>12}  {name} (file missing)")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Apply or inspect SQL migrations")
    parser.add_argument("file", nargs="?", help="SQL migration file to apply")
    parser.add_argument("--pending", action="store_true", help="Apply all pending migrations")
    parser.add_argument("--status", action="store_true", help="Show recorded migration status")
    parser.add_argument("--rollback", metavar="NAME", help="Mark a failed migration as rolled back")
    args = parser.parse_args()

    if not (args.file or args.pending or args.status or args.rollback):
        parser.print_help()
        sys.exit(1)

    try:
        ensure_migrations_table(engine)
        if args.rollback:
            mark_migration(engine, args.rollback, STATUS_ROLLED_BACK)
        elif args.status:
            print_status()
        elif args.pending:
            applied = apply_pending_migrations(engine)
            logger.info(f"✅ Applied {len(applied)} migration(s)")
        else:
            apply_one(Path(args.file))
            logger.info("✅ Migration completed successfully!")
    except Exception as e:
        logger.error(f"❌ Migration failed: {e}")
        sys.exit(1)
