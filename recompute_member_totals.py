"""
Rebuild every member's total spent from payments on non-VOID bills
Usage: python recompute_member_totals.py --yes
"""
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from tattoo_crm import models, models_billing, models_booking, models_catalog  # noqa: F401
from tattoo_crm.database import SessionLocal
from tattoo_crm.domain.members.service import MemberService

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Recompute member total spent")
    parser.add_argument("--yes", action="store_true", help="Write the recomputed totals")
    args = parser.parse_args()

    if not args.yes:
        logger.error("❌ Refusing to run without --yes")
        sys.exit(1)

    db = SessionLocal()
    try:
        result = MemberService(db).recompute_totals()
        logger.info(f"✅ Done: {result}")
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Recompute failed: {e}")
        sys.exit(1)
    finally:
        db.close()
