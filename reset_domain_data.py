"""
Delete domain data (bills, appointments, contacts, orders, members, carts)
Usage: python reset_domain_data.py --yes [--i-understand]

Admins are always kept. Branches, artists and the service catalog are kept
unless PROTECT_REAL_DATA=false.
"""
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from tattoo_crm.config import DATABASE_URL, PROTECT_REAL_DATA
from tattoo_crm.database import SessionLocal
from tattoo_crm.models import (
    ROLE_ARTIST,
    ROLE_MEMBER,
    Artist,
    ArtistAvailability,
    Branch,
    Member,
    Notification,
    PortfolioItem,
    TopupHistory,
    User,
)
from tattoo_crm.models_billing import AppointmentBill, AppointmentBillItem, ArtistSplitRule, Payment, PaymentAllocation
from tattoo_crm.models_booking import Appointment, Contact, Installment, Order
from tattoo_crm.models_catalog import Cart, CartItem, Service, ServiceHistory, ServiceVariant

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)

PRODUCTION_HOST_MARKERS = ("railway", "rlwy.net", "amazonaws.com", "render.com", "supabase")

# FK-safe order
DOMAIN_TABLES = [
    ("PaymentAllocation", PaymentAllocation, None),
    ("Payment", Payment, None),
    ("AppointmentBillItem", AppointmentBillItem, None),
    ("AppointmentBill", AppointmentBill, None),
    ("Installment", Installment, None),
    ("Order", Order, None),
    ("Appointment", Appointment, None),
    ("Contact", Contact, None),
    ("CartItem", CartItem, None),
    ("Cart", Cart, None),
    ("Notification", Notification, None),
    ("TopupHistory", TopupHistory, None),
    ("Member", Member, None),
    ("User(role=MEMBER)", User, User.role == ROLE_MEMBER),
]

REAL_DATA_TABLES = [
    ("ServiceHistory", ServiceHistory, None),
    ("ServiceVariant", ServiceVariant, None),
    ("Service", Service, None),
    ("ArtistSplitRule", ArtistSplitRule, None),
    ("PortfolioItem", PortfolioItem, None),
    ("ArtistAvailability", ArtistAvailability, None),
    ("Artist", Artist, None),
    ("User(role=ARTIST)", User, User.role == ROLE_ARTIST),
]


def is_production_like(database_url: str) -> bool:
    url = (database_url or "").lower()
    return any(marker in url for marker in PRODUCTION_HOST_MARKERS)


def delete_rows(db, label, model, condition) -> int:
    query = db.query(model)
    if condition is not None:
        query = query.filter(condition)
    count = query.delete(synchronize_session=False)
    db.commit()
    logger.info(f"   - {label}: {count}")
    return count


def reset_domain_data(protect_real_data: bool = PROTECT_REAL_DATA) -> dict:
    db = SessionLocal()
    counts = {}
    try:
        tables = DOMAIN_TABLES if protect_real_data else DOMAIN_TABLES + REAL_DATA_TABLES
        for label, model, condition in tables:
            counts[label] = delete_rows(db, label, model, condition)
        if not protect_real_data:
            db.query(User).update({User.branch_id: None}, synchronize_session=False)
            counts["Branch"] = delete_rows(db, "Branch", Branch, None)
        return counts
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Delete tattoo CRM domain data")
    parser.add_argument("--yes", "--force", dest="yes", action="store_true", help="Confirm the deletion")
    parser.add_argument("--i-understand", action="store_true", help="Required for production-like databases")
    args = parser.parse_args()

    production_like = is_production_like(DATABASE_URL)
    if not args.yes:
        logger.error("❌ Refusing to run without --yes")
        sys.exit(1)
    if production_like and not args.i_understand:
        logger.error("❌ Refusing to run against a production-like database without --i-understand")
        sys.exit(1)

    logger.info("🧹 reset-domain-data: start")
    logger.info(f"   production_like: {production_like}, protect_real_data: {PROTECT_REAL_DATA}")
    try:
        reset_domain_data()
    except Exception as e:
        logger.error(f"❌ reset-domain-data failed: {e}")
        sys.exit(1)
    logger.info("✅ reset-domain-data: done")
