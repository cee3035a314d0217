"""
Production entrypoint
Checks the environment, applies pending migrations, then starts uvicorn.
Usage: python start_prod.py
"""

import logging
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def main() -> int:
    from tattoo_crm.deploy import DeployError, assert_production_safe, validate_database_url

    try:
        validate_database_url(os.getenv("DATABASE_URL"))
        assert_production_safe()
    except DeployError as e:
        logger.error(f"❌ {e}")
        return 1
    logger.info("✅ Environment checks passed")

    import uvicorn

    from tattoo_crm import models, models_billing, models_booking, models_catalog  # noqa: F401
    from tattoo_crm.config import PORT
    from tattoo_crm.database import Base, engine
    from tattoo_crm.deploy import migrate_with_recovery

    logger.info("🛡️ Production mode: existing data is kept, only additive migrations run")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        migrate_with_recovery(engine)
    except DeployError as e:
        logger.error(f"❌ Database migration failed, startup aborted to protect customer data.\n{e}")
        return 1

    logger.info(f"🚀 Starting API on port {PORT}")
    uvicorn.run(
        "tattoo_crm.main:app",
        host="0.0.0.0",  # noqa: S104
        port=PORT,
        workers=int(os.getenv("WEB_CONCURRENCY", "1")),
        proxy_headers=True,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
