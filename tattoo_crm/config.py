import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tattoo_crm.db")

# "production" enables the deploy safety guard and strict secret checks
ENVIRONMENT = (os.getenv("ENVIRONMENT") or os.getenv("NODE_ENV") or "development").lower()
IS_PRODUCTION = ENVIRONMENT == "production"

PORT = int(os.getenv("PORT", "4000"))

# Comma separated list of allowed browser origins
CORS_ORIGIN = os.getenv("CORS_ORIGIN", "http://localhost:3000,http://localhost:4001")

# JWT - CRITICAL: No default secrets in production
JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET")
JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET")
if not JWT_ACCESS_SECRET or not JWT_REFRESH_SECRET:
    import warnings

    warnings.warn(
        "JWT secrets not set! Using insecure defaults - DO NOT USE IN PRODUCTION",
        RuntimeWarning,
        stacklevel=2,
    )
    JWT_ACCESS_SECRET = JWT_ACCESS_SECRET or "INSECURE-DEV-ACCESS-SECRET"  # noqa: S105
    JWT_REFRESH_SECRET = JWT_REFRESH_SECRET or "INSECURE-DEV-REFRESH-SECRET"  # noqa: S105

JWT_ACCESS_TTL = os.getenv("JWT_ACCESS_TTL", "15m")
JWT_REFRESH_TTL = os.getenv("JWT_REFRESH_TTL", "7d")

# Used to sign short-lived download links (backup exports)
SESSION_SECRET = os.getenv("SESSION_SECRET") or JWT_ACCESS_SECRET
BOSS_INIT_SECRET = os.getenv("BOSS_INIT_SECRET")

# Uploaded images (portfolio, services) live here and are included in backups
UPLOADS_DIR = os.getenv("UPLOADS_DIR", "/app/uploads")
BACKUP_DIR = os.getenv("BACKUP_DIR", "/tmp/tattoo-crm-backups")  # noqa: S108
BACKUP_DOWNLOAD_TTL_SECONDS = int(os.getenv("BACKUP_DOWNLOAD_TTL_SECONDS", "1800"))

CART_TTL_DAYS = int(os.getenv("CART_TTL_DAYS", "7"))

# Data protection flags honoured by the maintenance scripts
PROTECT_REAL_DATA = os.getenv("PROTECT_REAL_DATA", "true").lower() != "false"
AUTO_RESOLVE_FAILED_MIGRATION = os.getenv("AUTO_RESOLVE_FAILED_MIGRATION", "false").lower() == "true"
MIGRATION_MAX_RETRIES = int(os.getenv("MIGRATION_MAX_RETRIES", "3"))

# Keys written into the encrypted secrets export
REQUIRED_ENV_KEYS = [
    "DATABASE_URL",
    "NODE_ENV",
    "PORT",
    "CORS_ORIGIN",
    "JWT_ACCESS_SECRET",
    "JWT_REFRESH_SECRET",
    "JWT_ACCESS_TTL",
    "JWT_REFRESH_TTL",
    "SESSION_SECRET",
    "BOSS_INIT_SECRET",
]
