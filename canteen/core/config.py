import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/canteen_db")

# Application Metadata
PROJECT_NAME = "Campus Canteen Ordering Service"
VERSION = "1.0.0"
PORT = int(os.getenv("PORT", 8080))

# Order lifecycle
ORDER_HOLD_TTL_SECS = int(os.getenv("ORDER_HOLD_TTL_SECS", 300))  # hold lifetime before the sweeper reclaims it
HOLD_SWEEP_INTERVAL_SECS = int(os.getenv("HOLD_SWEEP_INTERVAL_SECS", 60))
# Cancelling an active order keeps the stock consumed unless this is switched on
RESTORE_STOCK_ON_CANCEL = _env_bool("RESTORE_STOCK_ON_CANCEL", False)

# Pickup QR tokens
DELIVER_QR_HASH_SECRET = os.getenv("DELIVER_QR_HASH_SECRET", "dev-qr-secret")
QR_TOKEN_MAX_AGE_SECS = int(os.getenv("QR_TOKEN_MAX_AGE_SECS", 86400))

# Public base for menu pictures (None disables picture links)
ASSET_PUBLIC_BASE_URL = os.getenv("ASSET_PUBLIC_BASE_URL")
