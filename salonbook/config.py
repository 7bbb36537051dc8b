import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./salonbook.db")

# Business calendar
# Every salon runs on a single fixed timezone; persisted instants are always UTC
BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "America/Sao_Paulo")
SLOT_GRANULARITY_MINUTES = int(os.getenv("SLOT_GRANULARITY_MINUTES", "15"))
MAX_ADVANCE_DAYS = int(os.getenv("MAX_ADVANCE_DAYS", "30"))
DEFAULT_START_TIME = os.getenv("DEFAULT_START_TIME", "09:00")
DEFAULT_END_TIME = os.getenv("DEFAULT_END_TIME", "18:00")
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "BRL")

# External providers (Google Calendar, Trinks)
# Calls slower than this are abandoned and the provider is skipped for the request
EXTERNAL_PROVIDER_TIMEOUT_SECONDS = float(os.getenv("EXTERNAL_PROVIDER_TIMEOUT_SECONDS", "8"))
# "background" fires sync jobs as asyncio tasks, "inline" awaits them before responding
INTEGRATION_SYNC_MODE = os.getenv("INTEGRATION_SYNC_MODE", "background").lower()

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Google Calendar OAuth Configuration
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")

# Trinks Configuration
# The establishment id is stored per salon on its integration row
TRINKS_API_URL = os.getenv("TRINKS_API_URL", "https://api.trinks.com/v1")
TRINKS_API_KEY = os.getenv("TRINKS_API_KEY")
