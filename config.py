# config.py
"""
Runtime configuration for the loyalty ledger service.

All values come from the environment (optionally a local .env file).
"""
import logging
import os
from urllib.parse import quote_plus

from dotenv import load_dotenv

load_dotenv()


def _build_database_url() -> str:
     url = os.getenv("DATABASE_URL")
     if url:
          return url
     # Fall back to the discrete Azure SQL settings
     user = quote_plus(os.getenv("DB_USER") or "")
     password = quote_plus(os.getenv("DB_PASS") or "")
     server = os.getenv("DB_SERVER")
     port = os.getenv("DB_PORT", "1433")
     name = os.getenv("DB_NAME")
     return f"mssql+pymssql://{user}:{password}@{server}:{port}/{name}"


DATABASE_URL = _build_database_url()
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

JWT_SECRET = os.getenv("JWT_SECRET", "")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

CORS_ORIGINS = [o for o in os.getenv("CORS_ORIGINS", "").split(",") if o]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Promotional calendar (e.g. a December advent campaign)
PROMO_TIMEZONE = os.getenv("PROMO_TIMEZONE", "America/New_York")
PROMO_MONTH = int(os.getenv("PROMO_MONTH", "12"))
PROMO_DAYS = int(os.getenv("PROMO_DAYS", "25"))

ORPHAN_RECOVERY_DAYS = int(os.getenv("ORPHAN_RECOVERY_DAYS", "30"))
DEFAULT_VOUCHER_VALIDITY_DAYS = int(os.getenv("DEFAULT_VOUCHER_VALIDITY_DAYS", "30"))

SIGNUP_BONUS_POINTS = int(os.getenv("SIGNUP_BONUS_POINTS", "100"))
FIRST_ORDER_BONUS_POINTS = int(os.getenv("FIRST_ORDER_BONUS_POINTS", "50"))


def configure_logging(level: str = LOG_LEVEL) -> None:
     """Configure root logging once at process start."""
     logging.basicConfig(
          level=level,
          format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
     )
