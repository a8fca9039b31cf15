from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


DATABASE_URL = os.environ.get("DATABASE_URL", "").strip()
DATABASE_PATH = os.environ.get("DATABASE_PATH", "").strip() or str(BASE_DIR / "taskmaxxing.db")

APP_ENV = os.environ.get("APP_ENV", "development").strip().lower()
SECRET_KEY = os.environ.get("APP_SECRET_KEY", "dev-secret-change-me")
JWT_SECRET = os.environ.get("JWT_SECRET", "your-secret-key")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

APP_BASE_URL = os.environ.get("APP_BASE_URL", "").strip()
RESEND_API_KEY = os.environ.get("RESEND_API_KEY", "").strip()
RESET_EMAIL_FROM = os.environ.get("RESET_EMAIL_FROM", "").strip()

BIWEEKLY_PAYCHECK = _env_float("BIWEEKLY_PAYCHECK", 3012.89)
MONTHLY_RENT = _env_float("MONTHLY_RENT", 2300.0)
MONTHLY_SAVINGS = _env_float("MONTHLY_SAVINGS", 1000.0)
CREDIT_CARD_LIMIT = _env_float("CREDIT_CARD_LIMIT", 2000.0)


def as_mapping() -> dict:
    return {
        "DATABASE_URL": DATABASE_URL,
        "DATABASE_PATH": DATABASE_PATH,
        "APP_ENV": APP_ENV,
        "SECRET_KEY": SECRET_KEY,
        "JWT_SECRET": JWT_SECRET,
        "APP_BASE_URL": APP_BASE_URL,
        "RESEND_API_KEY": RESEND_API_KEY,
        "RESET_EMAIL_FROM": RESET_EMAIL_FROM,
        "BIWEEKLY_PAYCHECK": BIWEEKLY_PAYCHECK,
        "MONTHLY_RENT": MONTHLY_RENT,
        "MONTHLY_SAVINGS": MONTHLY_SAVINGS,
        "CREDIT_CARD_LIMIT": CREDIT_CARD_LIMIT,
    }
