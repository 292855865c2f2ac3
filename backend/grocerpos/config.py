# backend/grocerpos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///grocerpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Whole-transaction retries on concurrency conflicts (checkout, purchases, adjustments)
    SALE_RETRY_ATTEMPTS = int(os.environ.get("SALE_RETRY_ATTEMPTS", "3"))
    SALE_RETRY_BACKOFF_SECONDS = float(os.environ.get("SALE_RETRY_BACKOFF_SECONDS", "0.05"))

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    # Fixed-window rate limits: (max requests, window seconds)
    RATE_LIMIT_AUTH_MAX = int(os.environ.get("RATE_LIMIT_AUTH_MAX", "5"))
    RATE_LIMIT_AUTH_WINDOW_SECONDS = int(os.environ.get("RATE_LIMIT_AUTH_WINDOW_SECONDS", str(15 * 60)))
    RATE_LIMIT_API_MAX = int(os.environ.get("RATE_LIMIT_API_MAX", "100"))
    RATE_LIMIT_API_WINDOW_SECONDS = int(os.environ.get("RATE_LIMIT_API_WINDOW_SECONDS", "60"))

    # Only honour X-Forwarded-For / X-Real-IP behind a proxy that overwrites them
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "false").lower() in ("1", "true", "yes")

    EXPIRING_SOON_DAYS = int(os.environ.get("EXPIRING_SOON_DAYS", "30"))
