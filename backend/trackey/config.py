# backend/trackey/config.py
from __future__ import annotations
import os


def _split_origins(raw: str) -> set[str]:
    return {o.strip() for o in raw.split(",") if o.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/trackey.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///trackey.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Listing defaults (debts, products, device pages)
    DEFAULT_PAGE_SIZE = int(os.environ.get("TRACKEY_PAGE_SIZE", "10"))
    MAX_PAGE_SIZE = 100

    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("TRACKEY_SESSION_HOURS", "24"))
    SESSION_IDLE_TIMEOUT_HOURS = 2

    CORS_ALLOWED_ORIGINS = _split_origins(
        os.environ.get(
            "TRACKEY_CORS_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        )
    )
