# backend/uniformdesk/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/uniformdesk.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///uniformdesk.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Only count orders placed inside the category's current renewal cycle.
    # Off: every historical order counts against the allowance.
    ELIGIBILITY_CYCLE_WINDOWING = _env_flag("ELIGIBILITY_CYCLE_WINDOWING", False)

    # Upper bound on rows accepted by a single bulk submission
    BULK_ORDER_MAX_ROWS = int(os.environ.get("BULK_ORDER_MAX_ROWS", "5000"))

    DEFAULT_DELIVERY_ADDRESS = os.environ.get("DEFAULT_DELIVERY_ADDRESS", "Address not available")
