# backend/gestion360/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/gestion360.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///gestion360.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Growth on the reports screen is measured against this fixed figure,
    # not against the previous period's sales.
    REPORT_GROWTH_BASELINE = float(os.environ.get("REPORT_GROWTH_BASELINE", "100000"))

    # IANA zone name used for report calendars; unset means process local time
    REPORT_TIMEZONE = os.environ.get("REPORT_TIMEZONE") or None

    # Re-read ledger collections before each request so writes from other
    # workers reach this process's mirror
    LEDGER_POLL_ON_REQUEST = _env_bool("LEDGER_POLL_ON_REQUEST", True)
