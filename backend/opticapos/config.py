# backend/opticapos/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/optica.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///optica.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Calendar boundaries for "today" and "this month" revenue
    SHOP_TIMEZONE = os.environ.get("SHOP_TIMEZONE", "America/Sao_Paulo")

    # Upper bound for a single persistence unit of work (sale transaction)
    PERSISTENCE_TIMEOUT_SECONDS = float(os.environ.get("PERSISTENCE_TIMEOUT_SECONDS", "5.0"))

    # Recipients written per notification batch
    NOTIFICATION_BATCH_SIZE = int(os.environ.get("NOTIFICATION_BATCH_SIZE", "200"))

    # False: re-fire low-stock alerts on every sale that leaves the product in the band
    LOW_STOCK_EDGE_TRIGGERED = _env_bool("LOW_STOCK_EDGE_TRIGGERED", False)

    DEFAULT_MIN_STOCK = int(os.environ.get("DEFAULT_MIN_STOCK", "5"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
