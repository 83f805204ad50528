# backend/inventory_ledger/config.py
from __future__ import annotations
import os


class Config:
    # SQLite DB stored in backend/instance/inventory_ledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///inventory_ledger.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Optimistic retry bound for ledger mutations
    LEDGER_MAX_ATTEMPTS = int(os.environ.get("LEDGER_MAX_ATTEMPTS", "5"))
    # Base delay in seconds, doubled after every conflict
    LEDGER_RETRY_BACKOFF = float(os.environ.get("LEDGER_RETRY_BACKOFF", "0.05"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
