# backend/maiduka/config.py
from __future__ import annotations
import os


class Config:
    # Local device database; the sync subsystem reconciles it with the remote service
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///maiduka.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Retry policy for lock and optimistic-version conflicts
    LEDGER_RETRY_ATTEMPTS = int(os.environ.get("LEDGER_RETRY_ATTEMPTS", "3"))
    LEDGER_RETRY_BACKOFF = float(os.environ.get("LEDGER_RETRY_BACKOFF", "0.1"))

    LEDGER_LOG_LEVEL = os.environ.get("LEDGER_LOG_LEVEL", "INFO")
