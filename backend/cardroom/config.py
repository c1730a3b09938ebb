# backend/cardroom/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/cardroom.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///cardroom.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session-level ceiling on credit the cashier may approve without an admin (rupees)
    DEFAULT_CASHIER_CREDIT_LIMIT = int(os.environ.get("DEFAULT_CASHIER_CREDIT_LIMIT", "50000"))

    # Share of a dealer tip's chip value paid out in cash (percent)
    DEFAULT_DEALER_CASH_PERCENTAGE = int(os.environ.get("DEFAULT_DEALER_CASH_PERCENTAGE", "50"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "WARNING"
