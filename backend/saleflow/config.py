# backend/saleflow/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/saleflow.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///saleflow.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Flat rate applied to the order subtotal (0.07 = 7%)
    SALES_TAX_RATE = float(os.environ.get("SALES_TAX_RATE", "0.07"))

    # One loyalty point per this many cents of sale total
    LOYALTY_CENTS_PER_POINT = int(os.environ.get("LOYALTY_CENTS_PER_POINT", "10000"))

    DEFAULT_STOCK_LOCATION = os.environ.get("DEFAULT_STOCK_LOCATION", "main")

    # Worker threads used to fan events out to subscribers
    EVENT_DISPATCH_WORKERS = int(os.environ.get("EVENT_DISPATCH_WORKERS", "4"))
