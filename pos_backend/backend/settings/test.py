# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS
- In-memory SQLite
- Fixed pricing knobs so expectations do not depend on the environment
- Console logging quiet below WARNING
"""

from __future__ import annotations

from decimal import Decimal

from .base import *  # noqa: F403
from .base import LOGGING  # explicit for Ruff (F405)

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

POS_DEFAULT_TAX_RATE = Decimal("0.05")
POS_RETURNED_STOCK_BATCH = "RETURNED_STOCK"

for _logger in LOGGING["loggers"].values():
    _logger["level"] = "WARNING"
