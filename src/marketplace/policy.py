"""Business policy settings for the marketplace.

Each value can be overridden through an environment variable of the same
name, which lets operators tune reservation windows and pricing per
deployment without touching the domain configuration in ``domain.toml``.
"""

import os


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, default))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, default))


# Stock reservations
RESERVATION_TTL_MINUTES = _env_int("RESERVATION_TTL_MINUTES", 15)
DEFAULT_LOW_STOCK_THRESHOLD = _env_int("DEFAULT_LOW_STOCK_THRESHOLD", 10)

# Order pricing
DELIVERY_FEE = _env_float("DELIVERY_FEE", 50.0)
FREE_DELIVERY_THRESHOLD = _env_float("FREE_DELIVERY_THRESHOLD", 1000.0)
TAX_RATE = _env_float("TAX_RATE", 0.10)
ESTIMATED_DELIVERY_DAYS = _env_int("ESTIMATED_DELIVERY_DAYS", 2)

# Optimistic concurrency retries
STORE_RETRY_ATTEMPTS = _env_int("STORE_RETRY_ATTEMPTS", 3)
STORE_RETRY_BACKOFF_SECONDS = _env_float("STORE_RETRY_BACKOFF_SECONDS", 0.05)
