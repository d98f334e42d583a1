"""Human-readable order numbers: ``KB`` + timestamp tail + random suffix."""

import secrets
import string

from protean.utils.globals import current_domain

from marketplace.order.order import Order
from marketplace.utils.clock import utcnow

ORDER_NUMBER_PREFIX = "KB"
_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
_MAX_ATTEMPTS = 5


def generate_order_number(now=None) -> str:
    millis = int((now or utcnow()).timestamp() * 1000)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    return f"{ORDER_NUMBER_PREFIX}{str(millis)[-6:]}{suffix}"


def unique_order_number(now=None) -> str:
    """Generate an order number not yet used by any stored order."""
    repo = current_domain.repository_for(Order)
    for _ in range(_MAX_ATTEMPTS):
        candidate = generate_order_number(now)
        if not repo._dao.query.filter(order_number=candidate).all().items:
            return candidate
    raise RuntimeError(f"Could not generate a unique order number after {_MAX_ATTEMPTS} attempts")
