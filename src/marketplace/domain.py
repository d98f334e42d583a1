"""Marketplace bounded context — Perishable Stock and Order Fulfillment.

Coordinates limited, perishable inventory between independent sellers
(farmers and vendors) and concurrent buyers. A single domain holds both the
ProductStock and Order aggregates so that placing or cancelling an order and
the matching stock movement commit in one unit of work.
"""

from protean.domain import Domain

marketplace = Domain(name="marketplace")
