"""Marketplace bounded context — order fulfillment for the food-delivery platform.

Holds vendors, customers, orders, payments, notification records and the audit
log in a single domain so that Order, Payment and status history writes can
share one unit of work.
"""

import structlog
from protean.domain import Domain

logger = structlog.get_logger(__name__)

marketplace = Domain(name="marketplace")
