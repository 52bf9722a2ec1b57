"""Ordering bounded context — Orders and per-variant stock.

Handles the order lifecycle (placed through delivered, cancelled or returned)
and the inventory ledger that reserves and releases variant stock for it.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
