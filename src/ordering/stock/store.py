"""Variant stock store — keyed access to stock records with atomic adjustment.

The ledger programs against ``VariantStockStore``; ``RepositoryStockStore``
is the Protean-backed implementation used by the application.
"""

from abc import ABC, abstractmethod

import structlog
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from ordering.errors import ConcurrentConflict, VariantNotFound
from ordering.stock.adjustment import AdjustVariantStock
from ordering.stock.stock import VariantStock, variant_stock_id

logger = structlog.get_logger(__name__)


class VariantStockStore(ABC):
    """Abstract interface for per-variant stock storage."""

    @abstractmethod
    def get_stock(self, product_id: str, variant_id: str) -> VariantStock:
        """Return the stock record, or raise ``VariantNotFound``."""
        ...

    @abstractmethod
    def atomic_adjust(self, product_id: str, variant_id: str, delta: int) -> VariantStock:
        """Apply ``delta`` to the variant's units and return the updated record.

        Concurrent adjustments of the same variant must never overwrite each
        other. Raises ``VariantNotFound``, ``InsufficientStock`` (nothing is
        written) or ``ConcurrentConflict``.
        """
        ...


class RepositoryStockStore(VariantStockStore):
    """Stock store over the VariantStock repository.

    Each adjustment is processed synchronously as an ``AdjustVariantStock``
    command, so it commits on its own before ``atomic_adjust`` returns. Version
    conflicts are retried by Protean as configured under
    ``[server.version_retry]`` in ``domain.toml``; a conflict that outlasts
    those retries is raised as ``ConcurrentConflict``.

    ``atomic_adjust`` must not be called inside an outer unit of work: the
    save would join it and the version check would only happen at the outer
    commit, after this method has returned.
    """

    def get_stock(self, product_id: str, variant_id: str) -> VariantStock:
        stock = current_domain.repository_for(VariantStock).get_or_none(variant_stock_id(product_id, variant_id))
        if stock is None:
            raise VariantNotFound(product_id, variant_id)
        return stock

    def atomic_adjust(self, product_id: str, variant_id: str, delta: int) -> VariantStock:
        command = AdjustVariantStock(product_id=product_id, variant_id=variant_id, delta=delta)
        try:
            return current_domain.process(command, asynchronous=False)
        except ConcurrentConflict:
            raise
        except ExpectedVersionError:
            attempts = version_retry_attempts()
            logger.warning(
                "Giving up on stock adjustment after repeated conflicts",
                product_id=str(product_id),
                variant_id=str(variant_id),
                delta=delta,
                attempts=attempts,
            )
            raise ConcurrentConflict(product_id, variant_id, attempts) from None


def version_retry_attempts() -> int:
    """How many times a command handler runs before a version conflict is raised."""
    version_retry = current_domain.config["server"]["version_retry"]
    if not version_retry["enabled"]:
        return 1
    return int(version_retry["max_retries"]) + 1


def build_stock_store() -> RepositoryStockStore:
    return RepositoryStockStore()
