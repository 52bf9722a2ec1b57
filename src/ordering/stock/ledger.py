"""Inventory ledger — reserve and release stock for order line items.

The ledger is the only component that changes stock counts. Reservation
is all-or-nothing across an order's items: when one item fails, every
item already reserved by the same call is given back before the error
propagates. Release is best-effort per item and reports failures instead
of raising them.
"""

import json
from dataclasses import asdict, dataclass, field

import structlog

from ordering.errors import ConcurrentConflict
from ordering.stock.store import VariantStockStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LineItem:
    """A quantity of one product variant."""

    product_id: str
    variant_id: str
    quantity: int

    @classmethod
    def from_item(cls, item):
        """Build a line item from an OrderItem or a plain mapping."""
        if isinstance(item, dict):
            return cls(str(item["product_id"]), str(item["variant_id"]), item["quantity"])
        return cls(str(item.product_id), str(item.variant_id), item.quantity)


@dataclass(frozen=True)
class ReleaseFailure:
    item: LineItem
    error: str


@dataclass
class ReleaseReport:
    released: list[LineItem] = field(default_factory=list)
    failed: list[ReleaseFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_json(self) -> str:
        return json.dumps(
            {
                "released": [asdict(line) for line in self.released],
                "failed": [{"item": asdict(failure.item), "error": failure.error} for failure in self.failed],
            }
        )

    @classmethod
    def from_json(cls, payload: str) -> "ReleaseReport":
        data = json.loads(payload)
        return cls(
            released=[LineItem(**line) for line in data["released"]],
            failed=[
                ReleaseFailure(item=LineItem(**failure["item"]), error=failure["error"]) for failure in data["failed"]
            ],
        )


class InventoryLedger:
    def __init__(self, store: VariantStockStore):
        self.store = store

    def reserve_all(self, items) -> list[LineItem]:
        """Reserve every item, in the order given, or none of them.

        Re-raises the first failure unchanged after compensating the items
        reserved before it.
        """
        line_items = [LineItem.from_item(item) for item in items]
        reserved = []
        try:
            for line in line_items:
                self.store.atomic_adjust(line.product_id, line.variant_id, -line.quantity)
                reserved.append(line)
        except BaseException as exc:
            # Also runs when the caller is interrupted mid-reservation
            self._rollback(reserved, exc)
            raise

        logger.info("Reserved stock for order items", items=len(reserved))
        return reserved

    def release_all(self, items) -> ReleaseReport:
        """Give back every item's quantity, continuing past individual failures."""
        report = ReleaseReport()
        for item in items:
            line = LineItem.from_item(item)
            try:
                self.store.atomic_adjust(line.product_id, line.variant_id, line.quantity)
            except Exception as exc:
                logger.warning(
                    "Could not restock order item",
                    product_id=line.product_id,
                    variant_id=line.variant_id,
                    quantity=line.quantity,
                    error=str(exc),
                )
                report.failed.append(ReleaseFailure(item=line, error=str(exc)))
            else:
                report.released.append(line)

        logger.info("Released stock for order items", released=len(report.released), failed=len(report.failed))
        return report

    def adjust(self, product_id, variant_id, delta):
        """Correct a variant's stock by ``delta`` (administrative restock or write-off)."""
        stock = self.store.atomic_adjust(product_id, variant_id, delta)
        logger.info(
            "Adjusted variant stock",
            product_id=str(product_id),
            variant_id=str(variant_id),
            delta=delta,
            units_in_stock=stock.units_in_stock,
        )
        return stock

    def _rollback(self, reserved, cause):
        """Give back every reserved item, most recent first.

        A conflicting concurrent writer only delays a compensation, so it is
        retried until it lands. An interruption is held until every item has
        been compensated and then re-raised.
        """
        interruption = None
        for line in reversed(reserved):
            while True:
                try:
                    self.store.atomic_adjust(line.product_id, line.variant_id, line.quantity)
                except ConcurrentConflict:
                    logger.warning(
                        "Stock kept changing while rolling back a reservation, retrying",
                        product_id=line.product_id,
                        variant_id=line.variant_id,
                        quantity=line.quantity,
                    )
                    continue
                except Exception as exc:
                    logger.error(
                        "Could not roll back reserved stock",
                        product_id=line.product_id,
                        variant_id=line.variant_id,
                        quantity=line.quantity,
                        error=str(exc),
                    )
                except BaseException as exc:
                    interruption = interruption or exc
                    continue
                break

        if reserved:
            logger.info("Rolled back partial stock reservation", items=len(reserved), cause=type(cause).__name__)
        if interruption is not None:
            raise interruption
