"""VariantStock aggregate (CQRS) — the stock record for one product variant.

There is exactly one record per (product_id, variant_id), keyed by
``variant_stock_id``. Units never drop below zero; ``in_stock`` and
``stock_status`` are derived from ``units_in_stock`` on every change.

Only the inventory ledger (through a ``VariantStockStore``) adjusts units.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String

from ordering.domain import ordering
from ordering.errors import InsufficientStock
from ordering.stock.events import VariantStockRegistered


class StockStatus(Enum):
    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"


def variant_stock_id(product_id, variant_id):
    """Identity of the stock record for a product variant."""
    return f"{product_id}:{variant_id}"


@ordering.aggregate
class VariantStock:
    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    sku = String(max_length=50)
    units_in_stock = Integer(default=0, min_value=0)
    in_stock = Boolean(default=False)
    stock_status = String(
        choices=StockStatus,
        default=StockStatus.OUT_OF_STOCK.value,
    )
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def stock_flags_must_mirror_units(self):
        expected = self.units_in_stock > 0
        if self.in_stock != expected or self.stock_status != _status_for(expected).value:
            raise ValidationError({"stock_status": ["Stock flags are out of sync with units in stock"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, product_id, variant_id, units_in_stock=0, sku=None):
        """Create the stock record for a newly catalogued variant."""
        if units_in_stock < 0:
            raise ValidationError({"units_in_stock": ["Units in stock cannot be negative"]})

        now = datetime.now(UTC)
        in_stock = units_in_stock > 0
        stock = cls(
            id=variant_stock_id(product_id, variant_id),
            product_id=product_id,
            variant_id=variant_id,
            sku=sku,
            units_in_stock=units_in_stock,
            in_stock=in_stock,
            stock_status=_status_for(in_stock).value,
            created_at=now,
            updated_at=now,
        )
        stock.raise_(
            VariantStockRegistered(
                stock_id=str(stock.id),
                product_id=str(product_id),
                variant_id=str(variant_id),
                units_in_stock=units_in_stock,
                registered_at=now,
            )
        )
        return stock

    # -------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------
    def adjust(self, delta):
        """Apply ``delta`` to the units in stock.

        Raises ``InsufficientStock`` and leaves the record untouched when the
        result would be negative.
        """
        new_units = self.units_in_stock + delta
        if new_units < 0:
            raise InsufficientStock(
                product_id=self.product_id,
                variant_id=self.variant_id,
                requested=-delta,
                available=self.units_in_stock,
            )

        in_stock = new_units > 0
        with atomic_change(self):
            self.units_in_stock = new_units
            self.in_stock = in_stock
            self.stock_status = _status_for(in_stock).value
            self.updated_at = datetime.now(UTC)


def _status_for(in_stock):
    return StockStatus.IN_STOCK if in_stock else StockStatus.OUT_OF_STOCK
