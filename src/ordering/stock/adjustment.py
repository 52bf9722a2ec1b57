"""Variant stock adjustment — command and handler.

Every change to a variant's units goes through ``AdjustVariantStock``. The
handler runs in its own unit of work; a save against a stale version is
retried by Protean with a fresh load, so concurrent adjustments never
overwrite each other.
"""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import VariantNotFound
from ordering.stock.stock import VariantStock, variant_stock_id


@ordering.command(part_of="VariantStock")
class AdjustVariantStock:
    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    delta = Integer(default=0)  # Negative to reserve, positive to restock


@ordering.command_handler(part_of=VariantStock)
class VariantStockAdjustmentHandler:
    @handle(AdjustVariantStock)
    def adjust_variant_stock(self, command):
        repo = current_domain.repository_for(VariantStock)
        stock = repo.get_or_none(variant_stock_id(command.product_id, command.variant_id))
        if stock is None:
            raise VariantNotFound(command.product_id, command.variant_id)

        stock.adjust(command.delta or 0)
        repo.add(stock)
        return stock
