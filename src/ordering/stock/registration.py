"""Variant stock registration — command and handler.

The catalog registers a stock record when a variant is added to a product.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.stock.stock import VariantStock, variant_stock_id


@ordering.command(part_of="VariantStock")
class RegisterVariantStock:
    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    units_in_stock = Integer(default=0, min_value=0)
    sku = String(max_length=50)


@ordering.command_handler(part_of=VariantStock)
class RegisterVariantStockHandler:
    @handle(RegisterVariantStock)
    def register_variant_stock(self, command):
        repo = current_domain.repository_for(VariantStock)
        stock_id = variant_stock_id(command.product_id, command.variant_id)
        if repo.get_or_none(stock_id) is not None:
            raise ValidationError({"variant_id": ["Stock is already registered for this variant"]})

        stock = VariantStock.register(
            product_id=command.product_id,
            variant_id=command.variant_id,
            units_in_stock=command.units_in_stock or 0,
            sku=command.sku,
        )
        repo.add(stock)
        return str(stock.id)
