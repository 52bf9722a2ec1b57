"""Domain events for the VariantStock aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="VariantStock")
class VariantStockRegistered:
    """A stock record was created for a newly catalogued variant."""

    __version__ = 1

    stock_id = String(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    units_in_stock = Integer(required=True)
    registered_at = DateTime(required=True)
