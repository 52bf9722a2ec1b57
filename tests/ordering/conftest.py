import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield


@pytest.fixture()
def register_stock():
    """Register a variant's stock record through the registration command."""
    from ordering.stock.registration import RegisterVariantStock
    from protean import current_domain

    def _register(product_id="prod-001", variant_id="var-001", units=10, sku=None):
        return current_domain.process(
            RegisterVariantStock(
                product_id=product_id,
                variant_id=variant_id,
                units_in_stock=units,
                sku=sku,
            ),
            asynchronous=False,
        )

    return _register


@pytest.fixture()
def units_of():
    """Read a variant's current units in stock straight from the repository."""
    from ordering.stock.stock import VariantStock, variant_stock_id
    from protean import current_domain

    def _units(product_id="prod-001", variant_id="var-001"):
        stock = current_domain.repository_for(VariantStock).get(variant_stock_id(product_id, variant_id))
        return stock.units_in_stock

    return _units
