"""
Pytest configuration for the sales core tests.

This file adds the parent directory to the Python path so that tests
can import from the domain, repositories, services and api modules, and
provides in-memory stores seeded with a tenant's customer, product and stock.
"""

import sys
from pathlib import Path

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.customer import Customer  # noqa: E402
from domain.location import LocationType  # noqa: E402
from domain.product import Product  # noqa: E402
from domain.stock import Stock  # noqa: E402
from repositories.memory import (  # noqa: E402
    InMemoryCustomerStore,
    InMemoryProductStore,
    InMemorySaleStore,
    InMemoryStockStore,
)
from services.event_publisher import InMemoryEventPublisher  # noqa: E402

TENANT_ID = "tenant-a"
OTHER_TENANT_ID = "tenant-b"
USER_ID = "user-1"


@pytest.fixture
def customer_store() -> InMemoryCustomerStore:
    return InMemoryCustomerStore()


@pytest.fixture
def product_store() -> InMemoryProductStore:
    return InMemoryProductStore()


@pytest.fixture
def stock_store() -> InMemoryStockStore:
    return InMemoryStockStore()


@pytest.fixture
def sale_store() -> InMemorySaleStore:
    return InMemorySaleStore()


@pytest.fixture
def publisher() -> InMemoryEventPublisher:
    return InMemoryEventPublisher()


@pytest.fixture
def customer(customer_store: InMemoryCustomerStore) -> Customer:
    customer = Customer.create(
        tenant_id=TENANT_ID,
        name="Maria Souza",
        email="maria@example.com",
        customer_id="cust-1",
    )
    customer_store.save(customer)
    return customer


@pytest.fixture
def product(product_store: InMemoryProductStore) -> Product:
    product = Product.create(
        tenant_id=TENANT_ID,
        name="Keyboard",
        sku="kb-01",
        price="100.00",
        cost_price="60.00",
        product_id="prod-1",
    )
    product_store.save(product)
    return product


@pytest.fixture
def stock(stock_store: InMemoryStockStore, product: Product) -> Stock:
    """10 units of the product at WH-1 (minimum 2)."""
    stock = Stock.create(
        product_id=product.product_id,
        location_name="Main warehouse",
        location_code="wh-1",
        location_type=LocationType.WAREHOUSE,
        initial_quantity=10,
        minimum_quantity=2,
        tenant_id=TENANT_ID,
        stock_id="stock-1",
    )
    stock_store.save(stock)
    return stock
