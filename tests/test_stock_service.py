"""
Tests for `services/stock_service.py`.

Covers contract rules:
- One stock per product and location code within a tenant.
- Every change is persisted together with its movement.
- Removals, adjustments and transfers never break quantity >= reserved >= 0.
"""

from __future__ import annotations

import pytest

from domain.errors import BusinessRuleError, InsufficientStockError, NotFoundError, ValidationError
from domain.product import Product
from services.stock_service import (
    AddStockRequest,
    AdjustStockRequest,
    CreateStockRequest,
    RemoveStockRequest,
    TransferStockRequest,
    add_stock,
    adjust_stock,
    create_stock,
    get_movement_history,
    list_low_stock,
    remove_stock,
    transfer_stock,
)

TENANT_ID = "tenant-a"
OTHER_TENANT_ID = "tenant-b"
USER_ID = "user-1"


def _create_store_location(product_store, stock_store, publisher, quantity: int = 0):
    return create_stock(
        CreateStockRequest(
            product_id="prod-1",
            location_name="Downtown store",
            location_code="st-1",
            location_type="STORE",
            initial_quantity=quantity,
            minimum_quantity=1,
            tenant_id=TENANT_ID,
        ),
        product_store=product_store,
        stock_store=stock_store,
        publisher=publisher,
    )


def test_create_stock(product, product_store, stock_store, publisher) -> None:
    output = _create_store_location(product_store, stock_store, publisher, quantity=5)

    assert output.location_code == "ST-1"
    assert output.location_type == "STORE"
    assert output.quantity == 5
    assert output.available_quantity == 5
    assert publisher.event_types() == ["StockCreated"]
    assert stock_store.list_movements(output.stock_id, TENANT_ID) == []


def test_create_stock_rejects_duplicate_location(stock, product_store, stock_store, publisher) -> None:
    with pytest.raises(BusinessRuleError):
        create_stock(
            CreateStockRequest(
                product_id="prod-1",
                location_name="Same warehouse, new name",
                location_code="WH-1",
                initial_quantity=1,
                minimum_quantity=0,
                tenant_id=TENANT_ID,
            ),
            product_store=product_store,
            stock_store=stock_store,
            publisher=publisher,
        )


def test_create_stock_requires_active_known_product(product, product_store, stock_store, publisher) -> None:
    with pytest.raises(NotFoundError):
        create_stock(
            CreateStockRequest(
                product_id="prod-1",
                location_name="Warehouse",
                location_code="WH-9",
                initial_quantity=1,
                minimum_quantity=0,
                tenant_id=OTHER_TENANT_ID,
            ),
            product_store=product_store,
            stock_store=stock_store,
        )

    with pytest.raises(ValidationError):
        create_stock(
            CreateStockRequest(
                product_id="prod-1",
                location_name="Warehouse",
                location_code="WH-9",
                initial_quantity=1,
                minimum_quantity=0,
                tenant_id=TENANT_ID,
                location_type="ATTIC",
            ),
            product_store=product_store,
            stock_store=stock_store,
        )

    product_store.save(product.deactivated())
    with pytest.raises(ValidationError):
        _create_store_location(product_store, stock_store, publisher)


def test_add_and_remove_stock_record_movements(stock, product_store, stock_store, publisher) -> None:
    add_stock(
        AddStockRequest(stock_id="stock-1", product_id="prod-1", quantity=5, user_id=USER_ID, tenant_id=TENANT_ID),
        product_store=product_store,
        stock_store=stock_store,
        publisher=publisher,
    )
    output = remove_stock(
        RemoveStockRequest(
            stock_id="stock-1",
            product_id="prod-1",
            quantity=13,
            user_id=USER_ID,
            tenant_id=TENANT_ID,
            reason="DAMAGED",
            notes="water damage",
        ),
        product_store=product_store,
        stock_store=stock_store,
        publisher=publisher,
    )

    assert output.quantity == 2
    assert output.is_low_level is True

    history = get_movement_history("stock-1", TENANT_ID, stock_store=stock_store)
    assert [(m.type, m.reason, m.previous_quantity, m.current_quantity) for m in history] == [
        ("IN", "PURCHASE", 10, 15),
        ("OUT", "DAMAGED", 15, 2),
    ]
    assert history[1].notes == "water damage"
    assert publisher.event_types() == ["StockIncreased", "StockDecreased", "StockLowLevel"]


def test_remove_stock_validation(stock, product_store, stock_store, publisher) -> None:
    def remove(quantity, **overrides):
        fields = dict(stock_id="stock-1", product_id="prod-1", quantity=quantity, user_id=USER_ID, tenant_id=TENANT_ID)
        fields.update(overrides)
        return remove_stock(
            RemoveStockRequest(**fields),
            product_store=product_store,
            stock_store=stock_store,
            publisher=publisher,
        )

    with pytest.raises(InsufficientStockError):
        remove(11)

    with pytest.raises(ValidationError):
        remove(0)

    with pytest.raises(ValidationError):
        remove(1, reason="PURCHASE")

    with pytest.raises(ValidationError):
        remove(1, reason="VANISHED")

    with pytest.raises(NotFoundError):
        remove(1, product_id="prod-2")

    product_store.save(Product.create(tenant_id=TENANT_ID, name="Mouse", sku="ms-01", price="20", product_id="prod-2"))
    with pytest.raises(ValidationError):
        remove(1, product_id="prod-2")

    with pytest.raises(NotFoundError):
        remove(1, stock_id="missing")

    assert stock_store.find_by_id("stock-1", TENANT_ID).quantity == 10
    assert stock_store.list_movements("stock-1", TENANT_ID) == []


def test_adjust_stock(stock, stock_store, publisher) -> None:
    output = adjust_stock(
        AdjustStockRequest(stock_id="stock-1", new_quantity=1, user_id=USER_ID, tenant_id=TENANT_ID, notes="count"),
        stock_store=stock_store,
        publisher=publisher,
    )

    assert output.quantity == 1
    assert publisher.event_types() == ["StockAdjusted", "StockLowLevel"]
    assert get_movement_history("stock-1", TENANT_ID, stock_store=stock_store)[0].type == "ADJUSTMENT"


def test_adjust_stock_below_reserved_is_rejected(stock, stock_store, publisher) -> None:
    loaded = stock_store.find_by_id("stock-1", TENANT_ID)
    loaded.reserve_stock(6)
    stock_store.save(loaded)

    with pytest.raises(BusinessRuleError):
        adjust_stock(
            AdjustStockRequest(stock_id="stock-1", new_quantity=5, user_id=USER_ID, tenant_id=TENANT_ID),
            stock_store=stock_store,
            publisher=publisher,
        )

    assert stock_store.find_by_id("stock-1", TENANT_ID).quantity == 10


def test_transfer_stock_between_locations(stock, product_store, stock_store, publisher) -> None:
    destination = _create_store_location(product_store, stock_store, publisher)
    publisher.clear()

    output = transfer_stock(
        TransferStockRequest(
            product_id="prod-1",
            from_location_code="wh-1",
            to_location_code="ST-1",
            quantity=4,
            user_id=USER_ID,
            tenant_id=TENANT_ID,
        ),
        product_store=product_store,
        stock_store=stock_store,
        publisher=publisher,
    )

    assert output.source.quantity == 6
    assert output.destination.quantity == 4
    assert publisher.event_types() == ["StockDecreased", "StockIncreased"]

    out_history = get_movement_history("stock-1", TENANT_ID, stock_store=stock_store)
    in_history = get_movement_history(destination.stock_id, TENANT_ID, stock_store=stock_store)
    assert out_history[0].reason == "TRANSFER_OUT"
    assert in_history[0].reason == "TRANSFER_IN"
    assert out_history[0].reference_id == in_history[0].reference_id == output.transfer_id


def test_transfer_stock_failures_leave_both_locations_untouched(stock, product_store, stock_store, publisher) -> None:
    destination = _create_store_location(product_store, stock_store, publisher)

    def transfer(quantity, from_code="WH-1", to_code="ST-1"):
        return transfer_stock(
            TransferStockRequest(
                product_id="prod-1",
                from_location_code=from_code,
                to_location_code=to_code,
                quantity=quantity,
                user_id=USER_ID,
                tenant_id=TENANT_ID,
            ),
            product_store=product_store,
            stock_store=stock_store,
            publisher=publisher,
        )

    with pytest.raises(InsufficientStockError):
        transfer(11)

    with pytest.raises(ValidationError):
        transfer(1, to_code="WH-1")

    with pytest.raises(NotFoundError):
        transfer(1, to_code="XX-1")

    assert stock_store.find_by_id("stock-1", TENANT_ID).quantity == 10
    assert stock_store.find_by_id(destination.stock_id, TENANT_ID).quantity == 0


def test_list_low_stock(stock, product_store, stock_store, publisher) -> None:
    assert list_low_stock(TENANT_ID, stock_store=stock_store) == []

    _create_store_location(product_store, stock_store, publisher, quantity=1)

    low = list_low_stock(TENANT_ID, stock_store=stock_store)
    assert [s.location_code for s in low] == ["ST-1"]
    assert list_low_stock(OTHER_TENANT_ID, stock_store=stock_store) == []


def test_movement_history_requires_known_stock(stock_store) -> None:
    with pytest.raises(NotFoundError):
        get_movement_history("missing", TENANT_ID, stock_store=stock_store)
