"""
Tests for `services/sale_service.py`.

Covers contract rules:
- Sales open only for active customers of the same tenant.
- Items snapshot the product and are checked against available stock.
- Confirmation takes units out of stock across locations, all-or-nothing.
- Cancelling a confirmed sale puts its units back.
- A retried confirm or cancel never moves the same units twice.
- Events are published only after the aggregate is saved.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from domain.errors import BusinessRuleError, DatabaseError, InsufficientStockError, NotFoundError, ValidationError
from domain.location import LocationType
from domain.product import Product
from domain.stock import Stock
from domain.stock_movement import MovementReason
from services.catalog_service import UpdateProductRequest, update_product
from services.sale_service import (
    AddPaymentRequest,
    AddSaleItemRequest,
    ApplyItemDiscountRequest,
    ApplySaleDiscountRequest,
    CancelSaleRequest,
    ConfirmSaleRequest,
    CreateSaleRequest,
    RemoveSaleItemRequest,
    UpdateSaleItemQuantityRequest,
    add_payment,
    build_discount,
    add_sale_item,
    apply_item_discount,
    apply_sale_discount,
    cancel_sale,
    confirm_sale,
    create_sale,
    get_sale,
    list_customer_sales,
    remove_sale_item,
    update_sale_item_quantity,
)

TENANT_ID = "tenant-a"
OTHER_TENANT_ID = "tenant-b"
USER_ID = "user-1"


@pytest.fixture
def draft(customer, stock, customer_store, sale_store, publisher):
    """An empty draft sale for the seeded customer."""
    output = create_sale(
        CreateSaleRequest(customer_id=customer.customer_id, user_id=USER_ID, tenant_id=TENANT_ID),
        customer_store=customer_store,
        sale_store=sale_store,
        publisher=publisher,
    )
    publisher.clear()
    return output


def _add(sale_id, quantity, *, sale_store, product_store, stock_store, publisher, product_id="prod-1", **discount):
    return add_sale_item(
        AddSaleItemRequest(
            sale_id=sale_id,
            product_id=product_id,
            quantity=quantity,
            tenant_id=TENANT_ID,
            **discount,
        ),
        sale_store=sale_store,
        product_store=product_store,
        stock_store=stock_store,
        publisher=publisher,
    )


def _second_location(quantity: int) -> Stock:
    return Stock.create(
        product_id="prod-1",
        location_name="Downtown store",
        location_code="ST-1",
        location_type=LocationType.STORE,
        initial_quantity=quantity,
        minimum_quantity=0,
        tenant_id=TENANT_ID,
        stock_id="stock-2",
    )


def test_create_sale_snapshots_customer(customer, customer_store, sale_store, publisher) -> None:
    output = create_sale(
        CreateSaleRequest(customer_id="cust-1", user_id=USER_ID, tenant_id=TENANT_ID, notes="walk-in"),
        customer_store=customer_store,
        sale_store=sale_store,
        publisher=publisher,
    )

    assert output.status == "DRAFT"
    assert output.customer_name == "Maria Souza"
    assert output.total == Decimal("0.00")
    assert publisher.event_types() == ["SaleCreated"]
    assert sale_store.find_by_id(output.sale_id, TENANT_ID) is not None


def test_create_sale_requires_active_customer_in_tenant(customer, customer_store, sale_store) -> None:
    with pytest.raises(NotFoundError):
        create_sale(
            CreateSaleRequest(customer_id="cust-1", user_id=USER_ID, tenant_id=OTHER_TENANT_ID),
            customer_store=customer_store,
            sale_store=sale_store,
        )

    customer_store.save(customer.deactivated())

    with pytest.raises(ValidationError):
        create_sale(
            CreateSaleRequest(customer_id="cust-1", user_id=USER_ID, tenant_id=TENANT_ID),
            customer_store=customer_store,
            sale_store=sale_store,
        )


def test_add_item_snapshots_product_and_prefers_fixed_discount(
    draft, product, sale_store, product_store, stock_store, publisher
) -> None:
    """When both discounts are given the fixed amount is used."""

    output = _add(
        draft.sale_id,
        2,
        sale_store=sale_store,
        product_store=product_store,
        stock_store=stock_store,
        publisher=publisher,
        discount_percentage="50",
        discount_fixed="15.00",
    )

    item = output.items[0]
    assert item.product_name == "Keyboard"
    assert item.product_sku == "KB-01"
    assert item.unit_price == Decimal("100.00")
    assert item.subtotal == Decimal("200.00")
    assert item.discount == Decimal("15.00")
    assert output.total == Decimal("185.00")
    assert publisher.event_types() == ["SaleItemAdded"]

    # Catalog changes never rewrite a sale line.
    update_product(
        UpdateProductRequest(product_id=product.product_id, tenant_id=TENANT_ID, price="999.00", name="Renamed"),
        product_store=product_store,
    )
    line = get_sale(draft.sale_id, TENANT_ID, sale_store=sale_store).items[0]
    assert line.product_name == "Keyboard"
    assert line.unit_price == Decimal("100.00")
    assert line.total == Decimal("185.00")


def test_zero_fixed_discount_does_not_hide_percentage() -> None:
    assert build_discount(10, 0).calculate(Decimal("100")) == Decimal("10.00")
    assert build_discount("10", "0.00").calculate(Decimal("100")) == Decimal("10.00")
    assert build_discount(10, 5).calculate(Decimal("100")) == Decimal("5.00")
    assert build_discount(0, 0) is None
    assert build_discount(None, None) is None

    with pytest.raises(ValidationError):
        build_discount(None, "ten")


def test_add_item_rejects_insufficient_stock(draft, product, sale_store, product_store, stock_store, publisher) -> None:
    with pytest.raises(InsufficientStockError) as excinfo:
        _add(
            draft.sale_id,
            11,
            sale_store=sale_store,
            product_store=product_store,
            stock_store=stock_store,
            publisher=publisher,
        )

    assert excinfo.value.available == 10
    assert get_sale(draft.sale_id, TENANT_ID, sale_store=sale_store).items == []
    assert publisher.events == []


def test_add_item_validation(draft, product, sale_store, product_store, stock_store, publisher) -> None:
    kwargs = dict(sale_store=sale_store, product_store=product_store, stock_store=stock_store, publisher=publisher)

    with pytest.raises(ValidationError):
        _add(draft.sale_id, 0, **kwargs)

    with pytest.raises(NotFoundError):
        _add(draft.sale_id, 1, product_id="missing", **kwargs)

    with pytest.raises(NotFoundError):
        _add("missing-sale", 1, **kwargs)

    product_store.save(product.deactivated())
    with pytest.raises(ValidationError):
        _add(draft.sale_id, 1, **kwargs)


def test_update_remove_and_discount_items(draft, product, sale_store, product_store, stock_store, publisher) -> None:
    output = _add(
        draft.sale_id, 1, sale_store=sale_store, product_store=product_store, stock_store=stock_store, publisher=publisher
    )
    item_id = output.items[0].item_id

    output = update_sale_item_quantity(
        UpdateSaleItemQuantityRequest(sale_id=draft.sale_id, item_id=item_id, quantity=3, tenant_id=TENANT_ID),
        sale_store=sale_store,
        stock_store=stock_store,
        publisher=publisher,
    )
    assert output.total == Decimal("300.00")

    with pytest.raises(InsufficientStockError):
        update_sale_item_quantity(
            UpdateSaleItemQuantityRequest(sale_id=draft.sale_id, item_id=item_id, quantity=20, tenant_id=TENANT_ID),
            sale_store=sale_store,
            stock_store=stock_store,
            publisher=publisher,
        )

    output = apply_item_discount(
        ApplyItemDiscountRequest(sale_id=draft.sale_id, item_id=item_id, tenant_id=TENANT_ID, discount_percentage="10"),
        sale_store=sale_store,
        publisher=publisher,
    )
    assert output.total == Decimal("270.00")

    output = apply_item_discount(
        ApplyItemDiscountRequest(sale_id=draft.sale_id, item_id=item_id, tenant_id=TENANT_ID),
        sale_store=sale_store,
        publisher=publisher,
    )
    assert output.total == Decimal("300.00")

    output = remove_sale_item(
        RemoveSaleItemRequest(sale_id=draft.sale_id, item_id=item_id, tenant_id=TENANT_ID),
        sale_store=sale_store,
        publisher=publisher,
    )
    assert output.items == []
    assert output.total == Decimal("0.00")


def test_confirm_takes_units_from_largest_location_first(
    draft, product, sale_store, product_store, stock_store, publisher
) -> None:
    stock_store.save(_second_location(4))
    _add(
        draft.sale_id, 12, sale_store=sale_store, product_store=product_store, stock_store=stock_store, publisher=publisher
    )
    publisher.clear()

    output = confirm_sale(
        ConfirmSaleRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID),
        sale_store=sale_store,
        stock_store=stock_store,
        publisher=publisher,
    )

    assert output.status == "CONFIRMED"
    assert output.confirmed_at is not None
    assert stock_store.find_by_id("stock-1", TENANT_ID).quantity == 0
    assert stock_store.find_by_id("stock-2", TENANT_ID).quantity == 2

    movements = stock_store.list_movements_by_reference(draft.sale_id, TENANT_ID)
    assert sorted((m.stock_id, m.quantity.value) for m in movements) == [("stock-1", 10), ("stock-2", 2)]
    assert all(m.reason is MovementReason.SALE and m.user_id == USER_ID for m in movements)

    types = publisher.event_types()
    assert types[0] == "SaleConfirmed"
    assert types.count("StockDecreased") == 2
    assert "StockLowLevel" in types


def test_confirm_is_all_or_nothing(draft, product, sale_store, product_store, stock_store, publisher) -> None:
    """If one line can no longer be covered, no stock moves and the sale stays DRAFT."""

    product_store.save(
        Product.create(tenant_id=TENANT_ID, name="Mouse", sku="ms-01", price="20.00", product_id="prod-2")
    )
    mouse_stock = Stock.create(
        product_id="prod-2",
        location_name="Main warehouse",
        location_code="WH-1",
        location_type=LocationType.WAREHOUSE,
        initial_quantity=5,
        minimum_quantity=0,
        tenant_id=TENANT_ID,
        stock_id="stock-mouse",
    )
    stock_store.save(mouse_stock)

    kwargs = dict(sale_store=sale_store, product_store=product_store, stock_store=stock_store, publisher=publisher)
    _add(draft.sale_id, 3, **kwargs)
    _add(draft.sale_id, 5, product_id="prod-2", **kwargs)

    # Another channel sells mice after the line was added.
    loaded = stock_store.find_by_id("stock-mouse", TENANT_ID)
    stock_store.save(loaded, [loaded.decrease_stock(2, "user-2")])
    publisher.clear()

    with pytest.raises(InsufficientStockError):
        confirm_sale(
            ConfirmSaleRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID),
            sale_store=sale_store,
            stock_store=stock_store,
            publisher=publisher,
        )

    assert stock_store.find_by_id("stock-1", TENANT_ID).quantity == 10
    assert stock_store.find_by_id("stock-mouse", TENANT_ID).quantity == 3
    assert stock_store.list_movements_by_reference(draft.sale_id, TENANT_ID) == []
    assert get_sale(draft.sale_id, TENANT_ID, sale_store=sale_store).status == "DRAFT"
    assert publisher.events == []


def test_confirm_empty_sale_fails(draft, sale_store, stock_store) -> None:
    with pytest.raises(BusinessRuleError):
        confirm_sale(
            ConfirmSaleRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID),
            sale_store=sale_store,
            stock_store=stock_store,
        )


def test_discount_then_payment_marks_sale_paid(
    draft, product, sale_store, product_store, stock_store, publisher
) -> None:
    kwargs = dict(sale_store=sale_store, stock_store=stock_store, publisher=publisher)
    _add(draft.sale_id, 1, product_store=product_store, **kwargs)
    apply_sale_discount(
        ApplySaleDiscountRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID, discount_percentage="10"),
        sale_store=sale_store,
        publisher=publisher,
    )
    confirm_sale(ConfirmSaleRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID), **kwargs)

    with pytest.raises(ValidationError):
        add_payment(
            AddPaymentRequest(sale_id=draft.sale_id, method="BITCOIN", amount="90.00", tenant_id=TENANT_ID),
            sale_store=sale_store,
        )

    with pytest.raises(BusinessRuleError):
        add_payment(
            AddPaymentRequest(sale_id=draft.sale_id, method="CASH", amount="90.01", tenant_id=TENANT_ID),
            sale_store=sale_store,
        )

    output = add_payment(
        AddPaymentRequest(sale_id=draft.sale_id, method="CASH", amount="90.00", tenant_id=TENANT_ID),
        sale_store=sale_store,
        publisher=publisher,
    )

    assert output.status == "PAID"
    assert output.discount_amount == Decimal("10.00")
    assert output.total_paid == Decimal("90.00")
    assert output.remaining_amount == Decimal("0.00")
    assert output.payments[0].status == "CONFIRMED"
    assert publisher.event_types()[-2:] == ["PaymentAdded", "SalePaid"]

    with pytest.raises(BusinessRuleError):
        cancel_sale(CancelSaleRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID), sale_store=sale_store, stock_store=stock_store)


def test_cancel_confirmed_sale_restocks(draft, product, sale_store, product_store, stock_store, publisher) -> None:
    kwargs = dict(sale_store=sale_store, stock_store=stock_store, publisher=publisher)
    _add(draft.sale_id, 4, product_store=product_store, **kwargs)
    confirm_sale(ConfirmSaleRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID), **kwargs)
    assert stock_store.find_by_id("stock-1", TENANT_ID).quantity == 6

    output = cancel_sale(
        CancelSaleRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID, reason="customer changed mind"),
        **kwargs,
    )

    assert output.status == "CANCELLED"
    assert output.cancellation_reason == "customer changed mind"
    assert stock_store.find_by_id("stock-1", TENANT_ID).quantity == 10

    reasons = [m.reason for m in stock_store.list_movements_by_reference(draft.sale_id, TENANT_ID)]
    assert reasons == [MovementReason.SALE, MovementReason.RETURN]

    with pytest.raises(BusinessRuleError):
        cancel_sale(CancelSaleRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID), **kwargs)


def _failing_save(sale):
    raise DatabaseError("Failed to save sale", details="connection reset")


def test_confirm_retry_after_failed_sale_save_does_not_decrement_twice(
    draft, product, sale_store, product_store, stock_store, publisher, monkeypatch
) -> None:
    kwargs = dict(sale_store=sale_store, stock_store=stock_store, publisher=publisher)
    _add(draft.sale_id, 4, product_store=product_store, **kwargs)

    with monkeypatch.context() as patch:
        patch.setattr(sale_store, "save", _failing_save)
        with pytest.raises(DatabaseError):
            confirm_sale(ConfirmSaleRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID), **kwargs)

    assert get_sale(draft.sale_id, TENANT_ID, sale_store=sale_store).status == "DRAFT"
    assert stock_store.find_by_id("stock-1", TENANT_ID).quantity == 6

    output = confirm_sale(ConfirmSaleRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID), **kwargs)

    assert output.status == "CONFIRMED"
    assert stock_store.find_by_id("stock-1", TENANT_ID).quantity == 6
    assert len(stock_store.list_movements_by_reference(draft.sale_id, TENANT_ID)) == 1


def test_cancel_retry_after_failed_sale_save_does_not_restock_twice(
    draft, product, sale_store, product_store, stock_store, publisher, monkeypatch
) -> None:
    kwargs = dict(sale_store=sale_store, stock_store=stock_store, publisher=publisher)
    _add(draft.sale_id, 4, product_store=product_store, **kwargs)
    confirm_sale(ConfirmSaleRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID), **kwargs)

    with monkeypatch.context() as patch:
        patch.setattr(sale_store, "save", _failing_save)
        with pytest.raises(DatabaseError):
            cancel_sale(CancelSaleRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID), **kwargs)

    assert get_sale(draft.sale_id, TENANT_ID, sale_store=sale_store).status == "CONFIRMED"
    assert stock_store.find_by_id("stock-1", TENANT_ID).quantity == 10

    output = cancel_sale(CancelSaleRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID), **kwargs)

    assert output.status == "CANCELLED"
    assert stock_store.find_by_id("stock-1", TENANT_ID).quantity == 10
    reasons = [m.reason for m in stock_store.list_movements_by_reference(draft.sale_id, TENANT_ID)]
    assert reasons == [MovementReason.SALE, MovementReason.RETURN]


def test_cancel_draft_after_failed_confirm_returns_taken_units(
    draft, product, sale_store, product_store, stock_store, publisher, monkeypatch
) -> None:
    kwargs = dict(sale_store=sale_store, stock_store=stock_store, publisher=publisher)
    _add(draft.sale_id, 4, product_store=product_store, **kwargs)

    with monkeypatch.context() as patch:
        patch.setattr(sale_store, "save", _failing_save)
        with pytest.raises(DatabaseError):
            confirm_sale(ConfirmSaleRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID), **kwargs)

    output = cancel_sale(CancelSaleRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID), **kwargs)

    assert output.status == "CANCELLED"
    assert stock_store.find_by_id("stock-1", TENANT_ID).quantity == 10

def test_cancel_draft_leaves_stock_alone(draft, product, sale_store, product_store, stock_store, publisher) -> None:
    kwargs = dict(sale_store=sale_store, stock_store=stock_store, publisher=publisher)
    _add(draft.sale_id, 4, product_store=product_store, **kwargs)

    output = cancel_sale(CancelSaleRequest(sale_id=draft.sale_id, tenant_id=TENANT_ID), **kwargs)

    assert output.status == "CANCELLED"
    assert stock_store.find_by_id("stock-1", TENANT_ID).quantity == 10
    assert stock_store.list_movements("stock-1", TENANT_ID) == []


def test_get_sale_is_tenant_scoped(draft, sale_store) -> None:
    assert get_sale(draft.sale_id, TENANT_ID, sale_store=sale_store).sale_id == draft.sale_id

    with pytest.raises(NotFoundError):
        get_sale(draft.sale_id, OTHER_TENANT_ID, sale_store=sale_store)


def test_list_customer_sales(draft, customer, customer_store, sale_store, publisher) -> None:
    second = create_sale(
        CreateSaleRequest(customer_id=customer.customer_id, user_id=USER_ID, tenant_id=TENANT_ID),
        customer_store=customer_store,
        sale_store=sale_store,
        publisher=publisher,
    )

    history = list_customer_sales(
        customer.customer_id, TENANT_ID, customer_store=customer_store, sale_store=sale_store
    )
    assert [s.sale_id for s in history] == [draft.sale_id, second.sale_id]

    with pytest.raises(NotFoundError):
        list_customer_sales(customer.customer_id, OTHER_TENANT_ID, customer_store=customer_store, sale_store=sale_store)
