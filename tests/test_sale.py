"""
Tests for `domain/sale.py`.

Covers contract rules:
- Totals are derived from items and the sale-level discount.
- Items and discounts change only while the sale is DRAFT.
- Payments never exceed the total; reaching it moves the sale to PAID once.
- Failed operations leave the sale untouched.
- restore() rebuilds a sale without recording events.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from domain.discount import Discount
from domain.errors import BusinessRuleError, NotFoundError, ValidationError
from domain.payment import PaymentMethod
from domain.sale import Sale, SaleStatus
from domain.sale_item import SaleItem


def _draft_sale() -> Sale:
    return Sale.create(
        customer_id="cust-1",
        customer_name="Maria Souza",
        user_id="user-1",
        tenant_id="tenant-a",
    )


def _add_keyboard(sale: Sale, quantity: int = 1, unit_price: str = "100.00") -> SaleItem:
    return sale.add_item(
        product_id="prod-1",
        product_name="Keyboard",
        product_sku="KB-01",
        quantity=quantity,
        unit_price=unit_price,
    )


def _event_types(sale: Sale) -> list:
    return [event.event_type for event in sale.pull_domain_events()]


def test_create_records_sale_created() -> None:
    sale = _draft_sale()

    assert sale.status is SaleStatus.DRAFT
    assert sale.total == Decimal("0.00")
    assert _event_types(sale) == ["SaleCreated"]
    assert sale.get_domain_events() == []


def test_sale_discount_then_full_payment() -> None:
    """A 100.00 item with a 10% sale discount is paid in full by 90.00 cash."""

    sale = _draft_sale()
    _add_keyboard(sale)
    sale.apply_sale_discount(Discount.percentage(10))

    assert sale.subtotal == Decimal("100.00")
    assert sale.discount_amount == Decimal("10.00")
    assert sale.total == Decimal("90.00")

    sale.confirm()
    sale.add_payment(method=PaymentMethod.CASH, amount="90.00")

    assert sale.status is SaleStatus.PAID
    assert sale.total_paid == Decimal("90.00")
    assert sale.remaining_amount == Decimal("0.00")
    assert sale.paid_at is not None
    assert _event_types(sale) == [
        "SaleCreated",
        "SaleItemAdded",
        "SaleDiscountApplied",
        "SaleConfirmed",
        "PaymentAdded",
        "SalePaid",
    ]


def test_partial_payments_reach_paid_once() -> None:
    sale = _draft_sale()
    _add_keyboard(sale, quantity=2, unit_price="20.00")
    sale.confirm()

    sale.add_payment(method=PaymentMethod.PIX, amount="15.00")
    assert sale.status is SaleStatus.CONFIRMED
    assert sale.remaining_amount == Decimal("25.00")

    sale.add_payment(method=PaymentMethod.DEBIT_CARD, amount="25.00")
    assert sale.status is SaleStatus.PAID
    assert [e.event_type for e in sale.pull_domain_events()].count("SalePaid") == 1


def test_overpayment_is_rejected_without_side_effects() -> None:
    """Paying 50 against a 40 total fails and leaves the sale unchanged."""

    sale = _draft_sale()
    _add_keyboard(sale, unit_price="40.00")
    sale.confirm()
    sale.clear_domain_events()
    updated_at = sale.updated_at

    with pytest.raises(BusinessRuleError):
        sale.add_payment(method=PaymentMethod.CASH, amount="50.00")

    assert sale.status is SaleStatus.CONFIRMED
    assert sale.payments == ()
    assert sale.total_paid == Decimal("0.00")
    assert sale.updated_at == updated_at
    assert _event_types(sale) == []
    assert sale.get_domain_events() == []


def test_payments_require_confirmed_sale() -> None:
    sale = _draft_sale()
    _add_keyboard(sale)

    with pytest.raises(BusinessRuleError):
        sale.add_payment(method=PaymentMethod.CASH, amount="10.00")

    sale.cancel("customer gave up")

    with pytest.raises(BusinessRuleError):
        sale.add_payment(method=PaymentMethod.CASH, amount="10.00")


def test_duplicate_product_is_rejected() -> None:
    sale = _draft_sale()
    _add_keyboard(sale)

    with pytest.raises(BusinessRuleError):
        _add_keyboard(sale, quantity=3)

    assert sale.items_count == 1


def test_item_updates_recompute_totals() -> None:
    sale = _draft_sale()
    item = _add_keyboard(sale, quantity=2, unit_price="10.00")

    sale.update_item_quantity(item.item_id, 5)
    assert sale.total == Decimal("50.00")

    sale.apply_item_discount(item.item_id, Discount.fixed("5"))
    assert sale.subtotal == Decimal("45.00")

    sale.remove_item_discount(item.item_id)
    assert sale.total == Decimal("50.00")

    sale.remove_item(item.item_id)
    assert sale.items == ()
    assert sale.total == Decimal("0.00")

    with pytest.raises(NotFoundError):
        sale.remove_item(item.item_id)


def test_sale_discount_is_capped_and_removable() -> None:
    sale = _draft_sale()
    _add_keyboard(sale, unit_price="30.00")

    sale.apply_sale_discount(Discount.fixed("100"))
    assert sale.total == Decimal("0.00")

    sale.remove_sale_discount()
    assert sale.discount_amount == Decimal("0.00")
    assert sale.total == Decimal("30.00")


def test_items_are_frozen_after_confirm() -> None:
    sale = _draft_sale()
    item = _add_keyboard(sale)
    sale.confirm()

    with pytest.raises(BusinessRuleError):
        _add_keyboard(sale)

    with pytest.raises(BusinessRuleError):
        sale.update_item_quantity(item.item_id, 2)

    with pytest.raises(BusinessRuleError):
        sale.apply_sale_discount(Discount.percentage(5))


def test_confirm_rules() -> None:
    """Verify an empty sale cannot be confirmed and confirm is not repeatable."""

    sale = _draft_sale()

    with pytest.raises(BusinessRuleError):
        sale.confirm()

    _add_keyboard(sale)
    sale.confirm()

    assert sale.confirmed_at is not None

    with pytest.raises(BusinessRuleError):
        sale.confirm()


def test_cancel_rules() -> None:
    sale = _draft_sale()
    sale.cancel("duplicate order")

    assert sale.is_cancelled
    assert sale.cancellation_reason == "duplicate order"
    assert sale.cancelled_at is not None
    cancelled_at = sale.cancelled_at
    updated_at = sale.updated_at
    _event_types(sale)

    with pytest.raises(BusinessRuleError):
        sale.cancel("second attempt")

    assert sale.is_cancelled
    assert sale.cancelled_at == cancelled_at
    assert sale.cancellation_reason == "duplicate order"
    assert sale.updated_at == updated_at


def test_sale_with_confirmed_payment_cannot_be_cancelled() -> None:
    sale = _draft_sale()
    _add_keyboard(sale, unit_price="40.00")
    sale.confirm()
    sale.add_payment(method=PaymentMethod.CASH, amount="10.00")

    with pytest.raises(BusinessRuleError):
        sale.cancel()

    assert sale.status is SaleStatus.CONFIRMED


def test_restore_round_trip_records_no_events() -> None:
    original = _draft_sale()
    _add_keyboard(original, quantity=3, unit_price="12.50")
    original.apply_sale_discount(Discount.percentage(20))
    original.confirm()

    restored = Sale.restore(
        sale_id=original.sale_id,
        customer_id=original.customer_id,
        customer_name=original.customer_name,
        user_id=original.user_id,
        tenant_id=original.tenant_id,
        status=original.status,
        created_at=original.created_at,
        updated_at=original.updated_at,
        items=original.items,
        discount=original.discount,
        confirmed_at=original.confirmed_at,
    )

    assert restored.total == original.total == Decimal("30.00")
    assert restored.status is SaleStatus.CONFIRMED
    assert restored.get_domain_events() == []


def test_restore_rejects_bad_state() -> None:
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)

    with pytest.raises(ValidationError):
        Sale.restore(
            sale_id="sale-1",
            customer_id="cust-1",
            customer_name="Maria",
            user_id="user-1",
            tenant_id="tenant-a",
            status="ARCHIVED",  # type: ignore[arg-type]
            created_at=now,
            updated_at=now,
        )

    with pytest.raises(ValidationError):
        Sale.restore(
            sale_id="sale-1",
            customer_id="cust-1",
            customer_name="Maria",
            user_id="user-1",
            tenant_id="tenant-a",
            status=SaleStatus.DRAFT,
            created_at=datetime(2025, 1, 1),
            updated_at=now,
        )
