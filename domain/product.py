"""
Domain: Product catalog snapshot.

The sales core reads three things from a product: whether it is active, and
its name/SKU/price, which are copied onto a SaleItem at add-time. Changing a
product returns a new instance; existing sale items are never touched.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from .errors import BusinessRuleError, ValidationError
from .money import DEFAULT_CURRENCY, AmountLike, Money
from .time import require_optional_utc_timestamp, utc_now


@dataclass(frozen=True, slots=True)
class Product:
    product_id: str
    tenant_id: str
    name: str
    sku: str
    price: Money
    is_active: bool = True
    cost_price: Optional[Money] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.product_id or not self.tenant_id:
            raise ValidationError("Product requires product_id and tenant_id")
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Product name is required")
        if not isinstance(self.sku, str) or not self.sku.strip():
            raise ValidationError("Product SKU is required")
        if self.cost_price is not None and self.cost_price.currency != self.price.currency:
            raise ValidationError("Product cost price and price must share a currency")
        require_optional_utc_timestamp("created_at", self.created_at)
        require_optional_utc_timestamp("updated_at", self.updated_at)

        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(self, "sku", self.sku.strip().upper())

    @staticmethod
    def create(
        *,
        tenant_id: str,
        name: str,
        sku: str,
        price: AmountLike,
        currency: str = DEFAULT_CURRENCY,
        cost_price: Optional[AmountLike] = None,
        description: Optional[str] = None,
        product_id: Optional[str] = None,
    ) -> "Product":
        amount = Money.of(price, currency)
        if amount.is_zero():
            raise ValidationError("Product price must be greater than zero")
        now = utc_now()
        return Product(
            product_id=product_id or str(uuid4()),
            tenant_id=tenant_id,
            name=name,
            sku=sku,
            price=amount,
            cost_price=Money.of(cost_price, currency) if cost_price is not None else None,
            description=description,
            created_at=now,
            updated_at=now,
        )

    def with_price(self, price: AmountLike) -> "Product":
        if not self.is_active:
            raise BusinessRuleError("Cannot change the price of an inactive product")
        amount = Money.of(price, self.price.currency)
        if amount.is_zero():
            raise ValidationError("Product price must be greater than zero")
        return replace(self, price=amount, updated_at=utc_now())

    def with_details(self, *, name: Optional[str] = None, description: Optional[str] = None) -> "Product":
        """Rename and/or redescribe; a None argument keeps the current value."""
        return replace(
            self,
            name=self.name if name is None else name,
            description=self.description if description is None else description,
            updated_at=utc_now(),
        )

    def activated(self) -> "Product":
        if self.is_active:
            raise BusinessRuleError("Product is already active")
        return replace(self, is_active=True, updated_at=utc_now())

    def deactivated(self) -> "Product":
        if not self.is_active:
            raise BusinessRuleError("Product is already inactive")
        return replace(self, is_active=False, updated_at=utc_now())

    def profit_margin(self) -> Optional[Decimal]:
        """Margin over price as a percentage, or None without a cost price."""
        if self.cost_price is None or self.price.is_zero():
            return None
        profit = self.price.amount - self.cost_price.amount
        return (profit / self.price.amount * 100).quantize(Decimal("0.01"))
