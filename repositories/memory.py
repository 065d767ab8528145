"""
In-memory persistence adapters.

Used by the test-suite and by the API when SALES_BACKEND=memory. Aggregates are
stored as deep-copied snapshots keyed by (tenant_id, id): a caller that mutates
an aggregate without saving it never affects what later reads return, and an
unsaved outbox is never persisted.
"""

from __future__ import annotations

import copy
from typing import Dict, List, Optional, Sequence, Tuple, TypeVar

from domain.customer import Customer
from domain.product import Product
from domain.sale import Sale
from domain.stock import Stock
from domain.stock_movement import StockMovement

T = TypeVar("T")

_Key = Tuple[str, str]


def _snapshot(aggregate: T) -> T:
    clone = copy.deepcopy(aggregate)
    clear = getattr(clone, "clear_domain_events", None)
    if clear is not None:
        clear()
    return clone


class InMemoryCustomerStore:
    def __init__(self) -> None:
        self._rows: Dict[_Key, Customer] = {}

    def find_by_id(self, customer_id: str, tenant_id: str) -> Optional[Customer]:
        return self._rows.get((tenant_id, customer_id))

    def find_by_email(self, email: str, tenant_id: str) -> Optional[Customer]:
        wanted = email.strip().lower()
        for (row_tenant, _), customer in self._rows.items():
            if row_tenant == tenant_id and customer.email == wanted:
                return customer
        return None

    def save(self, customer: Customer) -> None:
        # Customers are frozen, no copy needed.
        self._rows[(customer.tenant_id, customer.customer_id)] = customer


class InMemoryProductStore:
    def __init__(self) -> None:
        self._rows: Dict[_Key, Product] = {}

    def find_by_id(self, product_id: str, tenant_id: str) -> Optional[Product]:
        return self._rows.get((tenant_id, product_id))

    def find_by_sku(self, sku: str, tenant_id: str) -> Optional[Product]:
        wanted = sku.strip().upper()
        for (row_tenant, _), product in self._rows.items():
            if row_tenant == tenant_id and product.sku == wanted:
                return product
        return None

    def list_all(self, tenant_id: str, *, is_active: Optional[bool] = None) -> List[Product]:
        products = [
            product
            for (row_tenant, _), product in self._rows.items()
            if row_tenant == tenant_id and (is_active is None or product.is_active is is_active)
        ]
        return sorted(products, key=lambda p: (p.name, p.sku))

    def save(self, product: Product) -> None:
        self._rows[(product.tenant_id, product.product_id)] = product


class InMemoryStockStore:
    def __init__(self) -> None:
        self._rows: Dict[_Key, Stock] = {}
        self._movements: List[StockMovement] = []

    def find_by_id(self, stock_id: str, tenant_id: str) -> Optional[Stock]:
        stock = self._rows.get((tenant_id, stock_id))
        return _snapshot(stock) if stock is not None else None

    def find_by_product_and_location(
        self, product_id: str, location_code: str, tenant_id: str
    ) -> Optional[Stock]:
        code = location_code.strip().upper()
        for stock in self.find_by_product(product_id, tenant_id):
            if stock.location_code == code:
                return stock
        return None

    def find_by_product(self, product_id: str, tenant_id: str) -> List[Stock]:
        return [
            _snapshot(stock)
            for (row_tenant, _), stock in self._rows.items()
            if row_tenant == tenant_id and stock.product_id == product_id
        ]

    def find_low_level(self, tenant_id: str) -> List[Stock]:
        return [
            _snapshot(stock)
            for (row_tenant, _), stock in self._rows.items()
            if row_tenant == tenant_id and stock.is_low_level()
        ]

    def get_total_stock_by_product(self, product_id: str, tenant_id: str) -> int:
        return sum(
            stock.available_quantity
            for (row_tenant, _), stock in self._rows.items()
            if row_tenant == tenant_id and stock.product_id == product_id
        )

    def save(self, stock: Stock, movements: Sequence[StockMovement] = ()) -> None:
        for movement in movements:
            if movement.stock_id != stock.stock_id or movement.tenant_id != stock.tenant_id:
                raise ValueError("Movement does not belong to the stock being saved")
        self._rows[(stock.tenant_id, stock.stock_id)] = _snapshot(stock)
        self._movements.extend(movements)

    def list_movements(self, stock_id: str, tenant_id: str) -> List[StockMovement]:
        return [
            m for m in self._movements if m.stock_id == stock_id and m.tenant_id == tenant_id
        ]

    def list_movements_by_reference(self, reference_id: str, tenant_id: str) -> List[StockMovement]:
        return [
            m
            for m in self._movements
            if m.reference_id == reference_id and m.tenant_id == tenant_id
        ]


class InMemorySaleStore:
    def __init__(self) -> None:
        self._rows: Dict[_Key, Sale] = {}

    def find_by_id(self, sale_id: str, tenant_id: str) -> Optional[Sale]:
        sale = self._rows.get((tenant_id, sale_id))
        return _snapshot(sale) if sale is not None else None

    def list_by_customer(self, customer_id: str, tenant_id: str) -> List[Sale]:
        return [
            _snapshot(sale)
            for (row_tenant, _), sale in self._rows.items()
            if row_tenant == tenant_id and sale.customer_id == customer_id
        ]

    def save(self, sale: Sale) -> None:
        self._rows[(sale.tenant_id, sale.sale_id)] = _snapshot(sale)
