"""
Persistence ports consumed by the use cases.

Each port is a structural Protocol: the Supabase adapters and the in-memory
adapters both satisfy them without inheriting from anything. Every lookup takes
the tenant id; an adapter must never return an entity from another tenant.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from domain.customer import Customer
    from domain.events import DomainEvent
    from domain.product import Product
    from domain.sale import Sale
    from domain.stock import Stock
    from domain.stock_movement import StockMovement


class CustomerStore(Protocol):
    def find_by_id(self, customer_id: str, tenant_id: str) -> Optional[Customer]:
        ...

    def find_by_email(self, email: str, tenant_id: str) -> Optional[Customer]:
        ...

    def save(self, customer: Customer) -> None:
        ...


class ProductStore(Protocol):
    def find_by_id(self, product_id: str, tenant_id: str) -> Optional[Product]:
        ...

    def find_by_sku(self, sku: str, tenant_id: str) -> Optional[Product]:
        ...

    def list_all(self, tenant_id: str, *, is_active: Optional[bool] = None) -> List[Product]:
        ...

    def save(self, product: Product) -> None:
        ...


class StockStore(Protocol):
    def find_by_id(self, stock_id: str, tenant_id: str) -> Optional[Stock]:
        ...

    def find_by_product_and_location(
        self, product_id: str, location_code: str, tenant_id: str
    ) -> Optional[Stock]:
        ...

    def find_by_product(self, product_id: str, tenant_id: str) -> List[Stock]:
        ...

    def find_low_level(self, tenant_id: str) -> List[Stock]:
        ...

    def get_total_stock_by_product(self, product_id: str, tenant_id: str) -> int:
        """Sum of available (on-hand minus reserved) units across all locations."""
        ...

    def save(self, stock: Stock, movements: Sequence[StockMovement] = ()) -> None:
        """Persist the stock row and its new movements as one atomic unit."""
        ...

    def list_movements(self, stock_id: str, tenant_id: str) -> List[StockMovement]:
        ...

    def list_movements_by_reference(self, reference_id: str, tenant_id: str) -> List[StockMovement]:
        ...


class SaleStore(Protocol):
    def find_by_id(self, sale_id: str, tenant_id: str) -> Optional[Sale]:
        ...

    def list_by_customer(self, customer_id: str, tenant_id: str) -> List[Sale]:
        ...

    def save(self, sale: Sale) -> None:
        """Persist the sale with its items and payments as one atomic unit."""
        ...


class EventPublisher(Protocol):
    def publish(self, events: Sequence[DomainEvent]) -> None:
        ...
