"""
Domain: Customer (buyer) snapshot.

A Customer matters to the sales core only as a precondition: a sale can be
opened for an active customer, and the customer's name is snapshotted onto the
sale. Profile bookkeeping (addresses, credit limits) lives elsewhere.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from .errors import BusinessRuleError, ValidationError
from .time import require_optional_utc_timestamp, utc_now


class CustomerStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(frozen=True, slots=True)
class Customer:
    """
    Customer account with status tracking.

    Supports:
    - Account status management (active, inactive)
    - Optional contact details (phone, document)
    """

    customer_id: str
    tenant_id: str
    name: str
    email: str
    status: CustomerStatus = CustomerStatus.ACTIVE

    # Optional profile information
    phone: Optional[str] = None
    document: Optional[str] = None

    # Timestamps
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        """Validate identity fields and normalise email."""
        if not self.customer_id or not self.tenant_id:
            raise ValidationError("Customer requires customer_id and tenant_id")
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Customer name is required")
        email = (self.email or "").strip().lower()
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise ValidationError(f"Invalid customer email: {self.email!r}")
        try:
            status = CustomerStatus(self.status)
        except ValueError as exc:
            raise ValidationError(f"Unknown customer status: {self.status!r}") from exc
        require_optional_utc_timestamp("created_at", self.created_at)
        require_optional_utc_timestamp("updated_at", self.updated_at)

        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(self, "email", email)
        object.__setattr__(self, "status", status)

    @staticmethod
    def create(
        *,
        tenant_id: str,
        name: str,
        email: str,
        phone: Optional[str] = None,
        document: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> "Customer":
        now = utc_now()
        return Customer(
            customer_id=customer_id or str(uuid4()),
            tenant_id=tenant_id,
            name=name,
            email=email,
            phone=phone,
            document=document,
            created_at=now,
            updated_at=now,
        )

    def is_active(self) -> bool:
        """Check if a sale can be opened for this customer."""
        return self.status is CustomerStatus.ACTIVE

    def activated(self) -> "Customer":
        if self.is_active():
            raise BusinessRuleError("Customer is already active")
        return replace(self, status=CustomerStatus.ACTIVE, updated_at=utc_now())

    def deactivated(self) -> "Customer":
        if not self.is_active():
            raise BusinessRuleError("Customer is already inactive")
        return replace(self, status=CustomerStatus.INACTIVE, updated_at=utc_now())
