"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Responses are filled from the service output dataclasses.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Catalog Models
# ============================================================================

class CustomerCreateRequest(BaseModel):
    """Request to register a customer."""
    name: str
    email: str
    phone: Optional[str] = None
    document: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Maria Souza",
                "email": "maria@example.com",
                "phone": "+55 11 99999-0000",
                "document": "123.456.789-00"
            }
        }


class CustomerResponse(BaseModel):
    customer_id: str
    name: str
    email: str
    status: str
    is_active: bool
    phone: Optional[str] = None
    document: Optional[str] = None
    created_at: Optional[datetime] = None


class ProductCreateRequest(BaseModel):
    """Request to add a product to the catalog."""
    name: str
    sku: str
    price: Decimal = Field(..., description="Unit price, must be greater than zero")
    currency: Optional[str] = None
    cost_price: Optional[Decimal] = None
    description: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Notebook 15\"",
                "sku": "NB-15",
                "price": "3500.00",
                "cost_price": "2800.00"
            }
        }


class ProductUpdateRequest(BaseModel):
    """Request to change a product. Omitted fields keep their value."""
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, description="New unit price, must be greater than zero")


class ProductResponse(BaseModel):
    product_id: str
    name: str
    sku: str
    price: Decimal
    currency: str
    is_active: bool
    cost_price: Optional[Decimal] = None
    profit_margin: Optional[Decimal] = None
    description: Optional[str] = None


# ============================================================================
# Sale Models
# ============================================================================

class SaleCreateRequest(BaseModel):
    """Request to open a draft sale."""
    customer_id: str
    notes: Optional[str] = None


class DiscountRequest(BaseModel):
    """Fixed takes precedence when both values are sent; neither clears the discount."""
    discount_percentage: Optional[Decimal] = None
    discount_fixed: Optional[Decimal] = None


class SaleItemAddRequest(DiscountRequest):
    """Request to add a product line to a draft sale."""
    product_id: str
    quantity: int

    class Config:
        json_schema_extra = {
            "example": {
                "product_id": "123e4567-e89b-12d3-a456-426614174000",
                "quantity": 2,
                "discount_percentage": "10"
            }
        }


class SaleItemQuantityRequest(BaseModel):
    quantity: int


class PaymentCreateRequest(BaseModel):
    """Request to register a payment against a confirmed sale."""
    method: str = Field(..., description="CASH, CREDIT_CARD, DEBIT_CARD, PIX, BANK_SLIP or CREDIT")
    amount: Decimal
    transaction_id: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "method": "PIX",
                "amount": "90.00",
                "transaction_id": "E123456789"
            }
        }


class SaleCancelRequest(BaseModel):
    reason: Optional[str] = None


class SaleItemResponse(BaseModel):
    item_id: str
    product_id: str
    product_name: str
    product_sku: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    discount: Decimal
    total: Decimal


class PaymentResponse(BaseModel):
    payment_id: str
    method: str
    amount: Decimal
    status: str
    paid_at: Optional[datetime] = None
    transaction_id: Optional[str] = None


class SaleResponse(BaseModel):
    """Sale with derived totals."""
    sale_id: str
    customer_id: str
    customer_name: str
    status: str
    currency: str
    items: List[SaleItemResponse]
    payments: List[PaymentResponse]
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal
    total_paid: Decimal
    remaining_amount: Decimal
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    confirmed_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "sale_id": "123e4567-e89b-12d3-a456-426614174003",
                "customer_id": "123e4567-e89b-12d3-a456-426614174002",
                "customer_name": "Maria Souza",
                "status": "PAID",
                "currency": "BRL",
                "items": [],
                "payments": [],
                "subtotal": "100.00",
                "discount_amount": "10.00",
                "total": "90.00",
                "total_paid": "90.00",
                "remaining_amount": "0.00",
                "created_at": "2025-01-01T12:00:00Z",
                "updated_at": "2025-01-01T12:05:00Z"
            }
        }


# ============================================================================
# Stock Models
# ============================================================================

class StockCreateRequest(BaseModel):
    """Request to open a stock location for a product."""
    product_id: str
    location_name: str
    location_code: str
    location_type: str = "OTHER"
    initial_quantity: int = 0
    minimum_quantity: int = 0
    maximum_quantity: Optional[int] = None


class StockChangeRequest(BaseModel):
    """Units in or out of one stock location."""
    product_id: str
    quantity: int
    reason: Optional[str] = None
    reference_id: Optional[str] = None
    notes: Optional[str] = None


class StockAdjustRequest(BaseModel):
    new_quantity: int
    notes: Optional[str] = None


class StockTransferRequest(BaseModel):
    product_id: str
    from_location_code: str
    to_location_code: str
    quantity: int


class StockResponse(BaseModel):
    stock_id: str
    product_id: str
    location_name: str
    location_code: str
    location_type: str
    quantity: int
    available_quantity: int
    reserved_quantity: int
    minimum_quantity: int
    maximum_quantity: Optional[int] = None
    is_low_level: bool


class StockMovementResponse(BaseModel):
    movement_id: str
    stock_id: str
    product_id: str
    type: str
    reason: str
    quantity: int
    previous_quantity: int
    current_quantity: int
    user_id: str
    reference_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class StockTransferResponse(BaseModel):
    transfer_id: str
    source: StockResponse
    destination: StockResponse


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    message: str
    code: str

    class Config:
        json_schema_extra = {
            "example": {
                "error": "InsufficientStockError",
                "message": "Insufficient stock. Available: 3, Requested: 5",
                "code": "INSUFFICIENT_STOCK"
            }
        }
