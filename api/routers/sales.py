"""
Sales API Endpoints.

Drive a sale from DRAFT through CONFIRMED to PAID, or to CANCELLED.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from api.dependencies import Container, get_container, get_tenant_id, get_user_id
from api.models import (
    DiscountRequest,
    PaymentCreateRequest,
    SaleCancelRequest,
    SaleCreateRequest,
    SaleItemAddRequest,
    SaleItemQuantityRequest,
    SaleResponse,
)
from services import sale_service
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
)

router = APIRouter()


@router.post("/sales", response_model=SaleResponse, status_code=201, summary="Create Sale")
def create_sale(
    body: SaleCreateRequest,
    tenant_id: str = Depends(get_tenant_id),
    user_id: str = Depends(get_user_id),
    container: Container = Depends(get_container),
):
    """Open a DRAFT sale for an active customer."""
    return sale_service.create_sale(
        CreateSaleRequest(
            customer_id=body.customer_id,
            user_id=user_id,
            tenant_id=tenant_id,
            notes=body.notes,
        ),
        customer_store=container.customer_store,
        sale_store=container.sale_store,
        publisher=container.publisher,
        currency=container.currency,
    )


@router.get("/sales/{sale_id}", response_model=SaleResponse, summary="Get Sale")
def get_sale(
    sale_id: str,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    return sale_service.get_sale(sale_id, tenant_id, sale_store=container.sale_store)


@router.post("/sales/{sale_id}/items", response_model=SaleResponse, summary="Add Sale Item")
def add_sale_item(
    sale_id: str,
    body: SaleItemAddRequest,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    """
    Add a product line to a draft sale.

    Stock is checked across all locations but not held until confirmation.
    """
    return sale_service.add_sale_item(
        AddSaleItemRequest(
            sale_id=sale_id,
            product_id=body.product_id,
            quantity=body.quantity,
            tenant_id=tenant_id,
            discount_percentage=body.discount_percentage,
            discount_fixed=body.discount_fixed,
        ),
        sale_store=container.sale_store,
        product_store=container.product_store,
        stock_store=container.stock_store,
        publisher=container.publisher,
    )


@router.patch("/sales/{sale_id}/items/{item_id}", response_model=SaleResponse, summary="Update Item Quantity")
def update_sale_item_quantity(
    sale_id: str,
    item_id: str,
    body: SaleItemQuantityRequest,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    return sale_service.update_sale_item_quantity(
        UpdateSaleItemQuantityRequest(
            sale_id=sale_id,
            item_id=item_id,
            quantity=body.quantity,
            tenant_id=tenant_id,
        ),
        sale_store=container.sale_store,
        stock_store=container.stock_store,
        publisher=container.publisher,
    )


@router.delete("/sales/{sale_id}/items/{item_id}", response_model=SaleResponse, summary="Remove Sale Item")
def remove_sale_item(
    sale_id: str,
    item_id: str,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    return sale_service.remove_sale_item(
        RemoveSaleItemRequest(sale_id=sale_id, item_id=item_id, tenant_id=tenant_id),
        sale_store=container.sale_store,
        publisher=container.publisher,
    )


@router.put("/sales/{sale_id}/items/{item_id}/discount", response_model=SaleResponse, summary="Apply Item Discount")
def apply_item_discount(
    sale_id: str,
    item_id: str,
    body: DiscountRequest,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    return sale_service.apply_item_discount(
        ApplyItemDiscountRequest(
            sale_id=sale_id,
            item_id=item_id,
            tenant_id=tenant_id,
            discount_percentage=body.discount_percentage,
            discount_fixed=body.discount_fixed,
        ),
        sale_store=container.sale_store,
        publisher=container.publisher,
    )


@router.put("/sales/{sale_id}/discount", response_model=SaleResponse, summary="Apply Sale Discount")
def apply_sale_discount(
    sale_id: str,
    body: DiscountRequest,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    return sale_service.apply_sale_discount(
        ApplySaleDiscountRequest(
            sale_id=sale_id,
            tenant_id=tenant_id,
            discount_percentage=body.discount_percentage,
            discount_fixed=body.discount_fixed,
        ),
        sale_store=container.sale_store,
        publisher=container.publisher,
    )


@router.post("/sales/{sale_id}/confirm", response_model=SaleResponse, summary="Confirm Sale")
def confirm_sale(
    sale_id: str,
    tenant_id: str = Depends(get_tenant_id),
    user_id: str = Depends(get_user_id),
    container: Container = Depends(get_container),
):
    """Confirm a draft sale and take its units out of stock (all-or-nothing)."""
    return sale_service.confirm_sale(
        ConfirmSaleRequest(sale_id=sale_id, tenant_id=tenant_id, user_id=user_id),
        sale_store=container.sale_store,
        stock_store=container.stock_store,
        publisher=container.publisher,
    )


@router.post("/sales/{sale_id}/payments", response_model=SaleResponse, summary="Add Payment")
def add_payment(
    sale_id: str,
    body: PaymentCreateRequest,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    """Register a payment. The sale becomes PAID once payments reach its total."""
    return sale_service.add_payment(
        AddPaymentRequest(
            sale_id=sale_id,
            method=body.method,
            amount=body.amount,
            tenant_id=tenant_id,
            transaction_id=body.transaction_id,
            notes=body.notes,
        ),
        sale_store=container.sale_store,
        publisher=container.publisher,
    )


@router.post("/sales/{sale_id}/cancel", response_model=SaleResponse, summary="Cancel Sale")
def cancel_sale(
    sale_id: str,
    body: Optional[SaleCancelRequest] = None,
    tenant_id: str = Depends(get_tenant_id),
    user_id: str = Depends(get_user_id),
    container: Container = Depends(get_container),
):
    """Cancel a DRAFT or CONFIRMED sale. A confirmed sale's units are returned to stock."""
    return sale_service.cancel_sale(
        CancelSaleRequest(sale_id=sale_id, tenant_id=tenant_id, reason=body.reason if body else None, user_id=user_id),
        sale_store=container.sale_store,
        stock_store=container.stock_store,
        publisher=container.publisher,
    )
