"""
Stock API Endpoints.

Stock locations per product, their ledger, and low-level reporting.
"""

from typing import List

from fastapi import APIRouter, Depends

from api.dependencies import Container, get_container, get_tenant_id, get_user_id
from api.models import (
    StockAdjustRequest,
    StockChangeRequest,
    StockCreateRequest,
    StockMovementResponse,
    StockResponse,
    StockTransferRequest,
    StockTransferResponse,
)
from domain.stock_movement import MovementReason
from services import stock_service
from services.stock_service import (
    AddStockRequest,
    AdjustStockRequest,
    CreateStockRequest,
    RemoveStockRequest,
    TransferStockRequest,
)

router = APIRouter()


@router.post("/stocks", response_model=StockResponse, status_code=201, summary="Create Stock")
def create_stock(
    body: StockCreateRequest,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    """Open a stock location for an active product (one per location code)."""
    return stock_service.create_stock(
        CreateStockRequest(
            product_id=body.product_id,
            location_name=body.location_name,
            location_code=body.location_code,
            location_type=body.location_type,
            initial_quantity=body.initial_quantity,
            minimum_quantity=body.minimum_quantity,
            maximum_quantity=body.maximum_quantity,
            tenant_id=tenant_id,
        ),
        product_store=container.product_store,
        stock_store=container.stock_store,
        publisher=container.publisher,
    )


@router.get("/stocks/low", response_model=List[StockResponse], summary="List Low Stock")
def list_low_stock(
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    """Stocks whose on-hand quantity is at or below their minimum."""
    return stock_service.list_low_stock(tenant_id, stock_store=container.stock_store)


@router.post("/stocks/transfer", response_model=StockTransferResponse, summary="Transfer Stock")
def transfer_stock(
    body: StockTransferRequest,
    tenant_id: str = Depends(get_tenant_id),
    user_id: str = Depends(get_user_id),
    container: Container = Depends(get_container),
):
    return stock_service.transfer_stock(
        TransferStockRequest(
            product_id=body.product_id,
            from_location_code=body.from_location_code,
            to_location_code=body.to_location_code,
            quantity=body.quantity,
            user_id=user_id,
            tenant_id=tenant_id,
        ),
        product_store=container.product_store,
        stock_store=container.stock_store,
        publisher=container.publisher,
    )


@router.post("/stocks/{stock_id}/add", response_model=StockResponse, summary="Add Stock")
def add_stock(
    stock_id: str,
    body: StockChangeRequest,
    tenant_id: str = Depends(get_tenant_id),
    user_id: str = Depends(get_user_id),
    container: Container = Depends(get_container),
):
    return stock_service.add_stock(
        AddStockRequest(
            stock_id=stock_id,
            product_id=body.product_id,
            quantity=body.quantity,
            user_id=user_id,
            tenant_id=tenant_id,
            reason=body.reason or MovementReason.PURCHASE.value,
            reference_id=body.reference_id,
            notes=body.notes,
        ),
        product_store=container.product_store,
        stock_store=container.stock_store,
        publisher=container.publisher,
    )


@router.post("/stocks/{stock_id}/remove", response_model=StockResponse, summary="Remove Stock")
def remove_stock(
    stock_id: str,
    body: StockChangeRequest,
    tenant_id: str = Depends(get_tenant_id),
    user_id: str = Depends(get_user_id),
    container: Container = Depends(get_container),
):
    return stock_service.remove_stock(
        RemoveStockRequest(
            stock_id=stock_id,
            product_id=body.product_id,
            quantity=body.quantity,
            user_id=user_id,
            tenant_id=tenant_id,
            reason=body.reason or MovementReason.SALE.value,
            reference_id=body.reference_id,
            notes=body.notes,
        ),
        product_store=container.product_store,
        stock_store=container.stock_store,
        publisher=container.publisher,
    )


@router.post("/stocks/{stock_id}/adjust", response_model=StockResponse, summary="Adjust Stock")
def adjust_stock(
    stock_id: str,
    body: StockAdjustRequest,
    tenant_id: str = Depends(get_tenant_id),
    user_id: str = Depends(get_user_id),
    container: Container = Depends(get_container),
):
    """Set the on-hand quantity after a stock-take."""
    return stock_service.adjust_stock(
        AdjustStockRequest(
            stock_id=stock_id,
            new_quantity=body.new_quantity,
            user_id=user_id,
            tenant_id=tenant_id,
            notes=body.notes,
        ),
        stock_store=container.stock_store,
        publisher=container.publisher,
    )


@router.get("/stocks/{stock_id}/movements", response_model=List[StockMovementResponse], summary="Movement History")
def get_movement_history(
    stock_id: str,
    tenant_id: str = Depends(get_tenant_id),
    container: Container = Depends(get_container),
):
    return stock_service.get_movement_history(stock_id, tenant_id, stock_store=container.stock_store)
