"""
Order routes

Local order records with server-trusted totals.
"""
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from app.api.deps import get_order_service
from app.schemas.order import OrderResponse
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("/create")
async def create_order(
    payload: Dict[str, Any] = Body(default_factory=dict),
    service: OrderService = Depends(get_order_service),
):
    """Create an order. Client-sent totals are ignored and recomputed."""
    order = await service.create_order(payload)
    return {
        "success": True,
        "orderId": order["id"],
        "orderNumber": order["orderNumber"],
        "totals": order["totals"],
    }


@router.get("/{order_number}", response_model=OrderResponse)
async def get_order(order_number: str, service: OrderService = Depends(get_order_service)):
    return await service.get_order(order_number)
