"""
BoxNow carrier routes

Thin proxy over the BoxNow partner API:
- origins / destinations: JSON relayed as received
- delivery-requests: checkout payload -> validated BoxNow delivery request
- labels: voucher PDFs streamed back to the caller
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import Response

from app.api.deps import get_boxnow_client, get_delivery_service
from app.core.exceptions import CarrierError, OrderValidationError
from app.schemas.carrier import DeliveryRequestResponse
from app.services.boxnow_client import BoxNowClient, CarrierResponse
from app.services.delivery_service import DeliveryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/carrier", tags=["Carrier"])


def _relay(result: CarrierResponse) -> Response:
    return Response(content=result.content, status_code=result.status_code, media_type=result.content_type)


def _pdf(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


@router.get("/origins")
async def list_origins(request: Request, client: BoxNowClient = Depends(get_boxnow_client)):
    """List BoxNow pickup points (warehouses / AnyAPM)."""
    return _relay(await client.list_origins(request.query_params.multi_items()))


@router.get("/destinations")
async def list_destinations(request: Request, client: BoxNowClient = Depends(get_boxnow_client)):
    """List BoxNow lockers. Query parameters (repeated keys included) are forwarded untouched."""
    return _relay(await client.list_destinations(request.query_params.multi_items()))


@router.post("/delivery-requests", response_model=DeliveryRequestResponse)
async def create_delivery_request(
    payload: Dict[str, Any] = Body(default_factory=dict),
    service: DeliveryService = Depends(get_delivery_service),
):
    """
    Create a BoxNow delivery request from a checkout payload.

    Accepts flat (contactName/contactEmail/contactPhone) or nested
    (customer{name,email,phone}, destination{locationId}) payloads.
    The voucher email is sent in the background after this returns.
    """
    result = await service.create_delivery_request(payload)
    return result.to_dict()


@router.get("/labels/order/{order_number}")
async def get_order_label(order_number: str, client: BoxNowClient = Depends(get_boxnow_client)):
    """Voucher PDF for every parcel of an order."""
    order_number = order_number.strip()
    if not order_number:
        raise OrderValidationError("Missing orderNumber", code="MISSING_ORDER_NUMBER")

    try:
        pdf = await client.fetch_order_label(order_number)
    except CarrierError as e:
        logger.error(f"Voucher fetch for order {order_number} failed: {e.code}")
        raise CarrierError(
            "BoxNow label fetch failed",
            code="LABEL_FETCH_FAILED",
            details={"orderNumber": order_number, "carrierStatus": getattr(e, "status_code", None)},
        )
    return _pdf(pdf, f"voucher-{order_number}.pdf")


@router.get("/labels/parcel/{parcel_id}")
async def get_parcel_label(parcel_id: str, client: BoxNowClient = Depends(get_boxnow_client)):
    """Voucher PDF for a single parcel."""
    parcel_id = parcel_id.strip()
    if not parcel_id:
        raise OrderValidationError("Missing parcelId", code="MISSING_PARCEL_ID")

    try:
        pdf = await client.fetch_parcel_label(parcel_id)
    except CarrierError as e:
        logger.error(f"Voucher fetch for parcel {parcel_id} failed: {e.code}")
        raise CarrierError(
            "BoxNow label fetch failed",
            code="LABEL_FETCH_FAILED",
            details={"parcelId": parcel_id, "carrierStatus": getattr(e, "status_code", None)},
        )
    return _pdf(pdf, f"parcel-{parcel_id}.pdf")
