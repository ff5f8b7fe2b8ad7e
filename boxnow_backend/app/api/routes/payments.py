"""
Payment routes (Stripe)
"""
from fastapi import APIRouter, Depends

from app.api.deps import get_payment_service
from app.schemas.payment import PaymentIntentRequest, PaymentIntentResponse
from app.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/create-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    payload: PaymentIntentRequest,
    service: PaymentService = Depends(get_payment_service),
):
    """Create a Stripe PaymentIntent for the stored order's total."""
    return await service.create_intent(payload.orderNumber)
