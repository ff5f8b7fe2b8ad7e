"""
Payment schemas
"""
from pydantic import BaseModel, Field


class PaymentIntentRequest(BaseModel):
    orderNumber: str = Field(..., min_length=1)


class PaymentIntentResponse(BaseModel):
    clientSecret: str
    paymentIntentId: str
    amount: int
    currency: str
