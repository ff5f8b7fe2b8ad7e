"""
Carrier (BoxNow) schemas
"""
from typing import Optional, List, Any
from pydantic import BaseModel


class DeliveryRequestResponse(BaseModel):
    success: bool = True
    orderNumber: str
    deliveryRequestId: Optional[str] = None
    trackingIds: List[str] = []
    voucherUrl: str
    paymentMode: str
    boxnow: Any = None
