"""
Order schemas

Inbound checkout payloads are untyped on purpose (many alias field names),
so only responses are modelled here.
"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict


class OrderTotals(BaseModel):
    subtotal: float
    shipping: float
    discount: float = 0.0
    total: float


class OrderLine(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[Any] = None
    name: str = ""
    quantity: int = 1
    price: float = 0.0


class OrderCustomer(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""


class OrderResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    orderNumber: str
    status: str
    items: List[OrderLine]
    customer: OrderCustomer
    totals: OrderTotals
    metadata: Dict[str, Any] = {}
    createdAt: Optional[str] = None
