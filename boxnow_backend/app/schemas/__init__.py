from app.schemas.order import OrderResponse, OrderTotals, OrderLine, OrderCustomer
from app.schemas.carrier import DeliveryRequestResponse
from app.schemas.payment import PaymentIntentRequest, PaymentIntentResponse
