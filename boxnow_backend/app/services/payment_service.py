"""
Stripe payment intents for stored orders.

The charged amount always comes from the stored order totals, never from the
client.
"""
import logging
from typing import Any, Dict, Optional

import stripe

from app.core.config import Settings, settings as default_settings
from app.core.exceptions import ConfigurationError, OrderValidationError, PaymentError
from app.core.utils import utcnow
from app.services.order_service import OrderService, euros_to_cents

logger = logging.getLogger(__name__)

STRIPE_MINIMUM_CENTS = 50


class PaymentService:
    def __init__(self, orders: OrderService, config: Optional[Settings] = None):
        self.orders = orders
        self.config = config or default_settings

    def _create_intent(self, amount_cents: int, order: Dict[str, Any]) -> Any:
        stripe.api_key = self.config.STRIPE_SECRET_KEY
        return stripe.PaymentIntent.create(
            amount=amount_cents,
            currency=self.config.STRIPE_CURRENCY,
            metadata={
                "order_number": order["orderNumber"],
                "order_id": str(order.get("id", "")),
                "item_count": str(len(order.get("items") or [])),
            },
            automatic_payment_methods={"enabled": True},
        )

    async def create_intent(self, order_number: str) -> Dict[str, Any]:
        """
        Create a PaymentIntent for a stored order.

        Returns:
            {clientSecret, paymentIntentId, amount, currency}

        Raises:
            ConfigurationError: Stripe key missing
            OrderNotFoundError: unknown order number
            PaymentError: Stripe rejected the request
        """
        if not self.config.STRIPE_SECRET_KEY:
            raise ConfigurationError(
                "Stripe is not configured",
                details={"missing": ["STRIPE_SECRET_KEY"]},
            )

        order = await self.orders.get_order(order_number)
        amount_cents = euros_to_cents((order.get("totals") or {}).get("total", 0))
        if amount_cents < STRIPE_MINIMUM_CENTS:
            raise OrderValidationError(
                "Order total must be at least 0.50",
                code="ORDER_TOTAL_TOO_LOW",
                details={"amount": amount_cents},
            )

        try:
            intent = self._create_intent(amount_cents, order)
        except stripe.StripeError as e:
            logger.error(f"Stripe PaymentIntent for {order_number} failed: {e}")
            raise PaymentError(
                getattr(e, "user_message", None) or str(e) or "Payment provider error",
                status_code=getattr(e, "http_status", None),
                body=getattr(e, "json_body", None),
            )

        await self.orders.store.update_if_exists(order_number, {"metadata": {"payment": {
            "provider": "stripe",
            "intentId": intent.id,
            "status": intent.status,
            "amount": amount_cents,
            "currency": self.config.STRIPE_CURRENCY,
            "createdAt": utcnow().isoformat(),
        }}})
        logger.info(f"PaymentIntent {intent.id} created for {order_number} ({amount_cents} cents)")

        return {
            "clientSecret": intent.client_secret,
            "paymentIntentId": intent.id,
            "amount": amount_cents,
            "currency": self.config.STRIPE_CURRENCY,
        }
