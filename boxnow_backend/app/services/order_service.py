"""
OrderService - local order creation

Totals are always recomputed server-side from the cart lines; client-sent
totals are ignored. Records are plain dicts persisted through an OrderStore.
"""
import logging
import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Mapping, Optional

from app.core.config import Settings, settings as default_settings
from app.core.exceptions import OrderNotFoundError, OrderValidationError
from app.core.utils import epoch_ms, utcnow
from app.services.order_input import resolve_customer, resolve_locker_id, resolve_order_number
from app.services.order_store import OrderRecord, OrderStore

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")


def _money(value: Any) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (ArithmeticError, ValueError):
        return Decimal("0.00")
    if not amount.is_finite() or amount < 0:
        return Decimal("0.00")
    return amount.quantize(_CENTS, rounding=ROUND_HALF_UP)


def euros_to_cents(amount: Any) -> int:
    """Convert a euro amount to integer cents using half-up rounding."""
    if amount is None:
        return 0
    return int(_money(amount) * 100)


def generate_order_number() -> str:
    return f"ORD-{epoch_ms()}"


def normalize_line_items(items: Any) -> List[Dict[str, Any]]:
    """Keep usable cart lines: name, positive integer quantity, non-negative price."""
    lines: List[Dict[str, Any]] = []
    if not isinstance(items, list):
        return lines

    for item in items:
        if not isinstance(item, Mapping):
            continue
        try:
            quantity = int(item.get("quantity", 1) or 1)
        except (TypeError, ValueError):
            quantity = 1
        line = {
            "id": item.get("id"),
            "name": str(item.get("name") or ""),
            "quantity": max(quantity, 1),
            "price": float(_money(item.get("price", item.get("value", 0)) or 0)),
        }
        for weight_key in ("weightKg", "weight"):
            if item.get(weight_key) is not None:
                line[weight_key] = item[weight_key]
        lines.append(line)
    return lines


def calculate_totals(
    items: List[Dict[str, Any]],
    discount: Any = 0,
    flat_fee: float = 3.00,
    free_threshold: float = 0.0,
) -> Dict[str, float]:
    """
    subtotal = sum(price x quantity)
    shipping = flat fee, waived when free_threshold > 0 and subtotal >= free_threshold
    discount = non-negative, capped at subtotal
    total = subtotal + shipping - discount
    """
    subtotal = sum(
        (_money(item["price"]) * int(item["quantity"]) for item in items),
        Decimal("0.00"),
    ).quantize(_CENTS, rounding=ROUND_HALF_UP)

    shipping = _money(flat_fee)
    threshold = _money(free_threshold)
    if threshold > 0 and subtotal >= threshold:
        shipping = Decimal("0.00")

    discount_amount = min(_money(discount), subtotal)
    total = subtotal + shipping - discount_amount

    return {
        "subtotal": float(subtotal),
        "shipping": float(shipping),
        "discount": float(discount_amount),
        "total": float(total.quantize(_CENTS, rounding=ROUND_HALF_UP)),
    }


class OrderService:
    """Creates and reads local order records."""

    def __init__(self, store: OrderStore, config: Optional[Settings] = None):
        self.store = store
        self.config = config or default_settings

    async def create_order(self, payload: Mapping[str, Any]) -> OrderRecord:
        """
        Create an order from a checkout payload.

        Raises:
            OrderValidationError: no usable items or no customer contact
            OrderExistsError: order number already stored
        """
        items = normalize_line_items(payload.get("items"))
        if not items:
            raise OrderValidationError("Order has no items", code="MISSING_ITEMS")

        customer = resolve_customer(payload)
        if not customer.name and not customer.email:
            raise OrderValidationError("Missing customer name/email", code="MISSING_CUSTOMER")

        totals = calculate_totals(
            items,
            discount=payload.get("discount", 0),
            flat_fee=self.config.SHIPPING_FLAT_FEE,
            free_threshold=self.config.FREE_SHIPPING_THRESHOLD,
        )

        order_number = resolve_order_number(payload) or generate_order_number()
        payment_method = payload.get("paymentMethod") or payload.get("paymentMode")

        record: OrderRecord = {
            "id": str(uuid.uuid4()),
            "orderNumber": order_number,
            "items": items,
            "customer": {
                "name": customer.name,
                "email": customer.email,
                "phone": customer.phone,
            },
            "totals": totals,
            "status": "pending",
            "metadata": {
                "payment": {"method": payment_method} if payment_method else {},
                "carrier": {"lockerId": resolve_locker_id(payload)},
            },
            "createdAt": utcnow().isoformat(),
        }

        created = await self.store.create(record)
        logger.info(f"Order {order_number} created: {len(items)} line(s), total {totals['total']:.2f}")
        return created

    async def get_order(self, order_number: str) -> OrderRecord:
        if not order_number or not order_number.strip():
            raise OrderValidationError("Missing orderNumber", code="MISSING_ORDER_NUMBER")
        record = await self.store.get(order_number)
        if record is None:
            raise OrderNotFoundError(f"Order {order_number} not found")
        return record
