"""
Checkout payload shapes

The storefront has sent several shapes over time:

    flat:    {"contactName", "contactEmail", "contactPhone", "destinationLocationId", ...}
    nested:  {"customer": {"name", "email", "phone"}, "destination": {"locationId"}, ...}
    split:   {"firstName", "lastName", "email", "phone", "lockerId", ...}

Each logical field has exactly one resolver walking an ordered alias list,
first non-empty value wins.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

Path = Tuple[str, ...]

CUSTOMER_NAME_PATHS: List[Path] = [("customer", "name"), ("contactName",), ("name",)]
CUSTOMER_EMAIL_PATHS: List[Path] = [("customer", "email"), ("contactEmail",), ("email",)]
CUSTOMER_PHONE_PATHS: List[Path] = [
    ("customer", "phone"),
    ("contactPhone",),
    ("contactNumber",),
    ("phone",),
]
LOCKER_ID_PATHS: List[Path] = [
    ("destinationLocationId",),
    ("destination", "locationId"),
    ("selectedLockerId",),
    ("lockerId",),
    ("shipping", "lockerId"),
]
INVOICE_VALUE_PATHS: List[Path] = [("invoiceValue",), ("total",), ("totals", "total"), ("amountToBeCollected",)]
PAYMENT_LABEL_PATHS: List[Path] = [("paymentMode",), ("paymentMethod",), ("payment", "method")]
# Order-level weights whose field name already states kilograms
WEIGHT_KG_PATHS: List[Path] = [("cartWeightKg",), ("totalWeightKg",), ("weightKg",)]
WEIGHT_PATHS: List[Path] = [("totalWeight",), ("cartWeight",), ("weight",)]


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def _lookup(payload: Mapping[str, Any], path: Path) -> Any:
    current: Any = payload
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def first_present(payload: Mapping[str, Any], paths: List[Path]) -> Any:
    """Return the first non-empty value found along ``paths``."""
    for path in paths:
        value = _lookup(payload, path)
        if _is_present(value):
            return value
    return None


@dataclass
class CustomerContact:
    name: str = ""
    email: str = ""
    phone: str = ""


@dataclass
class CheckoutInput:
    """Resolved view over a raw checkout payload."""
    order_number: Optional[str]
    customer: CustomerContact
    locker_id: Optional[str]
    invoice_value: Any
    amount_to_collect: Any
    payment_label: Any
    service_type: Optional[str]
    weight: Any
    weight_unit: Optional[str]
    items: List[Dict[str, Any]] = field(default_factory=list)


def resolve_customer(payload: Mapping[str, Any]) -> CustomerContact:
    name = first_present(payload, CUSTOMER_NAME_PATHS)
    if name is None:
        name = f"{payload.get('firstName') or ''} {payload.get('lastName') or ''}".strip()
    email = first_present(payload, CUSTOMER_EMAIL_PATHS)
    phone = first_present(payload, CUSTOMER_PHONE_PATHS)
    return CustomerContact(
        name=str(name or "").strip(),
        email=str(email or "").strip(),
        phone=str(phone or "").strip(),
    )


def resolve_locker_id(payload: Mapping[str, Any]) -> Optional[str]:
    value = first_present(payload, LOCKER_ID_PATHS)
    return str(value).strip() if value is not None else None


def resolve_order_number(payload: Mapping[str, Any]) -> Optional[str]:
    value = first_present(payload, [("orderNumber",), ("orderId",)])
    return str(value).strip() if value is not None else None


def resolve_weight(payload: Mapping[str, Any]) -> Tuple[Any, Optional[str]]:
    """Order-level weight and its implied unit ("kg" when the field name says so)."""
    value = first_present(payload, WEIGHT_KG_PATHS)
    if value is not None:
        return value, "kg"
    return first_present(payload, WEIGHT_PATHS), None


def resolve_items(payload: Mapping[str, Any]) -> List[Dict[str, Any]]:
    items = payload.get("items")
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, Mapping)]


def items_value(items: List[Dict[str, Any]]) -> float:
    """Sum of price x quantity over cart lines, ignoring unusable entries."""
    total = 0.0
    for item in items:
        try:
            price = float(item.get("price", item.get("value", 0)) or 0)
            quantity = float(item.get("quantity", 1) or 1)
        except (TypeError, ValueError):
            continue
        if price > 0 and quantity > 0:
            total += price * quantity
    return round(total, 2)


def parse_checkout(payload: Mapping[str, Any]) -> CheckoutInput:
    items = resolve_items(payload)
    weight, weight_unit = resolve_weight(payload)

    invoice_value = first_present(payload, INVOICE_VALUE_PATHS)
    if invoice_value is None and items:
        invoice_value = items_value(items)

    return CheckoutInput(
        order_number=resolve_order_number(payload),
        customer=resolve_customer(payload),
        locker_id=resolve_locker_id(payload),
        invoice_value=invoice_value,
        amount_to_collect=payload.get("amountToBeCollected"),
        payment_label=first_present(payload, PAYMENT_LABEL_PATHS),
        service_type=payload.get("typeOfService"),
        weight=weight,
        weight_unit=weight_unit,
        items=items,
    )
