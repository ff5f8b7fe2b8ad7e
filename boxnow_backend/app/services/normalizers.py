"""
Unit normalization for BoxNow payloads

Pure functions that turn loosely typed checkout input (money, weight, phone,
payment label) into the canonical values the BoxNow API expects.
"""
import math
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Mapping, Optional

# BoxNow locker ceiling
MAX_PARCEL_WEIGHT_KG = 12.0

# Unitless numbers above this are read as grams.
# NOTE: a genuine 60 kg value would be read as 0.06 kg; kept as observed behaviour.
GRAMS_HEURISTIC_THRESHOLD = 50.0

# Compartment sizes (1 = small, 2 = medium, 3 = large)
COMPARTMENT_MEDIUM = 2
COMPARTMENT_LARGE = 3
MEDIUM_COMPARTMENT_MAX_KG = 5.0

GREECE_CALLING_CODE = "30"
GREECE_MOBILE_PREFIX = "69"
DOMESTIC_NUMBER_LENGTH = 10

PAYMENT_PREPAID = "prepaid"
PAYMENT_COD = "cod"

PREPAID_LABELS = frozenset({
    "card",
    "stripe",
    "paypal",
    "bank_transfer",
    "bank transfer",
    "prepaid",
})

COD_LABELS = frozenset({
    "cod",
    "cash_on_delivery",
    "cash on delivery",
    "cash-on-delivery",
    "boxnow_cod",
    "pay_on_go",
    "pay on go",
    "pay_on_pickup",
    "pay on pickup",
})

_WEIGHT_RE = re.compile(r"^(?P<value>\d+(?:[.,]\d+)?|[.,]\d+)\s*(?P<unit>kgs?|kilos?|grams?|gr|g)?$")
_KG_UNITS = {"kg", "kgs", "kilo", "kilos"}

_TWO_PLACES = Decimal("0.01")


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
        if not value:
            return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def to_amount(value: Any) -> float:
    """Coerce numeric input to a non-negative float rounded to cents (0.0 when unusable)."""
    number = _to_decimal(value)
    if number is None or number < 0:
        return 0.0
    return float(number.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def safe_money(value: Any) -> str:
    """Format money as a two-decimal string: 12 -> "12.00", "abc" -> "0.00"."""
    return f"{to_amount(value):.2f}"


def parse_weight_kg(value: Any, default_unit: Optional[str] = None) -> float:
    """
    Convert a weight to kilograms.

    Accepts numbers or strings with an optional unit suffix (kg, g, gr) and
    either "." or "," as decimal separator. Without a unit, values above 50
    are treated as grams unless ``default_unit="kg"`` says otherwise.
    Unusable, non-finite or non-positive input returns 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0

    unit = default_unit
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _WEIGHT_RE.match(value.strip().lower())
        if not match:
            return 0.0
        number = float(match.group("value").replace(",", "."))
        if match.group("unit"):
            unit = "kg" if match.group("unit") in _KG_UNITS else "g"
    else:
        return 0.0

    if not math.isfinite(number) or number <= 0:
        return 0.0

    if unit == "g":
        return number / 1000
    if unit == "kg":
        return number
    return number / 1000 if number > GRAMS_HEURISTIC_THRESHOLD else number


def _quantity(item: Mapping[str, Any]) -> float:
    qty = _to_decimal(item.get("quantity", item.get("qty", 1)))
    if qty is None or qty <= 0:
        return 1.0
    return float(qty)


def resolve_total_weight(
    explicit: Any = None,
    items: Optional[Iterable[Mapping[str, Any]]] = None,
    explicit_unit: Optional[str] = None,
) -> float:
    """
    Resolve the parcel weight in kilograms.

    An explicit order-level total wins; otherwise the weight is the sum of
    per-item weight x quantity. Returns 0.0 when nothing usable is found.
    The total is not rounded; limits must be checked against the exact value.
    """
    total = parse_weight_kg(explicit, default_unit=explicit_unit)
    if total > 0:
        return total

    total = 0.0
    for item in items or []:
        if not isinstance(item, Mapping):
            continue
        if item.get("weightKg") is not None:
            weight = parse_weight_kg(item.get("weightKg"), default_unit="kg")
        else:
            weight = parse_weight_kg(item.get("weight", item.get("unitWeight")))
        total += weight * _quantity(item)

    return total


def normalize_phone(
    raw: Any,
    phone_format: str = "international",
    calling_code: str = GREECE_CALLING_CODE,
    mobile_prefix: str = GREECE_MOBILE_PREFIX,
) -> str:
    """
    Normalize a phone number for BoxNow.

    "international": +<digits>, inferring the Greek calling code for
    domestic numbers ("6912345678" -> "+306912345678").
    "digits": digits only, no prefix inference ("+30 691..." -> "30691...").
    Returns "" when no digits are present.
    """
    value = re.sub(r"\s+", "", str(raw or ""))
    if not value:
        return ""

    if phone_format == "digits":
        return re.sub(r"\D", "", value)

    if value.startswith("+"):
        digits = re.sub(r"\D", "", value[1:])
        return f"+{digits}" if digits else ""

    digits = re.sub(r"\D", "", value)
    if not digits:
        return ""
    if digits.startswith(mobile_prefix):
        return f"+{calling_code}{digits}"
    if digits.startswith(calling_code):
        return f"+{digits}"
    if len(digits) == DOMESTIC_NUMBER_LENGTH:
        return f"+{calling_code}{digits}"
    return f"+{digits}"


def map_payment_mode(label: Any) -> str:
    """Map a checkout payment label to BoxNow's prepaid/cod. Unknown labels are prepaid."""
    normalized = str(label or "").strip().lower()
    if normalized in COD_LABELS:
        return PAYMENT_COD
    if normalized in PREPAID_LABELS:
        return PAYMENT_PREPAID
    # Unrecognized labels never collect cash
    return PAYMENT_PREPAID


def compartment_size_for_weight(weight_kg: float) -> int:
    """Medium compartment up to 5 kg, large above (up to the 12 kg ceiling)."""
    if weight_kg <= MEDIUM_COMPARTMENT_MAX_KG:
        return COMPARTMENT_MEDIUM
    return COMPARTMENT_LARGE
