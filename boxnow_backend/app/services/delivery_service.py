"""
BoxNow delivery orchestration

Turns a checkout payload into a BoxNow delivery request:
1. Resolve contact, locker, payment mode and weight (no network)
2. Reject invalid orders before any outbound call
3. Submit to BoxNow, relaying carrier errors untouched
4. Record the outcome on the local order (best effort)
5. Hand voucher fetch + email to the background runner
"""
import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from app.core.background import BackgroundTaskRunner
from app.core.config import Settings, settings as default_settings
from app.core.exceptions import CarrierError, OrderValidationError
from app.core.utils import epoch_ms, mask_email, mask_phone, utcnow
from app.services.boxnow_client import BoxNowClient
from app.services.label_mailer import LabelMailer
from app.services.normalizers import (
    MAX_PARCEL_WEIGHT_KG,
    PAYMENT_COD,
    PAYMENT_PREPAID,
    compartment_size_for_weight,
    map_payment_mode,
    normalize_phone,
    resolve_total_weight,
    safe_money,
)
from app.services.order_input import parse_checkout
from app.services.order_store import OrderStore

logger = logging.getLogger(__name__)

ANY_APM_LOCATION_ID = "any-apm"
ALLOWED_SERVICE_TYPES = {"same-day", "next-day"}


@dataclass
class DeliveryDraft:
    """A validated, carrier-ready delivery request."""
    order_number: str
    locker_id: str
    payment_mode: str
    weight_kg: float
    body: Dict[str, Any]


@dataclass
class DeliveryResult:
    order_number: str
    delivery_request_id: Optional[str]
    tracking_ids: List[str]
    voucher_url: str
    payment_mode: str
    carrier_response: Any = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "orderNumber": self.order_number,
            "deliveryRequestId": self.delivery_request_id,
            "trackingIds": self.tracking_ids,
            "voucherUrl": self.voucher_url,
            "paymentMode": self.payment_mode,
            "boxnow": self.carrier_response,
        }


def extract_tracking_ids(data: Any) -> List[str]:
    """Parcel ids from a delivery-request response ({"id", "parcels": [{"id"}]})."""
    if not isinstance(data, Mapping):
        return []

    ids: List[str] = []
    parcels = data.get("parcels")
    if isinstance(parcels, list):
        for parcel in parcels:
            if isinstance(parcel, Mapping):
                parcel_id = parcel.get("id") or parcel.get("parcelId")
                if parcel_id:
                    ids.append(str(parcel_id))

    if not ids:
        for key in ("parcelId", "trackingNumber"):
            if data.get(key):
                ids.append(str(data[key]))
                break
    return ids


def masked_payload(body: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a delivery request safe for logging."""
    safe = copy.deepcopy(body)
    for side in ("origin", "destination"):
        part = safe.get(side) or {}
        if part.get("contactEmail"):
            part["contactEmail"] = mask_email(part["contactEmail"])
        if part.get("contactNumber"):
            part["contactNumber"] = mask_phone(part["contactNumber"])
    return safe


class DeliveryService:
    """Checkout -> BoxNow delivery request, plus best-effort side effects."""

    def __init__(
        self,
        client: BoxNowClient,
        store: OrderStore,
        mailer: LabelMailer,
        runner: BackgroundTaskRunner,
        config: Optional[Settings] = None,
    ):
        self.client = client
        self.store = store
        self.mailer = mailer
        self.runner = runner
        self.config = config or default_settings

    # ==================== Payload assembly ====================

    def resolve_payment_mode(self, label: Any) -> str:
        mode = map_payment_mode(label)
        if mode == PAYMENT_COD and (self.config.BOXNOW_FORCE_PREPAID or not self.config.BOXNOW_COD_ENABLED):
            logger.info(f"Payment label {label!r} forced to prepaid by deployment settings")
            return PAYMENT_PREPAID
        return mode

    def _origin(self) -> Dict[str, Any]:
        origin: Dict[str, Any] = {"locationId": self.config.BOXNOW_ORIGIN_LOCATION_ID}
        if self.config.BOXNOW_ORIGIN_CONTACT_NAME:
            origin["contactName"] = self.config.BOXNOW_ORIGIN_CONTACT_NAME
        if self.config.BOXNOW_ORIGIN_CONTACT_EMAIL:
            origin["contactEmail"] = self.config.BOXNOW_ORIGIN_CONTACT_EMAIL
        if self.config.BOXNOW_ORIGIN_CONTACT_NUMBER:
            origin["contactNumber"] = normalize_phone(
                self.config.BOXNOW_ORIGIN_CONTACT_NUMBER, self.config.BOXNOW_PHONE_FORMAT
            )
        if self.config.BOXNOW_COUNTRY:
            origin["country"] = self.config.BOXNOW_COUNTRY
        return origin

    @property
    def uses_any_apm_origin(self) -> bool:
        return self.config.BOXNOW_ORIGIN_LOCATION_ID.strip().lower() == ANY_APM_LOCATION_ID

    def build_delivery_request(self, payload: Mapping[str, Any]) -> DeliveryDraft:
        """Validate and normalize a checkout payload. Raises OrderValidationError."""
        checkout = parse_checkout(payload)
        customer = checkout.customer
        phone = normalize_phone(customer.phone, self.config.BOXNOW_PHONE_FORMAT)

        if not checkout.locker_id:
            raise OrderValidationError(
                "Missing destinationLocationId",
                code="MISSING_DESTINATION",
            )

        if not customer.name or not customer.email or not phone:
            raise OrderValidationError(
                "Missing customer contact fields (name/email/phone)",
                code="MISSING_CONTACT_FIELDS",
                details={
                    "received": {
                        "name": customer.name or None,
                        "email": customer.email or None,
                        "phone": customer.phone or None,
                        "phoneNormalized": phone or None,
                    }
                },
            )

        payment_mode = self.resolve_payment_mode(checkout.payment_label)

        weight = resolve_total_weight(checkout.weight, checkout.items, explicit_unit=checkout.weight_unit)
        if weight <= 0:
            raise OrderValidationError(
                "Order weight is missing or invalid",
                code="MISSING_WEIGHT",
            )
        if weight > MAX_PARCEL_WEIGHT_KG:
            raise OrderValidationError(
                f"Order weight {weight:g} kg exceeds the BoxNow limit of {MAX_PARCEL_WEIGHT_KG:g} kg",
                code="BOXNOW_MAX_WEIGHT_EXCEEDED",
                details={"weightKg": round(weight, 4), "maxWeightKg": MAX_PARCEL_WEIGHT_KG},
            )

        # Grams precision on the wire, never rounded down to zero
        parcel_weight = max(round(weight, 3), 0.001)

        order_number = checkout.order_number or f"ORD-{epoch_ms()}"
        invoice_value = safe_money(checkout.invoice_value)
        amount_to_collect = "0.00"
        if payment_mode == PAYMENT_COD:
            amount_to_collect = safe_money(
                checkout.amount_to_collect if checkout.amount_to_collect is not None else invoice_value
            )

        service_type = str(checkout.service_type or "")
        if service_type not in ALLOWED_SERVICE_TYPES:
            service_type = self.config.BOXNOW_DEFAULT_SERVICE_TYPE

        # Whole order ships as one parcel
        parcel: Dict[str, Any] = {
            "id": "1",
            "name": f"Order {order_number}",
            "value": invoice_value,
            "weight": parcel_weight,
        }
        if self.uses_any_apm_origin:
            parcel["compartmentSize"] = compartment_size_for_weight(weight)

        body = {
            "typeOfService": service_type,
            "orderNumber": order_number,
            "invoiceValue": invoice_value,
            "paymentMode": payment_mode,
            "amountToBeCollected": amount_to_collect,
            "allowReturn": self.config.BOXNOW_ALLOW_RETURN,
            "origin": self._origin(),
            "destination": {
                "locationId": checkout.locker_id,
                "contactName": customer.name,
                "contactEmail": customer.email,
                "contactNumber": phone,
                "country": self.config.BOXNOW_COUNTRY,
            },
            "items": [parcel],
        }

        return DeliveryDraft(
            order_number=order_number,
            locker_id=checkout.locker_id,
            payment_mode=payment_mode,
            weight_kg=parcel_weight,
            body=body,
        )

    # ==================== Submission ====================

    def voucher_url(self, order_number: str) -> str:
        return f"{self.config.PUBLIC_API_PREFIX.rstrip('/')}/carrier/labels/order/{order_number}"

    async def create_delivery_request(self, payload: Mapping[str, Any]) -> DeliveryResult:
        """
        Submit a checkout payload to BoxNow.

        Raises:
            OrderValidationError: before any outbound call
            CarrierError: BoxNow failure, after recording it on the local order
            ConfigurationError: credentials missing
        """
        draft = self.build_delivery_request(payload)
        logger.info(f"BoxNow delivery request payload: {masked_payload(draft.body)}")

        try:
            response = await self.client.create_delivery_request(draft.body)
        except CarrierError as e:
            logger.error(f"BoxNow delivery request for {draft.order_number} failed: {e.code} {e.details}")
            await self._record(draft.order_number, {
                "status": "carrier_failed",
                "metadata": {"carrier": {
                    "lockerId": draft.locker_id,
                    "error": {
                        "code": e.code,
                        "status": getattr(e, "status_code", None),
                        "body": e.text[:1000] if hasattr(e, "text") else e.message,
                        "at": utcnow().isoformat(),
                    },
                }},
            })
            raise

        try:
            data = response.json()
        except ValueError:
            data = {}
        tracking_ids = extract_tracking_ids(data)
        delivery_request_id = str(data["id"]) if isinstance(data, Mapping) and data.get("id") else None

        result = DeliveryResult(
            order_number=draft.order_number,
            delivery_request_id=delivery_request_id,
            tracking_ids=tracking_ids,
            voucher_url=self.voucher_url(draft.order_number),
            payment_mode=draft.payment_mode,
            carrier_response=data,
        )
        logger.info(f"BoxNow delivery request {draft.order_number} created, parcels={tracking_ids}")

        await self._record(draft.order_number, {
            "status": "shipment_created",
            "metadata": {"carrier": {
                "lockerId": draft.locker_id,
                "deliveryRequestId": delivery_request_id,
                "parcelId": tracking_ids[0] if tracking_ids else None,
                "trackingNumber": tracking_ids[0] if tracking_ids else None,
                "trackingIds": tracking_ids,
                "labelUrl": result.voucher_url,
                "error": None,
            }},
        })

        self.runner.submit(
            f"voucher-email:{draft.order_number}",
            lambda: self.email_voucher(draft.order_number),
        )
        return result

    # ==================== Side effects ====================

    async def _record(self, order_number: str, patch: Dict[str, Any]) -> None:
        """Best-effort update of the local order; a missing order is fine."""
        try:
            await self.store.update_if_exists(order_number, patch)
        except Exception as e:
            logger.error(f"Could not update local order {order_number}: {type(e).__name__}: {e}")

    async def email_voucher(self, order_number: str) -> None:
        """Fetch the voucher PDF and email it. Outcome is logged and stored, never raised."""
        if not self.mailer.enabled:
            logger.info(f"Voucher email for {order_number} disabled - SMTP not configured")
            await self._record(order_number, {"metadata": {"carrier": {
                "labelEmail": {"sent": False, "recipients": [], "error": "Email not configured"},
            }}})
            return

        try:
            pdf = await self.client.fetch_order_label(order_number)
        except CarrierError as e:
            logger.error(f"Voucher fetch for {order_number} failed: {e.code} {e.details}")
            await self._record(order_number, {"metadata": {"carrier": {
                "labelEmail": {"sent": False, "error": f"label fetch failed: {e.code}"},
            }}})
            return

        result = await self.mailer.send_label(order_number, pdf)
        await self._record(order_number, {"metadata": {"carrier": {
            "labelEmail": {
                "sent": result.success,
                "recipients": result.recipients,
                "error": result.error,
                "at": utcnow().isoformat(),
            },
        }}})
