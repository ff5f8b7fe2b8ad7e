"""
BoxNow API Client

Implements BoxNow client-credentials authentication and the partner APIs
this service proxies:
- Origins / destinations (locker lists)
- Delivery requests
- Vouchers (label PDFs, per order and per parcel)

Non-2xx answers raise CarrierAPIError carrying the raw body so callers can
relay BoxNow's own error detail. Every call is a single attempt.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import quote

import httpx

from app.core.config import Settings, settings as default_settings
from app.core.exceptions import (
    CarrierAPIError,
    CarrierAuthError,
    CarrierNetworkError,
    ConfigurationError,
)
from app.services.token_cache import TokenCache, TokenGrant

logger = logging.getLogger(__name__)

# Mapping or (key, value) pairs; pairs keep repeated keys
QueryParams = Union[Mapping[str, Any], Sequence[Tuple[str, Any]]]

# API endpoints
AUTH_PATH = "/api/v1/auth-sessions"
ORIGINS_PATH = "/api/v1/origins"
DESTINATIONS_PATH = "/api/v1/destinations"
DELIVERY_REQUESTS_PATH = "/api/v1/delivery-requests"
ORDER_LABEL_PATH = "/api/v1/delivery-requests/{order_number}/label.pdf"
PARCEL_LABEL_PATH = "/api/v1/parcels/{parcel_id}/label.pdf"


@dataclass
class BoxNowCredentials:
    """BoxNow API credentials."""
    base_url: str
    client_id: str
    client_secret: str
    partner_id: Optional[str] = None

    @classmethod
    def from_settings(cls, config: Settings) -> "BoxNowCredentials":
        return cls(
            base_url=config.boxnow_base_url,
            client_id=config.BOXNOW_CLIENT_ID,
            client_secret=config.BOXNOW_CLIENT_SECRET,
            partner_id=config.BOXNOW_PARTNER_ID or None,
        )

    def ensure_complete(self) -> None:
        missing = [
            name for name, value in (
                ("BOXNOW_API_URL", self.base_url),
                ("BOXNOW_CLIENT_ID", self.client_id),
                ("BOXNOW_CLIENT_SECRET", self.client_secret),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(
                message=f"Missing {' / '.join(missing)} in environment",
                details={"missing": missing},
            )


@dataclass
class CarrierResponse:
    """Successful BoxNow response kept as raw bytes for verbatim relaying."""
    status_code: int
    content: bytes
    content_type: str = "application/json"

    def json(self) -> Any:
        return json.loads(self.content) if self.content else {}


class BoxNowClient:
    """
    BoxNow API client with cached bearer token.

    Handles the credential exchange through TokenCache and provides one
    method per proxied operation.
    """

    def __init__(
        self,
        credentials: BoxNowCredentials,
        token_cache: Optional[TokenCache] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        safety_margin_seconds: int = 60,
    ):
        self.credentials = credentials
        self.timeout = timeout
        self._http_client = http_client
        self.token_cache = token_cache or TokenCache(
            self._exchange_credentials,
            safety_margin_seconds=safety_margin_seconds,
        )

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self):
        """Close HTTP client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
        self._http_client = None

    def _url(self, path: str) -> str:
        return f"{self.credentials.base_url}{path if path.startswith('/') else '/' + path}"

    async def _exchange_credentials(self) -> TokenGrant:
        """POST client credentials to BoxNow and return the issued token."""
        self.credentials.ensure_complete()
        client = await self._get_http_client()

        try:
            response = await client.post(
                self._url(AUTH_PATH),
                json={
                    "grant_type": "client_credentials",
                    "client_id": self.credentials.client_id,
                    "client_secret": self.credentials.client_secret,
                },
            )
        except httpx.RequestError as e:
            logger.error(f"BoxNow auth request failed: {e}")
            raise CarrierNetworkError(message=f"Network error during authentication: {e}")

        if not response.is_success:
            logger.error(f"BoxNow auth failed: {response.status_code} - {response.text[:500]}")
            raise CarrierAuthError(
                message=f"BoxNow auth failed: {response.status_code}",
                details={"status": response.status_code, "body": response.text[:500]},
            )

        try:
            data = response.json()
            token = data["access_token"]
        except (ValueError, KeyError, TypeError):
            raise CarrierAuthError(
                message="BoxNow auth response did not contain an access_token",
                details={"body": response.text[:500]},
            )

        try:
            expires_in = int(data.get("expires_in") or 3600)
        except (TypeError, ValueError):
            expires_in = 3600
        return TokenGrant(access_token=token, expires_in=expires_in)

    async def _make_request(
        self,
        method: str,
        path: str,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[QueryParams] = None,
        accept: str = "application/json",
    ) -> CarrierResponse:
        """Make authenticated API request."""
        token = await self.token_cache.acquire()
        client = await self._get_http_client()

        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": accept,
        }
        if self.credentials.partner_id:
            headers["X-PartnerID"] = self.credentials.partner_id

        try:
            response = await client.request(
                method.upper(),
                self._url(path),
                headers=headers,
                json=json_body,
                params=params or None,
            )
        except httpx.RequestError as e:
            logger.error(f"BoxNow API request failed: {method} {path}: {e}")
            raise CarrierNetworkError(message=f"Network error: {e}", details={"path": path})

        logger.debug(f"BoxNow API {method} {path} -> {response.status_code}")
        content_type = response.headers.get("content-type", accept)

        if not response.is_success:
            if response.status_code == 401:
                # Token revoked or expired early; next call exchanges again
                self.token_cache.invalidate()
            logger.error(f"BoxNow API error: {method} {path} -> {response.status_code} {response.text[:500]}")
            raise CarrierAPIError(
                message="BoxNow API error",
                status_code=response.status_code,
                body=response.content,
                content_type=content_type,
                details={"path": path},
            )

        return CarrierResponse(
            status_code=response.status_code,
            content=response.content,
            content_type=content_type,
        )

    # ==================== Locations ====================

    async def list_origins(self, params: Optional[QueryParams] = None) -> CarrierResponse:
        return await self._make_request("GET", ORIGINS_PATH, params=params)

    async def list_destinations(self, params: Optional[QueryParams] = None) -> CarrierResponse:
        """Lockers; query parameters are forwarded untouched."""
        return await self._make_request("GET", DESTINATIONS_PATH, params=params)

    # ==================== Delivery Requests ====================

    async def create_delivery_request(self, payload: Dict[str, Any]) -> CarrierResponse:
        return await self._make_request("POST", DELIVERY_REQUESTS_PATH, json_body=payload)

    # ==================== Vouchers ====================

    async def fetch_order_label(self, order_number: str) -> bytes:
        """Voucher PDF for every parcel of a delivery request."""
        path = ORDER_LABEL_PATH.format(order_number=quote(order_number, safe=""))
        response = await self._make_request("GET", path, accept="application/pdf")
        return response.content

    async def fetch_parcel_label(self, parcel_id: str) -> bytes:
        """Voucher PDF for a single parcel."""
        path = PARCEL_LABEL_PATH.format(parcel_id=quote(parcel_id, safe=""))
        response = await self._make_request("GET", path, accept="application/pdf")
        return response.content


def create_boxnow_client(config: Optional[Settings] = None) -> BoxNowClient:
    """Create a BoxNow client from application settings."""
    config = config or default_settings
    return BoxNowClient(
        BoxNowCredentials.from_settings(config),
        timeout=config.BOXNOW_TIMEOUT_SECONDS,
        safety_margin_seconds=config.BOXNOW_TOKEN_SAFETY_MARGIN_SECONDS,
    )
