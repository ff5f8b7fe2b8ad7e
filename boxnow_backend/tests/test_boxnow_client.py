"""
Tests for the BoxNow API client against an httpx.MockTransport.
"""
import json

import httpx
import pytest

from app.core.exceptions import (
    CarrierAPIError,
    CarrierAuthError,
    CarrierNetworkError,
    ConfigurationError,
)
from app.services.boxnow_client import BoxNowClient, BoxNowCredentials, create_boxnow_client

BASE_URL = "https://boxnow.test"


class FakeBoxNow:
    """Minimal BoxNow API double recording every request it sees."""

    def __init__(self, routes=None, auth_status=200):
        self.routes = routes or {}
        self.auth_status = auth_status
        self.requests = []
        self.auth_calls = 0
        self.issued = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/api/v1/auth-sessions":
            self.auth_calls += 1
            if self.auth_status != 200:
                return httpx.Response(self.auth_status, json={"message": "invalid_client"})
            self.issued += 1
            return httpx.Response(200, json={"access_token": f"tok-{self.issued}", "expires_in": 3600})

        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"code": "NOT_FOUND"})
        return handler(request)


def _client(fake, partner_id=None, client_id="test-client"):
    credentials = BoxNowCredentials(
        base_url=BASE_URL,
        client_id=client_id,
        client_secret="test-secret",
        partner_id=partner_id,
    )
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake))
    return BoxNowClient(credentials, http_client=http_client)


@pytest.mark.asyncio
async def test_delivery_request_sends_bearer_and_partner_headers():
    fake = FakeBoxNow(routes={
        ("POST", "/api/v1/delivery-requests"): lambda r: httpx.Response(200, json={"id": "42", "parcels": [{"id": "P1"}]}),
    })
    client = _client(fake, partner_id="partner-7")

    result = await client.create_delivery_request({"orderNumber": "ORD-1"})
    await client.close()

    assert result.status_code == 200
    assert result.json()["parcels"][0]["id"] == "P1"

    auth_request, api_request = fake.requests
    assert json.loads(auth_request.content) == {
        "grant_type": "client_credentials",
        "client_id": "test-client",
        "client_secret": "test-secret",
    }
    assert api_request.headers["Authorization"] == "Bearer tok-1"
    assert api_request.headers["X-PartnerID"] == "partner-7"
    assert json.loads(api_request.content) == {"orderNumber": "ORD-1"}


@pytest.mark.asyncio
async def test_token_reused_across_calls():
    fake = FakeBoxNow(routes={
        ("GET", "/api/v1/origins"): lambda r: httpx.Response(200, json={"data": []}),
    })
    client = _client(fake)

    await client.list_origins()
    await client.list_origins()
    await client.close()

    assert fake.auth_calls == 1
    assert "X-PartnerID" not in fake.requests[-1].headers


@pytest.mark.asyncio
async def test_destination_query_params_forwarded():
    fake = FakeBoxNow(routes={
        ("GET", "/api/v1/destinations"): lambda r: httpx.Response(200, json={"data": [{"id": "77"}]}),
    })
    client = _client(fake)

    result = await client.list_destinations({"locationType": "apm", "latlng": "37.9,23.7"})
    await client.close()

    request = fake.requests[-1]
    assert request.url.params["locationType"] == "apm"
    assert request.url.params["latlng"] == "37.9,23.7"
    assert result.json() == {"data": [{"id": "77"}]}


@pytest.mark.asyncio
async def test_repeated_query_keys_forwarded():
    fake = FakeBoxNow(routes={
        ("GET", "/api/v1/origins"): lambda r: httpx.Response(200, json={"data": []}),
    })
    client = _client(fake)

    await client.list_origins([("locationType", "apm"), ("locationType", "any-apm"), ("name", "Athens")])
    await client.close()

    request = fake.requests[-1]
    assert request.url.params.get_list("locationType") == ["apm", "any-apm"]
    assert request.url.params["name"] == "Athens"


@pytest.mark.asyncio
async def test_non_success_keeps_raw_body():
    raw = b'{"code":"P410","message":"Order number conflict"}'
    fake = FakeBoxNow(routes={
        ("POST", "/api/v1/delivery-requests"): lambda r: httpx.Response(
            409, content=raw, headers={"content-type": "application/json"}
        ),
    })
    client = _client(fake)

    with pytest.raises(CarrierAPIError) as exc_info:
        await client.create_delivery_request({"orderNumber": "ORD-1"})
    await client.close()

    assert exc_info.value.status_code == 409
    assert exc_info.value.body == raw
    assert exc_info.value.content_type == "application/json"


@pytest.mark.asyncio
async def test_unauthorized_response_drops_cached_token():
    calls = {"n": 0}

    def origins(request):
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(401, json={"message": "token expired"})
        return httpx.Response(200, json={"data": []})

    fake = FakeBoxNow(routes={("GET", "/api/v1/origins"): origins})
    client = _client(fake)

    with pytest.raises(CarrierAPIError):
        await client.list_origins()
    await client.list_origins()
    await client.close()

    assert fake.auth_calls == 2
    assert fake.requests[-1].headers["Authorization"] == "Bearer tok-2"


@pytest.mark.asyncio
async def test_auth_failure_is_not_cached():
    fake = FakeBoxNow(auth_status=400)
    client = _client(fake)

    with pytest.raises(CarrierAuthError):
        await client.list_origins()
    with pytest.raises(CarrierAuthError):
        await client.list_origins()
    await client.close()

    assert fake.auth_calls == 2
    assert client.token_cache.credential is None


@pytest.mark.asyncio
async def test_missing_credentials_raise_configuration_error():
    fake = FakeBoxNow()
    client = _client(fake, client_id="")

    with pytest.raises(ConfigurationError) as exc_info:
        await client.list_origins()
    await client.close()

    assert exc_info.value.details["missing"] == ["BOXNOW_CLIENT_ID"]
    assert fake.requests == []


@pytest.mark.asyncio
async def test_network_error_wrapped():
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = BoxNowClient(
        BoxNowCredentials(BASE_URL, "id", "secret"),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(boom)),
    )

    with pytest.raises(CarrierNetworkError):
        await client.list_origins()
    await client.close()


@pytest.mark.asyncio
async def test_labels_returned_as_bytes():
    pdf = b"%PDF-1.4\n%binary\x00\xff"
    fake = FakeBoxNow(routes={
        ("GET", "/api/v1/delivery-requests/ORD-1/label.pdf"): lambda r: httpx.Response(
            200, content=pdf, headers={"content-type": "application/pdf"}
        ),
        ("GET", "/api/v1/parcels/9219699001/label.pdf"): lambda r: httpx.Response(
            200, content=pdf, headers={"content-type": "application/pdf"}
        ),
    })
    client = _client(fake)

    assert await client.fetch_order_label("ORD-1") == pdf
    assert await client.fetch_parcel_label("9219699001") == pdf
    await client.close()

    assert fake.requests[-1].headers["Accept"] == "application/pdf"


def test_client_factory_uses_environment_host(settings_factory):
    client = create_boxnow_client(settings_factory(BOXNOW_API_URL="", BOXNOW_ENV="production", BOXNOW_PARTNER_ID="p1"))

    assert client.credentials.base_url == "https://api-production.boxnow.gr"
    assert client.credentials.partner_id == "p1"
