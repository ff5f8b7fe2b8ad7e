"""
Pytest configuration and fixtures for the BoxNow checkout bridge.
"""
import os
import pytest
from unittest.mock import AsyncMock, MagicMock

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["ORDERS_STORE_PATH"] = ""
os.environ["BOXNOW_API_URL"] = "https://boxnow.test"
os.environ["BOXNOW_CLIENT_ID"] = "test-client"
os.environ["BOXNOW_CLIENT_SECRET"] = "test-secret"
os.environ["SMTP_HOST"] = ""
os.environ["STRIPE_SECRET_KEY"] = ""

from app.core.background import BackgroundTaskRunner  # noqa: E402
from app.core.config import Settings  # noqa: E402
from app.services.boxnow_client import BoxNowClient, CarrierResponse  # noqa: E402
from app.services.delivery_service import DeliveryService  # noqa: E402
from app.services.label_mailer import SendResult  # noqa: E402
from app.services.order_store import InMemoryOrderStore  # noqa: E402


def make_settings(**overrides) -> Settings:
    """Settings isolated from .env files and the process environment defaults."""
    values = {
        "ENVIRONMENT": "development",
        "BOXNOW_API_URL": "https://boxnow.test",
        "BOXNOW_CLIENT_ID": "test-client",
        "BOXNOW_CLIENT_SECRET": "test-secret",
        "ORDERS_STORE_PATH": "",
        "SMTP_HOST": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeClock:
    """Epoch-millisecond clock advanced by hand."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def any_apm_settings() -> Settings:
    return make_settings(BOXNOW_ORIGIN_LOCATION_ID="any-apm")


@pytest.fixture
def mock_boxnow_client() -> AsyncMock:
    """BoxNow client whose delivery request succeeds with one parcel."""
    client = AsyncMock(spec=BoxNowClient)
    client.create_delivery_request = AsyncMock(return_value=CarrierResponse(
        status_code=200,
        content=b'{"id": "42", "parcels": [{"id": "9219699001"}]}',
    ))
    client.fetch_order_label = AsyncMock(return_value=b"%PDF-1.4 voucher")
    client.fetch_parcel_label = AsyncMock(return_value=b"%PDF-1.4 parcel")
    client.close = AsyncMock()
    return client


@pytest.fixture
def memory_store() -> InMemoryOrderStore:
    return InMemoryOrderStore()


@pytest.fixture
def mock_mailer() -> MagicMock:
    mailer = MagicMock()
    mailer.configured = True
    mailer.enabled = True
    mailer.default_recipients = ["warehouse@shop.test"]
    mailer.send_label = AsyncMock(return_value=SendResult(success=True, recipients=["warehouse@shop.test"]))
    return mailer


@pytest.fixture
def runner() -> BackgroundTaskRunner:
    return BackgroundTaskRunner()


@pytest.fixture
def delivery_service(mock_boxnow_client, memory_store, mock_mailer, runner, any_apm_settings) -> DeliveryService:
    return DeliveryService(mock_boxnow_client, memory_store, mock_mailer, runner, any_apm_settings)


@pytest.fixture
def checkout_payload() -> dict:
    """Nested-shape checkout payload that BoxNow should accept."""
    return {
        "orderNumber": "ORD-1",
        "destinationLocationId": "77",
        "customer": {"name": "A", "email": "a@b.com", "phone": "6912345678"},
        "cartWeightKg": 3,
        "paymentMode": "card",
    }
