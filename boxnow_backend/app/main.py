"""
BoxNow Checkout Bridge
FastAPI application entry point

- Carrier proxy: origins, destinations, delivery requests, voucher PDFs
- Local orders with server-trusted totals
- Stripe payment intents
- Voucher email dispatched in the background after delivery creation
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import carrier, orders, payments
from app.core.background import BackgroundTaskRunner
from app.core.config import settings
from app.core.error_handler import ErrorSanitizationMiddleware, register_exception_handlers
from app.services.boxnow_client import create_boxnow_client
from app.services.delivery_service import DeliveryService
from app.services.label_mailer import create_label_mailer
from app.services.order_service import OrderService
from app.services.order_store import create_order_store
from app.services.payment_service import PaymentService

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the long-lived services on startup; drain background work and
    close the carrier HTTP client on shutdown.
    """
    client = create_boxnow_client(settings)
    store = create_order_store(settings.ORDERS_STORE_PATH)
    mailer = create_label_mailer(settings)
    runner = BackgroundTaskRunner()
    order_service = OrderService(store, settings)

    app.state.boxnow_client = client
    app.state.order_store = store
    app.state.background = runner
    app.state.delivery_service = DeliveryService(client, store, mailer, runner, settings)
    app.state.order_service = order_service
    app.state.payment_service = PaymentService(order_service, settings)

    logger.info(
        f"BoxNow bridge started: env={settings.BOXNOW_ENV} api={settings.boxnow_base_url} "
        f"origin={settings.BOXNOW_ORIGIN_LOCATION_ID} label_email={'on' if mailer.enabled else 'off'}"
    )

    yield

    await runner.drain()
    await client.close()
    logger.info("BoxNow HTTP client closed")


app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    description="Checkout bridge between the storefront and the BoxNow locker network.",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
)

register_exception_handlers(app)

# Error sanitization (catches unhandled exceptions)
app.add_middleware(ErrorSanitizationMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

api_prefix = settings.PUBLIC_API_PREFIX.rstrip("/")
app.include_router(carrier.router, prefix=api_prefix)
app.include_router(orders.router, prefix=api_prefix)
app.include_router(payments.router, prefix=api_prefix)


@app.get("/health", tags=["Health"])
async def health_check():
    return {"ok": True}
