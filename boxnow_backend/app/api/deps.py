"""
API dependencies

Services are built once in the application lifespan and live on app.state;
routes resolve them here so tests can swap them via dependency_overrides.
"""
from fastapi import Request

from app.services.boxnow_client import BoxNowClient
from app.services.delivery_service import DeliveryService
from app.services.order_service import OrderService
from app.services.payment_service import PaymentService


def get_boxnow_client(request: Request) -> BoxNowClient:
    return request.app.state.boxnow_client


def get_delivery_service(request: Request) -> DeliveryService:
    return request.app.state.delivery_service


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payment_service
