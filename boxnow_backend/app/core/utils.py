"""
Core Utilities

Shared helpers used across the application.
"""
import time
from datetime import datetime, timezone


def utcnow() -> datetime:
    """
    Return timezone-aware UTC datetime.

    Use this instead of datetime.utcnow() which returns naive datetime.
    """
    return datetime.now(timezone.utc)


def epoch_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def mask_email(email: str) -> str:
    """Mask the local part of an email for logs: jane.doe@x.gr -> j***@x.gr."""
    if not email or "@" not in email:
        return "***"
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"


def mask_phone(phone: str) -> str:
    """Keep only the last 4 digits of a phone number for logs."""
    if not phone or len(phone) < 4:
        return "***"
    return f"***{phone[-4:]}"
