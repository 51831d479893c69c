"""Rate limiting configuration for API endpoints."""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.config import get_settings


def get_rate_limit_key(request: Request) -> str:
    """Get composite key: API key suffix + IP for clinic endpoints, IP otherwise."""
    ip = get_remote_address(request)

    # Clinic endpoints are limited per credential as well as per address
    authorization = request.headers.get("authorization", "")
    if request.url.path.startswith("/api/clinics/") and authorization.startswith("Bearer "):
        return f"clinic:{authorization[7:][-12:]}:{ip}"

    return ip


limiter = Limiter(key_func=get_rate_limit_key)


def rate_limit() -> str:
    """Per-minute limit from settings."""
    return f"{get_settings().rate_limit_per_minute}/minute"
