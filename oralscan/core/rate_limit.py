"""SlowAPI limits for credential and upload endpoints, keyed by client address."""
from fastapi import Request

from slowapi import Limiter

from .config import settings


def client_address(request: Request) -> str:
    # Behind a proxy the first X-Forwarded-For hop is the capture workstation
    forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
    if forwarded:
        return forwarded
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def per_minute(count: int) -> str:
    return f"{max(count, 1)}/minute"


# slowapi calls these on every request
def register_limit() -> str:
    return per_minute(settings.rate_limit_register_per_minute)


def login_limit() -> str:
    return per_minute(settings.rate_limit_login_per_minute)


def upload_limit() -> str:
    return per_minute(settings.rate_limit_per_minute)


limiter = Limiter(key_func=client_address)
