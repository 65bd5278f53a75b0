"""Per-client rate limiting (slowapi) and the 429 response it produces."""

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded

RETRY_AFTER_SECONDS = 60


def client_address(request: Request) -> str:
    """First hop of X-Forwarded-For when behind the proxy, else the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    return request.client.host if request.client else "unknown"


limiter = Limiter(key_func=client_address)


def rate_limit_exceeded(request: Request, exc: RateLimitExceeded) -> Response:
    return JSONResponse(
        {"error": "Too many requests", "detail": str(exc.detail), "retry_after": RETRY_AFTER_SECONDS},
        status_code=429,
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )
