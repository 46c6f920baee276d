"""Per-client rate limiting of status reports using SlowAPI."""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from guardit.config import Settings, get_settings
from guardit.core.logging import get_logger

logger = get_logger(__name__)

# Keyed by client IP: one backup host reporting many tasks shares a budget
limiter = Limiter(key_func=get_remote_address)


# Set by create_app from the settings the app was built with
_ingest_limit: str | None = None


def configure_limits(settings: Settings) -> None:
    """Use this app's settings for the status report limit."""
    global _ingest_limit
    _ingest_limit = settings.ingest_rate_limit


def ingest_rate_limit() -> str:
    """Limit string for status reports, evaluated on every request."""
    return _ingest_limit or get_settings().ingest_rate_limit


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """429 with a Retry-After hint instead of SlowAPI's plain-text default."""
    logger.bind(
        client=get_remote_address(request),
        path=request.url.path,
        limit=str(exc.detail),
    ).warning("rate_limit_exceeded")
    return JSONResponse(
        status_code=429,
        content={"detail": f"Too many status reports ({exc.detail}). Please slow down."},
        headers={"Retry-After": "60"},
    )
