from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from guardit.api.router import api_router
from guardit.config import AppConfig, Settings, get_config, get_settings
from guardit.core.logging import setup_logging
from guardit.core.rate_limit import configure_limits, limiter, rate_limit_exceeded_handler
from guardit.monitor.runtime import MonitorRuntime


def create_app(
    settings: Settings | None = None,
    config: AppConfig | None = None,
    runtime: MonitorRuntime | None = None,
) -> FastAPI:
    """
    Build the application around one MonitorRuntime.

    The runtime is created eagerly and stored on ``app.state.monitor``;
    the lifespan only starts and stops it.
    """
    settings = settings or get_settings()
    config = config or get_config()
    monitor = runtime or MonitorRuntime(settings, config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        # Startup
        setup_logging(settings)
        monitor.start()
        yield
        # Shutdown
        await monitor.stop()

    app = FastAPI(
        title="GuardIT",
        description="Backup job status monitor",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )
    app.state.monitor = monitor
    app.state.limiter = limiter
    configure_limits(settings)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        """Health check endpoint for load balancers."""
        return {"status": "healthy"}

    return app


app = create_app()
