import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shopgate.app.api.rate_limits import router as rate_limits_router
from shopgate.app.core.config import Settings, settings as default_settings
from shopgate.app.core.logging import get_logger, setup_logging
from shopgate.app.exceptions import RateLimitExceededError, ShopGateException
from shopgate.app.middleware.rate_limit import RateLimitCleanupTask, RateLimiterRegistry
from shopgate.app.middleware.request_id import RequestIdMiddleware


def create_app(
    settings: Optional[Settings] = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use instead of the environment-loaded ones
        clock: Time source for the rate limiters (epoch seconds)

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or default_settings

    setup_logging()
    logger = get_logger(__name__)

    rate_limiters = RateLimiterRegistry(
        settings.rate_limit_policies(),
        clock=clock,
        max_age=settings.rate_limit_bucket_max_age,
    )
    cleanup_task = RateLimitCleanupTask(
        rate_limiters,
        interval=settings.rate_limit_cleanup_interval,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Start the bucket sweep on startup and stop it on shutdown."""
        await cleanup_task.start()
        logger.info(
            "Application startup complete",
            extra={"rate_limit_policies": sorted(rate_limiters.policies)},
        )

        yield

        await cleanup_task.stop()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Shop Backend",
        description="Order management backend with per-client rate limiting",
        version="1.0.0",
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.rate_limiters = rate_limiters
    app.state.rate_limit_cleanup = cleanup_task
    app.state.retry_options = settings.retry_options()

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
        max_age=600,
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(rate_limits_router)

    @app.exception_handler(ShopGateException)
    async def shopgate_exception_handler(request: Request, exc: ShopGateException) -> JSONResponse:
        """Render application errors in the API response envelope."""
        headers: dict[str, str] = {}
        message = None

        if isinstance(exc, RateLimitExceededError):
            message = exc.detail
            headers = {
                "Retry-After": str(exc.retry_after),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(int(exc.reset_time)),
            }
        elif exc.status_code >= 500:
            logger.error(f"API error: {exc.message}", extra={"path": request.url.path})

        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.message, "message": message},
            headers=headers,
        )

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "ok",
            "components": {
                "rate_limit_cleanup": {
                    "status": "ok" if cleanup_task.running else "stopped",
                },
            },
        }

    return app


app = create_app()
