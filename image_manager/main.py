"""
FastAPI application entry point for the Image Manager service.
"""
import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from image_manager.clients.pillow_codec import configure_pillow
from image_manager.config import settings
from image_manager.routers import health, images
from image_manager.utils.errors import APIError, create_error_response, handle_exception
from image_manager.utils.logging import configure_logging

configure_logging(settings.LOG_LEVEL, settings.LOG_DIR)

logger = logging.getLogger("image_manager")

VERSION = "0.3.0"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with a correlation ID echoed back in X-Request-Id."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id

        client_ip = request.client.host if request.client else "unknown"
        # Derivative requests are identified by their query (path, size, mode)
        query = f" query={request.url.query}" if request.url.query else ""
        start = time.perf_counter()

        logger.info(
            f"RequestStart request={request_id} method={request.method} path={request.url.path}"
            f"{query} client_ip={client_ip}"
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"RequestError request={request_id} method={request.method} path={request.url.path} "
                f"error={type(e).__name__}",
                exc_info=True,
            )
            response = handle_exception(e)

        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            f"RequestEnd request={request_id} method={request.method} path={request.url.path} "
            f"status={response.status_code} durationMs={duration_ms} "
            f"end_timestamp={datetime.now(timezone.utc).isoformat()}"
        )

        response.headers["X-Request-Id"] = request_id
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI app.
    Sets startup_time on app.state for uptime tracking and applies the
    process-wide Pillow pixel limit.
    """
    app.state.startup_time = datetime.now(timezone.utc)
    configure_pillow(settings.MAX_IMAGE_PIXELS)

    logger.info("ConfigStart")
    logger.info(f"Config PUBLIC_ROOT={settings.PUBLIC_ROOT.resolve()}")
    logger.info(f"Config ERROR_IMAGE={settings.error_image_path}")
    logger.info(f"Config ERROR_IMAGE_EXISTS={settings.error_image_path.is_file()}")
    logger.info(f"Config UPLOAD_DIR={settings.upload_path}")
    logger.info(f"Config DEFAULT_QUALITY={settings.DEFAULT_QUALITY}")
    logger.info(f"Config SUPPORTED_OUTPUT_FORMATS={','.join(settings.SUPPORTED_OUTPUT_FORMATS)}")
    logger.info(f"Config CACHE_FILE_MODE={oct(settings.CACHE_FILE_MODE)}")
    logger.info(f"Config CACHE_DIR_MODE={oct(settings.CACHE_DIR_MODE)}")
    logger.info(f"Config MAX_IMAGE_PIXELS={settings.MAX_IMAGE_PIXELS}")
    logger.info(f"Config MAX_UPLOAD_MB={settings.MAX_UPLOAD_MB}")
    logger.info(f"Config LOG_LEVEL={settings.LOG_LEVEL}")
    logger.info(f"Config TRACE_CALLS={settings.TRACE_CALLS}")
    logger.info("ConfigEnd")
    logger.info("Application startup complete")
    yield
    logger.info("Application shutdown")


app = FastAPI(
    title="Image Manager API",
    description="On-demand resized and cropped derivatives with a filesystem cache",
    version=VERSION,
    lifespan=lifespan,
)

# Request logging middleware (must be first to capture all requests)
app.add_middleware(RequestLoggingMiddleware)


# Exception handlers
@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    """Handle APIError exceptions."""
    return create_error_response(exc)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(
        f"UnhandledException request={request_id} error={type(exc).__name__} message={str(exc)}",
        exc_info=True,
    )
    return handle_exception(exc)


# Include routers
app.include_router(health.router)
app.include_router(images.router, prefix="/v1")
