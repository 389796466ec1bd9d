"""FastAPI main application."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1 import achievements, auth, children, notifications, stories
from app.config import settings
from app.core.database import close_db, init_db
from app.core.exceptions import BridgeError, BridgeFailure
from app.core.logging_config import setup_logging
from app.core.metrics import create_metrics_app, setup_metrics
from app.middleware.error_handler import ErrorHandlerMiddleware
from app.middleware.request_logging import RequestLoggingMiddleware

logger = logging.getLogger(__name__)

# Initialize Sentry for error tracking (optional extra)
try:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    SENTRY_AVAILABLE = True
except ImportError:
    SENTRY_AVAILABLE = False


def _filter_sensitive_data(event, hint):
    """Drop credentials from Sentry events before sending."""
    request = event.get("request") or {}
    headers = request.get("headers") or {}
    for header in ("authorization", "cookie"):
        if header in headers:
            headers[header] = "[Filtered]"
    # Login bodies carry provider access tokens
    if "data" in request:
        request["data"] = "[Filtered]"
    return event


if SENTRY_AVAILABLE and settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1 if not settings.DEBUG else 1.0,
        send_default_pii=False,
        environment=settings.ENVIRONMENT,
        release=f"{settings.APP_NAME}@{settings.APP_VERSION}",
        before_send=_filter_sensitive_data,
    )

# HTTP status for each bridge failure reason
BRIDGE_FAILURE_STATUS = {
    BridgeFailure.INVALID_INPUT: 400,
    BridgeFailure.UNAUTHORIZED: 401,
    BridgeFailure.UPSTREAM_ERROR: 500,
    BridgeFailure.INTERNAL_ERROR: 500,
}

# Keeps the metrics server task referenced for the app's lifetime
_background_tasks: set[asyncio.Task] = set()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting %s %s", settings.APP_NAME, settings.APP_VERSION)

    await init_db()

    # Prometheus metrics live on a separate admin port (protected by basic auth)
    if settings.METRICS_ENABLED:
        import uvicorn

        metrics_config = uvicorn.Config(
            create_metrics_app(),
            host="0.0.0.0",  # nosec B104 - internal-only port, protected by basic auth
            port=settings.METRICS_ADMIN_PORT,
            log_level="warning",
        )
        task = asyncio.create_task(uvicorn.Server(metrics_config).serve())
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
        logger.info("Metrics admin server started on port %d", settings.METRICS_ADMIN_PORT)

    yield

    logger.info("Shutting down %s", settings.APP_NAME)
    await close_db()


# Disable interactive API docs in production
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)

if settings.METRICS_ENABLED:
    setup_metrics(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Catch uncaught exceptions with PII redaction
app.add_middleware(ErrorHandlerMiddleware)

# Request logging (outermost, so the request id is available to the error handler)
app.add_middleware(RequestLoggingMiddleware)


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.debug("Validation error on %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": _first_validation_message(exc)})


@app.exception_handler(BridgeError)
async def bridge_exception_handler(request: Request, exc: BridgeError):
    return JSONResponse(
        status_code=BRIDGE_FAILURE_STATUS.get(exc.reason, 500),
        content={"error": exc.message},
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(children.router, prefix="/api/v1/children", tags=["Children"])
app.include_router(stories.router, prefix="/api/v1/stories", tags=["Stories"])
app.include_router(achievements.router, prefix="/api/v1/achievements", tags=["Achievements"])
app.include_router(notifications.router, prefix="/api/v1/notifications", tags=["Notifications"])
