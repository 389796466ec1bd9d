"""
Prometheus metrics instrumentation.

This module provides Prometheus metrics for:
- HTTP requests (latency, status codes, throughput)
- Federated login outcomes per provider
- Maintenance job write outcomes (decay, story pruning, notifications)
- Celery task execution

Metrics are exposed on a SEPARATE admin port (default 9090) protected by HTTP Basic Auth.
They are NOT exposed on the main API port (8000).
"""

import base64
import hmac

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from prometheus_fastapi_instrumentator import Instrumentator, metrics
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route
from starlette.types import ASGIApp

from app.config import settings


# Identity bridge metrics
federated_logins_total = Counter(
    "federated_logins_total",
    "Federated login attempts by provider and outcome",
    ["provider", "outcome"],  # completed, invalid_input, unauthorized, upstream_error, internal_error
)

accounts_created_total = Counter(
    "accounts_created_total",
    "Accounts created on first federated login",
    ["provider"],
)

# Maintenance job metrics
pet_stat_updates_total = Counter(
    "pet_stat_updates_total",
    "Child profile pet-stat decay writes",
    ["status"],  # success, failure
)

stories_pruned_total = Counter(
    "stories_pruned_total",
    "Stories deleted by the retention pruner",
)

achievement_notifications_total = Counter(
    "achievement_notifications_total",
    "Achievement notification fan-out outcomes",
    ["status"],  # created, skipped_locked, duplicate
)

# Celery metrics
celery_task_duration_seconds = Histogram(
    "celery_task_duration_seconds",
    "Celery task duration in seconds",
    ["task_name", "status"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0),
)

celery_tasks_total = Counter(
    "celery_tasks_total",
    "Total Celery tasks executed",
    ["task_name", "status"],
)


def setup_metrics(app: FastAPI) -> None:
    """
    Instrument the FastAPI app with Prometheus metrics collectors.

    Does NOT expose a /metrics route on the main API port.
    Metrics are served on a separate admin port via create_metrics_app().
    """
    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/health", "/docs", "/openapi.json"],
        env_var_name="ENABLE_METRICS",
        inprogress_name="http_requests_inprogress",
        inprogress_labels=True,
    )

    instrumentator.add(
        metrics.latency(
            should_include_handler=True,
            should_include_method=True,
            should_include_status=True,
            buckets=(0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0),
        )
    )

    instrumentator.add(
        metrics.requests(
            should_include_handler=True,
            should_include_method=True,
            should_include_status=True,
        )
    )

    # Instrument only; do NOT expose /metrics on the main port
    instrumentator.instrument(app)


def create_metrics_app() -> ASGIApp:
    """
    Create a minimal ASGI app that serves /metrics behind HTTP Basic Auth.

    Dev access:
        curl -u admin:metrics_admin http://localhost:9090/metrics
    """
    unauthorized = dict(
        content="Unauthorized",
        status_code=401,
        headers={"WWW-Authenticate": 'Basic realm="metrics"'},
    )

    async def metrics_endpoint(request: Request) -> Response:
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Basic "):
            return Response(**unauthorized)

        try:
            decoded = base64.b64decode(auth_header[6:]).decode("utf-8", errors="replace")
            username, password = decoded.split(":", 1)
        except ValueError:
            return Response(**unauthorized)

        if not (
            hmac.compare_digest(username, settings.METRICS_USERNAME)
            and hmac.compare_digest(password, settings.METRICS_PASSWORD)
        ):
            return Response(**unauthorized)

        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return Starlette(routes=[Route("/metrics", metrics_endpoint)])


def track_federated_login(provider: str, outcome: str) -> None:
    """Track the final outcome of one bridge invocation."""
    federated_logins_total.labels(provider=provider, outcome=outcome).inc()


def track_account_created(provider: str) -> None:
    accounts_created_total.labels(provider=provider).inc()


def track_pet_stat_updates(status: str, count: int = 1) -> None:
    if count:
        pet_stat_updates_total.labels(status=status).inc(count)


def track_stories_pruned(count: int) -> None:
    if count:
        stories_pruned_total.inc(count)


def track_achievement_notification(status: str) -> None:
    achievement_notifications_total.labels(status=status).inc()


def track_celery_task(task_name: str, status: str, duration_seconds: float) -> None:
    """Track Celery task execution."""
    celery_task_duration_seconds.labels(task_name=task_name, status=status).observe(
        duration_seconds
    )
    celery_tasks_total.labels(task_name=task_name, status=status).inc()
