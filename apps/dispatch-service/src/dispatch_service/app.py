from __future__ import annotations

from contextlib import asynccontextmanager

from devkit.config import ServiceSettings, load_settings
from devkit.observability import configure_otel, configure_health_check_access_log_filter
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from geo_engine import InvalidCoordinateError

from shared.security import JWTManager

from dispatch_service.errors import ApiError
from dispatch_service.middleware import ObservabilityMiddleware
from dispatch_service.notifications import (
    FanOutNotificationGateway,
    InAppNotificationGateway,
    NotificationGateway,
    WebhookPushGateway,
)
from dispatch_service.observability import (
    CompositeRequestMetricsCollector,
    InMemoryRequestMetricsCollector,
    PrometheusMetrics,
)
from dispatch_service.response import error_response, success_response
from dispatch_service.routers.emergencies import router as emergencies_router
from dispatch_service.routers.geo import router as geo_router
from dispatch_service.routers.notifications import router as notifications_router
from dispatch_service.routers.providers import router as providers_router
from dispatch_service.service import EmergencyService
from dispatch_service.store import DispatchStore


def build_notifier(settings: ServiceSettings, store: DispatchStore) -> NotificationGateway:
    in_app = InAppNotificationGateway(store)
    if not settings.PUSH_WEBHOOK_URL:
        return in_app
    return FanOutNotificationGateway(
        [
            in_app,
            WebhookPushGateway(settings.PUSH_WEBHOOK_URL, timeout_seconds=settings.PUSH_WEBHOOK_TIMEOUT_SECONDS),
        ]
    )


def create_app(
    settings: ServiceSettings | None = None,
    store: DispatchStore | None = None,
    notifier: NotificationGateway | None = None,
) -> FastAPI:
    settings = settings or load_settings("dispatch-service")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await app.state.store.ensure_ready()
        try:
            yield
        finally:
            await app.state.store.close()

    app = FastAPI(title="GigHub Dispatch Service", version="0.1.0", lifespan=lifespan)
    configure_otel(service_name=settings.SERVICE_NAME)
    configure_health_check_access_log_filter()

    app.state.settings = settings
    app.state.jwt = JWTManager(secret=settings.JWT_SECRET_KEY)
    app.state.store = store or DispatchStore(settings.DATABASE_URL)
    app.state.request_metrics = InMemoryRequestMetricsCollector()
    app.state.prom_metrics = PrometheusMetrics()
    app.state.emergency_service = EmergencyService(
        app.state.store,
        notifier or build_notifier(settings, app.state.store),
        max_location_age_seconds=settings.PROVIDER_LOCATION_MAX_AGE_SECONDS,
        metrics=app.state.prom_metrics,
    )
    app.add_middleware(
        ObservabilityMiddleware,
        collector=CompositeRequestMetricsCollector([app.state.request_metrics, app.state.prom_metrics]),
    )
    app.include_router(providers_router)
    app.include_router(emergencies_router)
    app.include_router(notifications_router)
    app.include_router(geo_router)

    @app.get("/healthz")
    async def healthz() -> dict[str, object]:
        return success_response({"status": "ok"}, meta={})

    @app.get("/readyz")
    async def readyz() -> dict[str, object]:
        return success_response({"status": "ready"}, meta={})

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(content=app.state.prom_metrics.render(), media_type="text/plain; version=0.0.4")

    @app.exception_handler(ApiError)
    async def handle_api_error(_: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=error_response(exc.code, exc.message))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        message = "; ".join(err["msg"] for err in exc.errors())
        return JSONResponse(status_code=422, content=error_response("VALIDATION_ERROR", message))

    @app.exception_handler(InvalidCoordinateError)
    async def handle_invalid_coordinate(_: Request, exc: InvalidCoordinateError) -> JSONResponse:
        return JSONResponse(status_code=422, content=error_response("VALIDATION_ERROR", str(exc)))

    return app
