from __future__ import annotations

from time import perf_counter
from uuid import uuid4

from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from dispatch_service.observability import RequestMetric, RequestMetricCollector, set_trace_id


class ObservabilityMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, collector: RequestMetricCollector) -> None:
        super().__init__(app)
        self._collector = collector
        self._tracer = trace.get_tracer("gighub-dispatch")

    async def dispatch(self, request: Request, call_next) -> Response:
        trace_id = request.headers.get("x-trace-id") or str(uuid4())
        set_trace_id(trace_id)
        started = perf_counter()
        route_path = request.url.path
        with self._tracer.start_as_current_span("http.request") as span:
            span.set_attribute("http.method", request.method)
            span.set_attribute("trace.id", trace_id)
            try:
                response = await call_next(request)
            except Exception:
                self._observe(request, route_path, 500, started, trace_id)
                span.set_attribute("http.status_code", 500)
                raise
            route = request.scope.get("route")
            route_path = getattr(route, "path", route_path)
            span.set_attribute("http.route", route_path)
            span.set_attribute("http.status_code", response.status_code)

        response.headers["x-trace-id"] = trace_id
        self._observe(request, route_path, response.status_code, started, trace_id)
        return response

    def _observe(self, request: Request, path: str, status_code: int, started: float, trace_id: str) -> None:
        # route templates keep provider and emergency ids out of metric labels
        self._collector.observe(
            RequestMetric(
                method=request.method,
                path=path,
                status_code=status_code,
                duration_ms=(perf_counter() - started) * 1000.0,
                trace_id=trace_id,
            )
        )
