"""
Модуль для экспорта метрик в формате Prometheus
Отслеживает HTTP-запросы, аутентификацию и операции с эко-привычками
"""

import time
from typing import Callable

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

# Метрики запросов
http_requests_total = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method", "endpoint"],
)

http_errors_total = Counter(
    "http_errors_total",
    "Total number of HTTP errors",
    ["method", "endpoint", "status_code"],
)

# Метрики аутентификации
auth_requests_total = Counter(
    "auth_requests_total",
    "Total number of authentication requests",
    ["endpoint", "status"],
)

auth_failures_total = Counter(
    "auth_failures_total", "Total number of authentication failures", ["reason"]
)

# Метрики бизнес-логики
eco_habits_created_total = Counter(
    "eco_habits_created_total", "Total number of eco habits created"
)

eco_habits_archived_total = Counter(
    "eco_habits_archived_total", "Total number of eco habits archived"
)

eco_habit_logs_total = Counter(
    "eco_habit_logs_total", "Total number of eco habit log upserts", ["mode"]
)

users_registered_total = Counter("users_registered_total", "Total number of users registered")


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware для автоматического сбора метрик HTTP запросов
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = request.url.path

        http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            status_code = response.status_code
            duration = time.perf_counter() - start_time

            http_requests_total.labels(
                method=method, endpoint=endpoint, status_code=status_code
            ).inc()
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)

            if status_code >= 400:
                http_errors_total.labels(
                    method=method, endpoint=endpoint, status_code=status_code
                ).inc()

            return response

        finally:
            http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()


def metrics_endpoint() -> Response:
    """Response с метриками в формате Prometheus"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def track_auth_request(endpoint: str, success: bool):
    """
    Отслеживание запросов аутентификации

    Args:
        endpoint: Endpoint аутентификации (login, register)
        success: Успешность запроса
    """
    status = "success" if success else "failure"
    auth_requests_total.labels(endpoint=endpoint, status=status).inc()


def track_auth_failure(reason: str):
    """Отслеживание неудачных попыток аутентификации (invalid_credentials, user_exists, ...)"""
    auth_failures_total.labels(reason=reason).inc()


def track_habit_created():
    eco_habits_created_total.inc()


def track_habit_archived():
    eco_habits_archived_total.inc()


def track_habit_logged(mode: str):
    """Отслеживание записи выполнения (mode: created / updated)"""
    eco_habit_logs_total.labels(mode=mode).inc()


def track_user_registered():
    users_registered_total.inc()
