"""
Middleware безопасности для Eco Habit Tracker
Ограничение частоты запросов и заголовки безопасности
"""

from collections import defaultdict, deque
from datetime import datetime, timedelta
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

HEALTH_LIMIT_MULTIPLIER = 10
WINDOW = timedelta(minutes=1)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Скользящее окно в одну минуту на IP адрес
    /health получает в HEALTH_LIMIT_MULTIPLIER раз больший лимит
    """

    def __init__(self, app, requests_per_minute: int = 100):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.requests: dict[str, deque[datetime]] = defaultdict(deque)
        self._last_sweep = datetime.now()

    def evict_idle_clients(self, now: datetime) -> None:
        """Удалить IP без запросов за последнее окно (не чаще раза в окно)"""
        if now - self._last_sweep < WINDOW:
            return

        cutoff = now - WINDOW
        idle = [ip for ip, window in self.requests.items() if not window or window[-1] <= cutoff]
        for ip in idle:
            del self.requests[ip]
        self._last_sweep = now

    def _limit_for(self, path: str) -> int:
        if path == "/health":
            return self.requests_per_minute * HEALTH_LIMIT_MULTIPLIER
        return self.requests_per_minute

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        client_ip = request.client.host if request.client else "unknown"
        limit = self._limit_for(request.url.path)

        now = datetime.now()
        self.evict_idle_clients(now)
        window = self.requests[client_ip]
        while window and window[0] <= now - WINDOW:
            window.popleft()

        if len(window) >= limit:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "type": "https://api.ecohabits.dev/errors/rate-limit",
                    "title": "Rate Limit Exceeded",
                    "status": 429,
                    "detail": f"Превышен лимит запросов. Максимум {limit} запросов в минуту.",
                    "instance": str(request.url.path),
                },
                headers={
                    "Retry-After": "60",
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        window.append(now)

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(limit - len(window), 0))
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Заголовки безопасности для всех ответов"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'self'"
        response.headers["Cache-Control"] = "no-store"

        return response
