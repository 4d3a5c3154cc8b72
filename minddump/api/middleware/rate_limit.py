"""Per-IP rate limiting middleware.

Writes (POST/PUT/PATCH/DELETE) and reads are counted in separate per-minute
buckets (20 and 60 by default); both share one per-hour budget. Buckets live
in TTLCaches so idle IPs age out without a sweeper.

X-Forwarded-For is trusted only in development or when the request carries
the Cloud Run trace header, and only if it parses as an IP address.
"""

from __future__ import annotations

import ipaddress
import time
from collections.abc import Callable
from typing import Any

from cachetools import TTLCache
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from minddump.config import (
    RATE_LIMIT_MAX_IPS,
    RATE_LIMIT_READ_RPM,
    RATE_LIMIT_RPH,
    RATE_LIMIT_WRITE_RPM,
)
from minddump.infrastructure.settings import is_development
from minddump.observability.telemetry import log_event

EXEMPT_PATHS = frozenset({"/health", "/"})
WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
TRUSTED_PROXY_HEADER = "X-Cloud-Trace-Context"


def _is_valid_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        return False


def client_ip(request: Request) -> str:
    if TRUSTED_PROXY_HEADER in request.headers or is_development():
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            ip = forwarded.split(",")[0].strip()
            if _is_valid_ip(ip):
                return ip
        real_ip = request.headers.get("X-Real-IP")
        if real_ip and _is_valid_ip(real_ip):
            return real_ip
    return request.client.host if request.client else "unknown"


def _rate_limited(limit: int, window: str, retry_after: int) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "error": f"Rate limit exceeded. Maximum {limit} requests per {window}.",
            "code": "RATE_LIMIT_EXCEEDED",
            "details": {"retryAfter": retry_after},
        },
        headers={"Retry-After": str(retry_after)},
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: Any,
        writes_per_minute: int = RATE_LIMIT_WRITE_RPM,
        reads_per_minute: int = RATE_LIMIT_READ_RPM,
        requests_per_hour: int = RATE_LIMIT_RPH,
        max_ips: int = RATE_LIMIT_MAX_IPS,
    ) -> None:
        super().__init__(app)
        self.writes_per_minute = writes_per_minute
        self.reads_per_minute = reads_per_minute
        self.requests_per_hour = requests_per_hour
        # {"<ip>:<read|write>": [timestamp, ...]}
        self.minute_buckets: TTLCache[str, list[float]] = TTLCache(maxsize=max_ips * 2, ttl=120)
        self.hour_buckets: TTLCache[str, list[float]] = TTLCache(maxsize=max_ips, ttl=7200)

    @staticmethod
    def _recent(bucket: list[float], now: float, max_age: int) -> list[float]:
        return [ts for ts in bucket if now - ts < max_age]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        ip = client_ip(request)
        kind = "write" if request.method in WRITE_METHODS else "read"
        per_minute = self.writes_per_minute if kind == "write" else self.reads_per_minute
        minute_key = f"{ip}:{kind}"
        now = time.time()

        minute_bucket = self._recent(self.minute_buckets.get(minute_key, []), now, 60)
        hour_bucket = self._recent(self.hour_buckets.get(ip, []), now, 3600)

        if len(minute_bucket) >= per_minute:
            self.minute_buckets[minute_key] = minute_bucket
            log_event("api.rate_limit.exceeded", ip=ip, kind=kind, window="minute")
            return _rate_limited(per_minute, "minute", 60)

        if len(hour_bucket) >= self.requests_per_hour:
            self.hour_buckets[ip] = hour_bucket
            log_event("api.rate_limit.exceeded", ip=ip, kind=kind, window="hour")
            return _rate_limited(self.requests_per_hour, "hour", 3600)

        minute_bucket.append(now)
        hour_bucket.append(now)
        self.minute_buckets[minute_key] = minute_bucket
        self.hour_buckets[ip] = hour_bucket

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(per_minute)
        response.headers["X-RateLimit-Remaining"] = str(max(per_minute - len(minute_bucket), 0))
        response.headers["X-RateLimit-Limit-Hour"] = str(self.requests_per_hour)
        response.headers["X-RateLimit-Remaining-Hour"] = str(
            max(self.requests_per_hour - len(hour_bucket), 0)
        )
        return response
