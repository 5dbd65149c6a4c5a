# core/idempotency.py - Idempotent create endpoints keyed by the Idempotency-Key header
import time
import uuid
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.responses import Response

from core.logger import get_logger
from core.settings import settings

logger = get_logger(__name__)

IDEMPOTENCY_KEY_HEADER = "Idempotency-Key"

def idempotent(endpoint: Callable) -> Callable:
    """Mark an endpoint so ``IdempotentRoute`` enforces the Idempotency-Key header on it."""
    endpoint.__idempotent__ = True
    return endpoint

def parse_idempotency_key(value: Optional[str]) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(value.strip())
    except ValueError:
        return None

class IdempotencyStore:
    """Status codes of already handled requests, forgotten after ``ttl_minutes``."""

    def __init__(self, ttl_minutes: int = settings.IDEMPOTENCY_TTL_MINUTES, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_minutes * 60
        self._clock = clock
        self._entries: Dict[str, Tuple[int, float]] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[int]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            status_code, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return status_code

    def set(self, key: str, status_code: int) -> None:
        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            self._entries[key] = (status_code, now + self.ttl_seconds)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _evict_expired(self, now: float) -> None:
        # Caller holds the lock
        expired = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired idempotency keys")

class IdempotentRoute(APIRoute):
    """
    Route class for routers holding ``@idempotent`` endpoints.

    A request without a valid UUID key is rejected with 400. The first request
    for a key runs normally and its status code is remembered; repeats get that
    status code back with an empty body and the endpoint is not called again.
    """

    def get_route_handler(self) -> Callable:
        handler = super().get_route_handler()
        if not getattr(self.endpoint, "__idempotent__", False):
            return handler

        async def idempotent_handler(request: Request) -> Response:
            key = parse_idempotency_key(request.headers.get(IDEMPOTENCY_KEY_HEADER))
            if key is None:
                return JSONResponse(
                    status_code=400,
                    content={"detail": f"Invalid or missing {IDEMPOTENCY_KEY_HEADER} header"}
                )

            store: IdempotencyStore = request.app.state.idempotency_store
            cache_key = f"idempotence:{key}"

            cached_status = store.get(cache_key)
            if cached_status is not None:
                logger.info(f"Replaying status {cached_status} for {request.method} {request.url.path} ({key})")
                return Response(status_code=cached_status)

            response = await handler(request)
            store.set(cache_key, response.status_code)
            return response

        return idempotent_handler
