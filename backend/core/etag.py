# core/etag.py - Response ETags and conditional GETs
import hashlib
from threading import Lock
from typing import Dict, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from core.logger import get_logger

logger = get_logger(__name__)

# State changing methods never carry an ETag
SKIPPED_METHODS = {"POST", "DELETE"}

def generate_etag(content: bytes) -> str:
    return hashlib.sha512(content).hexdigest()

def parse_if_none_match(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return value.strip().removeprefix("W/").replace('"', "")

class InMemoryETagStore:
    """Last ETag served per resource path. Process local, lock protected."""

    def __init__(self):
        self._etags: Dict[str, str] = {}
        self._lock = Lock()

    def get(self, resource_uri: str) -> Optional[str]:
        with self._lock:
            return self._etags.get(resource_uri)

    def set(self, resource_uri: str, etag: str) -> None:
        with self._lock:
            self._etags[resource_uri] = etag

    def remove(self, resource_uri: str) -> None:
        with self._lock:
            self._etags.pop(resource_uri, None)

class ETagMiddleware(BaseHTTPMiddleware):
    """
    Tags 200 JSON responses with a SHA-512 hash of their body.

    A GET whose ``If-None-Match`` equals the fresh tag gets an empty 304.
    POST and DELETE pass through untouched; a successful DELETE forgets the
    tag stored for its path.
    """

    def __init__(self, app, store: InMemoryETagStore):
        super().__init__(app)
        self.store = store

    @staticmethod
    def _is_etaggable(response: Response) -> bool:
        content_type = response.headers.get("content-type", "")
        return response.status_code == 200 and "json" in content_type.lower()

    async def dispatch(self, request: Request, call_next) -> Response:
        resource_uri = request.url.path

        if request.method in SKIPPED_METHODS:
            response = await call_next(request)
            if request.method == "DELETE" and response.status_code < 400:
                self.store.remove(resource_uri)
            return response

        if_none_match = parse_if_none_match(request.headers.get("if-none-match"))
        response = await call_next(request)

        if not self._is_etaggable(response):
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        etag = generate_etag(body)
        self.store.set(resource_uri, etag)

        if request.method == "GET" and if_none_match == etag:
            logger.debug(f"ETag match for {resource_uri}, returning 304")
            return Response(status_code=304, headers={"ETag": f'"{etag}"'})

        tagged = Response(
            content=body,
            status_code=response.status_code,
            headers=dict(response.headers)
        )
        tagged.headers["ETag"] = f'"{etag}"'
        return tagged
