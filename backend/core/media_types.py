# core/media_types.py - Content negotiation: hypermedia and API version from Accept
import re
from dataclasses import dataclass
from typing import Optional

from fastapi import Header

JSON = "application/json"
JSON_V1 = "application/vnd.dev-habit.v1+json"
JSON_V2 = "application/vnd.dev-habit.v2+json"
HATEOAS_JSON = "application/vnd.dev-habit.hateoas+json"
HATEOAS_JSON_V1 = "application/vnd.dev-habit.hateoas.1+json"
HATEOAS_JSON_V2 = "application/vnd.dev-habit.hateoas.2+json"

SUPPORTED_MEDIA_TYPES = (JSON, JSON_V1, JSON_V2, HATEOAS_JSON, HATEOAS_JSON_V1, HATEOAS_JSON_V2)
SUPPORTED_API_VERSIONS = (1, 2)
DEFAULT_API_VERSION = 1

_VENDOR_PATTERN = re.compile(
    r"^application/vnd\.dev-habit(?P<hateoas>\.hateoas)?(?:\.v?(?P<version>\d+))?\+json$"
)

@dataclass(frozen=True)
class AcceptHeader:
    media_type: str = JSON
    include_links: bool = False
    api_version: int = DEFAULT_API_VERSION

def parse_accept(accept: Optional[str]) -> AcceptHeader:
    """
    Pick the first supported vendor media type out of an Accept header.

    ``application/vnd.dev-habit.hateoas.2+json`` -> links on, version 2.
    Unknown or generic types fall back to plain JSON, version 1.
    """
    if not accept:
        return AcceptHeader()

    for part in accept.split(","):
        media_type = part.split(";")[0].strip().lower()
        match = _VENDOR_PATTERN.match(media_type)
        if not match:
            continue

        version = int(match.group("version")) if match.group("version") else DEFAULT_API_VERSION
        if version not in SUPPORTED_API_VERSIONS:
            continue

        return AcceptHeader(
            media_type=media_type,
            include_links=match.group("hateoas") is not None,
            api_version=version
        )

    return AcceptHeader()

def get_accept_header(accept: Optional[str] = Header(None)) -> AcceptHeader:
    """FastAPI dependency wrapping ``parse_accept``."""
    return parse_accept(accept)
