# core/links.py - HATEOAS link generation
from typing import Any, Dict, Mapping, Optional, Protocol

from fastapi import Request
from starlette.routing import NoMatchFound

from core.errors import ConfigurationError
from models.common_models import LinkDto

class RouteResolver(Protocol):
    def resolve(self, endpoint_name: str, values: Mapping[str, Any]) -> str:
        """Return an absolute URI for the named endpoint or raise ``LookupError``."""
        ...

def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)

class StarletteRouteResolver:
    """
    Resolves route names registered on the FastAPI app into absolute URLs.

    Values named after a path parameter of the route fill the path, the rest
    become query parameters; ``None`` values are left out.
    """

    def __init__(self, request: Request):
        self.request = request

    def _find_path_params(self, endpoint_name: str) -> set:
        for route in self.request.app.router.routes:
            if getattr(route, "name", None) == endpoint_name:
                return set(getattr(route, "param_convertors", {}))
        raise LookupError(f"No route named '{endpoint_name}'")

    def resolve(self, endpoint_name: str, values: Mapping[str, Any]) -> str:
        path_names = self._find_path_params(endpoint_name)

        try:
            url = self.request.url_for(
                endpoint_name,
                **{name: str(value) for name, value in values.items() if name in path_names}
            )
        except NoMatchFound as e:
            raise LookupError(str(e)) from e

        query = {
            name: _query_value(value)
            for name, value in values.items()
            if name not in path_names and value is not None
        }
        if query:
            url = url.include_query_params(**query)
        return str(url)

class LinkService:
    """Builds ``LinkDto`` values. Only call it when the client asked for hypermedia."""

    def __init__(self, resolver: RouteResolver):
        self.resolver = resolver

    def create(
        self,
        endpoint_name: str,
        rel: str,
        method: str,
        values: Optional[Dict[str, Any]] = None,
        controller: Optional[str] = None
    ) -> LinkDto:
        route_name = f"{controller}.{endpoint_name}" if controller else endpoint_name

        try:
            href = self.resolver.resolve(route_name, values or {})
        except LookupError as e:
            raise ConfigurationError(f"Invalid endpoint name provided: '{route_name}'") from e

        return LinkDto(href=href, rel=rel, method=method)

def get_link_service(request: Request) -> LinkService:
    """FastAPI dependency: link service bound to the current request."""
    return LinkService(StarletteRouteResolver(request))
