# core/sorting.py - Client-driven sorting through a whitelist of sort mappings
"""
Clients sort with ``?sort=name desc,created_at_utc``. Each public sort field
maps onto an entity column; nothing the client sends is ever placed in SQL
text. A sort expression is first turned into a list of ``SortKey`` values and
only then into SQLAlchemy ``order_by`` clauses.

Why ``reverse``? A DTO may expose a derived value whose natural order runs
opposite to the stored column (``age`` vs ``date_of_birth``): sorting ``age
desc`` means sorting ``date_of_birth asc``.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Type

from fastapi import Request
from sqlalchemy import inspect as sa_inspect
from sqlmodel.sql.expression import SelectOfScalar

from core.errors import ConfigurationError
from core.logger import get_logger

logger = get_logger(__name__)

@dataclass(frozen=True)
class SortMapping:
    sort_field: str  # name exposed to clients
    property_name: str  # entity column
    reverse: bool = False

@dataclass(frozen=True)
class SortKey:
    field_path: str
    descending: bool

def _split_tokens(sort: str) -> List[str]:
    return [token.strip() for token in sort.split(",") if token.strip()]

def parse_sort(sort: Optional[str]) -> List[Tuple[str, bool]]:
    """``"name desc, status"`` -> ``[("name", True), ("status", False)]``."""
    if not sort:
        return []

    parsed = []
    for token in _split_tokens(sort):
        parts = token.split()
        is_descending = len(parts) > 1 and parts[1].lower() == "desc"
        parsed.append((parts[0], is_descending))
    return parsed

def find_mapping(mappings: Sequence[SortMapping], sort_field: str) -> Optional[SortMapping]:
    wanted = sort_field.lower()
    return next((m for m in mappings if m.sort_field.lower() == wanted), None)

class SortMappingRegistry:
    """(DTO type, entity type) -> sort mappings. Filled at startup, then frozen."""

    def __init__(self):
        self._definitions: Dict[Tuple[type, type], Tuple[SortMapping, ...]] = {}
        self._frozen = False

    def register(self, dto_type: type, entity_type: type, mappings: Iterable[SortMapping]) -> None:
        if self._frozen:
            raise ConfigurationError("Sort mappings can only be registered during startup")

        key = (dto_type, entity_type)
        if key in self._definitions:
            raise ConfigurationError(
                f"The mapping from '{dto_type.__name__}' into '{entity_type.__name__}' is already registered"
            )

        mappings = tuple(mappings)
        seen = set()
        for mapping in mappings:
            if mapping.sort_field.lower() in seen:
                raise ConfigurationError(
                    f"Duplicate sort field '{mapping.sort_field}' for '{dto_type.__name__}'"
                )
            seen.add(mapping.sort_field.lower())

        self._definitions[key] = mappings
        logger.debug(f"Registered {len(mappings)} sort mappings for {dto_type.__name__} -> {entity_type.__name__}")

    def freeze(self) -> "SortMappingRegistry":
        self._frozen = True
        return self

    def get_mappings(self, dto_type: type, entity_type: type) -> Tuple[SortMapping, ...]:
        mappings = self._definitions.get((dto_type, entity_type))
        if mappings is None:
            raise ConfigurationError(
                f"The mapping from '{dto_type.__name__}' into '{entity_type.__name__}' isn't defined"
            )
        return mappings

    def validate_sort(self, dto_type: type, entity_type: type, sort: Optional[str]) -> bool:
        if not sort or not sort.strip():
            return True

        mappings = self.get_mappings(dto_type, entity_type)
        sort_fields = [token.split()[0] for token in _split_tokens(sort)]
        return all(find_mapping(mappings, field) is not None for field in sort_fields)

def get_sort_mapping_registry(request: Request) -> SortMappingRegistry:
    """FastAPI dependency: the registry built by the application at startup."""
    return request.app.state.sort_mapping_registry

def build_sort_keys(
    sort: Optional[str],
    mappings: Sequence[SortMapping],
    default_order_by: str = "id"
) -> List[SortKey]:
    parsed = parse_sort(sort)
    if not parsed:
        return [SortKey(default_order_by, False)]

    keys = []
    for sort_field, is_descending in parsed:
        mapping = find_mapping(mappings, sort_field)
        if mapping is None:
            # Reaching here with an unmapped field means validate_sort was skipped
            raise ConfigurationError(f"No sort mapping for field '{sort_field}'")
        keys.append(SortKey(mapping.property_name, is_descending != mapping.reverse))
    return keys

def order_by_clauses(entity: type, keys: Sequence[SortKey]) -> list:
    columns = sa_inspect(entity).columns
    clauses = []
    for key in keys:
        if key.field_path not in columns:
            raise ConfigurationError(
                f"Sort property '{key.field_path}' is not a column of '{entity.__name__}'"
            )
        column = getattr(entity, key.field_path)
        clauses.append(column.desc() if key.descending else column.asc())
    return clauses

def apply_sort(
    query: SelectOfScalar,
    entity: type,
    sort: Optional[str],
    mappings: Sequence[SortMapping],
    default_order_by: str = "id"
) -> SelectOfScalar:
    """Order ``query`` by the client's sort expression, or by ``default_order_by`` ascending."""
    keys = build_sort_keys(sort, mappings, default_order_by)
    return query.order_by(*order_by_clauses(entity, keys))
