# core/shaping.py - Data shaping: clients pick which DTO fields come back
"""
Sparse field selection for API responses.

Example::

    GET /habits?fields=id,name,status

Every shapeable DTO extends ``ShapedModel``. Its declared fields form the
whitelist a ``fields`` parameter is checked against, and the accessor table
built from them is what copies values into the shaped dict.
"""
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Type

from pydantic import BaseModel

from models.common_models import LinkDto

LINKS_KEY = "links"

Accessor = Callable[[Any], Any]
LinksFactory = Callable[[Any], List[LinkDto]]

def _make_accessor(field_name: str) -> Accessor:
    def accessor(record: Any) -> Any:
        return getattr(record, field_name)
    return accessor

class ShapedModel(BaseModel):
    """Base for DTOs that can be returned through data shaping."""

    @classmethod
    def shape_fields(cls) -> Dict[str, Accessor]:
        """
        Field name -> getter, in declaration order.

        ``links`` is left out: links are attached after shaping, so ``fields=links`` is a bad request.
        """
        return {
            name: _make_accessor(name)
            for name in cls.model_fields
            if name != LINKS_KEY
        }

def parse_fields(fields: Optional[str]) -> Set[str]:
    """Split a comma separated field list into a lower-cased set; empty means 'all fields'."""
    if not fields:
        return set()
    return {f.strip().lower() for f in fields.split(",") if f.strip()}

class DataShapingService:
    """Validates ``fields`` parameters and projects DTOs into dicts."""

    def __init__(self):
        # Populated lazily, one entry per shape type
        self._accessor_cache: Dict[Type[ShapedModel], Dict[str, Accessor]] = {}

    def get_accessors(self, shape_type: Type[ShapedModel]) -> Dict[str, Accessor]:
        accessors = self._accessor_cache.get(shape_type)
        if accessors is None:
            # setdefault is an atomic insert-if-absent; a lost race keeps the first table
            accessors = self._accessor_cache.setdefault(shape_type, shape_type.shape_fields())
        return accessors

    def validate(self, shape_type: Type[ShapedModel], fields: Optional[str]) -> bool:
        if not fields or not fields.strip():
            return True

        declared = {name.lower() for name in self.get_accessors(shape_type)}
        return all(field in declared for field in parse_fields(fields))

    def _select(self, shape_type: Type[ShapedModel], fields: Optional[str]) -> Dict[str, Accessor]:
        accessors = self.get_accessors(shape_type)
        requested = parse_fields(fields)
        if not requested:
            return accessors
        return {name: get for name, get in accessors.items() if name.lower() in requested}

    def shape_data(
        self,
        shape_type: Type[ShapedModel],
        record: Optional[Any],
        fields: Optional[str]
    ) -> Dict[str, Any]:
        """Shape a single record. A missing record shapes to an empty dict."""
        if record is None:
            return {}
        selected = self._select(shape_type, fields)
        return {name: get(record) for name, get in selected.items()}

    def shape_collection_data(
        self,
        shape_type: Type[ShapedModel],
        records: Iterable[Any],
        fields: Optional[str],
        links_factory: Optional[LinksFactory] = None
    ) -> List[Dict[str, Any]]:
        """Shape many records, optionally attaching per-record links built from the unshaped record."""
        selected = self._select(shape_type, fields)
        shaped_records = []

        for record in records:
            shaped = {name: get(record) for name, get in selected.items()}
            if links_factory is not None:
                shaped[LINKS_KEY] = links_factory(record)
            shaped_records.append(shaped)

        return shaped_records

# One service per process; its cache only ever grows by one entry per DTO type
data_shaping_service = DataShapingService()

def get_data_shaping_service() -> DataShapingService:
    return data_shaping_service
