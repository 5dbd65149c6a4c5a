# core/plugin.py - API layer helpers for sorting, field selection and pagination
from typing import Optional, Type

from fastapi import HTTPException, Query

from core.errors import InvalidQueryParameterError
from core.shaping import DataShapingService, ShapedModel
from core.sorting import SortMappingRegistry

MAX_PAGE_SIZE = 100

# Standard query parameters (reusable)
def get_pagination_params(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(10, ge=1, le=MAX_PAGE_SIZE, description="Items per page")
):
    return {"page": page, "page_size": page_size}

def get_cursor_params(
    cursor: Optional[str] = Query(None, description="Opaque cursor from a previous next-page link"),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE, description="Items per page")
):
    return {"cursor": cursor, "limit": limit}

def get_sorting_params(
    sort: Optional[str] = Query(None, description="Comma separated 'field [asc|desc]' list")
):
    return {"sort": sort}

def get_shaping_params(
    fields: Optional[str] = Query(None, description="Comma separated list of fields to return")
):
    return {"fields": fields}

def ensure_valid_collection_query(
    shaping: DataShapingService,
    dto_type: Type[ShapedModel],
    fields: Optional[str],
    registry: Optional[SortMappingRegistry] = None,
    entity_type: Optional[type] = None,
    sort: Optional[str] = None
) -> None:
    """Reject unknown sort or shaping fields before any query runs."""
    if registry is not None and not registry.validate_sort(dto_type, entity_type, sort):
        raise InvalidQueryParameterError(
            "sort", sort, f"The provided sort parameter isn't valid: `{sort}`"
        )

    if not shaping.validate(dto_type, fields):
        raise InvalidQueryParameterError(
            "fields", fields, f"The provided data shaping fields aren't valid: `{fields}`"
        )

def as_bad_request(error: InvalidQueryParameterError) -> HTTPException:
    return HTTPException(status_code=400, detail=str(error))
