# api/entries.py
import datetime as dt
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, Response

from core.errors import InvalidQueryParameterError
from core.links import LinkService, get_link_service
from core.logger import get_logger
from core.media_types import AcceptHeader, get_accept_header
from core.idempotency import IdempotentRoute, idempotent
from core.plugin import (
    as_bad_request,
    ensure_valid_collection_query,
    get_cursor_params,
    get_pagination_params,
    get_shaping_params,
    get_sorting_params
)
from core.security import get_current_user_id
from core.shaping import DataShapingService, LINKS_KEY, get_data_shaping_service
from core.sorting import SortMappingRegistry, get_sort_mapping_registry
from models.common_models import CollectionResponse, LinkDto
from models.db_models import Entry
from models.entry_models import (
    CreateEntryBatchRequest,
    CreateEntryRequest,
    EntryDto,
    EntryFilters,
    EntrySource,
    UpdateEntryRequest
)
from services.entry_service import (
    create_entries,
    create_entry,
    delete_entry,
    get_entry,
    list_entries,
    list_entries_by_cursor,
    set_entry_archived,
    update_entry
)

router = APIRouter(route_class=IdempotentRoute)
logger = get_logger(__name__)

CONTROLLER = "entries"

def get_entry_filters(
    habit_id: Optional[str] = Query(None),
    from_date: Optional[dt.date] = Query(None),
    to_date: Optional[dt.date] = Query(None),
    source: Optional[EntrySource] = Query(None),
    is_archived: Optional[bool] = Query(None)
) -> EntryFilters:
    return EntryFilters(
        habit_id=habit_id,
        from_date=from_date,
        to_date=to_date,
        source=source,
        is_archived=is_archived
    )

# ===== LINKS =====

def create_links_for_entry(
    link_service: LinkService,
    entry_id: str,
    fields: Optional[str] = None,
    is_archived: bool = False
) -> List[LinkDto]:
    return [
        link_service.create("get_entry", "self", "GET", {"entry_id": entry_id, "fields": fields}, controller=CONTROLLER),
        link_service.create("update_entry", "update", "PUT", {"entry_id": entry_id}, controller=CONTROLLER),
        link_service.create("delete_entry", "delete", "DELETE", {"entry_id": entry_id}, controller=CONTROLLER),
        link_service.create("unarchive_entry", "un-archive", "PUT", {"entry_id": entry_id}, controller=CONTROLLER)
        if is_archived
        else link_service.create("archive_entry", "archive", "PUT", {"entry_id": entry_id}, controller=CONTROLLER)
    ]

def create_links_for_entries(
    link_service: LinkService,
    query_values: Dict[str, Any],
    page: int,
    page_size: int,
    has_previous_page: bool,
    has_next_page: bool
) -> List[LinkDto]:
    links = [
        link_service.create("get_entries", "self", "GET", {**query_values, "page": page, "page_size": page_size}, controller=CONTROLLER),
        link_service.create("create_entry", "create", "POST", controller=CONTROLLER),
        link_service.create("create_entry_batch", "create-batch", "POST", controller=CONTROLLER)
    ]

    if has_previous_page:
        links.append(link_service.create(
            "get_entries", "previous-page", "GET",
            {**query_values, "page": page - 1, "page_size": page_size},
            controller=CONTROLLER
        ))

    if has_next_page:
        links.append(link_service.create(
            "get_entries", "next-page", "GET",
            {**query_values, "page": page + 1, "page_size": page_size},
            controller=CONTROLLER
        ))

    return links

def create_links_for_cursor_page(
    link_service: LinkService,
    query_values: Dict[str, Any],
    cursor: Optional[str],
    next_cursor: Optional[str],
    limit: int
) -> List[LinkDto]:
    links = [
        link_service.create("get_entries_cursor", "self", "GET", {**query_values, "cursor": cursor, "limit": limit}, controller=CONTROLLER),
        link_service.create("create_entry", "create", "POST", controller=CONTROLLER),
        link_service.create("create_entry_batch", "create-batch", "POST", controller=CONTROLLER)
    ]

    if next_cursor is not None:
        links.append(link_service.create(
            "get_entries_cursor", "next-page", "GET",
            {**query_values, "cursor": next_cursor, "limit": limit},
            controller=CONTROLLER
        ))

    return links

def _entry_dto_with_links(entry: Entry, accept: AcceptHeader, link_service: LinkService) -> EntryDto:
    entry_dto = EntryDto.from_entry(entry)
    if accept.include_links:
        entry_dto.links = create_links_for_entry(link_service, entry_dto.id, None, entry_dto.is_archived)
    return entry_dto

# ===== COLLECTION ENDPOINTS =====

@router.get("", status_code=200, name="entries.get_entries")
async def get_entries_api(
    filters: EntryFilters = Depends(get_entry_filters),
    pagination: dict = Depends(get_pagination_params),
    sorting: dict = Depends(get_sorting_params),
    shaping: dict = Depends(get_shaping_params),
    accept: AcceptHeader = Depends(get_accept_header),
    registry: SortMappingRegistry = Depends(get_sort_mapping_registry),
    data_shaping: DataShapingService = Depends(get_data_shaping_service),
    link_service: LinkService = Depends(get_link_service),
    user_id: str = Depends(get_current_user_id)
):
    """
    Offset-paginated entries with filtering, sorting and field selection.
    """
    sort, fields = sorting["sort"], shaping["fields"]

    try:
        ensure_valid_collection_query(data_shaping, EntryDto, fields, registry, Entry, sort)
    except InvalidQueryParameterError as e:
        raise as_bad_request(e)

    result = await list_entries(
        user_id=user_id,
        filters=filters,
        sort_mappings=registry.get_mappings(EntryDto, Entry),
        page=pagination["page"],
        page_size=pagination["page_size"],
        sort=sort
    )

    links_factory = None
    if accept.include_links:
        def links_factory(entry_dto: EntryDto) -> List[LinkDto]:
            return create_links_for_entry(link_service, entry_dto.id, fields, entry_dto.is_archived)

    result.items = data_shaping.shape_collection_data(
        EntryDto,
        [EntryDto.from_entry(entry) for entry in result.items],
        fields,
        links_factory
    )

    if accept.include_links:
        query_values = {**filters.model_dump(), "sort": sort, "fields": fields}
        result.links = create_links_for_entries(
            link_service,
            query_values,
            result.page,
            result.page_size,
            result.has_previous_page,
            result.has_next_page
        )

    return result

@router.get("/cursor", status_code=200, name="entries.get_entries_cursor")
async def get_entries_cursor_api(
    filters: EntryFilters = Depends(get_entry_filters),
    cursor_params: dict = Depends(get_cursor_params),
    shaping: dict = Depends(get_shaping_params),
    accept: AcceptHeader = Depends(get_accept_header),
    data_shaping: DataShapingService = Depends(get_data_shaping_service),
    link_service: LinkService = Depends(get_link_service),
    user_id: str = Depends(get_current_user_id)
):
    """
    Cursor-paginated entries, newest first. An unreadable cursor starts from the first page.
    """
    fields = shaping["fields"]
    cursor, limit = cursor_params["cursor"], cursor_params["limit"]

    try:
        ensure_valid_collection_query(data_shaping, EntryDto, fields)
    except InvalidQueryParameterError as e:
        raise as_bad_request(e)

    entries, next_cursor = await list_entries_by_cursor(user_id, filters, cursor, limit)

    links_factory = None
    if accept.include_links:
        def links_factory(entry_dto: EntryDto) -> List[LinkDto]:
            return create_links_for_entry(link_service, entry_dto.id, fields, entry_dto.is_archived)

    response = CollectionResponse(
        items=data_shaping.shape_collection_data(
            EntryDto,
            [EntryDto.from_entry(entry) for entry in entries],
            fields,
            links_factory
        )
    )

    if accept.include_links:
        query_values = {**filters.model_dump(), "fields": fields}
        response.links = create_links_for_cursor_page(link_service, query_values, cursor, next_cursor, limit)

    return response

@router.post("", status_code=201, name="entries.create_entry")
@idempotent
async def create_entry_api(
    request: CreateEntryRequest,
    http_request: Request,
    response: Response,
    accept: AcceptHeader = Depends(get_accept_header),
    link_service: LinkService = Depends(get_link_service),
    user_id: str = Depends(get_current_user_id)
):
    """
    Log a single entry. Requires an ``Idempotency-Key`` header.
    """
    try:
        entry = await create_entry(user_id, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    response.headers["Location"] = str(http_request.url_for("entries.get_entry", entry_id=entry.id))
    return _entry_dto_with_links(entry, accept, link_service)

@router.post("/batch", status_code=201, name="entries.create_entry_batch")
async def create_entry_batch_api(
    request: CreateEntryBatchRequest,
    accept: AcceptHeader = Depends(get_accept_header),
    link_service: LinkService = Depends(get_link_service),
    user_id: str = Depends(get_current_user_id)
):
    try:
        entries = await create_entries(user_id, request.entries)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return [_entry_dto_with_links(entry, accept, link_service) for entry in entries]

# ===== SINGLE ENTRY ENDPOINTS =====

@router.get("/{entry_id}", status_code=200, name="entries.get_entry")
async def get_entry_api(
    entry_id: str = Path(...),
    shaping: dict = Depends(get_shaping_params),
    accept: AcceptHeader = Depends(get_accept_header),
    data_shaping: DataShapingService = Depends(get_data_shaping_service),
    link_service: LinkService = Depends(get_link_service),
    user_id: str = Depends(get_current_user_id)
):
    fields = shaping["fields"]

    try:
        ensure_valid_collection_query(data_shaping, EntryDto, fields)
    except InvalidQueryParameterError as e:
        raise as_bad_request(e)

    try:
        entry = await get_entry(user_id, entry_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    shaped = data_shaping.shape_data(EntryDto, EntryDto.from_entry(entry), fields)
    if accept.include_links:
        shaped[LINKS_KEY] = create_links_for_entry(link_service, entry.id, fields, entry.is_archived)
    return shaped

@router.put("/{entry_id}", status_code=204, name="entries.update_entry")
async def update_entry_api(
    request: UpdateEntryRequest,
    entry_id: str = Path(...),
    user_id: str = Depends(get_current_user_id)
):
    try:
        await update_entry(user_id, entry_id, request)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.put("/{entry_id}/archive", status_code=204, name="entries.archive_entry")
async def archive_entry_api(
    entry_id: str = Path(...),
    user_id: str = Depends(get_current_user_id)
):
    try:
        await set_entry_archived(user_id, entry_id, True)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.put("/{entry_id}/un-archive", status_code=204, name="entries.unarchive_entry")
async def unarchive_entry_api(
    entry_id: str = Path(...),
    user_id: str = Depends(get_current_user_id)
):
    try:
        await set_entry_archived(user_id, entry_id, False)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.delete("/{entry_id}", status_code=204, name="entries.delete_entry")
async def delete_entry_api(
    entry_id: str = Path(...),
    user_id: str = Depends(get_current_user_id)
):
    try:
        await delete_entry(user_id, entry_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
