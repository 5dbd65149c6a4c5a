# api/habits.py
from typing import Dict, List, Optional, Type

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, Response

from core.errors import InvalidQueryParameterError
from core.idempotency import IdempotentRoute, idempotent
from core.links import LinkService, get_link_service
from core.logger import get_logger
from core.media_types import AcceptHeader, get_accept_header
from core.plugin import (
    as_bad_request,
    ensure_valid_collection_query,
    get_pagination_params,
    get_shaping_params,
    get_sorting_params
)
from core.security import get_current_user_id
from core.shaping import DataShapingService, LINKS_KEY, get_data_shaping_service
from core.sorting import SortMappingRegistry, get_sort_mapping_registry
from models.common_models import LinkDto
from models.db_models import Habit
from models.habit_models import (
    CreateHabitRequest,
    HabitDto,
    HabitStatus,
    HabitType,
    HabitWithTagsDto,
    PatchHabitRequest,
    UpdateHabitRequest
)
from services.habit_service import (
    create_habit,
    delete_habit,
    get_habit,
    get_habit_tag_names,
    get_tag_names_for_habits,
    list_habits,
    patch_habit,
    update_habit
)

router = APIRouter(route_class=IdempotentRoute)
logger = get_logger(__name__)

CONTROLLER = "habits"

def habit_dto_type(accept: AcceptHeader) -> Type[HabitDto]:
    """Version 2 of the habit representation adds tag names."""
    return HabitWithTagsDto if accept.api_version >= 2 else HabitDto

# ===== LINKS =====

def create_links_for_habit(link_service: LinkService, habit_id: str, fields: Optional[str] = None) -> List[LinkDto]:
    return [
        link_service.create("get_habit", "self", "GET", {"habit_id": habit_id, "fields": fields}, controller=CONTROLLER),
        link_service.create("update_habit", "update", "PUT", {"habit_id": habit_id}, controller=CONTROLLER),
        link_service.create("patch_habit", "partial-update", "PATCH", {"habit_id": habit_id}, controller=CONTROLLER),
        link_service.create("delete_habit", "delete", "DELETE", {"habit_id": habit_id}, controller=CONTROLLER),
        link_service.create("upsert_habit_tags", "upsert-tags", "PUT", {"habit_id": habit_id}, controller="habit_tags")
    ]

def create_links_for_habits(
    link_service: LinkService,
    query_values: Dict,
    page: int,
    page_size: int,
    has_previous_page: bool,
    has_next_page: bool
) -> List[LinkDto]:
    links = [
        link_service.create("get_habits", "self", "GET", {**query_values, "page": page, "page_size": page_size}, controller=CONTROLLER),
        link_service.create("create_habit", "create", "POST", controller=CONTROLLER)
    ]

    if has_previous_page:
        links.append(link_service.create(
            "get_habits", "previous-page", "GET",
            {**query_values, "page": page - 1, "page_size": page_size},
            controller=CONTROLLER
        ))

    if has_next_page:
        links.append(link_service.create(
            "get_habits", "next-page", "GET",
            {**query_values, "page": page + 1, "page_size": page_size},
            controller=CONTROLLER
        ))

    return links

# ===== COLLECTION ENDPOINTS =====

@router.get("", status_code=200, name="habits.get_habits")
async def get_habits_api(
    q: Optional[str] = Query(None, description="Search in name and description"),
    type: Optional[HabitType] = Query(None),
    status: Optional[HabitStatus] = Query(None),
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
    Offset-paginated habits of the current user.
    """
    sort, fields = sorting["sort"], shaping["fields"]
    dto_type = habit_dto_type(accept)

    try:
        ensure_valid_collection_query(data_shaping, dto_type, fields, registry, Habit, sort)
    except InvalidQueryParameterError as e:
        raise as_bad_request(e)

    result = await list_habits(
        user_id=user_id,
        sort_mappings=registry.get_mappings(dto_type, Habit),
        page=pagination["page"],
        page_size=pagination["page_size"],
        sort=sort,
        search=q,
        habit_type=type,
        status=status
    )

    if dto_type is HabitWithTagsDto:
        tag_names = await get_tag_names_for_habits([habit.id for habit in result.items])
        habit_dtos = [HabitWithTagsDto.from_habit(h, tags=tag_names[h.id]) for h in result.items]
    else:
        habit_dtos = [HabitDto.from_habit(h) for h in result.items]

    links_factory = None
    if accept.include_links:
        def links_factory(habit_dto: HabitDto) -> List[LinkDto]:
            return create_links_for_habit(link_service, habit_dto.id, fields)

    result.items = data_shaping.shape_collection_data(dto_type, habit_dtos, fields, links_factory)

    if accept.include_links:
        query_values = {"q": q, "type": type, "status": status, "sort": sort, "fields": fields}
        result.links = create_links_for_habits(
            link_service,
            query_values,
            result.page,
            result.page_size,
            result.has_previous_page,
            result.has_next_page
        )

    return result

@router.post("", status_code=201, name="habits.create_habit")
@idempotent
async def create_habit_api(
    request: CreateHabitRequest,
    http_request: Request,
    response: Response,
    accept: AcceptHeader = Depends(get_accept_header),
    link_service: LinkService = Depends(get_link_service),
    user_id: str = Depends(get_current_user_id)
):
    """
    Create a habit. Requires an ``Idempotency-Key`` header.
    """
    habit = await create_habit(user_id, request)

    habit_dto = HabitDto.from_habit(habit)
    if accept.include_links:
        habit_dto.links = create_links_for_habit(link_service, habit.id)

    response.headers["Location"] = str(http_request.url_for("habits.get_habit", habit_id=habit.id))
    return habit_dto

# ===== SINGLE HABIT ENDPOINTS =====

@router.get("/{habit_id}", status_code=200, name="habits.get_habit")
async def get_habit_api(
    habit_id: str = Path(...),
    shaping: dict = Depends(get_shaping_params),
    accept: AcceptHeader = Depends(get_accept_header),
    data_shaping: DataShapingService = Depends(get_data_shaping_service),
    link_service: LinkService = Depends(get_link_service),
    user_id: str = Depends(get_current_user_id)
):
    fields = shaping["fields"]
    dto_type = habit_dto_type(accept)

    try:
        ensure_valid_collection_query(data_shaping, dto_type, fields)
    except InvalidQueryParameterError as e:
        raise as_bad_request(e)

    try:
        habit = await get_habit(user_id, habit_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if dto_type is HabitWithTagsDto:
        habit_dto = HabitWithTagsDto.from_habit(habit, tags=await get_habit_tag_names(habit.id))
    else:
        habit_dto = HabitDto.from_habit(habit)

    shaped = data_shaping.shape_data(dto_type, habit_dto, fields)
    if accept.include_links:
        shaped[LINKS_KEY] = create_links_for_habit(link_service, habit.id, fields)
    return shaped

@router.put("/{habit_id}", status_code=204, name="habits.update_habit")
async def update_habit_api(
    request: UpdateHabitRequest,
    habit_id: str = Path(...),
    user_id: str = Depends(get_current_user_id)
):
    try:
        await update_habit(user_id, habit_id, request)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.patch("/{habit_id}", status_code=204, name="habits.patch_habit")
async def patch_habit_api(
    request: PatchHabitRequest,
    habit_id: str = Path(...),
    user_id: str = Depends(get_current_user_id)
):
    try:
        await patch_habit(user_id, habit_id, request)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.delete("/{habit_id}", status_code=204, name="habits.delete_habit")
async def delete_habit_api(
    habit_id: str = Path(...),
    user_id: str = Depends(get_current_user_id)
):
    try:
        await delete_habit(user_id, habit_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
