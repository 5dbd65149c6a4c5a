# api/tags.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Request, Response

from core.errors import InvalidQueryParameterError
from core.links import LinkService, get_link_service
from core.logger import get_logger
from core.media_types import AcceptHeader, get_accept_header
from core.plugin import as_bad_request, ensure_valid_collection_query, get_shaping_params, get_sorting_params
from core.security import get_current_user_id
from core.shaping import DataShapingService, LINKS_KEY, get_data_shaping_service
from core.sorting import SortMappingRegistry, get_sort_mapping_registry
from models.common_models import CollectionResponse, LinkDto
from models.db_models import Tag
from models.tag_models import CreateTagRequest, TagDto, UpdateTagRequest
from services.tag_service import create_tag, delete_tag, get_tag, list_tags, update_tag

router = APIRouter()
logger = get_logger(__name__)

CONTROLLER = "tags"

def create_links_for_tag(link_service: LinkService, tag_id: str, fields: Optional[str] = None) -> List[LinkDto]:
    return [
        link_service.create("get_tag", "self", "GET", {"tag_id": tag_id, "fields": fields}, controller=CONTROLLER),
        link_service.create("update_tag", "update", "PUT", {"tag_id": tag_id}, controller=CONTROLLER),
        link_service.create("delete_tag", "delete", "DELETE", {"tag_id": tag_id}, controller=CONTROLLER)
    ]

@router.get("", status_code=200, name="tags.get_tags")
async def get_tags_api(
    sorting: dict = Depends(get_sorting_params),
    shaping: dict = Depends(get_shaping_params),
    accept: AcceptHeader = Depends(get_accept_header),
    registry: SortMappingRegistry = Depends(get_sort_mapping_registry),
    data_shaping: DataShapingService = Depends(get_data_shaping_service),
    link_service: LinkService = Depends(get_link_service),
    user_id: str = Depends(get_current_user_id)
):
    sort, fields = sorting["sort"], shaping["fields"]

    try:
        ensure_valid_collection_query(data_shaping, TagDto, fields, registry, Tag, sort)
    except InvalidQueryParameterError as e:
        raise as_bad_request(e)

    tags = await list_tags(user_id, registry.get_mappings(TagDto, Tag), sort)

    links_factory = None
    if accept.include_links:
        def links_factory(tag_dto: TagDto) -> List[LinkDto]:
            return create_links_for_tag(link_service, tag_dto.id, fields)

    response = CollectionResponse(
        items=data_shaping.shape_collection_data(TagDto, [TagDto.from_tag(t) for t in tags], fields, links_factory)
    )

    if accept.include_links:
        response.links = [
            link_service.create("get_tags", "self", "GET", {"sort": sort, "fields": fields}, controller=CONTROLLER),
            link_service.create("create_tag", "create", "POST", controller=CONTROLLER)
        ]

    return response

@router.post("", status_code=201, name="tags.create_tag")
async def create_tag_api(
    request: CreateTagRequest,
    http_request: Request,
    response: Response,
    accept: AcceptHeader = Depends(get_accept_header),
    link_service: LinkService = Depends(get_link_service),
    user_id: str = Depends(get_current_user_id)
):
    try:
        tag = await create_tag(user_id, request)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    tag_dto = TagDto.from_tag(tag)
    if accept.include_links:
        tag_dto.links = create_links_for_tag(link_service, tag.id)

    response.headers["Location"] = str(http_request.url_for("tags.get_tag", tag_id=tag.id))
    return tag_dto

@router.get("/{tag_id}", status_code=200, name="tags.get_tag")
async def get_tag_api(
    tag_id: str = Path(...),
    shaping: dict = Depends(get_shaping_params),
    accept: AcceptHeader = Depends(get_accept_header),
    data_shaping: DataShapingService = Depends(get_data_shaping_service),
    link_service: LinkService = Depends(get_link_service),
    user_id: str = Depends(get_current_user_id)
):
    fields = shaping["fields"]

    try:
        ensure_valid_collection_query(data_shaping, TagDto, fields)
    except InvalidQueryParameterError as e:
        raise as_bad_request(e)

    try:
        tag = await get_tag(user_id, tag_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    shaped = data_shaping.shape_data(TagDto, TagDto.from_tag(tag), fields)
    if accept.include_links:
        shaped[LINKS_KEY] = create_links_for_tag(link_service, tag.id, fields)
    return shaped

@router.put("/{tag_id}", status_code=204, name="tags.update_tag")
async def update_tag_api(
    request: UpdateTagRequest,
    tag_id: str = Path(...),
    user_id: str = Depends(get_current_user_id)
):
    try:
        await update_tag(user_id, tag_id, request)
    except ValueError as e:
        if "not found" in str(e).lower():
            raise HTTPException(status_code=404, detail=str(e))
        raise HTTPException(status_code=409, detail=str(e))

@router.delete("/{tag_id}", status_code=204, name="tags.delete_tag")
async def delete_tag_api(
    tag_id: str = Path(...),
    user_id: str = Depends(get_current_user_id)
):
    try:
        await delete_tag(user_id, tag_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
