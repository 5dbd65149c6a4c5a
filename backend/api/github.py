# api/github.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from core.links import LinkService, get_link_service
from core.logger import get_logger
from core.media_types import AcceptHeader, get_accept_header
from core.security import get_current_user_id
from models.common_models import CollectionResponse, LinkDto
from models.github_models import StoreGitHubAccessTokenRequest
from services.github_service import (
    get_access_token,
    get_user_events,
    get_user_profile,
    revoke_access_token,
    store_access_token
)

router = APIRouter()
logger = get_logger(__name__)

CONTROLLER = "github"

def create_links_for_profile(link_service: LinkService) -> List[LinkDto]:
    return [
        link_service.create("get_profile", "self", "GET", controller=CONTROLLER),
        link_service.create("store_access_token", "store-token", "PUT", controller=CONTROLLER),
        link_service.create("revoke_access_token", "revoke-token", "DELETE", controller=CONTROLLER)
    ]

@router.put("/personal-access-token", status_code=204, name="github.store_access_token")
async def store_access_token_api(
    request: StoreGitHubAccessTokenRequest,
    user_id: str = Depends(get_current_user_id)
):
    await store_access_token(user_id, request.access_token, request.expires_in_days)

@router.delete("/personal-access-token", status_code=204, name="github.revoke_access_token")
async def revoke_access_token_api(user_id: str = Depends(get_current_user_id)):
    await revoke_access_token(user_id)

@router.get("/profile", status_code=200, name="github.get_profile")
async def get_profile_api(
    accept: AcceptHeader = Depends(get_accept_header),
    link_service: LinkService = Depends(get_link_service),
    user_id: str = Depends(get_current_user_id)
):
    access_token = await get_access_token(user_id)
    if not access_token:
        raise HTTPException(status_code=404, detail="No GitHub access token stored")

    profile = await get_user_profile(access_token)
    if profile is None:
        raise HTTPException(status_code=404, detail="GitHub profile not available")

    if accept.include_links:
        profile.links = create_links_for_profile(link_service)
    return profile

@router.get("/events", status_code=200, name="github.get_events")
async def get_events_api(
    accept: AcceptHeader = Depends(get_accept_header),
    link_service: LinkService = Depends(get_link_service),
    user_id: str = Depends(get_current_user_id)
):
    access_token = await get_access_token(user_id)
    if not access_token:
        raise HTTPException(status_code=404, detail="No GitHub access token stored")

    profile = await get_user_profile(access_token)
    if profile is None:
        raise HTTPException(status_code=404, detail="GitHub profile not available")

    response = CollectionResponse(items=await get_user_events(profile.login, access_token))
    if accept.include_links:
        response.links = [
            link_service.create("get_events", "self", "GET", controller=CONTROLLER),
            link_service.create("get_profile", "profile", "GET", controller=CONTROLLER)
        ]
    return response
