# api/users.py
from fastapi import APIRouter, Depends, HTTPException, Path

from core.links import LinkService, get_link_service
from core.logger import get_logger
from core.media_types import AcceptHeader, get_accept_header
from core.security import get_current_user
from models.db_models import User
from models.user_models import UserResponse

router = APIRouter()
logger = get_logger(__name__)

def _user_response(user: User, accept: AcceptHeader, link_service: LinkService) -> UserResponse:
    response = UserResponse.model_validate(user)
    if accept.include_links:
        response.links = [
            link_service.create("get_user", "self", "GET", {"user_id": user.id}, controller="users"),
            link_service.create("get_current_user", "me", "GET", controller="users")
        ]
    return response

@router.get("/me", status_code=200, name="users.get_current_user")
async def get_current_user_api(
    accept: AcceptHeader = Depends(get_accept_header),
    link_service: LinkService = Depends(get_link_service),
    current_user: User = Depends(get_current_user)
):
    return _user_response(current_user, accept, link_service)

@router.get("/{user_id}", status_code=200, name="users.get_user")
async def get_user_api(
    user_id: str = Path(...),
    accept: AcceptHeader = Depends(get_accept_header),
    link_service: LinkService = Depends(get_link_service),
    current_user: User = Depends(get_current_user)
):
    """
    Users may only read their own record.
    """
    if user_id != current_user.id:
        logger.warning(f"User {current_user.id} tried to read user {user_id}")
        raise HTTPException(status_code=403, detail="Forbidden")

    return _user_response(current_user, accept, link_service)
