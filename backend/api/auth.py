# api/auth.py
from fastapi import APIRouter, HTTPException, Body
from jose import JWTError

from core.logger import get_logger
from core.security import create_access_token, create_refresh_token, decode_refresh_token
from models.user_models import RegisterUserRequest, LoginUserRequest, Token, TokenRefreshRequest
from services.user_service import authenticate, get_identity, register_user

logger = get_logger(__name__)

router = APIRouter()

def _issue_tokens(identity_id: str, email: str, role: str) -> dict:
    claims = {"sub": identity_id, "email": email, "role": role}
    return {
        "access_token": create_access_token(claims),
        "refresh_token": create_refresh_token(claims),
        "token_type": "bearer"
    }

@router.post("/register", status_code=200, response_model=Token)
async def register(user: RegisterUserRequest):
    try:
        created = await register_user(user.email, user.name, user.password)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    logger.info(f"Registered user {created.id}")
    return _issue_tokens(created.identity_id, created.email, "member")

@router.post("/login", status_code=200, response_model=Token)
async def login(user: LoginUserRequest):
    try:
        identity_user = await authenticate(user.email, user.password)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return _issue_tokens(identity_user.id, identity_user.email, identity_user.role)

@router.post("/refresh", status_code=200, response_model=Token)
async def refresh_token(data: TokenRefreshRequest = Body(...)):
    try:
        payload = decode_refresh_token(data.refresh_token)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    try:
        identity_user = await get_identity(subject)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    new_access_token = create_access_token(
        {"sub": identity_user.id, "email": identity_user.email, "role": identity_user.role}
    )
    return {
        "access_token": new_access_token,
        "refresh_token": data.refresh_token,
        "token_type": "bearer"
    }
