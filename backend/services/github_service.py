# services/github_service.py - GitHub personal access tokens and the GitHub REST API
from datetime import datetime, timedelta, UTC
from typing import List, Optional

import httpx
from sqlmodel import select

from core.db import get_async_session_context
from core.logger import get_logger
from core.security import decrypt_str, encrypt_str
from core.settings import settings
from models.db_models import GitHubAccessToken
from models.github_models import GitHubEventDto, GitHubUserProfileDto

logger = get_logger(__name__)

GITHUB_API_VERSION = "2022-11-28"
EVENTS_PER_PAGE = 100

# ===== ACCESS TOKEN STORE =====

async def store_access_token(user_id: str, access_token: str, expires_in_days: int) -> GitHubAccessToken:
    """Insert or replace the user's token. Only the Fernet ciphertext is persisted."""
    encrypted_token = encrypt_str(access_token)
    expires_at = datetime.now(UTC) + timedelta(days=expires_in_days)

    async with get_async_session_context() as session:
        result = await session.exec(
            select(GitHubAccessToken).where(GitHubAccessToken.user_id == user_id)
        )
        token = result.first()

        if token:
            token.token = encrypted_token
            token.expires_at_utc = expires_at
        else:
            token = GitHubAccessToken(
                user_id=user_id,
                token=encrypted_token,
                expires_at_utc=expires_at
            )

        session.add(token)
        await session.commit()
        await session.refresh(token)

        logger.info(f"Stored GitHub access token for user_id={user_id}, expires {expires_at.isoformat()}")
        return token

async def get_access_token(user_id: str) -> Optional[str]:
    """The decrypted token, or None when none is stored or it has expired."""
    async with get_async_session_context() as session:
        result = await session.exec(
            select(GitHubAccessToken).where(GitHubAccessToken.user_id == user_id)
        )
        token = result.first()

    if not token:
        return None

    expires_at = token.expires_at_utc
    if expires_at.tzinfo is None:
        # SQLite hands datetimes back naive
        expires_at = expires_at.replace(tzinfo=UTC)
    if expires_at <= datetime.now(UTC):
        logger.info(f"GitHub access token for user_id={user_id} has expired")
        return None

    return decrypt_str(token.token)

async def revoke_access_token(user_id: str) -> None:
    async with get_async_session_context() as session:
        result = await session.exec(
            select(GitHubAccessToken).where(GitHubAccessToken.user_id == user_id)
        )
        token = result.first()

        if not token:
            return

        await session.delete(token)
        await session.commit()

        logger.info(f"Revoked GitHub access token for user_id={user_id}")

# ===== GITHUB API =====

def create_github_client(access_token: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.GITHUB_API_BASE_URL,
        headers={
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "User-Agent": "DevHabit"
        },
        timeout=10
    )

async def get_user_profile(access_token: str) -> Optional[GitHubUserProfileDto]:
    async with create_github_client(access_token) as client:
        response = await client.get("/user")

    if not response.is_success:
        logger.warning(f"Failed to get GitHub user profile. Status code: {response.status_code}")
        return None

    return GitHubUserProfileDto.model_validate(response.json())

async def get_user_events(username: str, access_token: str) -> List[GitHubEventDto]:
    if not username:
        raise ValueError("GitHub username is required")

    async with create_github_client(access_token) as client:
        response = await client.get(f"/users/{username}/events", params={"per_page": EVENTS_PER_PAGE})

    if not response.is_success:
        logger.warning(f"Failed to get GitHub user events. Status code: {response.status_code}")
        return []

    return [GitHubEventDto.model_validate(event) for event in response.json()]
