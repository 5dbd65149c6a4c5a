# services/user_service.py - Identity registration and application users
from sqlmodel import select

from core.db import get_async_session_context
from core.logger import get_logger
from core.security import hash_password, verify_password
from models.db_models import IdentityUser, User

logger = get_logger(__name__)

async def register_user(email: str, name: str, password: str) -> User:
    """Create the identity and its application user together."""
    email = email.lower()

    async with get_async_session_context() as session:
        existing_result = await session.exec(select(IdentityUser).where(IdentityUser.email == email))
        if existing_result.first():
            raise ValueError(f"User with email '{email}' already exists")

        identity_user = IdentityUser(email=email, hashed_password=hash_password(password))
        session.add(identity_user)
        await session.flush()  # get identity_user.id

        user = User(identity_id=identity_user.id, email=email, name=name)
        session.add(user)
        await session.commit()
        await session.refresh(user)

        logger.info(f"Registered user {user.id} (identity {identity_user.id})")
        return user

async def authenticate(email: str, password: str) -> IdentityUser:
    async with get_async_session_context() as session:
        result = await session.exec(select(IdentityUser).where(IdentityUser.email == email.lower()))
        identity_user = result.first()

    if not identity_user or not verify_password(password, identity_user.hashed_password):
        raise ValueError("Invalid credentials")

    return identity_user

async def get_identity(identity_id: str) -> IdentityUser:
    async with get_async_session_context() as session:
        result = await session.exec(select(IdentityUser).where(IdentityUser.id == identity_id))
        identity_user = result.first()

        if not identity_user:
            raise ValueError(f"Identity {identity_id} not found")

        return identity_user

async def get_user(user_id: str) -> User:
    async with get_async_session_context() as session:
        result = await session.exec(select(User).where(User.id == user_id))
        user = result.first()

        if not user:
            raise ValueError(f"User {user_id} not found")

        return user
