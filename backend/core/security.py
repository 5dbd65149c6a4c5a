# core/security.py - Password hashing, JWTs, token encryption and the current user
import os
from datetime import datetime, timedelta, UTC

from cryptography.fernet import Fernet
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from core.db import get_async_session
from core.logger import user_id_ctx_var
from core.settings import settings
from models.db_models import User

# export environment variables
TOKEN_ALGORITHM = settings.TOKEN_ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES
ACCESS_TOKEN_SECRET_KEY = settings.ACCESS_TOKEN_SECRET_KEY
REFRESH_TOKEN_EXPIRE_MINUTES = settings.REFRESH_TOKEN_EXPIRE_MINUTES
REFRESH_TOKEN_SECRET_KEY = settings.REFRESH_TOKEN_SECRET_KEY

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# ===== ENCRYPTION AT REST =====

def load_fernet_key() -> bytes:
    """``FERNET_KEY`` from settings; otherwise a key file, created on first use (dev only)."""
    if settings.FERNET_KEY:
        return settings.FERNET_KEY.encode()

    key_file = settings.FERNET_KEY_FILE
    if os.path.exists(key_file):
        with open(key_file, "rb") as f:
            return f.read()

    key = Fernet.generate_key()
    with open(key_file, "wb") as f:
        f.write(key)
    return key

fernet = Fernet(load_fernet_key())

def encrypt_str(raw_str: str) -> str:
    return fernet.encrypt(raw_str.encode()).decode()

def decrypt_str(encrypted_str: str) -> str:
    return fernet.decrypt(encrypted_str.encode()).decode()

# ===== PASSWORDS =====

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, hashed_password: str) -> bool:
    return pwd_context.verify(password, hashed_password)

# ===== JWT =====

def create_token(claims: dict, expires_in_minutes: int, secret_key: str) -> str:
    expires_at = datetime.now(UTC) + timedelta(minutes=expires_in_minutes)
    return jwt.encode({**claims, "exp": expires_at}, secret_key, algorithm=TOKEN_ALGORITHM)

def create_access_token(claims: dict) -> str:
    return create_token(claims, ACCESS_TOKEN_EXPIRE_MINUTES, ACCESS_TOKEN_SECRET_KEY)

def create_refresh_token(claims: dict) -> str:
    return create_token(claims, REFRESH_TOKEN_EXPIRE_MINUTES, REFRESH_TOKEN_SECRET_KEY)

def decode_access_token(token: str) -> dict:
    return jwt.decode(token, ACCESS_TOKEN_SECRET_KEY, algorithms=[TOKEN_ALGORITHM])

def decode_refresh_token(token: str) -> dict:
    return jwt.decode(token, REFRESH_TOKEN_SECRET_KEY, algorithms=[TOKEN_ALGORITHM])

# ===== CURRENT USER =====

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_async_session)
) -> User:
    """Resolve the bearer token's identity (``sub``) to its application user."""
    try:
        identity_id = decode_access_token(token).get("sub")
    except JWTError:
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not identity_id:
        raise HTTPException(status_code=401, detail="Unauthorized")

    result = await session.exec(select(User).where(User.identity_id == identity_id))
    user = result.first()

    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")

    user_id_ctx_var.set(user.id)
    return user

async def get_current_user_id(user: User = Depends(get_current_user)) -> str:
    return user.id
