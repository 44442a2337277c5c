# reselec/core/security.py

"""
Security utilities and authentication dependencies.

- Password hashing and verification (passlib / bcrypt).
- JWT creation and decoding (python-jose).
- Current user resolution through the OAuth2 password bearer scheme.
- Permission based authorization (`require_permission`) built on `reselec.core.permissions`.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from jose import jwt, JWTError
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel.ext.asyncio.session import AsyncSession

from reselec import API_PREFIX
from reselec.core.config import settings
from reselec.core.database import get_session
from reselec.core import permissions as perms
from reselec.domains.usr import models as usr_models

logger = logging.getLogger(__name__)


# --- password hashing ---
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# --- OAuth2 scheme ---
# Swagger UI requests tokens from the form based endpoint
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{API_PREFIX}/auth/token")


# --- JWT ---
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Creates a signed access token. `data["sub"]` carries the username.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY.get_secret_value(), algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[str]:
    """Returns the token subject, or None when the token is invalid or expired."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY.get_secret_value(), algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.debug("JWT rejected: %s", e)
        return None
    return payload.get("sub")


async def get_current_user_from_token(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_session),
) -> usr_models.User:
    """
    Decodes the bearer token and loads the matching user (with role and permissions).
    """
    # imported here, the usr crud module imports this one for password hashing
    from reselec.domains.usr import crud as usr_crud

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    username = decode_access_token(token)
    if username is None:
        raise credentials_exception

    user = await usr_crud.user.get_by_username(db, username=username)
    if user is None:
        raise credentials_exception
    return user


def get_current_active_user(
    current_user: usr_models.User = Depends(get_current_user_from_token),
) -> usr_models.User:
    """
    Current authenticated user; disabled accounts get 400 Bad Request.
    """
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    return current_user


def get_current_admin_user(
    current_user: usr_models.User = Depends(get_current_active_user),
) -> usr_models.User:
    """
    Current user when it holds the Admin role, 403 Forbidden otherwise.
    """
    if not perms.is_admin(current_user):
        logger.info("User '%s' denied: Admin role required", current_user.username)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions. Admin role required."
        )
    return current_user


def require_permission(permission: str) -> Callable[..., usr_models.User]:
    """
    Dependency factory: `Depends(require_permission("clients:read"))` returns the current
    user when it holds the permission (or the Admin role), and raises 403 otherwise.
    """
    perms.parse_permission(permission)

    def _checker(current_user: usr_models.User = Depends(get_current_active_user)) -> usr_models.User:
        if not perms.has_permission(current_user, permission):
            logger.info("User '%s' denied: missing %s", current_user.username, permission)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {permission}",
            )
        return current_user

    return _checker
