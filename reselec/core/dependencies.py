# reselec/core/dependencies.py

"""
Dependency-injection helpers used by the routers.

- Database session (`get_db_session`).
- Current user resolution and authorization, re-exported from `reselec.core.security`.
"""

from typing import AsyncGenerator

from fastapi import Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from reselec.core.database import get_session as get_main_app_session

# flake8: noqa
from reselec.core.security import (
    create_access_token,
    get_password_hash,
    verify_password,
    oauth2_scheme,
    get_current_user_from_token,
    get_current_active_user,
    get_current_admin_user,
    require_permission,
)


async def get_db_session(
    session: AsyncSession = Depends(get_main_app_session),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session. It resolves through `reselec.core.database.get_session`, so the
    routers and the current-user dependency share the same session within a request.
    """
    yield session
