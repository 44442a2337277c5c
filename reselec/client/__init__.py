# reselec/client/__init__.py

"""
Async Python SDK for the Reselec API, used by front-ends and scripts.

- `config.py`: client settings (RESELEC_* environment variables).
- `errors.py`: exception hierarchy mapped from HTTP failures.
- `notifications.py`: transient user notifications (toasts).
- `api.py`: `ApiClient`, the httpx based transport with bearer token injection.
- `session.py`: `AuthSession`, the authentication state store and its persistence.
- `listing.py`: list/filter/sort/paginate controller for collection screens.
- `interventions.py`: intervention records and status actions.
- `offline.py`: persisted queue of actions made while the API was unreachable.

The backend settings are never imported from here.
"""

from .api import ApiClient
from .config import ClientSettings
from .errors import (
    ApiError,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    ReselecClientError,
    TransitionInProgressError,
    ValidationError,
)
from .interventions import InterventionController, InterventionView
from .listing import ListController, ListQuery
from .notifications import Notification, Notifier
from .offline import OfflineQueue, PendingAction, ReplayReport
from .session import AuthSession, RoleInfo, SessionState, SessionStatus, SessionStore, SessionUser

__all__ = [
    "ApiClient",
    "ClientSettings",
    "ApiError",
    "AuthenticationError",
    "NetworkError",
    "NotFoundError",
    "PermissionDeniedError",
    "ReselecClientError",
    "TransitionInProgressError",
    "ValidationError",
    "InterventionController",
    "InterventionView",
    "ListController",
    "ListQuery",
    "Notification",
    "Notifier",
    "OfflineQueue",
    "PendingAction",
    "ReplayReport",
    "AuthSession",
    "RoleInfo",
    "SessionState",
    "SessionStatus",
    "SessionStore",
    "SessionUser",
]
