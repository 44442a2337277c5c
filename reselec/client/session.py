# reselec/client/session.py

"""
Authentication session of the SDK.

`AuthSession` is an explicit store with a defined lifecycle:

    UNINITIALIZED --initialize()--> LOADING --> READY

Once READY the session is either authenticated (token and user present) or not.
Every change replaces the immutable `SessionState` as a whole. A 401 answered to an
authenticated request moves the session to unauthenticated (`handle_unauthorized`).

Restoring a persisted session is optimistic: the token is trusted until the API
rejects it, unless `initialize(verify=True)` is used.
"""

import json
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError as SchemaError, field_validator

from reselec.core import permissions as perms
from .api import ApiClient
from .errors import AuthenticationError, NetworkError, ReselecClientError
from .notifications import Notifier

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    LOADING = "LOADING"
    READY = "READY"


class RoleInfo(BaseModel):
    """Role of the current user, always structured; permissions are "module:action" strings."""
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    name: str
    description: Optional[str] = None
    permissions: Tuple[str, ...] = ()

    @field_validator("permissions", mode="before")
    @classmethod
    def _flatten_permissions(cls, value: Any) -> Tuple[str, ...]:
        return tuple(perms.code_of(p) for p in value or ())


class SessionUser(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    name: str
    username: str
    is_active: bool = True
    section: Optional[Dict[str, Any]] = None
    role: Optional[RoleInfo] = None

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> Any:
        # older payloads carry the role name only
        if isinstance(value, str):
            return {"name": value}
        return value

    @property
    def permissions(self) -> frozenset:
        return perms.resolve_permissions(self)


class SessionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: SessionStatus = SessionStatus.UNINITIALIZED
    token: Optional[str] = None
    user: Optional[SessionUser] = None
    error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.user is not None

    @property
    def is_loading(self) -> bool:
        return self.status == SessionStatus.LOADING


class SessionStore:
    """
    Persists `{"token", "user"}` as a JSON file.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, e)
            return None
        if not isinstance(data, dict) or not data.get("token") or not data.get("user"):
            return None
        return data

    def save(self, token: str, user: SessionUser) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"token": token, "user": user.model_dump(mode="json")}
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


Listener = Callable[[SessionState], None]


class AuthSession:
    def __init__(self, api: ApiClient, store: Optional[SessionStore] = None, notifier: Optional[Notifier] = None):
        self.api = api
        self.store = store
        self.notifier = notifier or api.notifier
        self._state = SessionState()
        self._listeners: List[Listener] = []
        api.add_unauthorized_handler(self.handle_unauthorized)

    # --- state ---
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def user(self) -> Optional[SessionUser]:
        return self._state.user

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _replace(self, state: SessionState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _update(self, **changes: Any) -> None:
        self._replace(self._state.model_copy(update=changes))

    def _authenticate(self, token: str, user: SessionUser) -> None:
        self.api.set_token(token)
        if self.store is not None:
            self.store.save(token, user)
        self._replace(SessionState(status=SessionStatus.READY, token=token, user=user))

    def _sign_out(self, error: Optional[str] = None) -> None:
        self.api.set_token(None)
        if self.store is not None:
            self.store.clear()
        self._replace(SessionState(status=SessionStatus.READY, error=error))

    # --- lifecycle ---
    async def initialize(self, verify: bool = False) -> SessionState:
        """
        Restores the persisted session. With `verify`, the token is checked against
        the profile endpoint; only a 401 ends the restored session, any other failure keeps it.
        """
        if self._state.status != SessionStatus.UNINITIALIZED:
            return self._state
        self._update(status=SessionStatus.LOADING)

        saved = self.store.load() if self.store is not None else None
        if saved is None:
            self._replace(SessionState(status=SessionStatus.READY))
            return self._state

        try:
            user = SessionUser.model_validate(saved["user"])
        except SchemaError as e:
            logger.warning("Discarding persisted session: %s", e)
            self._sign_out()
            return self._state

        self._authenticate(saved["token"], user)
        logger.info("Session restored for '%s'", user.username)

        if verify:
            try:
                await self.refresh_profile(silent=True)
            except AuthenticationError:
                logger.info("Persisted token rejected by the server")
            except NetworkError:
                logger.info("Server unreachable, keeping the restored session")
            except ReselecClientError as e:
                logger.warning("Profile check failed, keeping the restored session: %s", e)
        return self._state

    # --- authentication ---
    async def login(self, username: str, password: str) -> SessionUser:
        try:
            data = await self.api.login(username, password)
        except ReselecClientError as e:
            self._update(status=SessionStatus.READY, error=str(getattr(e, "message", e)))
            raise
        return self._accept_auth_response(data)

    async def register(self, name: str, username: str, password: str, section_id: Optional[int] = None) -> SessionUser:
        try:
            data = await self.api.register(name=name, username=username, password=password, section_id=section_id)
        except ReselecClientError as e:
            self._update(status=SessionStatus.READY, error=str(getattr(e, "message", e)))
            raise
        return self._accept_auth_response(data)

    def _accept_auth_response(self, data: Dict[str, Any]) -> SessionUser:
        user = SessionUser.model_validate(data["user"])
        self._authenticate(data["token"], user)
        logger.info("User '%s' signed in", user.username)
        return user

    async def logout(self) -> None:
        """Signs out locally; the server is told when reachable."""
        if self._state.token:
            try:
                await self.api.logout(silent=True)
            except ReselecClientError as e:
                logger.info("Logout call failed, signing out locally: %s", e)
        self._sign_out()

    async def handle_unauthorized(self) -> None:
        """Authenticated -> unauthenticated, after the API rejected the token."""
        if not self._state.is_authenticated:
            return
        logger.info("Token rejected, signing out '%s'", self._state.user.username)
        self._sign_out(error="Session expired")
        self.notifier.warning("Your session has expired. Please sign in again.")

    # --- profile ---
    async def refresh_profile(self, silent: bool = False) -> SessionUser:
        data = await self.api.get_profile(silent=silent)
        user = SessionUser.model_validate(data)
        self._authenticate(self._state.token, user)
        return user

    async def update_profile(self, **fields: Any) -> SessionUser:
        data = await self.api.update_profile(**fields)
        user = SessionUser.model_validate(data)
        self._authenticate(self._state.token, user)
        return user

    async def change_password(self, current_password: str, new_password: str) -> None:
        await self.api.change_password(current_password, new_password)
        self.notifier.success("Password changed.")

    # --- authorization ---
    def has_permission(self, permission: str) -> bool:
        return perms.has_permission(self._state.user, permission)

    def has_role(self, role_name: str) -> bool:
        return perms.has_role(self._state.user, role_name)
