# reselec/client/api.py

"""
HTTP access to the Reselec API.

`ApiClient` wraps an `httpx.AsyncClient`: it adds the bearer token, turns error
responses into the exceptions of `reselec.client.errors`, shows a notification for
each failure (unless the call is `silent`) and runs the registered unauthorized
handlers when a request that carried a token is answered with 401.
"""

import functools
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union, TYPE_CHECKING

import httpx

from reselec.domains.itv.workflow import InterventionStatus, to_status
from .config import ClientSettings
from .errors import (
    ApiError,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    error_for_response,
)
from .notifications import Notifier

if TYPE_CHECKING:
    from .offline import OfflineQueue

logger = logging.getLogger(__name__)

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

UnauthorizedHandler = Callable[[], Union[None, Awaitable[None]]]


class ApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        notifier: Optional[Notifier] = None,
        offline_queue: Optional["OfflineQueue"] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        settings: Optional[ClientSettings] = None,
    ):
        settings = settings or ClientSettings()
        self.base_url = (base_url or settings.API_URL).rstrip("/")
        self.notifier = notifier or Notifier()
        self.offline_queue = offline_queue
        self._token = token
        self._unauthorized_handlers: List[UnauthorizedHandler] = []
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.TIMEOUT,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    # --- lifecycle ---
    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # --- token ---
    @property
    def token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: Optional[str]) -> None:
        self._token = token

    def add_unauthorized_handler(self, handler: UnauthorizedHandler) -> None:
        """`handler` runs (sync or async) when an authenticated request gets 401."""
        self._unauthorized_handlers.append(handler)

    async def _run_unauthorized_handlers(self) -> None:
        for handler in list(self._unauthorized_handlers):
            result = handler()
            if inspect.isawaitable(result):
                await result

    # --- core request ---
    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        data: Optional[Dict[str, Any]] = None,
        silent: bool = False,
        queue_if_offline: bool = False,
        retryable: bool = True,
    ) -> Any:
        """
        Sends one request and returns the decoded JSON body (None for empty bodies).

        With `queue_if_offline`, a mutating request that cannot reach the API is stored
        in the offline queue instead of failing; None is returned in that case.
        """
        method = method.upper()
        headers = {}
        sent_token = self._token
        if sent_token:
            headers["Authorization"] = f"Bearer {sent_token}"

        try:
            response = await self._client.request(
                method, path, params=params, json=json, data=data, headers=headers
            )
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            if queue_if_offline and self.offline_queue is not None and method in MUTATING_METHODS:
                self.offline_queue.enqueue(method, path, json)
                if not silent:
                    self.notifier.info("You are offline: the change will be sent when the connection is back.")
                return None
            error = NetworkError(f"Cannot reach the server ({e.__class__.__name__})")
            if not silent:
                retry = None
                if retryable:
                    retry = functools.partial(self.request, method, path, params=params, json=json, data=data)
                self.notifier.error("Network error: the server could not be reached.", retry=retry)
            raise error from e

        if response.is_success:
            if not response.content:
                return None
            return response.json()

        try:
            payload = response.json()
        except ValueError:
            payload = response.text
        error = error_for_response(response.status_code, payload)
        logger.info("%s %s -> %d %s", method, path, response.status_code, error.message)

        # a 401 for a token that was replaced meanwhile says nothing about the current one
        if isinstance(error, AuthenticationError) and sent_token and sent_token == self._token:
            await self._run_unauthorized_handlers()
        if not silent:
            self._notify_error(error)
        raise error

    def _notify_error(self, error: ApiError) -> None:
        if isinstance(error, AuthenticationError):
            self.notifier.warning(error.message)
        elif isinstance(error, PermissionDeniedError):
            self.notifier.error("Access denied: you do not have the permission required for this action.")
        elif isinstance(error, NotFoundError):
            self.notifier.error(error.message)
        elif isinstance(error, ValidationError):
            self.notifier.error(error.message)
        else:
            self.notifier.error(f"Unexpected error ({error.status_code}): {error.message}")

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)

    # --- authentication ---
    async def login(self, username: str, password: str) -> Dict[str, Any]:
        return await self.post("/auth/login", json={"username": username, "password": password})

    async def register(self, **fields: Any) -> Dict[str, Any]:
        return await self.post("/auth/register", json=fields)

    async def get_profile(self, **kwargs: Any) -> Dict[str, Any]:
        return await self.get("/auth/profile", **kwargs)

    async def update_profile(self, **fields: Any) -> Dict[str, Any]:
        return await self.put("/auth/profile", json=fields)

    async def change_password(self, current_password: str, new_password: str) -> Dict[str, Any]:
        return await self.post(
            "/auth/change-password",
            json={"current_password": current_password, "new_password": new_password},
        )

    async def logout(self, **kwargs: Any) -> Any:
        return await self.post("/auth/logout", **kwargs)

    # --- collections ---
    async def list_resource(self, resource: str, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Dict[str, Any]:
        return await self.get(f"/{resource}", params=params, **kwargs)

    async def get_resource(self, resource: str, item_id: int, **kwargs: Any) -> Dict[str, Any]:
        return await self.get(f"/{resource}/{item_id}", **kwargs)

    async def create_resource(
        self, resource: str, body: Dict[str, Any], *, queue_if_offline: bool = False
    ) -> Optional[Dict[str, Any]]:
        return await self.post(f"/{resource}", json=body, queue_if_offline=queue_if_offline)

    async def update_resource(
        self, resource: str, item_id: int, body: Dict[str, Any], *, queue_if_offline: bool = False
    ) -> Optional[Dict[str, Any]]:
        return await self.put(f"/{resource}/{item_id}", json=body, queue_if_offline=queue_if_offline)

    async def delete_resource(self, resource: str, item_id: int, *, queue_if_offline: bool = False) -> None:
        await self.delete(f"/{resource}/{item_id}", queue_if_offline=queue_if_offline)

    # --- interventions ---
    async def update_intervention_status(
        self,
        intervention_id: int,
        status: Union[InterventionStatus, str],
        reason: Optional[str] = None,
        *,
        silent: bool = False,
    ) -> Dict[str, Any]:
        """
        Calls the status endpoint. Never queued while offline and never retried.
        """
        body: Dict[str, Any] = {"status": to_status(status).value}
        if reason:
            body["reason"] = reason
        return await self.patch(
            f"/interventions/{intervention_id}/status", json=body, silent=silent, retryable=False
        )
