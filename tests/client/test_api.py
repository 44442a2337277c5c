# tests/client/test_api.py

"""
Tests of `ApiClient`, the error mapping and the notifier.
"""

import httpx
import pytest

from reselec.client import (
    ApiError,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    Notifier,
    PermissionDeniedError,
    ValidationError,
)
from reselec.client.errors import error_for_response, field_errors_from_detail


#  =============================================================================
#  1. error mapping
#  =============================================================================

def test_field_errors_from_validation_detail():
    detail = [
        {"loc": ["body", "password"], "msg": "String should have at least 6 characters", "type": "string_too_short"},
        {"loc": ["body", "address", "city"], "msg": "Field required", "type": "missing"},
        {"loc": ["query", "limit"], "msg": "Input should be less than or equal to 100", "type": "less_than_equal"},
        {"loc": [], "msg": "Invalid payload", "type": "value_error"},
    ]
    assert field_errors_from_detail(detail) == {
        "password": ["String should have at least 6 characters"],
        "address.city": ["Field required"],
        "limit": ["Input should be less than or equal to 100"],
        "__all__": ["Invalid payload"],
    }


def test_field_errors_from_plain_detail():
    assert field_errors_from_detail("Username already exists") == {}


@pytest.mark.parametrize(
    "status_code, error_class",
    [
        (401, AuthenticationError),
        (403, PermissionDeniedError),
        (404, NotFoundError),
        (400, ValidationError),
        (422, ValidationError),
        (500, ApiError),
    ],
)
def test_error_for_response(status_code, error_class):
    error = error_for_response(status_code, {"detail": "Something"})
    assert type(error) is error_class
    assert error.status_code == status_code


def test_permission_denied_message_is_generic():
    error = error_for_response(403, {"detail": "Permission denied: users:delete"})
    assert error.message == "Access denied"


def test_error_for_non_json_body():
    error = error_for_response(502, "Bad Gateway")
    assert error.message == "Bad Gateway"


#  =============================================================================
#  2. requests
#  =============================================================================

@pytest.mark.asyncio
class TestRequests:
    async def test_bearer_token_is_sent(self, api_factory):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            seen["path"] = request.url.path
            return httpx.Response(200, json={"ok": True})

        api = api_factory(handler, token="abc")
        assert await api.get("/clients") == {"ok": True}
        assert seen == {"auth": "Bearer abc", "path": "/api/v1/clients"}

    async def test_no_token_no_header(self, api_factory):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=[])

        api = api_factory(handler)
        await api.get("/equipment/types")
        assert seen["auth"] is None

    async def test_empty_body_returns_none(self, api_factory):
        api = api_factory(lambda request: httpx.Response(204))
        assert await api.delete_resource("clients", 3) is None

    async def test_validation_error_is_raised_and_notified(self, api_factory, notifier: Notifier):
        detail = [{"loc": ["body", "company_name"], "msg": "Field required", "type": "missing"}]
        api = api_factory(lambda request: httpx.Response(422, json={"detail": detail}))

        with pytest.raises(ValidationError) as exc_info:
            await api.create_resource("clients", {})
        assert exc_info.value.field_errors == {"company_name": ["Field required"]}
        assert [n.level for n in notifier.notifications] == ["error"]

    async def test_forbidden_shows_access_denied(self, api_factory, notifier: Notifier):
        api = api_factory(lambda request: httpx.Response(403, json={"detail": "Permission denied: clients:delete"}))

        with pytest.raises(PermissionDeniedError):
            await api.delete_resource("clients", 1)
        assert notifier.notifications[-1].message.startswith("Access denied")

    async def test_silent_request_is_not_notified(self, api_factory, notifier: Notifier):
        api = api_factory(lambda request: httpx.Response(404, json={"detail": "Client not found"}))

        with pytest.raises(NotFoundError) as exc_info:
            await api.get_resource("clients", 99, silent=True)
        assert exc_info.value.message == "Client not found"
        assert notifier.notifications == ()

    async def test_server_error(self, api_factory, notifier: Notifier):
        api = api_factory(lambda request: httpx.Response(500, text="Internal Server Error"))

        with pytest.raises(ApiError) as exc_info:
            await api.get("/clients")
        assert exc_info.value.status_code == 500
        assert "500" in notifier.notifications[-1].message

    async def test_unauthorized_handlers_run_only_for_authenticated_requests(self, api_factory):
        calls = []
        api = api_factory(lambda request: httpx.Response(401, json={"detail": "Could not validate credentials"}))
        api.add_unauthorized_handler(lambda: calls.append("sync"))

        async def async_handler():
            calls.append("async")

        api.add_unauthorized_handler(async_handler)

        with pytest.raises(AuthenticationError):
            await api.get("/auth/profile", silent=True)
        assert calls == []

        api.set_token("expired")
        with pytest.raises(AuthenticationError):
            await api.get("/auth/profile", silent=True)
        assert calls == ["sync", "async"]

    async def test_network_error_offers_retry(self, api_factory, notifier: Notifier):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request.url.path)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"data": [], "pagination": {"page": 1, "limit": 10, "total": 0, "pages": 0}})

        api = api_factory(handler)
        with pytest.raises(NetworkError):
            await api.list_resource("clients", {"page": 1})

        notification = notifier.notifications[-1]
        assert notification.level == "error"
        assert notification.retry is not None
        result = await notification.retry()
        assert result["pagination"]["total"] == 0
        assert len(attempts) == 2

    async def test_status_update_is_never_retried(self, api_factory, notifier: Notifier):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        api = api_factory(handler)
        with pytest.raises(NetworkError):
            await api.update_intervention_status(5, "EN_COURS")
        assert notifier.notifications[-1].retry is None

    async def test_status_update_body(self, api_factory):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = request.content
            return httpx.Response(200, json={"id": 5, "status": "EN_PAUSE"})

        api = api_factory(handler)
        await api.update_intervention_status(5, "EN_PAUSE", reason="Attente client")
        assert seen["method"] == "PATCH"
        assert seen["path"] == "/api/v1/interventions/5/status"
        assert b'"reason"' in seen["body"]
        assert b'"EN_PAUSE"' in seen["body"]


#  =============================================================================
#  3. notifier
#  =============================================================================

def test_notifier_publishes_snapshots():
    notifier = Notifier()
    snapshots = []
    unsubscribe = notifier.subscribe(snapshots.append)

    first = notifier.info("Saved")
    notifier.error("Failed")
    notifier.dismiss(first.id)
    unsubscribe()
    notifier.clear()

    assert [len(s) for s in snapshots] == [1, 2, 1]
    assert notifier.notifications == ()


def test_notifier_rejects_unknown_level():
    with pytest.raises(ValueError):
        Notifier().notify("fatal", "boom")


def test_dismiss_unknown_notification_is_silent():
    notifier = Notifier()
    snapshots = []
    notifier.subscribe(snapshots.append)
    notifier.dismiss(42)
    assert snapshots == []
