# tests/client/conftest.py

from typing import Any, AsyncGenerator, Callable, Dict, List

import httpx
import pytest
import pytest_asyncio

from reselec.client import ApiClient, Notifier

BASE_URL = "http://test/api/v1"


@pytest.fixture
def technician_payload() -> Dict[str, Any]:
    """A user as returned by /auth/profile."""
    return {
        "id": 7,
        "name": "Technicien",
        "username": "technicien",
        "is_active": True,
        "section": {"id": 1, "name": "Atelier bobinage", "type": "ATELIER"},
        "role": {
            "id": 2,
            "name": "Technicien",
            "description": "Field technician",
            "permissions": ["equipment:read", "interventions:read", "interventions:update"],
        },
        "created_at": "2024-01-10T08:00:00Z",
    }


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest_asyncio.fixture
async def api_factory(notifier: Notifier) -> AsyncGenerator[Callable[..., ApiClient], None]:
    """
    Builds ApiClients whose requests are answered by `handler` (sync or async),
    and closes them after the test.
    """
    created: List[ApiClient] = []

    def _create(handler: Callable[[httpx.Request], Any], **kwargs: Any) -> ApiClient:
        kwargs.setdefault("notifier", notifier)
        api = ApiClient(BASE_URL, transport=httpx.MockTransport(handler), **kwargs)
        created.append(api)
        return api

    yield _create

    for api in created:
        await api.aclose()
