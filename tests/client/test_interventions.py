# tests/client/test_interventions.py

import asyncio
import json
from datetime import date, timedelta
from typing import Any, Dict

import httpx
import pytest
from pydantic import ValidationError as SchemaError

from reselec.client import (
    InterventionController,
    InterventionView,
    ListQuery,
    NetworkError,
    Notifier,
    OfflineQueue,
    TransitionInProgressError,
    ValidationError,
)
from reselec.domains.itv.workflow import InterventionStatus, InvalidTransitionError

TODAY = date(2024, 6, 12)


def _record(intervention_id: int, status: str, **fields: Any) -> Dict[str, Any]:
    record = {
        "id": intervention_id,
        "scheduled_date": TODAY.isoformat(),
        "description": "Rebobinage",
        "is_urgent": False,
        "status": status,
        "equipment_id": 3,
    }
    record.update(fields)
    return record


def _unexpected(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request {request.method} {request.url}")


def test_view_labels_and_overdue():
    view = InterventionView.model_validate(_record(1, "EN_PAUSE", scheduled_date="2024-06-01"))
    assert view.status is InterventionStatus.EN_PAUSE
    assert view.status_label == "En pause"
    assert view.overdue(TODAY)
    assert not view.overdue(date(2024, 6, 1))


def test_view_requires_status():
    with pytest.raises(SchemaError):
        InterventionView.model_validate({"id": 1, "scheduled_date": "2024-06-01"})


@pytest.mark.asyncio
class TestActions:
    async def test_available_actions(self, api_factory):
        controller = InterventionController(api_factory(_unexpected))
        controller.set_records([_record(1, "PLANIFIEE"), _record(2, "TERMINEE"), _record(3, "ECHEC")])

        assert [a.target for a in controller.available_actions(1)] == [
            InterventionStatus.EN_COURS,
            InterventionStatus.EN_ATTENTE_PDR,
            InterventionStatus.ANNULEE,
        ]
        assert controller.available_actions(2) == []
        assert [a.label for a in controller.available_actions(3)] == ["Resume"]

    async def test_unknown_record(self, api_factory):
        controller = InterventionController(api_factory(_unexpected))
        with pytest.raises(KeyError):
            controller.available_actions(42)

    async def test_transition_replaces_the_record(self, api_factory):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_record(1, "EN_COURS", updated_at="2024-06-12T09:00:00Z"))

        controller = InterventionController(api_factory(handler))
        controller.set_records([_record(1, "PLANIFIEE")])

        updated = await controller.apply_transition(1, "EN_COURS", reason="Pièces reçues")

        assert seen == {
            "path": "/api/v1/interventions/1/status",
            "body": {"status": "EN_COURS", "reason": "Pièces reçues"},
        }
        assert updated.status is InterventionStatus.EN_COURS
        assert controller.get(1) is updated
        assert not controller.is_busy(1)

    async def test_completed_intervention_leaves_in_progress_view(self, api_factory):
        controller = InterventionController(
            api_factory(lambda request: httpx.Response(200, json=_record(1, "TERMINEE")))
        )
        controller.set_records([_record(1, "EN_COURS"), _record(2, "EN_COURS")])

        await controller.apply_transition(1, InterventionStatus.TERMINEE)

        assert controller.get(1).status_label == "Terminée"
        assert [r.id for r in controller.in_progress()] == [2]
        assert controller.available_actions(1) == []

    async def test_invalid_transition_sends_nothing(self, api_factory, notifier: Notifier):
        controller = InterventionController(api_factory(_unexpected))
        controller.set_records([_record(1, "TERMINEE")])

        with pytest.raises(InvalidTransitionError):
            await controller.apply_transition(1, InterventionStatus.EN_COURS)

        assert controller.get(1).status is InterventionStatus.TERMINEE
        assert [n.level for n in notifier.notifications] == ["error"]

    async def test_one_transition_at_a_time(self, api_factory):
        started = asyncio.Event()
        release = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            started.set()
            await release.wait()
            return httpx.Response(200, json=_record(1, "EN_COURS"))

        controller = InterventionController(api_factory(handler))
        controller.set_records([_record(1, "PLANIFIEE")])

        task = asyncio.create_task(controller.apply_transition(1, "EN_COURS"))
        await started.wait()

        assert controller.is_busy(1)
        assert controller.available_actions(1) == []
        with pytest.raises(TransitionInProgressError):
            await controller.apply_transition(1, "ANNULEE")

        release.set()
        updated = await task

        assert updated.status is InterventionStatus.EN_COURS
        assert not controller.is_busy(1)
        assert [a.target for a in controller.available_actions(1)] == [
            InterventionStatus.EN_PAUSE,
            InterventionStatus.TERMINEE,
            InterventionStatus.ECHEC,
        ]

    async def test_server_rejection_keeps_the_record(self, api_factory):
        body = {
            "detail": "Invalid status transition from EN_PAUSE to EN_COURS",
            "current_status": "EN_PAUSE",
            "target_status": "EN_COURS",
        }
        controller = InterventionController(api_factory(lambda request: httpx.Response(400, json=body)))
        controller.set_records([_record(1, "PLANIFIEE")])

        with pytest.raises(ValidationError) as exc_info:
            await controller.apply_transition(1, "EN_COURS")

        assert exc_info.value.payload["current_status"] == "EN_PAUSE"
        assert controller.get(1).status is InterventionStatus.PLANIFIEE
        assert not controller.is_busy(1)

    async def test_offline_transition_is_not_queued(self, api_factory, notifier: Notifier, tmp_path):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        queue = OfflineQueue(str(tmp_path / "queue.json"))
        controller = InterventionController(api_factory(handler, offline_queue=queue))
        controller.set_records([_record(1, "EN_COURS")])

        with pytest.raises(NetworkError):
            await controller.apply_transition(1, "TERMINEE")

        assert len(queue) == 0
        assert notifier.notifications[-1].retry is None
        assert controller.get(1).status is InterventionStatus.EN_COURS
        assert not controller.is_busy(1)


@pytest.mark.asyncio
class TestRecords:
    async def test_load_uses_the_query(self, api_factory):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={
                "data": [_record(1, "EN_COURS"), _record(2, "PLANIFIEE")],
                "pagination": {"page": 1, "limit": 10, "total": 2, "pages": 1},
            })

        controller = InterventionController(api_factory(handler))
        query = ListQuery().with_filter("status", InterventionStatus.EN_COURS).with_filter("is_urgent", True)
        records = await controller.load(query)

        assert [r.id for r in records] == [1, 2]
        assert seen["params"] == {"page": "1", "limit": "10", "status": "EN_COURS", "is_urgent": "true"}

    async def test_visible_and_in_progress(self, api_factory):
        controller = InterventionController(api_factory(_unexpected))
        controller.set_records([
            _record(1, "EN_COURS", is_urgent=True),
            _record(2, "PLANIFIEE", scheduled_date=(TODAY - timedelta(days=3)).isoformat()),
            _record(3, "TERMINEE", scheduled_date=(TODAY - timedelta(days=3)).isoformat()),
            _record(4, "EN_PAUSE"),
        ])

        assert [r.id for r in controller.in_progress()] == [1]
        assert [r.id for r in controller.visible(urgent=True)] == [1]
        assert [r.id for r in controller.visible(overdue=True, today=TODAY)] == [2]
        assert [r.id for r in controller.visible(statuses=["EN_COURS", "EN_PAUSE"])] == [1, 4]
        assert len(controller.visible()) == 4
