# reselec/client/interventions.py

"""
Intervention records held by a screen and the status actions offered on them.

The transition table comes from the shared workflow module: a transition is checked
locally before the request is sent, and the server checks it again. While a status
request is in flight for a record, no action is offered for it and a second request
is refused. The record is replaced only with the server's answer; a failure leaves
it as it was.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict

from reselec.domains.itv import workflow
from reselec.domains.itv.workflow import InterventionStatus, StatusAction, StatusLike
from .api import ApiClient
from .errors import ReselecClientError, TransitionInProgressError
from .listing import ListQuery
from .notifications import Notifier

logger = logging.getLogger(__name__)


class InterventionView(BaseModel):
    """An intervention as returned by the API."""
    model_config = ConfigDict(frozen=True, extra="allow")

    id: int
    scheduled_date: date
    description: Optional[str] = None
    is_urgent: bool = False
    status: InterventionStatus
    equipment_id: Optional[int] = None
    equipment: Optional[Dict[str, Any]] = None
    created_by_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def status_label(self) -> str:
        return workflow.status_label(self.status)

    def overdue(self, today: Optional[date] = None) -> bool:
        return workflow.is_overdue(self.scheduled_date, self.status, today)


class InterventionController:
    def __init__(self, api: ApiClient, notifier: Optional[Notifier] = None):
        self.api = api
        self.notifier = notifier or api.notifier
        self._records: Dict[int, InterventionView] = {}
        self._in_flight: set = set()

    # --- records ---
    @property
    def records(self) -> List[InterventionView]:
        return list(self._records.values())

    def get(self, intervention_id: int) -> InterventionView:
        try:
            return self._records[intervention_id]
        except KeyError:
            raise KeyError(f"Intervention {intervention_id} is not loaded") from None

    def set_records(self, items: Iterable[Any]) -> None:
        self._records = {}
        for item in items:
            record = item if isinstance(item, InterventionView) else InterventionView.model_validate(item)
            self._records[record.id] = record

    async def load(self, query: Optional[ListQuery] = None) -> List[InterventionView]:
        payload = await self.api.list_resource("interventions", (query or ListQuery()).to_params())
        self.set_records(payload.get("data", []))
        return self.records

    # --- actions ---
    def is_busy(self, intervention_id: int) -> bool:
        return intervention_id in self._in_flight

    def available_actions(self, intervention_id: int) -> List[StatusAction]:
        """Actions to offer for the record; none while one of its transitions is running."""
        if self.is_busy(intervention_id):
            return []
        return workflow.available_actions(self.get(intervention_id).status)

    async def apply_transition(
        self, intervention_id: int, target: StatusLike, reason: Optional[str] = None
    ) -> InterventionView:
        """
        Changes the status of a loaded intervention through the API.

        Raises `workflow.InvalidTransitionError` (nothing sent) when the move is not
        offered, `TransitionInProgressError` when a change is already running for the
        record, and the API errors otherwise. Failures are not retried.
        """
        record = self.get(intervention_id)
        if self.is_busy(intervention_id):
            raise TransitionInProgressError(intervention_id)
        try:
            target_status = workflow.validate_transition(record.status, target)
        except workflow.InvalidTransitionError as e:
            self.notifier.error(str(e))
            raise

        self._in_flight.add(intervention_id)
        try:
            data = await self.api.update_intervention_status(intervention_id, target_status, reason)
        except ReselecClientError as e:
            logger.warning(
                "Status change %s -> %s failed for intervention %d: %s",
                record.status.value, target_status.value, intervention_id, e,
            )
            raise
        finally:
            self._in_flight.discard(intervention_id)

        updated = InterventionView.model_validate(data)
        self._records[intervention_id] = updated
        logger.info("Intervention %d is now %s", intervention_id, updated.status.value)
        return updated

    # --- filtered views ---
    def visible(
        self,
        *,
        statuses: Optional[Iterable[StatusLike]] = None,
        urgent: Optional[bool] = None,
        overdue: Optional[bool] = None,
        today: Optional[date] = None,
    ) -> List[InterventionView]:
        """Records matching the filters, computed from the current records."""
        wanted = {workflow.to_status(s) for s in statuses} if statuses is not None else None
        result = []
        for record in self._records.values():
            if wanted is not None and record.status not in wanted:
                continue
            if urgent is not None and record.is_urgent != urgent:
                continue
            if overdue is not None and record.overdue(today) != overdue:
                continue
            result.append(record)
        return result

    def in_progress(self) -> List[InterventionView]:
        return self.visible(statuses=[InterventionStatus.EN_COURS])
