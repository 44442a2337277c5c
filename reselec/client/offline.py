# reselec/client/offline.py

"""
Actions made while the API was unreachable, persisted as a JSON list of
`{method, url, body}` and replayed in order once the connection is back.

Status transitions are never queued: they must be decided against the current
server state.
"""

import logging
import os
import re
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, List, Optional, TYPE_CHECKING

from pydantic import BaseModel, Field, TypeAdapter

from .errors import ApiError, AuthenticationError, NetworkError

if TYPE_CHECKING:
    from .api import ApiClient

logger = logging.getLogger(__name__)

_STATUS_ENDPOINT = re.compile(r"/interventions/[^/]+/status/?$")


class PendingAction(BaseModel):
    method: str
    url: str
    body: Optional[Any] = None
    queued_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ReplayReport(BaseModel):
    replayed: int = 0
    dropped: int = 0
    remaining: int = 0


_actions_adapter = TypeAdapter(List[PendingAction])


class OfflineQueue:
    def __init__(self, path: str):
        self.path = Path(path)
        self._actions: List[PendingAction] = self._load()

    def _load(self) -> List[PendingAction]:
        if not self.path.exists():
            return []
        try:
            return _actions_adapter.validate_json(self.path.read_bytes())
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable offline queue %s: %s", self.path, e)
            return []

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_bytes(_actions_adapter.dump_json(self._actions))
        os.replace(tmp_path, self.path)

    @property
    def pending(self) -> List[PendingAction]:
        return list(self._actions)

    def __len__(self) -> int:
        return len(self._actions)

    def enqueue(self, method: str, url: str, body: Any = None) -> PendingAction:
        if _STATUS_ENDPOINT.search(url):
            raise ValueError("Status transitions cannot be queued offline")
        action = PendingAction(method=method.upper(), url=url, body=body)
        self._actions.append(action)
        self._save()
        logger.info("Queued offline action %s %s (%d pending)", action.method, action.url, len(self._actions))
        return action

    def clear(self) -> None:
        self._actions = []
        self._save()

    async def replay(self, api: "ApiClient") -> ReplayReport:
        """
        Sends the queued actions in order. Stops at the first network failure or 401
        (the rest stays queued); actions the server rejects otherwise are dropped.
        """
        report = ReplayReport()
        while self._actions:
            action = self._actions[0]
            try:
                await api.request(action.method, action.url, json=action.body, silent=True)
            except NetworkError:
                logger.info("Still offline, %d action(s) kept", len(self._actions))
                break
            except AuthenticationError:
                logger.info("Not signed in, %d action(s) kept until the next replay", len(self._actions))
                break
            except ApiError as e:
                logger.warning("Dropping offline action %s %s: %s", action.method, action.url, e)
                report.dropped += 1
            else:
                report.replayed += 1
            self._actions.pop(0)
            self._save()

        report.remaining = len(self._actions)
        if report.replayed or report.dropped:
            logger.info("Offline replay: %d sent, %d dropped, %d remaining", report.replayed, report.dropped, report.remaining)
        return report
