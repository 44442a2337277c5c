# reselec/domains/itv/workflow.py

"""
Intervention status workflow.

Single source of truth for the intervention lifecycle, used by the API (to validate
status updates) and by the client SDK (to offer actions and pre-validate requests).
This module does no I/O.

    PLANIFIEE       -> EN_COURS ("Start"), EN_ATTENTE_PDR ("Put on hold"), ANNULEE ("Cancel")
    EN_ATTENTE_PDR  -> EN_COURS ("Start"), ANNULEE ("Cancel")
    EN_COURS        -> EN_PAUSE ("Pause"), TERMINEE ("Complete"), ECHEC ("Mark failed")
    EN_PAUSE        -> EN_COURS ("Resume"), ANNULEE ("Cancel")
    ECHEC           -> EN_COURS ("Resume")
    TERMINEE, ANNULEE are terminal.
"""

from datetime import date
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union


class InterventionStatus(str, Enum):
    PLANIFIEE = "PLANIFIEE"
    EN_ATTENTE_PDR = "EN_ATTENTE_PDR"
    EN_COURS = "EN_COURS"
    EN_PAUSE = "EN_PAUSE"
    TERMINEE = "TERMINEE"
    ANNULEE = "ANNULEE"
    ECHEC = "ECHEC"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


StatusLike = Union[InterventionStatus, str]


class StatusAction(NamedTuple):
    label: str
    target: InterventionStatus


class InvalidTransitionError(Exception):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, current: Any, target: Any, message: Optional[str] = None):
        self.current = current.value if isinstance(current, InterventionStatus) else current
        self.target = target.value if isinstance(target, InterventionStatus) else target
        super().__init__(message or f"Invalid status transition from {self.current} to {self.target}")


STATUS_LABELS: Dict[InterventionStatus, str] = {
    InterventionStatus.PLANIFIEE: "Planifiée",
    InterventionStatus.EN_ATTENTE_PDR: "En attente PDR",
    InterventionStatus.EN_COURS: "En cours",
    InterventionStatus.EN_PAUSE: "En pause",
    InterventionStatus.TERMINEE: "Terminée",
    InterventionStatus.ANNULEE: "Annulée",
    InterventionStatus.ECHEC: "Échec",
}

TRANSITIONS: Dict[InterventionStatus, Tuple[StatusAction, ...]] = {
    InterventionStatus.PLANIFIEE: (
        StatusAction("Start", InterventionStatus.EN_COURS),
        StatusAction("Put on hold", InterventionStatus.EN_ATTENTE_PDR),
        StatusAction("Cancel", InterventionStatus.ANNULEE),
    ),
    InterventionStatus.EN_ATTENTE_PDR: (
        StatusAction("Start", InterventionStatus.EN_COURS),
        StatusAction("Cancel", InterventionStatus.ANNULEE),
    ),
    InterventionStatus.EN_COURS: (
        StatusAction("Pause", InterventionStatus.EN_PAUSE),
        StatusAction("Complete", InterventionStatus.TERMINEE),
        StatusAction("Mark failed", InterventionStatus.ECHEC),
    ),
    InterventionStatus.EN_PAUSE: (
        StatusAction("Resume", InterventionStatus.EN_COURS),
        StatusAction("Cancel", InterventionStatus.ANNULEE),
    ),
    InterventionStatus.ECHEC: (
        StatusAction("Resume", InterventionStatus.EN_COURS),
    ),
    InterventionStatus.TERMINEE: (),
    InterventionStatus.ANNULEE: (),
}

INITIAL_STATUS = InterventionStatus.PLANIFIEE

ACTIVE_STATUSES = frozenset({
    InterventionStatus.PLANIFIEE,
    InterventionStatus.EN_ATTENTE_PDR,
    InterventionStatus.EN_COURS,
    InterventionStatus.EN_PAUSE,
})

TERMINAL_STATUSES = frozenset(s for s, actions in TRANSITIONS.items() if not actions)

WORKFLOW_PHASES: Dict[InterventionStatus, str] = {
    InterventionStatus.PLANIFIEE: "DIAGNOSTIC",
    InterventionStatus.EN_ATTENTE_PDR: "PLANIFICATION",
    InterventionStatus.EN_COURS: "EXECUTION",
    InterventionStatus.EN_PAUSE: "EXECUTION",
    InterventionStatus.TERMINEE: "COMPLETE",
    InterventionStatus.ANNULEE: "CANCELLED",
    InterventionStatus.ECHEC: "FAILED",
}

# work expected before the next move, shown alongside the available actions
NEXT_STEPS: Dict[InterventionStatus, Tuple[str, ...]] = {
    InterventionStatus.PLANIFIEE: ("Complete the diagnostic",),
    InterventionStatus.EN_ATTENTE_PDR: ("Update the planification once parts are available",),
    InterventionStatus.EN_COURS: ("Carry out the maintenance work", "Record the quality control"),
    InterventionStatus.TERMINEE: ("Issue the final report",),
}


def to_status(value: StatusLike) -> InterventionStatus:
    """Coerces a status string; unknown values raise ValueError."""
    if isinstance(value, InterventionStatus):
        return value
    try:
        return InterventionStatus(value)
    except ValueError:
        raise ValueError(f"Unknown intervention status: {value!r}") from None


def available_actions(status: StatusLike) -> List[StatusAction]:
    """Actions offered from `status`, in display order. Empty for terminal statuses."""
    return list(TRANSITIONS[to_status(status)])


def allowed_targets(status: StatusLike) -> List[InterventionStatus]:
    return [action.target for action in available_actions(status)]


def can_transition(current: StatusLike, target: StatusLike) -> bool:
    try:
        return to_status(target) in allowed_targets(current)
    except ValueError:
        return False


def validate_transition(current: StatusLike, target: StatusLike) -> InterventionStatus:
    """
    Returns the target status when the move is allowed, raises InvalidTransitionError otherwise.
    """
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)
    return to_status(target)


def apply_transition(intervention: Any, target: StatusLike) -> InterventionStatus:
    """
    Moves `intervention.status` to `target` and returns the previous status.
    The object is left untouched when the transition is rejected.
    """
    new_status = validate_transition(intervention.status, target)
    previous = to_status(intervention.status)
    intervention.status = new_status
    return previous


def is_overdue(scheduled_date: Optional[date], status: StatusLike, today: Optional[date] = None) -> bool:
    """
    An intervention is overdue when its scheduled date is strictly before today and it
    is still active (planned, waiting for parts, in progress or paused).
    """
    if scheduled_date is None:
        return False
    today = today or date.today()
    return to_status(status) in ACTIVE_STATUSES and scheduled_date < today


def status_label(status: StatusLike) -> str:
    return STATUS_LABELS[to_status(status)]


def workflow_phase(status: StatusLike) -> str:
    return WORKFLOW_PHASES[to_status(status)]


def next_steps(status: StatusLike) -> List[str]:
    return list(NEXT_STEPS.get(to_status(status), ()))
