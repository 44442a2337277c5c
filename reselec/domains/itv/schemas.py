# reselec/domains/itv/schemas.py

"""
API schemas of the 'itv' domain.

The status never travels through create/update payloads: it changes only through
`StatusUpdate` on the dedicated status endpoint.
"""

from typing import Annotated, Dict, List, Optional
from datetime import date, datetime
from sqlmodel import SQLModel, Field
from pydantic import BaseModel, ConfigDict, StringConstraints

from reselec.domains.fms.schemas import EquipmentSummary
from reselec.domains.usr.schemas import UserSummary
from .workflow import InterventionStatus


class InterventionCreate(SQLModel):
    scheduled_date: date
    description: Optional[str] = Field(None, max_length=5000)
    is_urgent: bool = False
    equipment_id: int


class InterventionUpdate(SQLModel):
    scheduled_date: Optional[date] = None
    description: Optional[str] = Field(None, max_length=5000)
    is_urgent: Optional[bool] = None
    equipment_id: Optional[int] = None


class StatusUpdate(SQLModel):
    status: InterventionStatus
    reason: Optional[str] = Field(None, max_length=500)


class StatusActionRead(BaseModel):
    label: str
    target: InterventionStatus


class InterventionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    scheduled_date: date
    description: Optional[str] = None
    is_urgent: bool
    status: InterventionStatus
    status_label: str
    is_overdue: bool
    workflow_phase: str
    available_actions: List[StatusActionRead] = []
    equipment_id: int
    equipment: Optional[EquipmentSummary] = None
    created_by_id: Optional[int] = None
    created_by: Optional[UserSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StatusHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    intervention_id: int
    old_status: InterventionStatus
    new_status: InterventionStatus
    reason: Optional[str] = None
    changed_by: Optional[UserSummary] = None
    changed_at: Optional[datetime] = None


class StatusCounts(BaseModel):
    """Number of interventions per status, every status present."""
    counts: Dict[InterventionStatus, int]
    total: int


# =============================================================================
# workflow phases
# =============================================================================
WorkItem = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]


class DiagnosticSave(SQLModel):
    """Lists that are sent replace the stored ones; omitted lists are kept."""
    required_work: Optional[List[WorkItem]] = None
    parts_needed: Optional[List[WorkItem]] = None
    load_tests: Optional[List[WorkItem]] = None


class DiagnosticRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    intervention_id: int
    created_on: date
    required_work: List[str] = []
    parts_needed: List[str] = []
    load_tests: List[str] = []


class PlanificationSave(SQLModel):
    execution_capacity: Optional[int] = Field(None, ge=0)
    urgent_handling: Optional[bool] = None
    parts_available: Optional[bool] = None


class PlanificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    intervention_id: int
    created_on: date
    execution_capacity: Optional[int] = None
    urgent_handling: bool
    parts_available: bool


class QualityControlSave(SQLModel):
    test_results: Optional[str] = Field(None, max_length=2000)
    vibration_analysis: Optional[str] = Field(None, max_length=2000)


class QualityControlRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    intervention_id: int
    control_date: date
    test_results: Optional[str] = None
    vibration_analysis: Optional[str] = None


class PhaseState(BaseModel):
    completed: bool
    done_on: Optional[date] = None


class PlanificationState(PhaseState):
    parts_available: Optional[bool] = None


class WorkflowPhases(BaseModel):
    diagnostic: PhaseState
    planification: PlanificationState
    quality_control: PhaseState


class WorkflowSummary(BaseModel):
    intervention_id: int
    status: InterventionStatus
    status_label: str
    workflow_phase: str
    phases: WorkflowPhases
    available_actions: List[StatusActionRead]
    next_steps: List[str]


class TimelineEvent(BaseModel):
    kind: str
    at: datetime
    title: str
    old_status: Optional[InterventionStatus] = None
    new_status: Optional[InterventionStatus] = None
    reason: Optional[str] = None
    user: Optional[UserSummary] = None
