# reselec/domains/itv/models.py

"""
ORM models of the 'itv' domain: interventions, their status history and the
diagnostic, planification and quality control phases.

The status column is only changed through `crud.intervention.update_status`; each change
appends a `StatusHistory` row.
"""

from typing import Optional, List, TYPE_CHECKING
from datetime import date, datetime, UTC
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON, TIMESTAMP, Text
from sqlalchemy.sql import func
from sqlmodel import Field, Relationship, SQLModel, Column

from . import workflow
from .workflow import InterventionStatus

if TYPE_CHECKING:
    from reselec.domains.fms.models import Equipment
    from reselec.domains.usr.models import User


# =============================================================================
# 1. interventions table
# =============================================================================
class InterventionBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    scheduled_date: date = Field(index=True, description="Planned date of the intervention")
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    is_urgent: bool = Field(default=False, description="Urgent flag")
    status: InterventionStatus = Field(default=workflow.INITIAL_STATUS, index=True)
    equipment_id: int = Field(foreign_key="equipment.id", index=True)
    created_by_id: Optional[int] = Field(default=None, foreign_key="users.id")

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
    )


class Intervention(InterventionBase, table=True):
    __tablename__ = "interventions"

    equipment: Optional["Equipment"] = Relationship(back_populates="interventions")
    created_by: Optional["User"] = Relationship()
    history: List["StatusHistory"] = Relationship(back_populates="intervention")
    diagnostic: Optional["Diagnostic"] = Relationship(
        back_populates="intervention", sa_relationship_kwargs={"uselist": False}
    )
    planification: Optional["Planification"] = Relationship(
        back_populates="intervention", sa_relationship_kwargs={"uselist": False}
    )
    quality_control: Optional["QualityControl"] = Relationship(
        back_populates="intervention", sa_relationship_kwargs={"uselist": False}
    )

    @property
    def status_label(self) -> str:
        return workflow.status_label(self.status)

    @property
    def is_overdue(self) -> bool:
        return workflow.is_overdue(self.scheduled_date, self.status)

    @property
    def workflow_phase(self) -> str:
        return workflow.workflow_phase(self.status)

    @property
    def available_actions(self) -> List[dict]:
        return [{"label": a.label, "target": a.target} for a in workflow.available_actions(self.status)]


# =============================================================================
# 2. status_history table
# =============================================================================
class StatusHistoryBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    intervention_id: int = Field(foreign_key="interventions.id", index=True)
    old_status: InterventionStatus
    new_status: InterventionStatus
    changed_by_id: Optional[int] = Field(default=None, foreign_key="users.id")
    reason: Optional[str] = Field(default=None, max_length=500)
    changed_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )


class StatusHistory(StatusHistoryBase, table=True):
    __tablename__ = "status_history"

    intervention: Optional[Intervention] = Relationship(back_populates="history")
    changed_by: Optional["User"] = Relationship()


# =============================================================================
# 3. workflow phases: one diagnostic, planification and quality control per intervention
# =============================================================================
class DiagnosticBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    intervention_id: int = Field(foreign_key="interventions.id", unique=True)
    created_on: date = Field(default_factory=date.today)
    required_work: List[str] = Field(default_factory=list, sa_column=Column(JSON().with_variant(JSONB, "postgresql")))
    parts_needed: List[str] = Field(default_factory=list, sa_column=Column(JSON().with_variant(JSONB, "postgresql")))
    load_tests: List[str] = Field(default_factory=list, sa_column=Column(JSON().with_variant(JSONB, "postgresql")))
    recorded_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )


class Diagnostic(DiagnosticBase, table=True):
    __tablename__ = "diagnostics"

    intervention: Optional[Intervention] = Relationship(back_populates="diagnostic")


class PlanificationBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    intervention_id: int = Field(foreign_key="interventions.id", unique=True)
    created_on: date = Field(default_factory=date.today)
    execution_capacity: Optional[int] = Field(default=None, ge=0)
    urgent_handling: bool = Field(default=False)
    parts_available: bool = Field(default=False)
    recorded_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )


class Planification(PlanificationBase, table=True):
    __tablename__ = "planifications"

    intervention: Optional[Intervention] = Relationship(back_populates="planification")


class QualityControlBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    intervention_id: int = Field(foreign_key="interventions.id", unique=True)
    control_date: date = Field(default_factory=date.today, index=True)
    test_results: Optional[str] = Field(default=None, sa_column=Column(Text))
    vibration_analysis: Optional[str] = Field(default=None, sa_column=Column(Text))
    recorded_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )


class QualityControl(QualityControlBase, table=True):
    __tablename__ = "quality_controls"

    intervention: Optional[Intervention] = Relationship(back_populates="quality_control")
