# reselec/domains/itv/crud.py

"""
CRUD operations of the 'itv' domain.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, TypeVar
from datetime import date, datetime, UTC

from sqlalchemy import and_, func, not_, update
from sqlalchemy.orm import selectinload
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import HTTPException, status

from reselec.core.crud_base import CRUDBase
from reselec.domains.fms import models as fms_models
from reselec.domains.usr.schemas import UserSummary
from . import models as itv_models
from . import schemas as itv_schemas
from . import workflow
from .workflow import InterventionStatus

logger = logging.getLogger(__name__)

PhaseModelType = TypeVar("PhaseModelType", bound=SQLModel)


def overdue_conditions(today: Optional[date] = None) -> List[Any]:
    """SQL conditions matching interventions past their date and still active."""
    today = today or date.today()
    return [
        itv_models.Intervention.scheduled_date < today,
        itv_models.Intervention.status.in_(list(workflow.ACTIVE_STATUSES)),
    ]


class CRUDIntervention(CRUDBase[itv_models.Intervention, itv_schemas.InterventionCreate, itv_schemas.InterventionUpdate]):
    search_fields = ("description",)

    def __init__(self):
        super().__init__(
            model=itv_models.Intervention,
            load_options=lambda: [
                selectinload(itv_models.Intervention.equipment).selectinload(fms_models.Equipment.client),
                selectinload(itv_models.Intervention.created_by),
            ],
        )

    async def _check_equipment(self, db: AsyncSession, equipment_id: Optional[int]) -> None:
        if equipment_id is not None and not await db.get(fms_models.Equipment, equipment_id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid equipment specified")

    async def get_list(
        self,
        db: AsyncSession,
        *,
        status_filter: Optional[InterventionStatus] = None,
        is_urgent: Optional[bool] = None,
        equipment_id: Optional[int] = None,
        overdue: Optional[bool] = None,
        search: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        order_by_field: Optional[str] = "scheduled_date",
        order_desc: bool = True,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[itv_models.Intervention], int]:
        """
        Interventions page. `overdue=True` keeps only late active interventions,
        `overdue=False` excludes them.
        """
        extra = []
        if overdue is True:
            extra.extend(overdue_conditions())
        elif overdue is False:
            extra.append(not_(and_(*overdue_conditions())))

        return await self.get_page(
            db,
            filters={"status": status_filter, "is_urgent": is_urgent, "equipment_id": equipment_id},
            search=search,
            date_range_field="scheduled_date",
            start_date=start_date,
            end_date=end_date,
            extra_conditions=extra,
            order_by_field=order_by_field,
            order_desc=order_desc,
            skip=skip,
            limit=limit,
        )

    async def status_counts(self, db: AsyncSession, *conditions: Any) -> Dict[InterventionStatus, int]:
        """Count per status; statuses with no intervention are reported as 0."""
        statement = select(self.model.status, func.count(self.model.id)).group_by(self.model.status)
        if conditions:
            statement = statement.where(*conditions)
        result = await db.execute(statement)
        counts = {s: 0 for s in InterventionStatus}
        for status_value, count in result.all():
            counts[workflow.to_status(status_value)] = count
        return counts

    async def create(
        self, db: AsyncSession, *, obj_in: itv_schemas.InterventionCreate, created_by_id: Optional[int] = None
    ) -> itv_models.Intervention:
        """
        Creates an intervention in the initial status, whatever the caller sent.
        """
        await self._check_equipment(db, obj_in.equipment_id)
        db_obj = await super().create(
            db, obj_in=obj_in, created_by_id=created_by_id, status=workflow.INITIAL_STATUS
        )
        logger.info(
            "Intervention %d created for equipment %d (urgent=%s)", db_obj.id, db_obj.equipment_id, db_obj.is_urgent
        )
        return db_obj

    async def update(
        self, db: AsyncSession, *, db_obj: itv_models.Intervention, obj_in: itv_schemas.InterventionUpdate
    ) -> itv_models.Intervention:
        if "equipment_id" in obj_in.model_fields_set:
            if obj_in.equipment_id is None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Intervention must reference an equipment")
            await self._check_equipment(db, obj_in.equipment_id)
        if "scheduled_date" in obj_in.model_fields_set and obj_in.scheduled_date is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="scheduled_date cannot be empty")
        return await super().update(db, db_obj=db_obj, obj_in=obj_in)

    async def update_status(
        self,
        db: AsyncSession,
        *,
        db_obj: itv_models.Intervention,
        target: InterventionStatus,
        changed_by_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> itv_models.Intervention:
        """
        Applies a workflow transition and records it in the status history.
        Raises `workflow.InvalidTransitionError` when the move is not allowed.

        The row is only updated while it still holds the status the transition was
        validated against; when another request moved it first, nothing is written
        and 409 is raised.
        """
        previous = workflow.to_status(db_obj.status)
        new_status = workflow.validate_transition(previous, target)
        Intervention = itv_models.Intervention
        result = await db.execute(
            update(Intervention)
            .where(Intervention.id == db_obj.id, Intervention.status == previous)
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.rollback()
            logger.warning(
                "Intervention %d: %s -> %s lost to a concurrent change", db_obj.id, previous.value, new_status.value
            )
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Intervention status was changed by another request",
            )
        db.add(
            itv_models.StatusHistory(
                intervention_id=db_obj.id,
                old_status=previous,
                new_status=new_status,
                changed_by_id=changed_by_id,
                reason=reason,
            )
        )
        await db.commit()
        logger.info(
            "Intervention %d: %s -> %s (user %s)", db_obj.id, previous.value, new_status.value, changed_by_id
        )
        return await self.get(db, db_obj.id)

    async def get_history(self, db: AsyncSession, *, intervention_id: int) -> Sequence[itv_models.StatusHistory]:
        History = itv_models.StatusHistory
        statement = (
            select(History)
            .options(selectinload(History.changed_by))
            .where(History.intervention_id == intervention_id)
            .order_by(History.changed_at.asc(), History.id.asc())
        )
        result = await db.execute(statement)
        return result.scalars().all()


    async def get_timeline(
        self, db: AsyncSession, *, db_obj: itv_models.Intervention
    ) -> List[itv_schemas.TimelineEvent]:
        """
        Creation, status changes and recorded phases of an intervention, oldest first.
        """
        events = [
            itv_schemas.TimelineEvent(
                kind="CREATED", at=_as_datetime(db_obj.created_at), title="Intervention planned",
                new_status=workflow.INITIAL_STATUS, user=_summary(db_obj.created_by),
            )
        ]
        for entry in await self.get_history(db, intervention_id=db_obj.id):
            events.append(
                itv_schemas.TimelineEvent(
                    kind="STATUS_CHANGE",
                    at=_as_datetime(entry.changed_at),
                    title=f"{workflow.status_label(entry.old_status)} -> {workflow.status_label(entry.new_status)}",
                    old_status=entry.old_status,
                    new_status=entry.new_status,
                    reason=entry.reason,
                    user=_summary(entry.changed_by),
                )
            )
        phases = await phase_records(db, db_obj.id)
        for kind, title, record in (
            ("DIAGNOSTIC", "Diagnostic recorded", phases["diagnostic"]),
            ("PLANIFICATION", "Planification recorded", phases["planification"]),
            ("QUALITY_CONTROL", "Quality control recorded", phases["quality_control"]),
        ):
            if record is not None:
                events.append(itv_schemas.TimelineEvent(kind=kind, at=_as_datetime(record.recorded_at), title=title))
        # stable sort keeps creation first when timestamps tie
        return sorted(events, key=lambda event: event.at)

    async def get_workflow(self, db: AsyncSession, *, db_obj: itv_models.Intervention) -> itv_schemas.WorkflowSummary:
        phases = await phase_records(db, db_obj.id)
        diagnostic, planification, control = phases["diagnostic"], phases["planification"], phases["quality_control"]
        return itv_schemas.WorkflowSummary(
            intervention_id=db_obj.id,
            status=db_obj.status,
            status_label=workflow.status_label(db_obj.status),
            workflow_phase=workflow.workflow_phase(db_obj.status),
            phases=itv_schemas.WorkflowPhases(
                diagnostic=itv_schemas.PhaseState(
                    completed=diagnostic is not None, done_on=diagnostic.created_on if diagnostic else None
                ),
                planification=itv_schemas.PlanificationState(
                    completed=planification is not None,
                    done_on=planification.created_on if planification else None,
                    parts_available=planification.parts_available if planification else None,
                ),
                quality_control=itv_schemas.PhaseState(
                    completed=control is not None, done_on=control.control_date if control else None
                ),
            ),
            available_actions=db_obj.available_actions,
            next_steps=workflow.next_steps(db_obj.status),
        )
    async def get_overdue(self, db: AsyncSession, *, today: Optional[date] = None, limit: int = 100) -> List[itv_models.Intervention]:
        statement = (
            self._select()
            .where(*overdue_conditions(today))
            .order_by(self.model.scheduled_date.asc(), self.model.id.asc())
            .limit(limit)
        )
        result = await db.execute(statement)
        return result.scalars().all()


intervention = CRUDIntervention()


def _as_datetime(value: Optional[datetime]) -> datetime:
    # naive values (sqlite) are stored in UTC
    if value is None:
        return datetime.now(UTC)
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _summary(user: Any) -> Optional[UserSummary]:
    return UserSummary.model_validate(user) if user is not None else None


# =============================================================================
# workflow phases
# =============================================================================
class CRUDInterventionPhase(CRUDBase[PhaseModelType, Any, Any]):
    """
    Diagnostic, planification and quality control: at most one record per
    intervention, created on the first save and updated afterwards.
    """

    async def get_for_intervention(self, db: AsyncSession, intervention_id: int) -> Optional[PhaseModelType]:
        return await self.get_by_attribute(db, attribute="intervention_id", value=intervention_id)

    async def save(
        self, db: AsyncSession, *, intervention_id: int, obj_in: SQLModel
    ) -> Tuple[PhaseModelType, Dict[str, Any], bool]:
        """
        Returns the stored record, its values before the save and whether it was created.
        Fields left out of `obj_in` (or sent as null) keep their stored value.
        """
        data = obj_in.model_dump(exclude_unset=True, exclude_none=True)
        db_obj = await self.get_for_intervention(db, intervention_id)
        created = db_obj is None
        if created:
            db_obj = self.model(intervention_id=intervention_id, **data)
            before = {}
        else:
            before = {key: getattr(db_obj, key) for key in data}
            for key, value in data.items():
                setattr(db_obj, key, value)
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        logger.info(
            "%s of intervention %d %s", self.model.__name__, intervention_id, "created" if created else "updated"
        )
        return db_obj, before, created


diagnostic = CRUDInterventionPhase(itv_models.Diagnostic)
planification = CRUDInterventionPhase(itv_models.Planification)
quality_control = CRUDInterventionPhase(itv_models.QualityControl)


async def phase_records(db: AsyncSession, intervention_id: int) -> Dict[str, Any]:
    return {
        "diagnostic": await diagnostic.get_for_intervention(db, intervention_id),
        "planification": await planification.get_for_intervention(db, intervention_id),
        "quality_control": await quality_control.get_for_intervention(db, intervention_id),
    }
