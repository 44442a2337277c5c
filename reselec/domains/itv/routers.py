# reselec/domains/itv/routers.py

"""
API endpoints of the 'itv' domain (/interventions).

Interventions are never deleted. Their status changes through
`PATCH /interventions/{id}/status` or as the outcome of a recorded diagnostic or
planification, always validated by the shared workflow module. Writes are added to
the audit trail.
"""

from typing import List, Optional
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from reselec.core import dependencies as deps
from reselec.core.pagination import Page, PageParams, build_page, page_params
from reselec.domains.adt import crud as adt_crud
from reselec.domains.adt.models import AuditAction
from reselec.domains.usr import models as usr_models

from . import crud as itv_crud
from . import models as itv_models
from . import schemas as itv_schemas
from .workflow import InterventionStatus

router = APIRouter(
    responses={404: {"description": "Not found"}},
)

AUDIT_ENTITY = "Intervention"

INTERVENTION_SORT_FIELDS = {
    "scheduledDate": "scheduled_date",
    "status": "status",
    "isUrgent": "is_urgent",
    "createdAt": "created_at",
    "id": "id",
}


async def _get_or_404(db: AsyncSession, intervention_id: int) -> itv_models.Intervention:
    intervention = await itv_crud.intervention.get(db, id=intervention_id)
    if not intervention:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Intervention not found")
    return intervention


@router.get("", response_model=Page[itv_schemas.InterventionRead], summary="List interventions")
async def read_interventions(
    status_filter: Optional[InterventionStatus] = Query(None, alias="status"),
    is_urgent: Optional[bool] = Query(None),
    equipment_id: Optional[int] = Query(None),
    overdue: Optional[bool] = Query(None),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:read")),
):
    if date_from and date_to and date_from > date_to:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="dateFrom must be before dateTo")

    interventions, total = await itv_crud.intervention.get_list(
        db,
        status_filter=status_filter,
        is_urgent=is_urgent,
        equipment_id=equipment_id,
        overdue=overdue,
        search=params.search,
        start_date=date_from,
        end_date=date_to,
        order_by_field=params.order_field(INTERVENTION_SORT_FIELDS, "scheduled_date"),
        order_desc=params.order_desc,
        skip=params.skip,
        limit=params.limit,
    )
    return build_page(interventions, total, params)


@router.get("/status-counts", response_model=itv_schemas.StatusCounts, summary="Interventions per status")
async def read_status_counts(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:read")),
):
    counts = await itv_crud.intervention.status_counts(db)
    return {"counts": counts, "total": sum(counts.values())}


@router.get("/{intervention_id}", response_model=itv_schemas.InterventionRead, summary="Get an intervention")
async def read_intervention(
    intervention_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:read")),
):
    return await _get_or_404(db, intervention_id)


@router.get(
    "/{intervention_id}/actions",
    response_model=List[itv_schemas.StatusActionRead],
    summary="Status actions available for an intervention",
)
async def read_intervention_actions(
    intervention_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:read")),
):
    intervention = await _get_or_404(db, intervention_id)
    return intervention.available_actions


@router.get(
    "/{intervention_id}/history",
    response_model=List[itv_schemas.StatusHistoryRead],
    summary="Status history of an intervention",
)
async def read_intervention_history(
    intervention_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:read")),
):
    await _get_or_404(db, intervention_id)
    return await itv_crud.intervention.get_history(db, intervention_id=intervention_id)


@router.get(
    "/{intervention_id}/timeline",
    response_model=List[itv_schemas.TimelineEvent],
    summary="Creation, status changes and phases of an intervention",
)
async def read_intervention_timeline(
    intervention_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:read")),
):
    intervention = await _get_or_404(db, intervention_id)
    return await itv_crud.intervention.get_timeline(db, db_obj=intervention)


@router.get(
    "/{intervention_id}/workflow",
    response_model=itv_schemas.WorkflowSummary,
    summary="Phases, actions and next steps of an intervention",
)
async def read_intervention_workflow(
    intervention_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:read")),
):
    intervention = await _get_or_404(db, intervention_id)
    return await itv_crud.intervention.get_workflow(db, db_obj=intervention)


@router.post("", response_model=itv_schemas.InterventionRead, status_code=status.HTTP_201_CREATED, summary="Plan an intervention")
async def create_intervention(
    request: Request,
    intervention_in: itv_schemas.InterventionCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:create")),
):
    intervention = await itv_crud.intervention.create(db, obj_in=intervention_in, created_by_id=current_user.id)
    await adt_crud.audit_log.record(
        db, action=AuditAction.CREATE, entity=AUDIT_ENTITY, entity_id=intervention.id,
        performed_by_id=current_user.id, request=request,
    )
    return intervention


@router.put("/{intervention_id}", response_model=itv_schemas.InterventionRead, summary="Update an intervention")
async def update_intervention(
    request: Request,
    intervention_id: int,
    intervention_in: itv_schemas.InterventionUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:update")),
):
    db_intervention = await _get_or_404(db, intervention_id)
    before = adt_crud.snapshot(db_intervention, intervention_in.model_fields_set)
    intervention = await itv_crud.intervention.update(db, db_obj=db_intervention, obj_in=intervention_in)
    await adt_crud.audit_log.record(
        db, action=AuditAction.UPDATE, entity=AUDIT_ENTITY, entity_id=intervention_id,
        performed_by_id=current_user.id, request=request,
        changes=adt_crud.track_changes(before, adt_crud.snapshot(intervention, before)),
    )
    return intervention


async def _change_status(
    db: AsyncSession,
    request: Request,
    intervention: itv_models.Intervention,
    target: InterventionStatus,
    current_user: usr_models.User,
    reason: Optional[str] = None,
) -> itv_models.Intervention:
    previous = intervention.status
    updated = await itv_crud.intervention.update_status(
        db, db_obj=intervention, target=target, changed_by_id=current_user.id, reason=reason
    )
    await adt_crud.audit_log.record(
        db, action=AuditAction.STATUS_CHANGE, entity=AUDIT_ENTITY, entity_id=updated.id,
        performed_by_id=current_user.id, request=request, reason=reason,
        changes=adt_crud.track_changes({"status": previous}, {"status": updated.status}),
    )
    return updated


@router.patch("/{intervention_id}/status", response_model=itv_schemas.InterventionRead, summary="Change the status of an intervention")
async def update_intervention_status(
    request: Request,
    intervention_id: int,
    status_in: itv_schemas.StatusUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:update")),
):
    """
    Moves the intervention along the workflow. Transitions not offered from the
    current status are answered with 400 and nothing is persisted; a status changed
    by another request in the meantime is answered with 409.
    """
    db_intervention = await _get_or_404(db, intervention_id)
    return await _change_status(db, request, db_intervention, status_in.status, current_user, status_in.reason)


# =============================================================================
# workflow phases
# =============================================================================
@router.get("/{intervention_id}/diagnostic", response_model=itv_schemas.DiagnosticRead, summary="Diagnostic of an intervention")
async def read_diagnostic(
    intervention_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:read")),
):
    return await _phase_or_404(db, itv_crud.diagnostic, intervention_id, "Diagnostic")


@router.post("/{intervention_id}/diagnostic", response_model=itv_schemas.DiagnosticRead, summary="Record the diagnostic")
async def save_diagnostic(
    request: Request,
    intervention_id: int,
    diagnostic_in: itv_schemas.DiagnosticSave,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:update")),
):
    """
    Creates or updates the diagnostic. A planned intervention whose diagnostic lists
    parts to order is put on hold (EN_ATTENTE_PDR).
    """
    intervention = await _get_or_404(db, intervention_id)
    record = await _save_phase(db, request, itv_crud.diagnostic, intervention_id, diagnostic_in, current_user)
    if intervention.status == InterventionStatus.PLANIFIEE and record.parts_needed:
        await _change_status(
            db, request, intervention, InterventionStatus.EN_ATTENTE_PDR, current_user, "Parts required by the diagnostic"
        )
    return record


@router.get("/{intervention_id}/planification", response_model=itv_schemas.PlanificationRead, summary="Planification of an intervention")
async def read_planification(
    intervention_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:read")),
):
    return await _phase_or_404(db, itv_crud.planification, intervention_id, "Planification")


@router.put("/{intervention_id}/planification", response_model=itv_schemas.PlanificationRead, summary="Record the planification")
async def save_planification(
    request: Request,
    intervention_id: int,
    planification_in: itv_schemas.PlanificationSave,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:update")),
):
    """
    Creates or updates the planification. An intervention waiting for parts is
    started (EN_COURS) once the parts are marked available.
    """
    intervention = await _get_or_404(db, intervention_id)
    record = await _save_phase(db, request, itv_crud.planification, intervention_id, planification_in, current_user)
    if intervention.status == InterventionStatus.EN_ATTENTE_PDR and record.parts_available:
        await _change_status(db, request, intervention, InterventionStatus.EN_COURS, current_user, "Parts available")
    return record


@router.get("/{intervention_id}/quality-control", response_model=itv_schemas.QualityControlRead, summary="Quality control of an intervention")
async def read_quality_control(
    intervention_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:read")),
):
    return await _phase_or_404(db, itv_crud.quality_control, intervention_id, "Quality control")


@router.post(
    "/{intervention_id}/quality-control",
    response_model=itv_schemas.QualityControlRead,
    status_code=status.HTTP_201_CREATED,
    summary="Record the quality control",
)
async def save_quality_control(
    request: Request,
    intervention_id: int,
    control_in: itv_schemas.QualityControlSave,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:update")),
):
    await _get_or_404(db, intervention_id)
    return await _save_phase(db, request, itv_crud.quality_control, intervention_id, control_in, current_user)


async def _phase_or_404(db: AsyncSession, phase_crud: itv_crud.CRUDInterventionPhase, intervention_id: int, name: str):
    await _get_or_404(db, intervention_id)
    record = await phase_crud.get_for_intervention(db, intervention_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{name} not recorded yet")
    return record


async def _save_phase(
    db: AsyncSession,
    request: Request,
    phase_crud: itv_crud.CRUDInterventionPhase,
    intervention_id: int,
    obj_in: SQLModel,
    current_user: usr_models.User,
):
    record, before, created = await phase_crud.save(db, intervention_id=intervention_id, obj_in=obj_in)
    await adt_crud.audit_log.record(
        db,
        action=AuditAction.CREATE if created else AuditAction.UPDATE,
        entity=phase_crud.model.__name__,
        entity_id=record.id,
        performed_by_id=current_user.id,
        request=request,
        changes=None if created else adt_crud.track_changes(before, adt_crud.snapshot(record, before)),
    )
    return record
