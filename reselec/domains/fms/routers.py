# reselec/domains/fms/routers.py

"""
API endpoints of the 'fms' domain (/equipment).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from reselec.core import dependencies as deps
from reselec.core.pagination import Page, PageParams, build_page, page_params
from reselec.domains.adt import crud as adt_crud
from reselec.domains.adt.models import AuditAction
from reselec.domains.usr import models as usr_models
from reselec.domains.itv import crud as itv_crud
from reselec.domains.itv import schemas as itv_schemas

from . import crud as fms_crud
from . import models as fms_models
from . import schemas as fms_schemas

router = APIRouter(
    responses={404: {"description": "Not found"}},
)

AUDIT_ENTITY = "Equipment"

EQUIPMENT_SORT_FIELDS = {
    "name": "name",
    "brand": "brand",
    "type": "type",
    "cost": "cost",
    "createdAt": "created_at",
    "id": "id",
}


async def _equipment_read(db: AsyncSession, equipment: fms_models.Equipment) -> fms_schemas.EquipmentRead:
    return (await fms_crud.equipment.with_stats(db, [equipment]))[0]


@router.get("", response_model=Page[fms_schemas.EquipmentRead], summary="List equipment")
async def read_equipment_list(
    type: Optional[fms_models.EquipmentType] = Query(None),
    client_id: Optional[int] = Query(None),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("equipment:read")),
):
    items, total = await fms_crud.equipment.get_page(
        db,
        filters={"type": type, "client_id": client_id},
        search=params.search,
        order_by_field=params.order_field(EQUIPMENT_SORT_FIELDS, "created_at"),
        order_desc=params.order_desc,
        skip=params.skip,
        limit=params.limit,
    )
    return build_page(await fms_crud.equipment.with_stats(db, items), total, params)


@router.get("/types", response_model=List[fms_schemas.EquipmentTypeRead], summary="Equipment types")
async def read_equipment_types(
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return [{"value": t, "label": t.label} for t in fms_models.EquipmentType]


@router.get("/{equipment_id}", response_model=fms_schemas.EquipmentRead, summary="Get an equipment")
async def read_equipment(
    equipment_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("equipment:read")),
):
    equipment = await fms_crud.equipment.get(db, id=equipment_id)
    if not equipment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Equipment not found")
    return await _equipment_read(db, equipment)


@router.get(
    "/{equipment_id}/interventions",
    response_model=List[itv_schemas.InterventionRead],
    summary="Intervention history of an equipment",
)
async def read_equipment_interventions(
    equipment_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("interventions:read")),
):
    if not await fms_crud.equipment.get(db, id=equipment_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Equipment not found")
    interventions, _ = await itv_crud.intervention.get_page(
        db,
        filters={"equipment_id": equipment_id},
        order_by_field="scheduled_date",
        order_desc=True,
        limit=500,
    )
    return interventions


@router.post("", response_model=fms_schemas.EquipmentRead, status_code=status.HTTP_201_CREATED, summary="Register an equipment")
async def create_equipment(
    request: Request,
    equipment_in: fms_schemas.EquipmentCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("equipment:create")),
):
    equipment = await fms_crud.equipment.create(db, obj_in=equipment_in, added_by_id=current_user.id)
    await adt_crud.audit_log.record(
        db, action=AuditAction.CREATE, entity=AUDIT_ENTITY, entity_id=equipment.id,
        performed_by_id=current_user.id, request=request,
    )
    return await _equipment_read(db, equipment)


@router.put("/{equipment_id}", response_model=fms_schemas.EquipmentRead, summary="Update an equipment")
async def update_equipment(
    request: Request,
    equipment_id: int,
    equipment_in: fms_schemas.EquipmentUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("equipment:update")),
):
    db_equipment = await fms_crud.equipment.get(db, id=equipment_id)
    if not db_equipment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Equipment not found")
    before = adt_crud.snapshot(db_equipment, equipment_in.model_fields_set)
    equipment = await fms_crud.equipment.update(db, db_obj=db_equipment, obj_in=equipment_in)
    await adt_crud.audit_log.record(
        db, action=AuditAction.UPDATE, entity=AUDIT_ENTITY, entity_id=equipment_id,
        performed_by_id=current_user.id, request=request,
        changes=adt_crud.track_changes(before, adt_crud.snapshot(equipment, before)),
    )
    return await _equipment_read(db, equipment)


@router.delete("/{equipment_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete an equipment")
async def delete_equipment(
    request: Request,
    equipment_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("equipment:delete")),
):
    await fms_crud.equipment.remove(db, id=equipment_id)
    await adt_crud.audit_log.record(
        db, action=AuditAction.DELETE, entity=AUDIT_ENTITY, entity_id=equipment_id,
        performed_by_id=current_user.id, request=request,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
