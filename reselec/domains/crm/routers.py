# reselec/domains/crm/routers.py

"""
API endpoints of the 'crm' domain (/clients).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from reselec.core import dependencies as deps
from reselec.core.pagination import Page, PageParams, build_page, page_params
from reselec.domains.adt import crud as adt_crud
from reselec.domains.adt.models import AuditAction
from reselec.domains.usr import models as usr_models
from reselec.domains.fms import crud as fms_crud
from reselec.domains.fms import schemas as fms_schemas

from . import crud as crm_crud
from . import models as crm_models
from . import schemas as crm_schemas

router = APIRouter(
    responses={404: {"description": "Not found"}},
)

AUDIT_ENTITY = "Client"

CLIENT_SORT_FIELDS = {
    "company_name": "company_name",
    "city": "city",
    "sector": "sector",
    "createdAt": "created_at",
    "id": "id",
}


def _client_read(client: crm_models.Client, equipment_count: int) -> crm_schemas.ClientRead:
    return crm_schemas.ClientRead.model_validate(client).model_copy(update={"equipment_count": equipment_count})


@router.get("", response_model=Page[crm_schemas.ClientRead], summary="List clients")
async def read_clients(
    sector: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("clients:read")),
):
    clients, total = await crm_crud.client.get_page(
        db,
        filters={"sector": sector, "city": city},
        search=params.search,
        order_by_field=params.order_field(CLIENT_SORT_FIELDS, "created_at"),
        order_desc=params.order_desc,
        skip=params.skip,
        limit=params.limit,
    )
    counts = await crm_crud.client.equipment_counts(db, [c.id for c in clients])
    return build_page([_client_read(c, counts.get(c.id, 0)) for c in clients], total, params)


@router.get("/sectors", response_model=List[str], summary="Distinct business sectors")
async def read_client_sectors(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("clients:read")),
):
    return await crm_crud.client.get_sectors(db)


@router.get("/{client_id}", response_model=crm_schemas.ClientRead, summary="Get a client")
async def read_client(
    client_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("clients:read")),
):
    client = await crm_crud.client.get(db, id=client_id)
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    counts = await crm_crud.client.equipment_counts(db, [client_id])
    return _client_read(client, counts.get(client_id, 0))


@router.get("/{client_id}/equipment", response_model=List[fms_schemas.EquipmentRead], summary="Equipment owned by a client")
async def read_client_equipment(
    client_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("equipment:read")),
):
    if not await crm_crud.client.get(db, id=client_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    equipment = await fms_crud.equipment.get_multi(db, limit=500, client_id=client_id)
    return await fms_crud.equipment.with_stats(db, equipment)


@router.post("", response_model=crm_schemas.ClientRead, status_code=status.HTTP_201_CREATED, summary="Create a client")
async def create_client(
    request: Request,
    client_in: crm_schemas.ClientCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("clients:create")),
):
    client = await crm_crud.client.create(db, obj_in=client_in, created_by_id=current_user.id)
    await adt_crud.audit_log.record(
        db, action=AuditAction.CREATE, entity=AUDIT_ENTITY, entity_id=client.id,
        performed_by_id=current_user.id, request=request,
    )
    return _client_read(client, 0)


@router.put("/{client_id}", response_model=crm_schemas.ClientRead, summary="Update a client")
async def update_client(
    request: Request,
    client_id: int,
    client_in: crm_schemas.ClientUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("clients:update")),
):
    db_client = await crm_crud.client.get(db, id=client_id)
    if not db_client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    before = adt_crud.snapshot(db_client, client_in.model_fields_set)
    client = await crm_crud.client.update(db, db_obj=db_client, obj_in=client_in)
    await adt_crud.audit_log.record(
        db, action=AuditAction.UPDATE, entity=AUDIT_ENTITY, entity_id=client_id,
        performed_by_id=current_user.id, request=request,
        changes=adt_crud.track_changes(before, adt_crud.snapshot(client, before)),
    )
    counts = await crm_crud.client.equipment_counts(db, [client_id])
    return _client_read(client, counts.get(client_id, 0))


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a client")
async def delete_client(
    request: Request,
    client_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("clients:delete")),
):
    await crm_crud.client.remove(db, id=client_id)
    await adt_crud.audit_log.record(
        db, action=AuditAction.DELETE, entity=AUDIT_ENTITY, entity_id=client_id,
        performed_by_id=current_user.id, request=request,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
