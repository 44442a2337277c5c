# reselec/domains/adt/routers.py

"""
API endpoints of the 'adt' domain (/audit-logs). Reading the audit trail is
reserved to the Admin role.
"""

from typing import Optional
from datetime import date, datetime, time, UTC

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from reselec.core import dependencies as deps
from reselec.core.pagination import Page, PageParams, build_page, page_params
from reselec.domains.usr import models as usr_models

from . import crud as adt_crud
from . import schemas as adt_schemas
from .models import AuditAction

router = APIRouter(
    responses={404: {"description": "Not found"}},
)

AUDIT_SORT_FIELDS = {
    "timestamp": "timestamp",
    "action": "action",
    "entity": "entity",
    "id": "id",
}


def _day_start(day: Optional[date]) -> Optional[datetime]:
    # the timestamp column is compared with instants, not dates
    return datetime.combine(day, time.min, tzinfo=UTC) if day else None


@router.get("", response_model=Page[adt_schemas.AuditLogRead], summary="List audit entries")
async def read_audit_logs(
    action: Optional[AuditAction] = Query(None),
    entity: Optional[str] = Query(None),
    entity_id: Optional[int] = Query(None, alias="entityId"),
    performed_by_id: Optional[int] = Query(None, alias="performedBy"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    if date_from and date_to and date_from > date_to:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="dateFrom must be before dateTo")

    entries, total = await adt_crud.audit_log.get_page(
        db,
        filters={"action": action, "entity": entity, "entity_id": entity_id, "performed_by_id": performed_by_id},
        search=params.search,
        date_range_field="timestamp",
        start_date=_day_start(date_from),
        end_date=_day_start(date_to),
        order_by_field=params.order_field(AUDIT_SORT_FIELDS, "timestamp"),
        order_desc=params.order_desc,
        skip=params.skip,
        limit=params.limit,
    )
    return build_page(entries, total, params)


@router.get("/{entry_id}", response_model=adt_schemas.AuditLogRead, summary="Get an audit entry")
async def read_audit_log(
    entry_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    entry = await adt_crud.audit_log.get(db, id=entry_id)
    if not entry:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Audit entry not found")
    return entry
