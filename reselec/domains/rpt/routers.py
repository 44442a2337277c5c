# reselec/domains/rpt/routers.py

"""
API endpoints of the 'rpt' domain (/analytics).
"""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from reselec.core import dependencies as deps
from reselec.domains.usr import models as usr_models
from reselec.domains.itv import crud as itv_crud
from reselec.domains.itv import schemas as itv_schemas

from . import crud as rpt_crud
from . import schemas as rpt_schemas

router = APIRouter()


@router.get("/dashboard", response_model=rpt_schemas.Dashboard, summary="Dashboard aggregates")
async def read_dashboard(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("analytics:read")),
):
    """
    Overview counters, alerts (urgent / overdue), status breakdown and equipment per type.
    """
    return await rpt_crud.get_dashboard(db)


@router.get("/recent-interventions", response_model=List[itv_schemas.InterventionRead], summary="Latest interventions")
async def read_recent_interventions(
    limit: int = Query(5, ge=1, le=50),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("analytics:read")),
):
    return await rpt_crud.get_recent_interventions(db, limit=limit)


@router.get("/overdue-interventions", response_model=List[itv_schemas.InterventionRead], summary="Overdue interventions")
async def read_overdue_interventions(
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("analytics:read")),
):
    return await itv_crud.intervention.get_overdue(db, limit=limit)
