# reselec/domains/rpt/crud.py

"""
Aggregate queries of the analytics dashboard.
"""

from typing import Any, Dict, List, Optional
from datetime import date

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from reselec.domains.crm import crud as crm_crud
from reselec.domains.fms import crud as fms_crud
from reselec.domains.fms import models as fms_models
from reselec.domains.itv import crud as itv_crud
from reselec.domains.itv import models as itv_models
from reselec.domains.itv import workflow
from reselec.domains.itv.workflow import InterventionStatus


def completion_rate(completed: int, total: int) -> float:
    """Share of completed interventions, in percent with one decimal."""
    if not total:
        return 0.0
    return round(completed * 100.0 / total, 1)


async def get_overview(db: AsyncSession, status_counts: Dict[InterventionStatus, int]) -> Dict[str, Any]:
    total = sum(status_counts.values())
    active = sum(count for s, count in status_counts.items() if s in workflow.ACTIVE_STATUSES)
    completed = status_counts.get(InterventionStatus.TERMINEE, 0)
    return {
        "total_interventions": total,
        "total_equipment": await fms_crud.equipment.count(db),
        "total_clients": await crm_crud.client.count(db),
        "active_interventions": active,
        "completed_interventions": completed,
        "completion_rate": completion_rate(completed, total),
    }


async def get_alerts(db: AsyncSession, today: Optional[date] = None) -> Dict[str, int]:
    """Urgent interventions still active, and overdue interventions."""
    Intervention = itv_models.Intervention
    urgent = await itv_crud.intervention.count(
        db,
        Intervention.is_urgent.is_(True),
        Intervention.status.in_(list(workflow.ACTIVE_STATUSES)),
    )
    overdue = await itv_crud.intervention.count(db, *itv_crud.overdue_conditions(today))
    return {"urgent": urgent, "overdue": overdue}


def get_status_breakdown(status_counts: Dict[InterventionStatus, int]) -> List[Dict[str, Any]]:
    return [
        {"status": s, "label": workflow.status_label(s), "count": status_counts.get(s, 0)}
        for s in InterventionStatus
    ]


async def get_equipment_by_type(db: AsyncSession) -> List[Dict[str, Any]]:
    """
    Equipment count per type; every type is listed, untyped equipment comes last when present.
    """
    Equipment = fms_models.Equipment
    statement = select(Equipment.type, func.count(Equipment.id)).group_by(Equipment.type)
    result = await db.execute(statement)
    counts = {equipment_type: count for equipment_type, count in result.all()}

    breakdown = [
        {"type": t, "label": t.label, "count": counts.get(t, 0)}
        for t in fms_models.EquipmentType
    ]
    if counts.get(None):
        breakdown.append({"type": None, "label": "Non défini", "count": counts[None]})
    return breakdown


async def get_dashboard(db: AsyncSession) -> Dict[str, Any]:
    status_counts = await itv_crud.intervention.status_counts(db)
    return {
        "overview": await get_overview(db, status_counts),
        "alerts": await get_alerts(db),
        "status_breakdown": get_status_breakdown(status_counts),
        "equipment_by_type": await get_equipment_by_type(db),
    }


async def get_recent_interventions(db: AsyncSession, *, limit: int = 5) -> List[itv_models.Intervention]:
    items, _ = await itv_crud.intervention.get_page(
        db, order_by_field="created_at", order_desc=True, limit=limit
    )
    return items
