# reselec/domains/rpt/schemas.py

"""
API schemas of the 'rpt' domain (analytics dashboard).
"""

from typing import List, Optional
from pydantic import BaseModel

from reselec.domains.fms.models import EquipmentType
from reselec.domains.itv.workflow import InterventionStatus


class Overview(BaseModel):
    total_interventions: int
    total_equipment: int
    total_clients: int
    active_interventions: int
    completed_interventions: int
    completion_rate: float


class Alerts(BaseModel):
    urgent: int
    overdue: int


class StatusBreakdownItem(BaseModel):
    status: InterventionStatus
    label: str
    count: int


class EquipmentTypeCount(BaseModel):
    type: Optional[EquipmentType] = None
    label: str
    count: int


class Dashboard(BaseModel):
    overview: Overview
    alerts: Alerts
    status_breakdown: List[StatusBreakdownItem]
    equipment_by_type: List[EquipmentTypeCount]
