# reselec/domains/fms/schemas.py

"""
API schemas of the 'fms' domain.
"""

from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field

from reselec.domains.crm.schemas import ClientSummary
from reselec.domains.itv.workflow import InterventionStatus
from .models import EquipmentType


class EquipmentBase(SQLModel):
    name: str = Field(..., min_length=2, max_length=255)
    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    type: Optional[EquipmentType] = None
    reception_condition: Optional[str] = Field(None, max_length=255)
    rated_value: Optional[str] = Field(None, max_length=100)
    cost: Optional[float] = Field(None, ge=0)
    client_id: int


class EquipmentCreate(EquipmentBase):
    pass


class EquipmentUpdate(SQLModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    type: Optional[EquipmentType] = None
    reception_condition: Optional[str] = Field(None, max_length=255)
    rated_value: Optional[str] = Field(None, max_length=100)
    cost: Optional[float] = Field(None, ge=0)
    client_id: Optional[int] = None


class EquipmentRead(EquipmentBase):
    id: int
    client: Optional[ClientSummary] = None
    added_by_id: Optional[int] = None
    latest_intervention_status: Optional[InterventionStatus] = None
    intervention_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EquipmentSummary(SQLModel):
    id: int
    name: str
    brand: Optional[str] = None
    model: Optional[str] = None
    type: Optional[EquipmentType] = None
    client: Optional[ClientSummary] = None


class EquipmentTypeRead(SQLModel):
    value: EquipmentType
    label: str
