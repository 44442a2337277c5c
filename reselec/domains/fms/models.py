# reselec/domains/fms/models.py

"""
ORM model of the 'fms' domain: client equipment.
"""

from enum import Enum
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime, UTC
from sqlalchemy import Numeric
from sqlalchemy.types import TIMESTAMP
from sqlalchemy.sql import func
from sqlmodel import Field, Relationship, SQLModel, Column

if TYPE_CHECKING:
    from reselec.domains.crm.models import Client
    from reselec.domains.usr.models import User
    from reselec.domains.itv.models import Intervention


class EquipmentType(str, Enum):
    MOTEUR_ELECTRIQUE = "MOTEUR_ELECTRIQUE"
    TRANSFORMATEUR = "TRANSFORMATEUR"
    GENERATEUR = "GENERATEUR"
    POMPE_INDUSTRIELLE = "POMPE_INDUSTRIELLE"
    VENTILATEUR = "VENTILATEUR"
    COMPRESSEUR = "COMPRESSEUR"
    AUTOMATE = "AUTOMATE"
    TABLEAU_ELECTRIQUE = "TABLEAU_ELECTRIQUE"

    @property
    def label(self) -> str:
        return EQUIPMENT_TYPE_LABELS[self]


EQUIPMENT_TYPE_LABELS = {
    EquipmentType.MOTEUR_ELECTRIQUE: "Moteur électrique",
    EquipmentType.TRANSFORMATEUR: "Transformateur",
    EquipmentType.GENERATEUR: "Générateur",
    EquipmentType.POMPE_INDUSTRIELLE: "Pompe industrielle",
    EquipmentType.VENTILATEUR: "Ventilateur",
    EquipmentType.COMPRESSEUR: "Compresseur",
    EquipmentType.AUTOMATE: "Automate",
    EquipmentType.TABLEAU_ELECTRIQUE: "Tableau électrique",
}


class EquipmentBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255, index=True, description="Equipment name")
    brand: Optional[str] = Field(default=None, max_length=100)
    model: Optional[str] = Field(default=None, max_length=100)
    type: Optional[EquipmentType] = Field(default=None, index=True, description="Equipment type")
    reception_condition: Optional[str] = Field(default=None, max_length=255, description="Condition on reception")
    rated_value: Optional[str] = Field(default=None, max_length=100, description="Rated value (power, voltage, ...)")
    cost: Optional[float] = Field(default=None, sa_column=Column(Numeric(12, 2, asdecimal=False)))
    client_id: int = Field(foreign_key="clients.id", index=True, description="Owning client")
    added_by_id: Optional[int] = Field(default=None, foreign_key="users.id")

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
    )


class Equipment(EquipmentBase, table=True):
    __tablename__ = "equipment"

    client: Optional["Client"] = Relationship(back_populates="equipment")
    added_by: Optional["User"] = Relationship()
    interventions: List["Intervention"] = Relationship(back_populates="equipment")
