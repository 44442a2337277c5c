# reselec/domains/crm/models.py

"""
ORM model of the 'crm' domain: client company records.
"""

from typing import Optional, List, TYPE_CHECKING
from datetime import datetime, UTC
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP

if TYPE_CHECKING:
    from reselec.domains.usr.models import User
    from reselec.domains.fms.models import Equipment


class ClientBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    company_name: str = Field(max_length=255, index=True, description="Company name")
    sector: Optional[str] = Field(default=None, max_length=255, description="Business sector")
    address: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=20)
    phone: Optional[str] = Field(default=None, max_length=20)
    fax: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=100)
    website: Optional[str] = Field(default=None, max_length=255)
    contact_name: Optional[str] = Field(default=None, max_length=100, description="Main contact person")
    contact_position: Optional[str] = Field(default=None, max_length=100)
    contact_phone: Optional[str] = Field(default=None, max_length=20)
    contact_email: Optional[str] = Field(default=None, max_length=100)
    trade_register: Optional[str] = Field(default=None, max_length=100, description="Trade register number")
    legal_form: Optional[str] = Field(default=None, max_length=50, description="Legal form (SARL, SA, ...)")
    created_by_id: Optional[int] = Field(default=None, foreign_key="users.id")

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
    )


class Client(ClientBase, table=True):
    __tablename__ = "clients"

    created_by: Optional["User"] = Relationship()
    equipment: List["Equipment"] = Relationship(back_populates="client")
