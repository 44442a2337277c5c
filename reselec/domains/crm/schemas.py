# reselec/domains/crm/schemas.py

"""
API schemas of the 'crm' domain.
"""

from typing import Annotated, Optional
from datetime import datetime
from sqlmodel import SQLModel, Field
from pydantic import EmailStr, StringConstraints

PhoneStr = Annotated[str, StringConstraints(strip_whitespace=True, max_length=20, pattern=r"^[\d\s\-\+\(\)\.]+$")]


class ClientBase(SQLModel):
    company_name: str = Field(..., min_length=2, max_length=255)
    sector: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    phone: Optional[PhoneStr] = None
    fax: Optional[PhoneStr] = None
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(None, max_length=255)
    contact_name: Optional[str] = Field(None, max_length=100)
    contact_position: Optional[str] = Field(None, max_length=100)
    contact_phone: Optional[PhoneStr] = None
    contact_email: Optional[EmailStr] = None
    trade_register: Optional[str] = Field(None, max_length=100)
    legal_form: Optional[str] = Field(None, max_length=50)


class ClientCreate(ClientBase):
    pass


class ClientUpdate(SQLModel):
    company_name: Optional[str] = Field(None, min_length=2, max_length=255)
    sector: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    phone: Optional[PhoneStr] = None
    fax: Optional[PhoneStr] = None
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(None, max_length=255)
    contact_name: Optional[str] = Field(None, max_length=100)
    contact_position: Optional[str] = Field(None, max_length=100)
    contact_phone: Optional[PhoneStr] = None
    contact_email: Optional[EmailStr] = None
    trade_register: Optional[str] = Field(None, max_length=100)
    legal_form: Optional[str] = Field(None, max_length=50)


class ClientRead(ClientBase):
    id: int
    email: Optional[str] = None
    contact_email: Optional[str] = None
    equipment_count: int = 0
    created_by_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ClientSummary(SQLModel):
    id: int
    company_name: str
    city: Optional[str] = None
