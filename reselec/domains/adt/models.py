# reselec/domains/adt/models.py

"""
ORM models of the 'adt' domain.
"""

from enum import Enum
from typing import Any, Dict, Optional, TYPE_CHECKING
from datetime import datetime, UTC
from sqlalchemy import ForeignKey, Integer
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON, TIMESTAMP, Text
from sqlalchemy.sql import func
from sqlmodel import Field, Relationship, SQLModel, Column

if TYPE_CHECKING:
    from reselec.domains.usr.models import User


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    ROLE_ASSIGNMENT = "ROLE_ASSIGNMENT"
    STATUS_CHANGE = "STATUS_CHANGE"
    EXPORT = "EXPORT"
    IMPORT = "IMPORT"


# =============================================================================
# 1. audit_logs table
# =============================================================================
class AuditLogBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    action: AuditAction = Field(index=True)
    entity: str = Field(max_length=100, index=True, description="Kind of record, e.g. Client or Intervention")
    entity_id: Optional[int] = Field(default=None, index=True)
    # entries outlive the user who made them
    performed_by_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True),
    )
    changes: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON().with_variant(JSONB, "postgresql")))
    reason: Optional[str] = Field(default=None, sa_column=Column(Text))
    ip_address: Optional[str] = Field(default=None, max_length=45)
    user_agent: Optional[str] = Field(default=None, sa_column=Column(Text))
    timestamp: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), index=True),
    )


class AuditLog(AuditLogBase, table=True):
    __tablename__ = "audit_logs"

    performed_by: Optional["User"] = Relationship()
