# reselec/domains/adt/schemas.py

"""
API schemas of the 'adt' domain.
"""

from typing import Any, Dict, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from reselec.domains.usr.schemas import UserSummary
from .models import AuditAction


class AuditLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    action: AuditAction
    entity: str
    entity_id: Optional[int] = None
    performed_by_id: Optional[int] = None
    performed_by: Optional[UserSummary] = None
    changes: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: Optional[datetime] = None
