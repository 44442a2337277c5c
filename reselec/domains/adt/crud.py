# reselec/domains/adt/crud.py

"""
CRUD operations of the 'adt' domain.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import selectinload
from sqlmodel.ext.asyncio.session import AsyncSession

from reselec.core.crud_base import CRUDBase
from . import models as adt_models
from . import schemas as adt_schemas
from .models import AuditAction

logger = logging.getLogger(__name__)


def snapshot(obj: Any, fields: Iterable[str]) -> Dict[str, Any]:
    """Current values of `fields` on a record, taken before it is changed."""
    return {field: getattr(obj, field, None) for field in fields}


def track_changes(before: Dict[str, Any], after: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    `{field: {"from": old, "to": new}}` for the fields whose value differs, None when
    nothing changed. Values are made JSON compatible (dates, enums).
    """
    changes = {
        key: {"from": before.get(key), "to": value}
        for key, value in after.items()
        if before.get(key) != value
    }
    return jsonable_encoder(changes) if changes else None


class CRUDAuditLog(CRUDBase[adt_models.AuditLog, adt_schemas.AuditLogRead, adt_schemas.AuditLogRead]):
    search_fields = ("entity", "reason")

    def __init__(self):
        super().__init__(
            model=adt_models.AuditLog,
            load_options=lambda: [selectinload(adt_models.AuditLog.performed_by)],
        )

    async def record(
        self,
        db: AsyncSession,
        *,
        action: AuditAction,
        entity: str,
        entity_id: Optional[int] = None,
        performed_by_id: Optional[int] = None,
        changes: Optional[Dict[str, Any]] = None,
        reason: Optional[str] = None,
        request: Optional[Request] = None,
    ) -> adt_models.AuditLog:
        """
        Stores one audit entry. Called once the audited change is committed, so a
        rejected request leaves no entry.
        """
        entry = adt_models.AuditLog(
            action=action,
            entity=entity,
            entity_id=entity_id,
            performed_by_id=performed_by_id,
            changes=jsonable_encoder(changes) if changes else None,
            reason=reason,
        )
        if request is not None:
            entry.ip_address = request.client.host if request.client else None
            entry.user_agent = request.headers.get("user-agent")
        db.add(entry)
        await db.commit()
        logger.info("Audit: %s %s %s by user %s", action.value, entity, entity_id, performed_by_id)
        return entry


audit_log = CRUDAuditLog()
