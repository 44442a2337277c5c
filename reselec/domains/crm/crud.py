# reselec/domains/crm/crud.py

"""
CRUD operations of the 'crm' domain.
"""

import logging
from typing import Dict, List, Sequence

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import HTTPException, status

from reselec.core.crud_base import CRUDBase
from reselec.domains.fms import models as fms_models
from . import models as crm_models
from . import schemas as crm_schemas

logger = logging.getLogger(__name__)


class CRUDClient(CRUDBase[crm_models.Client, crm_schemas.ClientCreate, crm_schemas.ClientUpdate]):
    search_fields = ("company_name", "contact_name", "city", "email", "sector")

    def __init__(self):
        super().__init__(model=crm_models.Client)

    async def equipment_counts(self, db: AsyncSession, client_ids: Sequence[int]) -> Dict[int, int]:
        if not client_ids:
            return {}
        statement = (
            select(fms_models.Equipment.client_id, func.count(fms_models.Equipment.id))
            .where(fms_models.Equipment.client_id.in_(client_ids))
            .group_by(fms_models.Equipment.client_id)
        )
        result = await db.execute(statement)
        return {client_id: count for client_id, count in result.all()}

    async def get_sectors(self, db: AsyncSession) -> List[str]:
        statement = (
            select(self.model.sector)
            .where(self.model.sector.is_not(None))
            .distinct()
            .order_by(self.model.sector)
        )
        result = await db.execute(statement)
        return [sector for sector in result.scalars().all() if sector]

    async def remove(self, db: AsyncSession, *, id: int) -> crm_models.Client:
        """
        Deletes a client. Clients that still own equipment are kept.
        """
        client = await self.get(db, id=id)
        if not client:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

        equipment_count = (await self.equipment_counts(db, [id])).get(id, 0)
        if equipment_count:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot delete client. {equipment_count} equipment items are associated with this client.",
            )
        logger.info("Deleting client %d (%s)", id, client.company_name)
        return await super().delete(db, id=id)


client = CRUDClient()
