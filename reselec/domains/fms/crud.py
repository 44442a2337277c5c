# reselec/domains/fms/crud.py

"""
CRUD operations of the 'fms' domain.
"""

import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import selectinload
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import HTTPException, status

from reselec.core.crud_base import CRUDBase
from reselec.domains.crm import models as crm_models
from reselec.domains.itv import models as itv_models
from reselec.domains.itv.workflow import ACTIVE_STATUSES
from . import models as fms_models
from . import schemas as fms_schemas

logger = logging.getLogger(__name__)


class CRUDEquipment(CRUDBase[fms_models.Equipment, fms_schemas.EquipmentCreate, fms_schemas.EquipmentUpdate]):
    search_fields = ("name", "brand", "model", "rated_value")

    def __init__(self):
        super().__init__(model=fms_models.Equipment, load_options=lambda: [selectinload(fms_models.Equipment.client)])

    async def _check_client(self, db: AsyncSession, client_id: Optional[int]) -> None:
        if client_id is not None and not await db.get(crm_models.Client, client_id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid client specified")

    async def _intervention_count(self, db: AsyncSession, *conditions) -> int:
        query = select(func.count()).select_from(itv_models.Intervention).where(*conditions)
        result = await db.execute(query)
        return result.scalar_one()

    async def intervention_counts(self, db: AsyncSession, equipment_ids: Sequence[int]) -> Dict[int, int]:
        if not equipment_ids:
            return {}
        Intervention = itv_models.Intervention
        statement = (
            select(Intervention.equipment_id, func.count(Intervention.id))
            .where(Intervention.equipment_id.in_(equipment_ids))
            .group_by(Intervention.equipment_id)
        )
        result = await db.execute(statement)
        return {equipment_id: count for equipment_id, count in result.all()}

    async def latest_statuses(self, db: AsyncSession, equipment_ids: Sequence[int]) -> Dict[int, str]:
        """
        Status of the most recently scheduled intervention of each equipment.
        """
        if not equipment_ids:
            return {}
        Intervention = itv_models.Intervention
        statement = (
            select(Intervention.equipment_id, Intervention.status)
            .where(Intervention.equipment_id.in_(equipment_ids))
            .order_by(Intervention.scheduled_date.desc(), Intervention.id.desc())
        )
        result = await db.execute(statement)
        latest: Dict[int, str] = {}
        for equipment_id, status_value in result.all():
            latest.setdefault(equipment_id, status_value)
        return latest

    async def with_stats(
        self, db: AsyncSession, items: Sequence[fms_models.Equipment]
    ) -> List[fms_schemas.EquipmentRead]:
        """
        Read schemas enriched with the intervention count and the latest intervention status.
        """
        ids = [item.id for item in items]
        counts = await self.intervention_counts(db, ids)
        latest = await self.latest_statuses(db, ids)
        return [
            fms_schemas.EquipmentRead.model_validate(item).model_copy(
                update={
                    "intervention_count": counts.get(item.id, 0),
                    "latest_intervention_status": latest.get(item.id),
                }
            )
            for item in items
        ]

    async def create(
        self, db: AsyncSession, *, obj_in: fms_schemas.EquipmentCreate, added_by_id: Optional[int] = None
    ) -> fms_models.Equipment:
        await self._check_client(db, obj_in.client_id)
        db_obj = await super().create(db, obj_in=obj_in, added_by_id=added_by_id)
        logger.info("Equipment %d '%s' registered for client %d", db_obj.id, db_obj.name, db_obj.client_id)
        return db_obj

    async def update(
        self, db: AsyncSession, *, db_obj: fms_models.Equipment, obj_in: fms_schemas.EquipmentUpdate
    ) -> fms_models.Equipment:
        if "client_id" in obj_in.model_fields_set:
            if obj_in.client_id is None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Equipment must belong to a client")
            await self._check_client(db, obj_in.client_id)
        return await super().update(db, db_obj=db_obj, obj_in=obj_in)

    async def remove(self, db: AsyncSession, *, id: int) -> fms_models.Equipment:
        """
        Deletes an equipment. Equipment with interventions still in progress is kept.
        """
        equipment_to_delete = await self.get(db, id=id)
        if not equipment_to_delete:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Equipment not found")

        Intervention = itv_models.Intervention
        active = await self._intervention_count(
            db, Intervention.equipment_id == id, Intervention.status.in_(list(ACTIVE_STATUSES))
        )
        if active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot delete equipment. {active} active intervention(s) are linked to this equipment.",
            )
        total = await self._intervention_count(db, Intervention.equipment_id == id)
        if total:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot delete equipment. {total} intervention(s) reference this equipment.",
            )
        logger.info("Deleting equipment %d (%s)", id, equipment_to_delete.name)
        return await super().delete(db, id=id)


equipment = CRUDEquipment()
