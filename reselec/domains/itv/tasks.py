# reselec/domains/itv/tasks.py

import logging
from datetime import date

from reselec.core.database import get_async_session_context

from . import crud as itv_crud

logger = logging.getLogger(__name__)


async def flag_overdue_interventions_task(ctx):
    """
    arq task run daily: lists the interventions that are past their scheduled date
    while still active, so that they can be reported to the workshop.
    """
    today = date.today()
    logger.info("arq task: overdue interventions check for %s", today)

    async def _collect(db):
        overdue = await itv_crud.intervention.get_overdue(db, today=today, limit=1000)
        return [item.id for item in overdue]

    db = (ctx or {}).get("db")
    if db is not None:
        intervention_ids = await _collect(db)
    else:
        async with get_async_session_context() as session:
            intervention_ids = await _collect(session)

    if intervention_ids:
        logger.warning("%d overdue intervention(s): %s", len(intervention_ids), intervention_ids)
    else:
        logger.info("No overdue intervention")
    return {"status": "ok", "overdue_count": len(intervention_ids), "intervention_ids": intervention_ids}
