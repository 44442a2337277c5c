# reselec/core/tasks.py

import logging

from sqlmodel import select
from sqlalchemy.exc import SQLAlchemyError

from reselec.core.database import get_async_session_context

logger = logging.getLogger(__name__)


async def health_check_database_task(ctx):
    """
    Periodic database health check run by the arq worker.
    """
    logger.info("arq task: database health check")

    try:
        async with get_async_session_context() as db:
            result = await db.execute(select(1))
            if result.scalar_one_or_none() == 1:
                logger.info("Database health check: connection successful")
                return {"status": "success", "message": "Database connection successful."}
            error_msg = "Database health check failed: No result from test query."
            logger.error(error_msg)
            return {"status": "failed", "message": error_msg}
    except (SQLAlchemyError, OSError) as e:
        logger.exception("Database health check failed")
        return {"status": "failed", "message": f"Database connection error: {e}"}
