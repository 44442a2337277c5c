# reselec/main.py

import logging
from typing import AsyncGenerator
from contextlib import asynccontextmanager
from arq import cron
from arq.connections import create_pool, RedisSettings

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reselec import API_PREFIX
from reselec.core.config import settings
from reselec.core.database import engine, get_session

# every table model, before any domain crud builds queries on relationships
from reselec.domains import models  # noqa: F401

# arq tasks
from reselec.core import tasks as core_tasks
from reselec.domains.itv import tasks as itv_tasks
from reselec.domains.itv.workflow import InvalidTransitionError

# domain routers
from reselec.domains.usr.routers import router as usr_router
from reselec.domains.crm.routers import router as crm_router
from reselec.domains.fms.routers import router as fms_router
from reselec.domains.itv.routers import router as itv_router
from reselec.domains.rpt.routers import router as rpt_router
from reselec.domains.adt.routers import router as adt_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG_MODE else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# functions run by the arq worker
worker_functions = [
    core_tasks.health_check_database_task,
    itv_tasks.flag_overdue_interventions_task,
]


class ArqWorkerSettings:
    """arq worker settings: `arq reselec.main.ArqWorkerSettings`."""
    redis_settings = RedisSettings(host=settings.REDIS_HOST, port=settings.REDIS_PORT)
    functions = worker_functions
    cron_jobs = [
        cron(core_tasks.health_check_database_task, name="daily_db_health_check",
             hour={0}, minute={0}, timeout=300, keep_result=600),
        cron(itv_tasks.flag_overdue_interventions_task, name="daily_overdue_interventions",
             hour={6}, minute={0}, timeout=600, keep_result=3600),
    ]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Opens the arq Redis pool on startup; closes it and the database pool on shutdown.
    """
    logger.info("Starting %s (%s)", settings.APP_NAME, settings.APP_ENV)
    app.state.redis = None
    if settings.ARQ_ENABLED:
        app.state.redis = await create_pool(ArqWorkerSettings.redis_settings)
        logger.info("arq Redis pool created (%s:%s)", settings.REDIS_HOST, settings.REDIS_PORT)

    yield

    logger.info("Shutting down %s", settings.APP_NAME)
    if app.state.redis:
        await app.state.redis.close()
        logger.info("arq Redis pool closed")
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
    logger.info("Rejected status transition on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc), "current_status": exc.current, "target_status": exc.target},
    )


app.include_router(usr_router, prefix=API_PREFIX, tags=["Users, Roles & Authentication"])
app.include_router(crm_router, prefix=f"{API_PREFIX}/clients", tags=["Clients"])
app.include_router(fms_router, prefix=f"{API_PREFIX}/equipment", tags=["Equipment"])
app.include_router(itv_router, prefix=f"{API_PREFIX}/interventions", tags=["Interventions"])
app.include_router(rpt_router, prefix=f"{API_PREFIX}/analytics", tags=["Analytics"])
app.include_router(adt_router, prefix=f"{API_PREFIX}/audit-logs", tags=["Audit trail"])


@app.get("/", summary="API Root", response_description="Welcome message and documentation link.")
async def read_root():
    return {"message": f"Welcome to {settings.APP_NAME}. Visit /docs for interactive API documentation."}


@app.get("/health-check", summary="Health Check", response_description="Status of the application and database connection.")
async def health_check(session: AsyncSession = Depends(get_session)):
    """
    Checks that the database answers a trivial query.
    """
    try:
        result = await session.exec(select(1))
        if result.first():
            return {"status": "ok", "database_connection": "successful"}
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database health check failed: No result from test query"
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Health check failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database connection error during health check: {e}"
        )
