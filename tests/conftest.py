# tests/conftest.py

import os
from typing import AsyncGenerator, Awaitable, Callable, Dict, Optional
from contextlib import asynccontextmanager
from datetime import date

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-reselec")
os.environ.setdefault("ARQ_ENABLED", "false")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from reselec import API_PREFIX
from reselec.main import app as main_app
from reselec.core import dependencies as deps
from reselec.core.database import get_session
from reselec.core.security import get_password_hash

# every table model must be registered before create_all
from reselec.domains.models import *  # noqa: F401, F403

from reselec.domains.usr import crud as usr_crud
from reselec.domains.usr import models as usr_models
from reselec.domains.usr import seeds
from reselec.domains.crm import models as crm_models
from reselec.domains.fms import models as fms_models
from reselec.domains.itv import crud as itv_crud
from reselec.domains.itv import models as itv_models
from reselec.domains.itv.workflow import InterventionStatus

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_PASSWORD = "adminpass123"
TECHNICIAN_PASSWORD = "techpass123"
CONSULTANT_PASSWORD = "consultpass123"


# --- database fixtures ---
@pytest_asyncio.fixture(scope="function")
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    A fresh in-memory database per test. StaticPool keeps the single connection
    alive so every session sees the same database.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with TestingSessionLocal() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def default_roles(db_session: AsyncSession) -> Dict[str, usr_models.Role]:
    """Permission catalog and default roles (Admin, Technicien, Superviseur, Consultant)."""
    return await seeds.seed_roles(db_session)


@pytest_asyncio.fixture(scope="function")
async def test_section(db_session: AsyncSession) -> usr_models.Section:
    section = usr_models.Section(name="Atelier bobinage", type="ATELIER")
    db_session.add(section)
    await db_session.commit()
    await db_session.refresh(section)
    return section


# --- users ---
@pytest_asyncio.fixture(scope="function")
def user_factory(
    db_session: AsyncSession, default_roles: Dict[str, usr_models.Role]
) -> Callable[..., Awaitable[usr_models.User]]:
    """
    Creates a user holding one of the default roles (or none) and returns it
    with its role, permissions and section loaded.
    """
    async def _create_user(
        username: str,
        password: str,
        role_name: Optional[str] = None,
        is_active: bool = True,
        section_id: Optional[int] = None,
        name: Optional[str] = None,
    ) -> usr_models.User:
        role = default_roles[role_name] if role_name else None
        user = usr_models.User(
            name=name or username.capitalize(),
            username=username,
            password_hash=get_password_hash(password),
            role_id=role.id if role else None,
            section_id=section_id,
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.commit()
        return await usr_crud.user.get(db_session, user.id)
    return _create_user


@pytest_asyncio.fixture(scope="function")
async def test_admin_user(user_factory: Callable, test_section: usr_models.Section) -> usr_models.User:
    return await user_factory("sysadm", ADMIN_PASSWORD, role_name="Admin", section_id=test_section.id)


@pytest_asyncio.fixture(scope="function")
async def test_technician(user_factory: Callable, test_section: usr_models.Section) -> usr_models.User:
    return await user_factory("technicien", TECHNICIAN_PASSWORD, role_name="Technicien", section_id=test_section.id)


@pytest_asyncio.fixture(scope="function")
async def test_consultant(user_factory: Callable) -> usr_models.User:
    return await user_factory("consultant", CONSULTANT_PASSWORD, role_name="Consultant")


# --- HTTP clients ---
@pytest_asyncio.fixture(scope="function")
def authorized_client_factory(
    db_session: AsyncSession,
) -> Callable[[usr_models.User, str], AsyncGenerator[AsyncClient, None]]:
    """
    Returns a context manager yielding an AsyncClient logged in as `user`.
    The token is obtained from the real token endpoint, so permission checks run as in production.
    """
    @asynccontextmanager
    async def _create_client_context(user: usr_models.User, password: str) -> AsyncGenerator[AsyncClient, None]:
        def override_get_session():
            yield db_session

        original_overrides = main_app.dependency_overrides.copy()
        try:
            main_app.dependency_overrides.update({
                get_session: override_get_session,
                deps.get_db_session: override_get_session,
            })

            transport = ASGITransport(app=main_app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                login_data = {"username": user.username, "password": password}
                res = await client.post(f"{API_PREFIX}/auth/token", data=login_data)
                if res.status_code != 200:
                    pytest.fail(f"Login failed for {user.username}: {res.text}")

                token = res.json()["access_token"]
                client.headers["Authorization"] = f"Bearer {token}"
                yield client
        finally:
            main_app.dependency_overrides.clear()
            main_app.dependency_overrides.update(original_overrides)

    return _create_client_context


@pytest_asyncio.fixture(scope="function")
async def admin_client(
    authorized_client_factory: Callable[..., AsyncGenerator[AsyncClient, None]],
    test_admin_user: usr_models.User,
) -> AsyncGenerator[AsyncClient, None]:
    async with authorized_client_factory(test_admin_user, ADMIN_PASSWORD) as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def authorized_client(
    authorized_client_factory: Callable[..., AsyncGenerator[AsyncClient, None]],
    test_technician: usr_models.User,
) -> AsyncGenerator[AsyncClient, None]:
    """Client logged in as a technician (Technicien role)."""
    async with authorized_client_factory(test_technician, TECHNICIAN_PASSWORD) as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def consultant_client(
    authorized_client_factory: Callable[..., AsyncGenerator[AsyncClient, None]],
    test_consultant: usr_models.User,
) -> AsyncGenerator[AsyncClient, None]:
    """Client logged in with the read-only Consultant role."""
    async with authorized_client_factory(test_consultant, CONSULTANT_PASSWORD) as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated client bound to the test database."""
    def override_get_session():
        yield db_session

    original_overrides = main_app.dependency_overrides.copy()
    try:
        main_app.dependency_overrides[get_session] = override_get_session
        main_app.dependency_overrides[deps.get_db_session] = override_get_session

        async with AsyncClient(transport=ASGITransport(app=main_app), base_url="http://test") as async_client:
            yield async_client
    finally:
        main_app.dependency_overrides.clear()
        main_app.dependency_overrides.update(original_overrides)


# --- domain fixtures ---
@pytest_asyncio.fixture(name="test_company")
async def test_company_fixture(db_session: AsyncSession) -> crm_models.Client:
    company = crm_models.Client(company_name="Cimenterie du Sud", sector="Cimenterie", city="Sfax")
    db_session.add(company)
    await db_session.commit()
    await db_session.refresh(company)
    return company


@pytest_asyncio.fixture(name="test_equipment")
async def test_equipment_fixture(db_session: AsyncSession, test_company: crm_models.Client) -> fms_models.Equipment:
    equipment = fms_models.Equipment(
        name="Moteur broyeur",
        brand="Leroy-Somer",
        model="LS 315",
        type=fms_models.EquipmentType.MOTEUR_ELECTRIQUE,
        cost=12500.0,
        client_id=test_company.id,
    )
    db_session.add(equipment)
    await db_session.commit()
    await db_session.refresh(equipment)
    return equipment


@pytest_asyncio.fixture(scope="function")
def intervention_factory(
    db_session: AsyncSession, test_equipment: fms_models.Equipment
) -> Callable[..., Awaitable[itv_models.Intervention]]:
    """Inserts an intervention directly, in any status."""
    async def _create(
        status: InterventionStatus = InterventionStatus.PLANIFIEE,
        scheduled_date: Optional[date] = None,
        is_urgent: bool = False,
        description: str = "Rebobinage",
        equipment_id: Optional[int] = None,
    ) -> itv_models.Intervention:
        intervention = itv_models.Intervention(
            scheduled_date=scheduled_date or date.today(),
            description=description,
            is_urgent=is_urgent,
            status=status,
            equipment_id=equipment_id or test_equipment.id,
        )
        db_session.add(intervention)
        await db_session.commit()
        return await itv_crud.intervention.get(db_session, intervention.id)
    return _create
