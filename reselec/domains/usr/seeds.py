# reselec/domains/usr/seeds.py

"""
Idempotent seeding of the permission catalog and the default roles.
"""

import logging
from typing import Dict

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from reselec.core import permissions as perms
from . import crud as usr_crud
from . import models as usr_models
from . import schemas as usr_schemas

logger = logging.getLogger(__name__)


async def seed_permissions(db: AsyncSession) -> Dict[str, usr_models.Permission]:
    """
    Inserts missing catalog permissions and returns every permission keyed by code.
    """
    result = await db.execute(select(usr_models.Permission))
    existing = {p.code: p for p in result.scalars().all()}

    created = 0
    for module, action, description in perms.permission_catalog():
        code = perms.permission_code(module, action)
        if code not in existing:
            db_obj = usr_models.Permission(module=module, action=action, description=description)
            db.add(db_obj)
            existing[code] = db_obj
            created += 1

    await db.commit()
    logger.info("Permission catalog seeded: %d created, %d total", created, len(existing))
    return existing


async def seed_roles(db: AsyncSession) -> Dict[str, usr_models.Role]:
    """
    Creates the default roles when missing. Existing roles keep their permissions.
    """
    permissions_by_code = await seed_permissions(db)

    roles: Dict[str, usr_models.Role] = {}
    for name, (description, codes) in perms.DEFAULT_ROLES.items():
        db_role = await usr_crud.role.get_by_name(db, name=name)
        if db_role is None:
            db_role = usr_models.Role(name=name, description=description)
            db_role.permissions = [permissions_by_code[code] for code in codes]
            db.add(db_role)
            logger.info("Default role '%s' created", name)
        roles[name] = db_role

    await db.commit()
    return roles


async def create_admin_user(db: AsyncSession, *, name: str, username: str, password: str) -> usr_models.User:
    """
    Seeds the catalog and default roles, then creates an account holding the Admin role.
    An existing username is rejected with 400 (HTTPException from the user CRUD).
    """
    roles = await seed_roles(db)
    admin_role = roles[perms.ADMIN_ROLE_NAME]
    user_in = usr_schemas.UserCreate(name=name, username=username, password=password, role_id=admin_role.id)
    admin = await usr_crud.user.create(db, obj_in=user_in)
    logger.info("Admin account '%s' created", admin.username)
    return admin
