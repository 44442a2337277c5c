# reselec/domains/usr/crud.py

"""
CRUD operations of the 'usr' domain.
"""

import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import selectinload
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import HTTPException, status

from reselec.core.crud_base import CRUDBase
from reselec.core.permissions import ADMIN_ROLE_NAME
from reselec.core.security import get_password_hash, verify_password
from . import models as usr_models
from . import schemas as usr_schemas

logger = logging.getLogger(__name__)


# =============================================================================
# 1. sections
# =============================================================================
class CRUDSection(CRUDBase[usr_models.Section, usr_schemas.SectionCreate, usr_schemas.SectionUpdate]):
    def __init__(self):
        super().__init__(model=usr_models.Section)

    async def get_by_name(self, db: AsyncSession, *, name: str) -> Optional[usr_models.Section]:
        return await self.get_by_attribute(db, attribute="name", value=name)

    async def create(self, db: AsyncSession, *, obj_in: usr_schemas.SectionCreate) -> usr_models.Section:
        if await self.get_by_name(db, name=obj_in.name):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Section with this name already exists")
        return await super().create(db, obj_in=obj_in)

    async def remove(self, db: AsyncSession, *, id: int) -> usr_models.Section:
        """
        Deletes a section. Sections that still have users are kept.
        """
        section_to_delete = await self.get(db, id=id)
        if not section_to_delete:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Section not found")

        users = await user.count(db, usr_models.User.section_id == id)
        if users:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete section: associated users exist. "
                       "Please reassign or delete associated users first."
            )
        return await super().delete(db, id=id)


section = CRUDSection()


# =============================================================================
# 2. permissions
# =============================================================================
class CRUDPermission(CRUDBase[usr_models.Permission, usr_schemas.PermissionRead, usr_schemas.PermissionRead]):
    search_fields = ("module", "action", "description")

    def __init__(self):
        super().__init__(model=usr_models.Permission)

    async def get_by_ids(self, db: AsyncSession, ids: Sequence[int]) -> List[usr_models.Permission]:
        """
        Loads the given permissions; unknown ids are rejected with 400.
        """
        wanted = set(ids)
        if not wanted:
            return []
        result = await db.execute(select(self.model).where(self.model.id.in_(wanted)))
        found = result.scalars().all()
        missing = wanted - {p.id for p in found}
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown permission ids: {sorted(missing)}",
            )
        return list(found)


permission = CRUDPermission()


# =============================================================================
# 3. roles
# =============================================================================
class CRUDRole(CRUDBase[usr_models.Role, usr_schemas.RoleCreate, usr_schemas.RoleUpdate]):
    search_fields = ("name", "description")

    def __init__(self):
        super().__init__(model=usr_models.Role, load_options=lambda: [selectinload(usr_models.Role.permissions)])

    async def get_by_name(self, db: AsyncSession, *, name: str) -> Optional[usr_models.Role]:
        return await self.get_by_attribute(db, attribute="name", value=name)

    async def user_counts(self, db: AsyncSession, role_ids: Sequence[int]) -> Dict[int, int]:
        if not role_ids:
            return {}
        statement = (
            select(usr_models.User.role_id, func.count(usr_models.User.id))
            .where(usr_models.User.role_id.in_(role_ids))
            .group_by(usr_models.User.role_id)
        )
        result = await db.execute(statement)
        return {role_id: count for role_id, count in result.all()}

    async def create(self, db: AsyncSession, *, obj_in: usr_schemas.RoleCreate) -> usr_models.Role:
        if await self.get_by_name(db, name=obj_in.name):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Role name already exists")

        db_obj = usr_models.Role(name=obj_in.name, description=obj_in.description)
        db_obj.permissions = await permission.get_by_ids(db, obj_in.permission_ids)
        db.add(db_obj)
        await db.commit()
        logger.info("Role '%s' created with %d permissions", db_obj.name, len(obj_in.permission_ids))
        return await self.get(db, db_obj.id)

    async def update(self, db: AsyncSession, *, db_obj: usr_models.Role, obj_in: usr_schemas.RoleUpdate) -> usr_models.Role:
        """
        Updates name/description and, when `permission_ids` is given, replaces the permission set.
        """
        if obj_in.name is not None and obj_in.name != db_obj.name:
            if db_obj.name == ADMIN_ROLE_NAME:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The Admin role cannot be renamed")
            if await self.get_by_name(db, name=obj_in.name):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Role name already exists")
            db_obj.name = obj_in.name
        if obj_in.description is not None:
            db_obj.description = obj_in.description
        if obj_in.permission_ids is not None:
            db_obj.permissions = await permission.get_by_ids(db, obj_in.permission_ids)

        db.add(db_obj)
        await db.commit()
        return await self.get(db, db_obj.id)

    async def remove(self, db: AsyncSession, *, id: int) -> usr_models.Role:
        role_to_delete = await self.get(db, id=id)
        if not role_to_delete:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
        if role_to_delete.name == ADMIN_ROLE_NAME:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The Admin role cannot be deleted")

        users = await user.count(db, usr_models.User.role_id == id)
        if users:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot delete role. {users} user(s) are assigned to this role.",
            )
        return await super().delete(db, id=id)


role = CRUDRole()


# =============================================================================
# 4. users
# =============================================================================
class CRUDUser(CRUDBase[usr_models.User, usr_schemas.UserCreate, usr_schemas.UserUpdate]):
    search_fields = ("name", "username")

    def __init__(self):
        super().__init__(
            model=usr_models.User,
            load_options=lambda: [
                selectinload(usr_models.User.role).selectinload(usr_models.Role.permissions),
                selectinload(usr_models.User.section),
            ],
        )

    async def get_by_username(self, db: AsyncSession, *, username: str) -> Optional[usr_models.User]:
        return await self.get_by_attribute(db, attribute="username", value=username)

    async def _check_references(self, db: AsyncSession, *, role_id: Optional[int], section_id: Optional[int]) -> None:
        if role_id is not None and not await db.get(usr_models.Role, role_id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role specified")
        if section_id is not None and not await db.get(usr_models.Section, section_id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid section specified")

    async def create(self, db: AsyncSession, *, obj_in: usr_schemas.UserCreate) -> usr_models.User:
        """
        Creates a user after checking username uniqueness and references; the password is hashed.
        """
        if await self.get_by_username(db, username=obj_in.username):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already exists")
        await self._check_references(db, role_id=obj_in.role_id, section_id=obj_in.section_id)

        user_data = obj_in.model_dump(exclude={"password"})
        db_user = usr_models.User(**user_data, password_hash=get_password_hash(obj_in.password))

        db.add(db_user)
        await db.commit()
        logger.info("User '%s' created", db_user.username)
        return await self.get(db, db_user.id)

    async def authenticate(self, db: AsyncSession, *, username: str, password: str) -> Optional[usr_models.User]:
        user = await self.get_by_username(db, username=username)
        if not user:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    async def update(self, db: AsyncSession, *, db_obj: usr_models.User, obj_in: usr_schemas.UserUpdate) -> usr_models.User:
        update_data = obj_in.model_dump(exclude_unset=True)
        await self._check_references(db, role_id=update_data.get("role_id"), section_id=update_data.get("section_id"))

        password = update_data.pop("password", None)
        if password:
            db_obj.password_hash = get_password_hash(password)
        for key, value in update_data.items():
            setattr(db_obj, key, value)

        db.add(db_obj)
        await db.commit()
        return await self.get(db, db_obj.id)

    async def change_password(self, db: AsyncSession, *, db_obj: usr_models.User, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, db_obj.password_hash):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
        db_obj.password_hash = get_password_hash(new_password)
        db.add(db_obj)
        await db.commit()
        logger.info("Password changed for user '%s'", db_obj.username)

    async def remove(self, db: AsyncSession, *, id: int) -> usr_models.User:
        user_to_delete = await self.get(db, id=id)
        if not user_to_delete:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return await super().delete(db, id=id)


user = CRUDUser()
