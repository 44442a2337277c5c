# reselec/domains/usr/models.py

"""
ORM models of the 'usr' domain: sections, permissions, roles and users.

A user belongs to at most one section and holds a single role; a role groups
permissions through the `role_permissions` link table.
"""

from typing import Optional, List
from datetime import datetime, UTC
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP

from reselec.core.permissions import permission_code


# =============================================================================
# 1. role_permissions (many-to-many link table)
# =============================================================================
class RolePermission(SQLModel, table=True):
    __tablename__ = "role_permissions"

    role_id: int = Field(default=None, foreign_key="roles.id", primary_key=True)
    permission_id: int = Field(default=None, foreign_key="permissions.id", primary_key=True)


# =============================================================================
# 2. sections table
# =============================================================================
class SectionBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100, sa_column_kwargs={"unique": True}, description="Section name")
    type: Optional[str] = Field(default=None, max_length=50, description="Section type (e.g. ATELIER, BOBINAGE)")

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
    )


class Section(SectionBase, table=True):
    __tablename__ = "sections"

    users: List["User"] = Relationship(back_populates="section")


# =============================================================================
# 3. permissions table
# =============================================================================
class PermissionBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    module: str = Field(max_length=50, index=True, description="Module name (e.g. clients)")
    action: str = Field(max_length=50, description="Action name (e.g. read)")
    description: Optional[str] = Field(default=None, max_length=255)


class Permission(PermissionBase, table=True):
    __tablename__ = "permissions"
    __table_args__ = (UniqueConstraint("module", "action", name="uq_permissions_module_action"),)

    roles: List["Role"] = Relationship(back_populates="permissions", link_model=RolePermission)

    @property
    def code(self) -> str:
        return permission_code(self.module, self.action)


# =============================================================================
# 4. roles table
# =============================================================================
class RoleBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=50, sa_column_kwargs={"unique": True}, description="Role display name")
    description: Optional[str] = Field(default=None, max_length=255)

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
    )


class Role(RoleBase, table=True):
    __tablename__ = "roles"

    permissions: List["Permission"] = Relationship(back_populates="roles", link_model=RolePermission)
    users: List["User"] = Relationship(back_populates="role")


# =============================================================================
# 5. users table
# =============================================================================
class UserBase(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100, description="Full name")
    username: str = Field(max_length=50, sa_column_kwargs={"unique": True}, description="Login name")
    password_hash: str = Field(max_length=255)
    is_active: bool = Field(default=True)
    section_id: Optional[int] = Field(default=None, foreign_key="sections.id")
    role_id: Optional[int] = Field(default=None, foreign_key="roles.id")

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
    )


class User(UserBase, table=True):
    __tablename__ = "users"

    role: Optional["Role"] = Relationship(back_populates="users")
    section: Optional["Section"] = Relationship(back_populates="users")
