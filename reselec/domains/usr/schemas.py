# reselec/domains/usr/schemas.py

"""
API schemas of the 'usr' domain (sections, permissions, roles, users, authentication).

Roles are always serialized as a structured object; inside a user profile their
permissions are flattened to "module:action" strings.
"""

from typing import Any, List, Optional
from datetime import datetime
from sqlmodel import SQLModel, Field
from pydantic import BaseModel, ConfigDict, field_validator

from reselec.core.permissions import code_of


# =============================================================================
# 1. Section
# =============================================================================
class SectionBase(SQLModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: Optional[str] = Field(None, max_length=50)


class SectionCreate(SectionBase):
    pass


class SectionUpdate(SQLModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[str] = Field(None, max_length=50)


class SectionRead(SectionBase):
    id: int


# =============================================================================
# 2. Permission
# =============================================================================
class PermissionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    module: str
    action: str
    description: Optional[str] = None
    code: str


# =============================================================================
# 3. Role
# =============================================================================
class RoleCreate(SQLModel):
    name: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=255)
    permission_ids: List[int] = Field(default_factory=list)


class RoleUpdate(SQLModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=255)
    permission_ids: Optional[List[int]] = None


class RoleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    permissions: List[PermissionRead] = []
    user_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RoleSummary(BaseModel):
    """Role as embedded in a user: permissions are flattened to strings."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    permissions: List[str] = []

    @field_validator("permissions", mode="before")
    @classmethod
    def _flatten_permissions(cls, value: Any) -> List[str]:
        return [code_of(p) for p in value or []]


# =============================================================================
# 4. User
# =============================================================================
class UserCreate(SQLModel):
    name: str = Field(..., min_length=2, max_length=100)
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6)
    section_id: Optional[int] = None
    role_id: Optional[int] = None
    is_active: bool = True


class UserUpdate(SQLModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    section_id: Optional[int] = None
    role_id: Optional[int] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6)


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    username: str
    is_active: bool
    section: Optional[SectionRead] = None
    role: Optional[RoleSummary] = None
    created_at: Optional[datetime] = None


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    username: str


# =============================================================================
# 5. Authentication
# =============================================================================
class Token(BaseModel):
    """OAuth2 token response (form login)."""
    access_token: str
    token_type: str


class LoginRequest(SQLModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RegisterRequest(SQLModel):
    name: str = Field(..., min_length=2, max_length=100)
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6)
    section_id: Optional[int] = None


class AuthResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserRead


class ProfileUpdate(SQLModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    section_id: Optional[int] = None


class PasswordChange(SQLModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class Message(BaseModel):
    message: str
