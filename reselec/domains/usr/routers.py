# reselec/domains/usr/routers.py

"""
API endpoints of the 'usr' domain: authentication, sections, permissions, roles and users.
"""

import logging
from typing import List, Optional
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel.ext.asyncio.session import AsyncSession

from reselec.core.config import settings
from reselec.core import dependencies as deps
from reselec.core.pagination import Page, PageParams, build_page, page_params
from reselec.domains.adt import crud as adt_crud
from reselec.domains.adt.models import AuditAction

from . import crud as usr_crud
from . import models as usr_models
from . import schemas as usr_schemas

logger = logging.getLogger(__name__)

router = APIRouter(
    responses={404: {"description": "Not found"}},
)

ROLE_SORT_FIELDS = {"name": "name", "createdAt": "created_at", "id": "id"}
USER_SORT_FIELDS = {"name": "name", "username": "username", "createdAt": "created_at", "id": "id"}

# never copied into the audit trail
UNAUDITED_USER_FIELDS = {"password"}


def _issue_token(user: usr_models.User) -> str:
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return deps.create_access_token(data={"sub": user.username}, expires_delta=access_token_expires)


# =============================================================================
# 1. Authentication
# =============================================================================
@router.post("/auth/token", response_model=usr_schemas.Token, summary="OAuth2 access token (form login)")
async def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(deps.get_db_session),
):
    user = await usr_crud.user.authenticate(
        db, username=form_data.username, password=form_data.password
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")

    await adt_crud.audit_log.record(
        db, action=AuditAction.LOGIN, entity="User", entity_id=user.id, performed_by_id=user.id, request=request
    )
    return {"access_token": _issue_token(user), "token_type": "bearer"}


@router.post("/auth/login", response_model=usr_schemas.AuthResponse, summary="Login with username and password")
async def login(
    request: Request,
    credentials: usr_schemas.LoginRequest,
    db: AsyncSession = Depends(deps.get_db_session),
):
    user = await usr_crud.user.authenticate(db, username=credentials.username, password=credentials.password)
    if not user:
        logger.info("Failed login for '%s'", credentials.username)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")

    await adt_crud.audit_log.record(
        db, action=AuditAction.LOGIN, entity="User", entity_id=user.id, performed_by_id=user.id, request=request
    )
    return {"token": _issue_token(user), "token_type": "bearer", "user": user}


@router.post("/auth/register", response_model=usr_schemas.AuthResponse, status_code=status.HTTP_201_CREATED, summary="Register a new account")
async def register(
    data: usr_schemas.RegisterRequest,
    db: AsyncSession = Depends(deps.get_db_session),
):
    """
    Creates an account with the default role. Roles are granted by administrators only.
    """
    default_role = await usr_crud.role.get_by_name(db, name=settings.DEFAULT_ROLE_NAME)
    user_in = usr_schemas.UserCreate(
        name=data.name,
        username=data.username,
        password=data.password,
        section_id=data.section_id,
        role_id=default_role.id if default_role else None,
    )
    user = await usr_crud.user.create(db, obj_in=user_in)
    return {"token": _issue_token(user), "token_type": "bearer", "user": user}


@router.get("/auth/profile", response_model=usr_schemas.UserRead, summary="Current user profile")
async def read_profile(current_user: usr_models.User = Depends(deps.get_current_active_user)):
    return current_user


@router.put("/auth/profile", response_model=usr_schemas.UserRead, summary="Update current user profile")
async def update_profile(
    profile_in: usr_schemas.ProfileUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    user_in = usr_schemas.UserUpdate(**profile_in.model_dump(exclude_unset=True))
    return await usr_crud.user.update(db, db_obj=current_user, obj_in=user_in)


@router.post("/auth/change-password", response_model=usr_schemas.Message, summary="Change current user password")
async def change_password(
    data: usr_schemas.PasswordChange,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    await usr_crud.user.change_password(
        db, db_obj=current_user,
        current_password=data.current_password, new_password=data.new_password,
    )
    return {"message": "Password changed successfully"}


@router.post("/auth/logout", response_model=usr_schemas.Message, summary="Logout (stateless)")
async def logout(
    request: Request,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    logger.info("User '%s' logged out", current_user.username)
    await adt_crud.audit_log.record(
        db, action=AuditAction.LOGOUT, entity="User", entity_id=current_user.id,
        performed_by_id=current_user.id, request=request,
    )
    return {"message": "Logged out successfully"}


# =============================================================================
# 2. Sections
# =============================================================================
@router.get("/sections", response_model=List[usr_schemas.SectionRead], summary="List sections")
async def read_sections(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await usr_crud.section.get_multi(db, limit=500)


@router.post("/sections", response_model=usr_schemas.SectionRead, status_code=status.HTTP_201_CREATED, summary="Create a section")
async def create_section(
    section_in: usr_schemas.SectionCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    return await usr_crud.section.create(db, obj_in=section_in)


@router.put("/sections/{section_id}", response_model=usr_schemas.SectionRead, summary="Update a section")
async def update_section(
    section_id: int,
    section_in: usr_schemas.SectionUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    db_section = await usr_crud.section.get(db, id=section_id)
    if not db_section:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Section not found")
    if section_in.name and section_in.name != db_section.name:
        if await usr_crud.section.get_by_name(db, name=section_in.name):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Section with this name already exists")
    return await usr_crud.section.update(db, db_obj=db_section, obj_in=section_in)


@router.delete("/sections/{section_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a section")
async def delete_section(
    section_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    await usr_crud.section.remove(db, id=section_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# 3. Permissions
# =============================================================================
@router.get("/permissions", response_model=Page[usr_schemas.PermissionRead], summary="List permissions")
async def read_permissions(
    module: Optional[str] = Query(None),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("roles:read")),
):
    items, total = await usr_crud.permission.get_page(
        db,
        filters={"module": module},
        search=params.search,
        order_by_field=params.order_field({"module": "module", "action": "action", "id": "id"}, "id"),
        order_desc=params.order_desc if params.sort_by else False,
        skip=params.skip,
        limit=params.limit,
    )
    return build_page(items, total, params)


# =============================================================================
# 4. Roles
# =============================================================================
def _role_read(role: usr_models.Role, user_count: int) -> usr_schemas.RoleRead:
    return usr_schemas.RoleRead.model_validate(role).model_copy(update={"user_count": user_count})


@router.get("/roles", response_model=Page[usr_schemas.RoleRead], summary="List roles")
async def read_roles(
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("roles:read")),
):
    roles, total = await usr_crud.role.get_page(
        db,
        search=params.search,
        order_by_field=params.order_field(ROLE_SORT_FIELDS, "id"),
        order_desc=params.order_desc if params.sort_by else False,
        skip=params.skip,
        limit=params.limit,
    )
    counts = await usr_crud.role.user_counts(db, [r.id for r in roles])
    return build_page([_role_read(r, counts.get(r.id, 0)) for r in roles], total, params)


@router.get("/roles/{role_id}", response_model=usr_schemas.RoleRead, summary="Get a role")
async def read_role(
    role_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("roles:read")),
):
    db_role = await usr_crud.role.get(db, id=role_id)
    if not db_role:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
    counts = await usr_crud.role.user_counts(db, [role_id])
    return _role_read(db_role, counts.get(role_id, 0))


@router.post("/roles", response_model=usr_schemas.RoleRead, status_code=status.HTTP_201_CREATED, summary="Create a role")
async def create_role(
    request: Request,
    role_in: usr_schemas.RoleCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("roles:create")),
):
    db_role = await usr_crud.role.create(db, obj_in=role_in)
    await adt_crud.audit_log.record(
        db, action=AuditAction.CREATE, entity="Role", entity_id=db_role.id,
        performed_by_id=current_user.id, request=request,
    )
    return _role_read(db_role, 0)


@router.put("/roles/{role_id}", response_model=usr_schemas.RoleRead, summary="Update a role")
async def update_role(
    request: Request,
    role_id: int,
    role_in: usr_schemas.RoleUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("roles:update")),
):
    db_role = await usr_crud.role.get(db, id=role_id)
    if not db_role:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
    db_role = await usr_crud.role.update(db, db_obj=db_role, obj_in=role_in)
    await adt_crud.audit_log.record(
        db, action=AuditAction.UPDATE, entity="Role", entity_id=role_id,
        performed_by_id=current_user.id, request=request,
    )
    counts = await usr_crud.role.user_counts(db, [role_id])
    return _role_read(db_role, counts.get(role_id, 0))


@router.delete("/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a role")
async def delete_role(
    request: Request,
    role_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("roles:delete")),
):
    await usr_crud.role.remove(db, id=role_id)
    await adt_crud.audit_log.record(
        db, action=AuditAction.DELETE, entity="Role", entity_id=role_id,
        performed_by_id=current_user.id, request=request,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# 5. Users
# =============================================================================
@router.get("/users", response_model=Page[usr_schemas.UserRead], summary="List users")
async def read_users(
    role_id: Optional[int] = Query(None),
    section_id: Optional[int] = Query(None),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("users:read")),
):
    users, total = await usr_crud.user.get_page(
        db,
        filters={"role_id": role_id, "section_id": section_id},
        search=params.search,
        order_by_field=params.order_field(USER_SORT_FIELDS, "id"),
        order_desc=params.order_desc,
        skip=params.skip,
        limit=params.limit,
    )
    return build_page(users, total, params)


@router.get("/users/{user_id}", response_model=usr_schemas.UserRead, summary="Get a user")
async def read_user(
    user_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("users:read")),
):
    user = await usr_crud.user.get(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.post("/users", response_model=usr_schemas.UserRead, status_code=status.HTTP_201_CREATED, summary="Create a user")
async def create_user(
    request: Request,
    user_in: usr_schemas.UserCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("users:create")),
):
    user = await usr_crud.user.create(db, obj_in=user_in)
    await adt_crud.audit_log.record(
        db, action=AuditAction.CREATE, entity="User", entity_id=user.id,
        performed_by_id=current_user.id, request=request,
    )
    return user


@router.put("/users/{user_id}", response_model=usr_schemas.UserRead, summary="Update a user")
async def update_user(
    request: Request,
    user_id: int,
    user_in: usr_schemas.UserUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("users:update")),
):
    db_user = await usr_crud.user.get(db, user_id)
    if not db_user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if db_user.id == current_user.id and user_in.is_active is False:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot deactivate your own account.")
    before = adt_crud.snapshot(db_user, user_in.model_fields_set - UNAUDITED_USER_FIELDS)
    user = await usr_crud.user.update(db, db_obj=db_user, obj_in=user_in)
    changes = adt_crud.track_changes(before, adt_crud.snapshot(user, before))
    await adt_crud.audit_log.record(
        db,
        action=AuditAction.ROLE_ASSIGNMENT if changes and "role_id" in changes else AuditAction.UPDATE,
        entity="User",
        entity_id=user_id,
        performed_by_id=current_user.id,
        request=request,
        changes=changes,
    )
    return user


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a user")
async def delete_user(
    request: Request,
    user_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.require_permission("users:delete")),
):
    if user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete your own account.")
    await usr_crud.user.remove(db, id=user_id)
    await adt_crud.audit_log.record(
        db, action=AuditAction.DELETE, entity="User", entity_id=user_id,
        performed_by_id=current_user.id, request=request,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
