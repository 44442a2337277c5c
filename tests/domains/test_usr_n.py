# tests/domains/test_usr_n.py

"""
Integration tests of the 'usr' domain endpoints (sections, permissions, roles, users).

- Admin only section management.
- Permission catalog listing.
- Role CRUD with permission sets and the protected Admin role.
- User administration and self protection rules.
"""

import pytest
from httpx import AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

from reselec.core import permissions as perms
from reselec.domains.usr import models as usr_models


#  =============================================================================
#  1. sections
#  =============================================================================

@pytest.mark.asyncio
class TestSections:
    async def test_read_sections(self, authorized_client: AsyncClient, test_section: usr_models.Section):
        """(success) any signed-in user lists the sections"""
        response = await authorized_client.get("/api/v1/sections")
        assert response.status_code == 200
        assert any(s["id"] == test_section.id for s in response.json())

    async def test_create_section_by_admin(self, admin_client: AsyncClient):
        response = await admin_client.post("/api/v1/sections", json={"name": "Maintenance", "type": "MAINTENANCE"})
        assert response.status_code == 201
        assert response.json()["name"] == "Maintenance"

    async def test_create_section_by_technician_fails(self, authorized_client: AsyncClient):
        """(failure) non admin gets 403"""
        response = await authorized_client.post("/api/v1/sections", json={"name": "Interdit"})
        assert response.status_code == 403

    async def test_create_duplicate_section(self, admin_client: AsyncClient, test_section: usr_models.Section):
        response = await admin_client.post("/api/v1/sections", json={"name": test_section.name})
        assert response.status_code == 400
        assert "already exists" in response.json()["detail"]

    async def test_update_section(self, admin_client: AsyncClient, test_section: usr_models.Section):
        response = await admin_client.put(f"/api/v1/sections/{test_section.id}", json={"type": "BOBINAGE"})
        assert response.status_code == 200
        assert response.json()["type"] == "BOBINAGE"

    async def test_delete_section_with_users_fails(self, admin_client: AsyncClient, test_section: usr_models.Section):
        """(failure) the admin user belongs to the section"""
        response = await admin_client.delete(f"/api/v1/sections/{test_section.id}")
        assert response.status_code == 400

    async def test_delete_empty_section(self, admin_client: AsyncClient, db_session: AsyncSession):
        section = usr_models.Section(name="Temporaire")
        db_session.add(section)
        await db_session.commit()
        await db_session.refresh(section)

        response = await admin_client.delete(f"/api/v1/sections/{section.id}")
        assert response.status_code == 204

    async def test_delete_unknown_section(self, admin_client: AsyncClient):
        response = await admin_client.delete("/api/v1/sections/99999")
        assert response.status_code == 404


#  =============================================================================
#  2. permissions
#  =============================================================================

@pytest.mark.asyncio
class TestPermissions:
    async def test_list_permissions_by_module(self, admin_client: AsyncClient):
        response = await admin_client.get("/api/v1/permissions", params={"module": "clients"})
        assert response.status_code == 200
        body = response.json()
        assert body["pagination"]["total"] == 4
        assert {p["code"] for p in body["data"]} == {"clients:read", "clients:create", "clients:update", "clients:delete"}

    async def test_list_permissions_paging(self, admin_client: AsyncClient):
        response = await admin_client.get("/api/v1/permissions", params={"limit": 5, "page": 2})
        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 5
        assert body["pagination"] == {
            "page": 2,
            "limit": 5,
            "total": len(perms.ALL_PERMISSIONS),
            "pages": -(-len(perms.ALL_PERMISSIONS) // 5),
        }

    async def test_list_permissions_requires_roles_read(self, authorized_client: AsyncClient):
        response = await authorized_client.get("/api/v1/permissions")
        assert response.status_code == 403
        assert response.json()["detail"] == "Permission denied: roles:read"


#  =============================================================================
#  3. roles
#  =============================================================================

async def _permission_ids(client: AsyncClient, module: str) -> list:
    response = await client.get("/api/v1/permissions", params={"module": module})
    return [p["id"] for p in response.json()["data"]]


@pytest.mark.asyncio
class TestRoles:
    async def test_list_default_roles(self, admin_client: AsyncClient):
        response = await admin_client.get("/api/v1/roles")
        assert response.status_code == 200
        roles = {r["name"]: r for r in response.json()["data"]}
        assert set(roles) == set(perms.DEFAULT_ROLES)
        assert roles["Admin"]["user_count"] == 1
        assert roles["Superviseur"]["user_count"] == 0

    async def test_create_role_with_permissions(self, admin_client: AsyncClient):
        ids = await _permission_ids(admin_client, "equipment")
        response = await admin_client.post(
            "/api/v1/roles", json={"name": "Magasinier", "description": "Stock", "permission_ids": ids}
        )
        assert response.status_code == 201
        body = response.json()
        assert body["user_count"] == 0
        assert {p["code"] for p in body["permissions"]} == {
            "equipment:read", "equipment:create", "equipment:update", "equipment:delete",
        }

    async def test_create_role_unknown_permission(self, admin_client: AsyncClient):
        response = await admin_client.post("/api/v1/roles", json={"name": "Fantome", "permission_ids": [99999]})
        assert response.status_code == 400

    async def test_create_duplicate_role(self, admin_client: AsyncClient):
        response = await admin_client.post("/api/v1/roles", json={"name": "Technicien"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Role name already exists"

    async def test_replace_role_permissions(self, admin_client: AsyncClient, default_roles):
        role_id = default_roles["Consultant"].id
        ids = await _permission_ids(admin_client, "analytics")
        response = await admin_client.put(f"/api/v1/roles/{role_id}", json={"permission_ids": ids})
        assert response.status_code == 200
        assert [p["code"] for p in response.json()["permissions"]] == ["analytics:read"]

    async def test_admin_role_cannot_be_renamed(self, admin_client: AsyncClient, default_roles):
        role_id = default_roles["Admin"].id
        response = await admin_client.put(f"/api/v1/roles/{role_id}", json={"name": "Root"})
        assert response.status_code == 400

    async def test_admin_role_cannot_be_deleted(self, admin_client: AsyncClient, default_roles):
        response = await admin_client.delete(f"/api/v1/roles/{default_roles['Admin'].id}")
        assert response.status_code == 400

    async def test_role_in_use_cannot_be_deleted(self, admin_client: AsyncClient, test_technician, default_roles):
        response = await admin_client.delete(f"/api/v1/roles/{default_roles['Technicien'].id}")
        assert response.status_code == 400
        assert "1 user(s)" in response.json()["detail"]

    async def test_delete_unused_role(self, admin_client: AsyncClient, default_roles):
        response = await admin_client.delete(f"/api/v1/roles/{default_roles['Superviseur'].id}")
        assert response.status_code == 204

    async def test_consultant_cannot_manage_roles(self, consultant_client: AsyncClient):
        response = await consultant_client.post("/api/v1/roles", json={"name": "Pirate"})
        assert response.status_code == 403


#  =============================================================================
#  4. users
#  =============================================================================

@pytest.mark.asyncio
class TestUsers:
    async def test_list_users_with_search(self, admin_client: AsyncClient, test_technician: usr_models.User):
        response = await admin_client.get("/api/v1/users", params={"search": "techn"})
        assert response.status_code == 200
        body = response.json()
        assert body["pagination"]["total"] == 1
        assert body["data"][0]["username"] == test_technician.username

    async def test_filter_users_by_role(self, admin_client: AsyncClient, test_technician: usr_models.User, default_roles):
        response = await admin_client.get("/api/v1/users", params={"role_id": default_roles["Technicien"].id})
        assert [u["id"] for u in response.json()["data"]] == [test_technician.id]

    async def test_create_user(self, admin_client: AsyncClient, default_roles, test_section):
        payload = {
            "name": "Superviseur Atelier",
            "username": "superviseur",
            "password": "superpass1",
            "role_id": default_roles["Superviseur"].id,
            "section_id": test_section.id,
        }
        response = await admin_client.post("/api/v1/users", json=payload)
        assert response.status_code == 201
        body = response.json()
        assert body["role"]["name"] == "Superviseur"
        assert body["section"]["id"] == test_section.id
        assert "password" not in body

    async def test_create_user_unknown_role(self, admin_client: AsyncClient):
        response = await admin_client.post(
            "/api/v1/users", json={"name": "Sans role", "username": "norole", "password": "secret123", "role_id": 99999}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid role specified"

    async def test_read_user_not_found(self, admin_client: AsyncClient):
        response = await admin_client.get("/api/v1/users/99999")
        assert response.status_code == 404

    async def test_update_user_role(self, admin_client: AsyncClient, test_technician: usr_models.User, default_roles):
        response = await admin_client.put(
            f"/api/v1/users/{test_technician.id}", json={"role_id": default_roles["Consultant"].id}
        )
        assert response.status_code == 200
        assert response.json()["role"]["name"] == "Consultant"

    async def test_admin_cannot_deactivate_itself(self, admin_client: AsyncClient, test_admin_user: usr_models.User):
        response = await admin_client.put(f"/api/v1/users/{test_admin_user.id}", json={"is_active": False})
        assert response.status_code == 400

    async def test_admin_cannot_delete_itself(self, admin_client: AsyncClient, test_admin_user: usr_models.User):
        response = await admin_client.delete(f"/api/v1/users/{test_admin_user.id}")
        assert response.status_code == 400

    async def test_delete_user(self, admin_client: AsyncClient, user_factory):
        user = await user_factory("ephemere", "ephemere1", role_name="Consultant")
        response = await admin_client.delete(f"/api/v1/users/{user.id}")
        assert response.status_code == 204

        get_response = await admin_client.get(f"/api/v1/users/{user.id}")
        assert get_response.status_code == 404

    async def test_technician_cannot_list_users(self, authorized_client: AsyncClient):
        response = await authorized_client.get("/api/v1/users")
        assert response.status_code == 403
