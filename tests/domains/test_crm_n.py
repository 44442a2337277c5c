# tests/domains/test_crm_n.py

"""
Integration tests of the 'crm' domain endpoints (/clients).

- Client CRUD and validation of contact fields.
- Paging, search, filters and sort whitelist.
- Deletion rule (clients owning equipment are kept).
"""

import pytest
from httpx import AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

from reselec.domains.crm import models as crm_models
from reselec.domains.fms import models as fms_models


@pytest.fixture(name="many_clients")
def many_clients_fixture():
    return [
        {"company_name": "Alpha Ciments", "sector": "Cimenterie", "city": "Gabès"},
        {"company_name": "Beta Textile", "sector": "Textile", "city": "Monastir"},
        {"company_name": "Gamma Phosphates", "sector": "Chimie", "city": "Gafsa"},
        {"company_name": "Delta Textile", "sector": "Textile", "city": "Sousse"},
    ]


@pytest.mark.asyncio
class TestClientCrud:
    async def test_create_client(self, admin_client: AsyncClient, test_admin_user):
        """(success) admin registers a client"""
        payload = {
            "company_name": "Société Tunisienne d'Électricité",
            "sector": "Énergie",
            "city": "Tunis",
            "phone": "+216 71 000 000",
            "email": "contact@reselec.tn",
        }
        response = await admin_client.post("/api/v1/clients", json=payload)
        assert response.status_code == 201
        body = response.json()
        assert body["company_name"] == payload["company_name"]
        assert body["equipment_count"] == 0
        assert body["created_by_id"] == test_admin_user.id

    async def test_create_client_invalid_email(self, admin_client: AsyncClient):
        response = await admin_client.post("/api/v1/clients", json={"company_name": "Mauvais Mail", "email": "not-an-email"})
        assert response.status_code == 422

    async def test_create_client_invalid_phone(self, admin_client: AsyncClient):
        response = await admin_client.post("/api/v1/clients", json={"company_name": "Mauvais Tel", "phone": "call me"})
        assert response.status_code == 422

    async def test_create_client_requires_permission(self, consultant_client: AsyncClient):
        """(failure) Consultant only reads clients"""
        response = await consultant_client.post("/api/v1/clients", json={"company_name": "Interdit"})
        assert response.status_code == 403

    async def test_technician_cannot_read_clients(self, authorized_client: AsyncClient):
        response = await authorized_client.get("/api/v1/clients")
        assert response.status_code == 403

    async def test_read_client_with_equipment_count(
        self, consultant_client: AsyncClient, test_company: crm_models.Client, test_equipment: fms_models.Equipment
    ):
        response = await consultant_client.get(f"/api/v1/clients/{test_company.id}")
        assert response.status_code == 200
        assert response.json()["equipment_count"] == 1

    async def test_read_client_not_found(self, admin_client: AsyncClient):
        response = await admin_client.get("/api/v1/clients/99999")
        assert response.status_code == 404

    async def test_update_client(self, admin_client: AsyncClient, test_company: crm_models.Client):
        response = await admin_client.put(f"/api/v1/clients/{test_company.id}", json={"city": "Gabès", "contact_name": "M. Ben Ali"})
        assert response.status_code == 200
        body = response.json()
        assert body["city"] == "Gabès"
        assert body["contact_name"] == "M. Ben Ali"
        assert body["company_name"] == test_company.company_name

    async def test_client_equipment(
        self, admin_client: AsyncClient, test_company: crm_models.Client, test_equipment: fms_models.Equipment
    ):
        response = await admin_client.get(f"/api/v1/clients/{test_company.id}/equipment")
        assert response.status_code == 200
        assert [e["id"] for e in response.json()] == [test_equipment.id]

    async def test_delete_client_with_equipment_fails(
        self, admin_client: AsyncClient, test_company: crm_models.Client, test_equipment: fms_models.Equipment
    ):
        response = await admin_client.delete(f"/api/v1/clients/{test_company.id}")
        assert response.status_code == 400
        assert "1 equipment items" in response.json()["detail"]

    async def test_delete_client(self, admin_client: AsyncClient, db_session: AsyncSession):
        company = crm_models.Client(company_name="Éphémère SARL")
        db_session.add(company)
        await db_session.commit()
        await db_session.refresh(company)

        response = await admin_client.delete(f"/api/v1/clients/{company.id}")
        assert response.status_code == 204

        get_response = await admin_client.get(f"/api/v1/clients/{company.id}")
        assert get_response.status_code == 404


@pytest.mark.asyncio
class TestClientListing:
    async def _create_all(self, admin_client: AsyncClient, clients: list) -> None:
        for payload in clients:
            response = await admin_client.post("/api/v1/clients", json=payload)
            assert response.status_code == 201

    async def test_paging(self, admin_client: AsyncClient, many_clients):
        await self._create_all(admin_client, many_clients)
        response = await admin_client.get("/api/v1/clients", params={"page": 2, "limit": 3})
        assert response.status_code == 200
        body = response.json()
        assert body["pagination"] == {"page": 2, "limit": 3, "total": 4, "pages": 2}
        assert len(body["data"]) == 1

    async def test_search(self, admin_client: AsyncClient, many_clients):
        await self._create_all(admin_client, many_clients)
        response = await admin_client.get("/api/v1/clients", params={"search": "textile"})
        names = {c["company_name"] for c in response.json()["data"]}
        assert names == {"Beta Textile", "Delta Textile"}

    async def test_search_wildcards_match_literally(self, admin_client: AsyncClient, many_clients):
        extra = [
            {"company_name": "Epsilon 100% Inox", "city": "Bizerte"},
            {"company_name": "Zeta_Froid", "city": "Nabeul"},
        ]
        await self._create_all(admin_client, many_clients + extra)

        for term, expected in [("%", ["Epsilon 100% Inox"]), ("_", ["Zeta_Froid"]), ("a_f", ["Zeta_Froid"])]:
            response = await admin_client.get("/api/v1/clients", params={"search": term})
            assert [c["company_name"] for c in response.json()["data"]] == expected, term

    async def test_filter_by_city(self, admin_client: AsyncClient, many_clients):
        await self._create_all(admin_client, many_clients)
        response = await admin_client.get("/api/v1/clients", params={"city": "Gafsa"})
        assert [c["company_name"] for c in response.json()["data"]] == ["Gamma Phosphates"]

    async def test_sort_by_company_name(self, admin_client: AsyncClient, many_clients):
        await self._create_all(admin_client, many_clients)
        response = await admin_client.get("/api/v1/clients", params={"sortBy": "company_name", "sortOrder": "ASC"})
        names = [c["company_name"] for c in response.json()["data"]]
        assert names == sorted(names)

    async def test_sort_by_unknown_column(self, admin_client: AsyncClient):
        response = await admin_client.get("/api/v1/clients", params={"sortBy": "password"})
        assert response.status_code == 400

    async def test_invalid_sort_order(self, admin_client: AsyncClient):
        response = await admin_client.get("/api/v1/clients", params={"sortOrder": "UP"})
        assert response.status_code == 400

    async def test_limit_is_capped(self, admin_client: AsyncClient):
        response = await admin_client.get("/api/v1/clients", params={"limit": 1000})
        assert response.status_code == 422

    async def test_sectors(self, admin_client: AsyncClient, many_clients):
        await self._create_all(admin_client, many_clients)
        response = await admin_client.get("/api/v1/clients/sectors")
        assert response.status_code == 200
        assert response.json() == ["Chimie", "Cimenterie", "Textile"]
