# tests/domains/test_adt_n.py

"""
Integration tests of the 'adt' domain (/audit-logs).

- Writes on clients, interventions and users leave audit entries with their changes.
- Rejected requests leave none.
- Filters, search and paging; only administrators read the audit trail.
"""

from datetime import date, datetime, timedelta, UTC
from typing import Dict

import pytest
from httpx import AsyncClient

from reselec.domains.adt.crud import track_changes
from reselec.domains.fms import models as fms_models
from reselec.domains.itv.workflow import InterventionStatus
from reselec.domains.usr import models as usr_models


def test_track_changes():
    before = {"city": "Sfax", "sector": None, "scheduled_date": date(2024, 1, 1)}
    after = {"city": "Sousse", "sector": None, "scheduled_date": date(2024, 1, 2)}
    assert track_changes(before, after) == {
        "city": {"from": "Sfax", "to": "Sousse"},
        "scheduled_date": {"from": "2024-01-01", "to": "2024-01-02"},
    }
    assert track_changes(before, dict(before)) is None


@pytest.mark.asyncio
class TestAuditTrail:
    async def test_client_writes_are_recorded(self, admin_client: AsyncClient, test_admin_user: usr_models.User):
        created = await admin_client.post("/api/v1/clients", json={"company_name": "Tissage Nord", "city": "Sfax"})
        client_id = created.json()["id"]
        await admin_client.put(f"/api/v1/clients/{client_id}", json={"city": "Sousse", "sector": None})
        await admin_client.delete(f"/api/v1/clients/{client_id}")

        response = await admin_client.get("/api/v1/audit-logs", params={"entity": "Client", "entityId": client_id})
        assert response.status_code == 200
        entries = response.json()["data"]
        assert [e["action"] for e in entries] == ["DELETE", "UPDATE", "CREATE"]

        update = entries[1]
        assert update["changes"] == {"city": {"from": "Sfax", "to": "Sousse"}}
        assert update["performed_by"]["username"] == test_admin_user.username
        assert update["ip_address"] == "127.0.0.1"
        assert update["user_agent"].startswith("python-httpx")

    async def test_rejected_request_leaves_no_entry(
        self, admin_client: AsyncClient, test_equipment: fms_models.Equipment
    ):
        response = await admin_client.delete(f"/api/v1/clients/{test_equipment.client_id}")
        assert response.status_code == 400

        entries = await admin_client.get("/api/v1/audit-logs", params={"entity": "Client", "action": "DELETE"})
        assert entries.json()["pagination"]["total"] == 0

    async def test_status_change_is_recorded(
        self, admin_client: AsyncClient, authorized_client: AsyncClient, intervention_factory, test_technician
    ):
        intervention = await intervention_factory()
        await authorized_client.patch(
            f"/api/v1/interventions/{intervention.id}/status", json={"status": "EN_COURS", "reason": "Pièces reçues"}
        )

        response = await admin_client.get("/api/v1/audit-logs", params={"action": "STATUS_CHANGE"})
        entries = response.json()["data"]
        assert len(entries) == 1
        assert entries[0]["entity"] == "Intervention"
        assert entries[0]["entity_id"] == intervention.id
        assert entries[0]["performed_by_id"] == test_technician.id
        assert entries[0]["reason"] == "Pièces reçues"
        assert entries[0]["changes"] == {"status": {"from": "PLANIFIEE", "to": "EN_COURS"}}

    async def test_phase_records_are_recorded(self, admin_client: AsyncClient, intervention_factory):
        intervention = await intervention_factory(status=InterventionStatus.EN_COURS)
        path = f"/api/v1/interventions/{intervention.id}/quality-control"
        await admin_client.post(path, json={"test_results": "OK"})
        await admin_client.post(path, json={"test_results": "Isolement 500 MΩ"})

        response = await admin_client.get("/api/v1/audit-logs", params={"entity": "QualityControl"})
        entries = response.json()["data"]
        assert [e["action"] for e in entries] == ["UPDATE", "CREATE"]
        assert entries[0]["changes"] == {"test_results": {"from": "OK", "to": "Isolement 500 MΩ"}}

    async def test_role_change_is_a_role_assignment(
        self,
        admin_client: AsyncClient,
        test_technician: usr_models.User,
        default_roles: Dict[str, usr_models.Role],
    ):
        consultant_role = default_roles["Consultant"]
        previous_role_id = test_technician.role_id
        response = await admin_client.put(
            f"/api/v1/users/{test_technician.id}", json={"role_id": consultant_role.id, "password": "newpass123"}
        )
        assert response.status_code == 200

        response = await admin_client.get(
            "/api/v1/audit-logs", params={"entity": "User", "action": "ROLE_ASSIGNMENT"}
        )
        entries = response.json()["data"]
        assert len(entries) == 1
        assert entries[0]["changes"] == {"role_id": {"from": previous_role_id, "to": consultant_role.id}}

    async def test_logins_are_recorded(self, admin_client: AsyncClient, test_admin_user: usr_models.User):
        response = await admin_client.get(
            "/api/v1/audit-logs", params={"action": "LOGIN", "performedBy": test_admin_user.id}
        )
        assert response.json()["pagination"]["total"] == 1

    async def test_search_and_paging(self, admin_client: AsyncClient):
        for name in ("Alpha Ciments", "Beta Textile", "Gamma Phosphates"):
            await admin_client.post("/api/v1/clients", json={"company_name": name})

        response = await admin_client.get(
            "/api/v1/audit-logs", params={"search": "client", "limit": 2, "sortBy": "id", "sortOrder": "ASC"}
        )
        body = response.json()
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
        assert body["data"][0]["id"] < body["data"][1]["id"]

    async def test_read_one_entry(self, admin_client: AsyncClient):
        entries = (await admin_client.get("/api/v1/audit-logs")).json()["data"]
        response = await admin_client.get(f"/api/v1/audit-logs/{entries[0]['id']}")
        assert response.status_code == 200
        assert response.json()["action"] == "LOGIN"

        missing = await admin_client.get("/api/v1/audit-logs/99999")
        assert missing.status_code == 404

    async def test_only_admins_read_the_trail(self, authorized_client: AsyncClient, consultant_client: AsyncClient):
        assert (await authorized_client.get("/api/v1/audit-logs")).status_code == 403
        assert (await consultant_client.get("/api/v1/audit-logs")).status_code == 403

    async def test_unknown_action_filter(self, admin_client: AsyncClient):
        response = await admin_client.get("/api/v1/audit-logs", params={"action": "PURGE"})
        assert response.status_code == 422

    async def test_date_range(self, admin_client: AsyncClient):
        today = datetime.now(UTC).date()
        within = await admin_client.get(
            "/api/v1/audit-logs", params={"dateFrom": today.isoformat(), "dateTo": today.isoformat()}
        )
        assert within.json()["pagination"]["total"] == 1

        before = await admin_client.get(
            "/api/v1/audit-logs", params={"dateTo": (today - timedelta(days=1)).isoformat()}
        )
        assert before.json()["pagination"]["total"] == 0
