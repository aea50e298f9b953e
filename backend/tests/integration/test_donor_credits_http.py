"""
HTTP tests for the donor credit, donor and coverage endpoints.

The app is exercised through httpx with every store bound to the test
database; the bearer token is the tenant.
"""

from datetime import date
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from impact_tracker.api import deps
from impact_tracker.infrastructure.local.claim_store import SqliteClaimStore
from impact_tracker.infrastructure.local.donor_credit_repository import SqliteDonorCreditRepository
from impact_tracker.infrastructure.local.donor_repository import SqliteDonorRepository
from impact_tracker.infrastructure.local.evidence_store import SqliteEvidenceStore
from impact_tracker.infrastructure.local.mock_auth import MockAuthProvider
from main import create_app

OWNER = {"Authorization": "Bearer test_user_123"}
INTRUDER = {"Authorization": "Bearer intruder"}


@pytest.fixture
async def client(session_factory):
    app = create_app()
    app.dependency_overrides[deps.get_claim_store] = lambda: SqliteClaimStore(session_factory=session_factory)
    app.dependency_overrides[deps.get_evidence_store] = lambda: SqliteEvidenceStore(
        session_factory=session_factory
    )
    app.dependency_overrides[deps.get_donor_repository] = lambda: SqliteDonorRepository(
        session_factory=session_factory
    )
    app.dependency_overrides[deps.get_donor_credit_repository] = lambda: SqliteDonorCreditRepository(
        session_factory=session_factory
    )
    app.dependency_overrides[deps.get_auth_provider] = lambda: MockAuthProvider(enabled=True)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http


@pytest.fixture
async def ledger(seed):
    initiative_id = uuid4()
    kpi_id = await seed.kpi(initiative_id)
    claim_id = await seed.claim(kpi_id, 120, date(2024, 5, 1))
    await seed.claim(kpi_id, 80, date(2024, 5, 20))
    await seed.evidence(date_range_start=date(2024, 5, 1), date_range_end=date(2024, 5, 15), kpi_id=kpi_id)
    donor_a = await seed.donor(initiative_id, name="Donor A")
    donor_b = await seed.donor(initiative_id, name="Donor B")
    return {
        "initiative_id": str(initiative_id),
        "kpi_id": str(kpi_id),
        "claim_id": str(claim_id),
        "donor_a": str(donor_a),
        "donor_b": str(donor_b),
    }


@pytest.mark.asyncio
async def test_credit_lifecycle(client, ledger):
    response = await client.post(
        "/api/donor-credits",
        json={"donor_id": ledger["donor_a"], "kpi_id": ledger["kpi_id"], "credited_value": 120},
        headers=OWNER,
    )
    assert response.status_code == 201
    credit = response.json()
    assert credit["credited_value"] == 120
    assert credit["kpi_update_id"] is None

    response = await client.post(
        "/api/donor-credits",
        json={"donor_id": ledger["donor_b"], "kpi_id": ledger["kpi_id"], "credited_value": 90},
        headers=OWNER,
    )
    assert response.status_code == 400
    body = response.json()
    assert body["available"] == 80
    assert body["ceiling"] == 200
    assert "Available: 80.00" in body["error"]

    response = await client.put(
        f"/api/donor-credits/{credit['id']}", json={"credited_value": 150}, headers=OWNER
    )
    assert response.status_code == 200
    assert response.json()["credited_value"] == 150

    response = await client.get(f"/api/donor-credits/metric/{ledger['kpi_id']}", headers=OWNER)
    assert response.status_code == 200
    [listed] = response.json()
    assert listed["donor"]["name"] == "Donor A"
    assert listed["kpi"]["title"] == "Meals served"

    response = await client.get(f"/api/donor-credits/donor/{ledger['donor_a']}", headers=OWNER)
    assert [c["id"] for c in response.json()] == [credit["id"]]

    response = await client.delete(f"/api/donor-credits/{credit['id']}", headers=OWNER)
    assert response.status_code == 204
    response = await client.get(f"/api/donor-credits/{credit['id']}", headers=OWNER)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_totals_and_availability(client, ledger):
    await client.post(
        "/api/donor-credits",
        json={
            "donor_id": ledger["donor_a"],
            "kpi_id": ledger["kpi_id"],
            "kpi_update_id": ledger["claim_id"],
            "credited_value": 20.5,
        },
        headers=OWNER,
    )

    response = await client.get(
        f"/api/donor-credits/total/{ledger['kpi_id']}",
        params={"kpi_update_id": ledger["claim_id"]},
        headers=OWNER,
    )
    assert response.json() == {"total": 20.5}

    response = await client.get(
        f"/api/donor-credits/available/{ledger['kpi_id']}",
        params={"kpi_update_id": ledger["claim_id"], "donor_id": ledger["donor_a"]},
        headers=OWNER,
    )
    body = response.json()
    assert body["scope"] == "claim"
    assert body["ceiling"] == 120
    assert body["available"] == 99.5
    assert body["available_for_donor"] == 120

    response = await client.get(f"/api/donor-credits/available/{ledger['kpi_id']}", headers=OWNER)
    assert response.json()["scope"] == "metric"
    assert response.json()["available"] == 200


@pytest.mark.asyncio
async def test_invalid_payloads_are_400(client, ledger):
    response = await client.post(
        "/api/donor-credits",
        json={"donor_id": ledger["donor_a"], "kpi_id": ledger["kpi_id"], "credited_value": -1},
        headers=OWNER,
    )
    assert response.status_code == 400
    assert "credited_value" in response.json()["error"]

    response = await client.post(
        "/api/donor-credits",
        json={"donor_id": ledger["donor_a"], "kpi_id": str(uuid4()), "credited_value": 1},
        headers=OWNER,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_other_tenant_gets_not_found(client, ledger):
    response = await client.post(
        "/api/donor-credits",
        json={"donor_id": ledger["donor_a"], "kpi_id": ledger["kpi_id"], "credited_value": 10},
        headers=OWNER,
    )
    credit_id = response.json()["id"]

    assert (await client.get(f"/api/donor-credits/{credit_id}", headers=INTRUDER)).status_code == 404
    assert (
        await client.put(f"/api/donor-credits/{credit_id}", json={"credited_value": 1}, headers=INTRUDER)
    ).status_code == 404
    assert (await client.delete(f"/api/donor-credits/{credit_id}", headers=INTRUDER)).status_code == 404
    assert (await client.get(f"/api/donors/{ledger['donor_a']}", headers=INTRUDER)).status_code == 404
    response = await client.get(f"/api/donor-credits/metric/{ledger['kpi_id']}", headers=INTRUDER)
    assert response.json() == []


@pytest.mark.asyncio
async def test_missing_token_is_401(client, ledger):
    response = await client.get(f"/api/donor-credits/metric/{ledger['kpi_id']}")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_donor_endpoints(client):
    initiative_id = str(uuid4())

    assert (await client.get("/api/donors", headers=OWNER)).status_code == 400

    response = await client.post(
        "/api/donors",
        json={"initiative_id": initiative_id, "name": "Grace", "email": "grace@example.org"},
        headers=OWNER,
    )
    assert response.status_code == 201
    donor = response.json()

    response = await client.put(f"/api/donors/{donor['id']}", json={"notes": "Annual gift"}, headers=OWNER)
    assert response.json()["notes"] == "Annual gift"

    response = await client.get("/api/donors", params={"initiative_id": initiative_id}, headers=OWNER)
    assert [d["id"] for d in response.json()] == [donor["id"]]

    response = await client.get(f"/api/donors/{donor['id']}/credits", headers=OWNER)
    assert response.json() == []

    assert (await client.delete(f"/api/donors/{donor['id']}", headers=OWNER)).status_code == 204
    assert (await client.get(f"/api/donors/{donor['id']}", headers=OWNER)).status_code == 404


@pytest.mark.asyncio
async def test_coverage_endpoints(client, ledger):
    response = await client.get(f"/api/kpis/{ledger['kpi_id']}/coverage", headers=OWNER)
    assert response.status_code == 200
    body = response.json()
    assert body["total_claims"] == 2
    assert body["proven_claims"] == 1
    assert body["evidence_percentage"] == 50
    assert body["evidence_types"][0]["label"] == "Documentation"

    response = await client.get(f"/api/kpis/initiative/{ledger['initiative_id']}/coverage", headers=OWNER)
    body = response.json()
    assert body["total_kpis"] == 1
    assert body["kpis_with_evidence"] == 1
    assert body["evidence_coverage_percentage"] == 100

    assert (await client.get(f"/api/kpis/{uuid4()}/coverage", headers=OWNER)).status_code == 404


@pytest.mark.asyncio
async def test_reconcile_endpoint(client, ledger):
    response = await client.post(f"/api/donor-credits/metric/{ledger['kpi_id']}/reconcile", headers=OWNER)
    assert response.status_code == 200
    assert response.json()["over_allocated"] == []


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [1e30, 1e13])
async def test_unstorable_credited_value_is_400(client, ledger, value):
    response = await client.post(
        "/api/donor-credits",
        json={"donor_id": ledger["donor_a"], "kpi_id": ledger["kpi_id"], "credited_value": value},
        headers=OWNER,
    )
    assert response.status_code == 400
    assert "credited_value" in response.json()["error"]

    response = await client.post(
        "/api/donor-credits",
        json={"donor_id": ledger["donor_a"], "kpi_id": ledger["kpi_id"], "credited_value": 10},
        headers=OWNER,
    )
    credit_id = response.json()["id"]

    response = await client.put(
        f"/api/donor-credits/{credit_id}", json={"credited_value": value}, headers=OWNER
    )
    assert response.status_code == 400
    assert "credited_value" in response.json()["error"]

    response = await client.get(f"/api/donor-credits/{credit_id}", headers=OWNER)
    assert response.json()["credited_value"] == 10
