"""Risk register route tests."""

import pytest


async def _create_risk(client, org_id: str, **overrides) -> dict:
    body = {
        "title": "Stale admin accounts",
        "category": "security",
        "likelihood": "likely",
        "impact": "high",
        "owner_id": "usr_ciso",
        **overrides,
    }
    r = await client.post(f"/api/v1/organizations/{org_id}/risks", json=body)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.mark.asyncio
async def test_score_endpoint(client):
    r = await client.post("/api/v1/risks/score", json={"likelihood": "possible", "impact": "medium"})
    assert r.json() == {"likelihood": "possible", "impact": "medium", "score": 9, "severity": "medium"}

    r = await client.post("/api/v1/risks/score", json={"likelihood": "often", "impact": "medium"})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_create_risk_scores_inherent_severity(client, org):
    risk = await _create_risk(client, org.org_id)
    assert risk["severity_inherent"] == "high"
    assert risk["status"] == "identified"
    assert risk["severity_residual"] is None


@pytest.mark.asyncio
async def test_list_risks_filters(client, org):
    await _create_risk(client, org.org_id)
    await _create_risk(client, org.org_id, title="Vendor outage", likelihood="unlikely", impact="low")

    r = await client.get(f"/api/v1/organizations/{org.org_id}/risks", params={"severity": "low"})
    assert [x["title"] for x in r.json()] == ["Vendor outage"]


@pytest.mark.asyncio
async def test_update_rescores(client, org):
    risk = await _create_risk(client, org.org_id)
    url = f"/api/v1/risks/{risk['risk_id']}"

    r = await client.put(url, json={"impact": "critical"})
    assert r.json()["severity_inherent"] == "very_high"
    assert r.json()["impact_inherent"] == "critical"

    r = await client.put(url, json={"likelihood_residual": "unlikely"})
    assert r.status_code == 400

    r = await client.put(url, json={"likelihood_residual": "unlikely", "impact_residual": "low"})
    assert r.json()["severity_residual"] == "low"


@pytest.mark.asyncio
async def test_treatments_and_effectiveness(client, org):
    risk = await _create_risk(client, org.org_id)
    url = f"/api/v1/risks/{risk['risk_id']}"

    r = await client.post(f"{url}/treatments", json={
        "strategy": "mitigate",
        "description": "Quarterly access review",
        "owner_id": "usr_it",
        "status": "completed",
        "effectiveness_rating": 75,
        "budget_allocated": 1000,
        "actual_cost": 1100,
    })
    assert r.status_code == 201
    assert (await client.get(url)).json()["status"] == "treating"

    await client.post(f"{url}/treatments", json={
        "strategy": "transfer",
        "description": "Cyber insurance",
        "owner_id": "usr_cfo",
    })
    assert len((await client.get(f"{url}/treatments")).json()) == 2

    r = await client.get(f"{url}/effectiveness")
    data = r.json()
    assert data["total_treatments"] == 2
    assert data["completed_treatments"] == 1
    assert data["average_effectiveness"] == 75.0
    assert data["budget_variance_percent"] == 10.0


@pytest.mark.asyncio
async def test_missing_risk(client):
    assert (await client.get("/api/v1/risks/risk_missing")).status_code == 404
