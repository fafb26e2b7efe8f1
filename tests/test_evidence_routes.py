"""Evidence, automated evidence and job route tests."""

import asyncio

import pytest

from complio.integrations.adapters.base import SyncResult
from complio.services.evidence.engine import generate_evidence


# --- Helpers ---


async def _automated(db_session, connection):
    [row] = await generate_evidence(
        db_session,
        connection,
        SyncResult(success=True, records={"users": [{"primaryEmail": "ada@acme.test", "suspended": False}]}),
        generated_by="system",
    )
    await db_session.commit()
    return row


# ---------------------------------------------------------------------------
# Manual evidence
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_and_link_evidence(client, org, auth_headers):
    r = await client.post(
        f"/api/v1/organizations/{org.org_id}/evidence",
        json={"title": "Access policy", "metadata": {"version": 3}},
        headers=auth_headers,
    )
    assert r.status_code == 201
    evidence = r.json()
    assert evidence["type"] == "document"
    assert evidence["status"] == "draft"
    assert evidence["control_ids"] == []

    r = await client.post(
        f"/api/v1/organizations/{org.org_id}/controls",
        json={"code": "access-policy", "title": "Access policy"},
    )
    control_id = r.json()["control_id"]

    url = f"/api/v1/evidence/{evidence['evidence_id']}/controls/{control_id}"
    first = await client.post(url)
    assert first.status_code == 201
    # Linking twice is a no-op
    second = await client.post(url)
    assert second.json()["link_id"] == first.json()["link_id"]

    r = await client.get(f"/api/v1/evidence/{evidence['evidence_id']}")
    assert r.json()["control_ids"] == [control_id]


@pytest.mark.asyncio
async def test_create_evidence_requires_auth(client, org):
    r = await client.post(f"/api/v1/organizations/{org.org_id}/evidence", json={"title": "x"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_list_evidence_filters_by_status(client, org, db_session, connection):
    await _automated(db_session, connection)
    r = await client.get(f"/api/v1/organizations/{org.org_id}/evidence", params={"status": "draft"})
    assert len(r.json()) == 1
    r = await client.get(f"/api/v1/organizations/{org.org_id}/evidence", params={"status": "approved"})
    assert r.json() == []


# ---------------------------------------------------------------------------
# Automated evidence
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_automated_evidence_listing_and_detail(client, org, db_session, connection):
    row = await _automated(db_session, connection)

    r = await client.get(f"/api/v1/organizations/{org.org_id}/evidence-automation")
    [entry] = r.json()
    assert entry["automated_evidence_id"] == row.automated_evidence_id
    assert "processed_data" not in entry

    r = await client.get(f"/api/v1/evidence-automation/{row.automated_evidence_id}")
    assert r.json()["processed_data"]["items"][0]["userEmail"] == "ada@acme.test"


@pytest.mark.asyncio
async def test_review_requires_reviewer_role(client, db_session, connection, token_factory):
    row = await _automated(db_session, connection)
    url = f"/api/v1/evidence-automation/{row.automated_evidence_id}/validate"

    viewer = {"Authorization": f"Bearer {token_factory(roles=['viewer'])}"}
    r = await client.post(url, json={"approved": True}, headers=viewer)
    assert r.status_code == 403

    reviewer = {"Authorization": f"Bearer {token_factory(sub='usr_rev', roles=['reviewer'])}"}
    r = await client.post(url, json={"approved": True, "comments": "ok"}, headers=reviewer)
    assert r.status_code == 200
    assert r.json()["automation_status"] == "approved"
    assert r.json()["review"]["reviewer_id"] == "usr_rev"

    r = await client.post(url, json={"approved": False}, headers=reviewer)
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_evidence_automation_stats(client, org, db_session, connection):
    await _automated(db_session, connection)
    r = await client.get(f"/api/v1/organizations/{org.org_id}/evidence-automation/stats")
    assert r.json() == {
        "total_generated": 1,
        "pending_validation": 1,
        "approved": 0,
        "rejected": 0,
        "average_quality_score": 100.0,
    }


@pytest.mark.asyncio
async def test_generation_rules_endpoint(client):
    r = await client.get("/api/v1/evidence-automation/rules/microsoft_entra_id")
    [rule] = r.json()
    assert rule["data_source"] == "users"
    assert rule["control_mappings"] == ["access-control-users", "user-provisioning", "access-review"]

    r = await client.get("/api/v1/evidence-automation/rules/not_a_provider")
    assert r.status_code == 422


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_job_status_cancel_and_stats(client, org, connection, auth_headers):
    r = await client.post(f"/api/v1/connections/{connection.connection_id}/sync", headers=auth_headers)
    job_id = r.json()["job"]["job_id"]

    r = await client.get(f"/api/v1/jobs/{job_id}")
    assert r.json()["status"] == "pending"

    assert (await client.post(f"/api/v1/jobs/{job_id}/cancel")).status_code == 401
    r = await client.post(f"/api/v1/jobs/{job_id}/cancel", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"

    r = await client.post(f"/api/v1/jobs/{job_id}/cancel", headers=auth_headers)
    assert r.status_code == 409

    r = await client.get(f"/api/v1/organizations/{org.org_id}/jobs/stats")
    stats = r.json()
    assert stats["total_jobs"] == 1
    assert stats["cancelled_jobs"] == 1


@pytest.mark.asyncio
async def test_run_now_sync_is_executed(client, app, connection, auth_headers):
    r = await client.post(
        f"/api/v1/connections/{connection.connection_id}/sync",
        json={"job_type": "incremental_sync", "run_now": True},
        headers=auth_headers,
    )
    assert r.status_code == 202
    job_id = r.json()["job"]["job_id"]

    await asyncio.gather(*app.state.orchestrator._background)
    r = await client.get(f"/api/v1/jobs/{job_id}")
    assert r.json()["status"] == "completed"


@pytest.mark.asyncio
async def test_missing_job_is_not_found(client):
    r = await client.get("/api/v1/jobs/sjob_missing")
    assert r.status_code == 404
