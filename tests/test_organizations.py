"""Organization, provider catalogue and control route tests."""

import pytest


@pytest.mark.asyncio
async def test_create_organization_derives_slug(client):
    r = await client.post("/api/v1/organizations", json={"name": "Globex Industries"})
    assert r.status_code == 201
    data = r.json()
    assert data["org_id"].startswith("org_")
    assert data["slug"] == "globex-industries"


@pytest.mark.asyncio
async def test_duplicate_slug_conflicts(client):
    body = {"name": "Initech", "slug": "initech"}
    assert (await client.post("/api/v1/organizations", json=body)).status_code == 201
    r = await client.post("/api/v1/organizations", json=body)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_get_missing_organization(client):
    r = await client.get("/api/v1/organizations/org_missing")
    assert r.status_code == 404
    body = r.json()
    assert body["schema_version"] == "1.0"
    assert body["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_list_organizations(client, org):
    r = await client.get("/api/v1/organizations")
    assert r.status_code == 200
    assert org.org_id in [o["org_id"] for o in r.json()]


@pytest.mark.asyncio
async def test_provider_catalogue_is_seeded(client):
    r = await client.get("/api/v1/providers")
    assert r.status_code == 200
    categories = {p["category"] for p in r.json()}
    assert categories == {"google_workspace", "microsoft_entra_id", "aws_config"}


@pytest.mark.asyncio
async def test_controls_create_and_conflict(client, org):
    body = {"code": "access-review", "title": "Quarterly access review", "frameworks": ["soc2"]}
    r = await client.post(f"/api/v1/organizations/{org.org_id}/controls", json=body)
    assert r.status_code == 201
    assert r.json()["status"] == "not_started"

    r = await client.post(f"/api/v1/organizations/{org.org_id}/controls", json=body)
    assert r.status_code == 409

    r = await client.get(f"/api/v1/organizations/{org.org_id}/controls")
    assert [c["code"] for c in r.json()] == ["access-review"]
