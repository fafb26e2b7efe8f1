"""Integration connection API tests."""

import pytest


# --- Helpers ---


async def _provider_id(client, category: str = "google_workspace") -> str:
    r = await client.get("/api/v1/providers")
    return next(p["provider_id"] for p in r.json() if p["category"] == category)


async def _create_connection(client, org_id: str, headers: dict, **overrides) -> dict:
    body = {
        "provider_id": await _provider_id(client),
        "connection_name": "Workspace",
        "credentials": {"access_token": "ya29.secret", "domain": "acme.test"},
        **overrides,
    }
    r = await client.post(f"/api/v1/organizations/{org_id}/connections", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


# --- Create / read ---


@pytest.mark.asyncio
async def test_create_connection(client, org, auth_headers):
    data = await _create_connection(client, org.org_id, auth_headers, sync_schedule="daily")
    assert data["connection_id"].startswith("conn_")
    assert data["status"] == "pending_setup"
    assert data["has_credentials"] is True
    assert data["next_sync_at"] is not None
    assert data["created_by"] == "usr_test"
    # Secrets never leave the API
    assert "credentials" not in data
    assert "credentials_encrypted" not in data
    assert "ya29.secret" not in str(data)


@pytest.mark.asyncio
async def test_create_connection_requires_auth(client, org):
    body = {
        "provider_id": await _provider_id(client),
        "connection_name": "Workspace",
        "credentials": {"access_token": "x"},
    }
    r = await client.post(f"/api/v1/organizations/{org.org_id}/connections", json=body)
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_create_connection_rejects_invalid_token(client, org):
    body = {
        "provider_id": await _provider_id(client),
        "connection_name": "Workspace",
        "credentials": {"access_token": "x"},
    }
    r = await client.post(
        f"/api/v1/organizations/{org.org_id}/connections",
        json=body,
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "invalid_token"


@pytest.mark.asyncio
async def test_duplicate_connection_name_conflicts(client, org, auth_headers):
    await _create_connection(client, org.org_id, auth_headers)
    body = {
        "provider_id": await _provider_id(client),
        "connection_name": "Workspace",
        "credentials": {"access_token": "other"},
    }
    r = await client.post(f"/api/v1/organizations/{org.org_id}/connections", json=body, headers=auth_headers)
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_org_bound_user_cannot_create_elsewhere(client, org, token_factory):
    headers = {"Authorization": f"Bearer {token_factory(roles=['operator'], org_id='org_other')}"}
    body = {
        "provider_id": await _provider_id(client),
        "connection_name": "Workspace",
        "credentials": {"access_token": "x"},
    }
    r = await client.post(f"/api/v1/organizations/{org.org_id}/connections", json=body, headers=headers)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_unknown_provider_is_not_found(client, org, auth_headers):
    body = {"provider_id": "prov_missing", "connection_name": "X", "credentials": {}}
    r = await client.post(f"/api/v1/organizations/{org.org_id}/connections", json=body, headers=auth_headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_invalid_schedule_is_rejected(client, org, auth_headers):
    body = {
        "provider_id": await _provider_id(client),
        "connection_name": "Workspace",
        "credentials": {"access_token": "x"},
        "sync_schedule": "fortnightly",
    }
    r = await client.post(f"/api/v1/organizations/{org.org_id}/connections", json=body, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_list_connections_includes_counts(client, org, connection):
    r = await client.get(f"/api/v1/organizations/{org.org_id}/connections")
    assert r.status_code == 200
    [entry] = r.json()
    assert entry["connection_id"] == connection.connection_id
    assert entry["counts"] == {"jobs": 0, "logs": 0, "automated_evidence": 0}


# --- Update / delete ---


@pytest.mark.asyncio
async def test_update_credentials_requires_auth_and_resets_status(client, connection, auth_headers):
    url = f"/api/v1/connections/{connection.connection_id}"
    r = await client.put(url, json={"credentials": {"access_token": "new"}})
    assert r.status_code == 401

    r = await client.put(url, json={"credentials": {"access_token": "new"}}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "pending_setup"


@pytest.mark.asyncio
async def test_update_name_and_schedule(client, connection):
    url = f"/api/v1/connections/{connection.connection_id}"
    r = await client.put(url, json={"connection_name": "Renamed", "sync_frequency_minutes": 15})
    assert r.status_code == 200
    data = r.json()
    assert data["connection_name"] == "Renamed"
    assert data["sync_frequency_minutes"] == 15
    assert data["next_sync_at"] is not None


@pytest.mark.asyncio
async def test_delete_connection(client, connection, auth_headers):
    url = f"/api/v1/connections/{connection.connection_id}"
    assert (await client.delete(url)).status_code == 401

    r = await client.delete(url, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["deleted"] is True
    assert (await client.get(url)).status_code == 404


# --- Connection test ---


@pytest.mark.asyncio
async def test_connection_test_success_activates(client, org, auth_headers):
    created = await _create_connection(client, org.org_id, auth_headers)
    r = await client.post(f"/api/v1/connections/{created['connection_id']}/test")
    assert r.status_code == 200
    data = r.json()
    assert data["connected"] is True
    assert data["status"] == "active"
    assert "error" not in data


@pytest.mark.asyncio
async def test_connection_test_failure_records_error(client, connection, adapter_behaviour):
    adapter_behaviour["test_error"] = "HTTP 401 from directory"
    r = await client.post(f"/api/v1/connections/{connection.connection_id}/test")
    assert r.status_code == 200
    data = r.json()
    assert data["connected"] is False
    assert data["status"] == "error"
    assert "HTTP 401" in data["error"]

    r = await client.get(f"/api/v1/connections/{connection.connection_id}")
    assert "HTTP 401" in r.json()["last_error_message"]
    assert r.json()["last_error_at"] is not None


@pytest.mark.asyncio
async def test_connection_test_reports_false_probe(client, connection, adapter_behaviour):
    adapter_behaviour["connected"] = False
    r = await client.post(f"/api/v1/connections/{connection.connection_id}/test")
    data = r.json()
    assert data["connected"] is False
    assert data["error"] == "Connection test failed"


# --- Sync triggers and schedules ---


@pytest.mark.asyncio
async def test_trigger_sync_queues_job_and_dedups(client, connection, auth_headers):
    url = f"/api/v1/connections/{connection.connection_id}/sync"
    r = await client.post(url, json={"job_type": "full_sync"}, headers=auth_headers)
    assert r.status_code == 202
    first = r.json()
    assert first["created"] is True
    assert first["job"]["status"] == "pending"
    assert first["job"]["priority"] == 1
    assert first["job"]["job_data"]["sync_type"] == "manual"
    assert first["job"]["job_data"]["requested_by"] == "usr_test"

    r = await client.post(url, json={"job_type": "full_sync"}, headers=auth_headers)
    second = r.json()
    assert second["created"] is False
    assert second["job"]["job_id"] == first["job"]["job_id"]

    r = await client.get(f"/api/v1/connections/{connection.connection_id}/jobs")
    assert [j["job_id"] for j in r.json()] == [first["job"]["job_id"]]


@pytest.mark.asyncio
async def test_trigger_sync_requires_auth(client, connection):
    r = await client.post(f"/api/v1/connections/{connection.connection_id}/sync")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_viewer_cannot_trigger_sync(client, connection, token_factory):
    headers = {"Authorization": f"Bearer {token_factory(roles=['viewer'])}"}
    r = await client.post(f"/api/v1/connections/{connection.connection_id}/sync", headers=headers)
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "AUTHORIZATION_ERROR"


@pytest.mark.asyncio
async def test_trigger_sync_on_disabled_connection_conflicts(client, connection, auth_headers):
    await client.put(f"/api/v1/connections/{connection.connection_id}", json={"status": "disabled"})
    r = await client.post(f"/api/v1/connections/{connection.connection_id}/sync", headers=auth_headers)
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_schedule_update_and_listing(client, org, connection):
    url = f"/api/v1/connections/{connection.connection_id}/schedule"
    r = await client.put(url, json={"sync_schedule": "hourly", "is_active": True})
    assert r.status_code == 200
    assert r.json()["sync_schedule"] == "hourly"
    assert r.json()["next_sync_at"] is not None

    r = await client.get(f"/api/v1/organizations/{org.org_id}/sync-schedules")
    [schedule] = r.json()
    assert schedule["connection_id"] == connection.connection_id
    assert schedule["is_active"] is True
    assert schedule["job_type"] == "full_sync"

    r = await client.put(url, json={"is_active": False})
    assert r.json()["next_sync_at"] is None
    r = await client.get(f"/api/v1/organizations/{org.org_id}/sync-schedules")
    assert r.json() == []


@pytest.mark.asyncio
async def test_active_schedule_needs_interval(client, connection):
    r = await client.put(
        f"/api/v1/connections/{connection.connection_id}/schedule",
        json={"is_active": True},
    )
    assert r.status_code == 400
