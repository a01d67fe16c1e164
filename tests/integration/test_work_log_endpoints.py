"""Integration tests for work log endpoints."""
import pytest

from conftest import auth_headers


async def converted_work_log(app_client, user_id: str = "user123") -> dict:
    """Start, stop and convert a session; return the work log."""
    headers = auth_headers(user_id)
    project = await app_client.test_db["projects"].insert_one({"name": "Ops"})
    session = await app_client.post(
        "/time-sessions",
        json={"project_id": str(project.inserted_id), "work_category": "support"},
        headers=headers,
    )
    session_id = session.json()["id"]
    await app_client.post(f"/time-sessions/{session_id}/stop", headers=headers)
    response = await app_client.post(f"/time-sessions/{session_id}/convert", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


@pytest.mark.asyncio
class TestWorkLogs:
    """Tests for reading work logs."""

    async def test_list_own_work_logs(self, app_client):
        mine = await converted_work_log(app_client)
        await converted_work_log(app_client, user_id="someone-else")

        response = await app_client.get("/work-logs", headers=auth_headers())

        assert response.status_code == 200
        assert [log["id"] for log in response.json()] == [mine["id"]]
        assert response.json()[0]["work_category"] == "support"
        assert response.json()[0]["duration_ms"] >= 0

    async def test_get_work_log(self, app_client):
        work_log = await converted_work_log(app_client)

        response = await app_client.get(f"/work-logs/{work_log['id']}", headers=auth_headers())

        assert response.status_code == 200
        assert response.json()["source_session_id"] == work_log["source_session_id"]

    async def test_other_users_work_log_hidden(self, app_client):
        work_log = await converted_work_log(app_client)

        response = await app_client.get(
            f"/work-logs/{work_log['id']}", headers=auth_headers("someone-else")
        )

        assert response.status_code == 404

    async def test_work_log_survives_session_deletion(self, app_client):
        work_log = await converted_work_log(app_client)

        await app_client.delete(
            f"/time-sessions/{work_log['source_session_id']}", headers=auth_headers()
        )
        response = await app_client.get(f"/work-logs/{work_log['id']}", headers=auth_headers())

        assert response.status_code == 200

    async def test_requires_auth(self, app_client):
        response = await app_client.get("/work-logs")

        assert response.status_code == 401
