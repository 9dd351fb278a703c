import pytest

from tests.helpers import auth_headers


@pytest.mark.asyncio
async def test_root_health(client):
    res = await client.get("/")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_metrics_endpoint(client):
    res = await client.get("/api/metrics")
    assert res.status_code == 200

    data = res.json()

    # Check structure
    assert data["status"] == "Online"
    assert "cpu" in data
    assert "ram" in data
    assert data["database"] == "Connected"

    # Check data types
    assert isinstance(data["uptime"], int)
    assert isinstance(data["cache_entries"], int)


@pytest.mark.asyncio
async def test_dashboard_stats(client, make_user, academic):
    admin = await make_user("admin")
    await make_user("user")
    await client.post(
        "/api/academic/posts",
        json={"title": "Welcome back", "content": "Lectures resume on Monday."},
        headers=auth_headers(admin),
    )

    res = await client.get("/api/metrics/dashboard-stats", headers=auth_headers(admin))
    assert res.status_code == 200
    data = res.json()
    assert data["users"]["by_role"] == {"admin": 1, "user": 1}
    assert data["posts"]["global"] == 1
    assert data["faculties"] == 2
    assert data["departments"] == 3


@pytest.mark.asyncio
async def test_dashboard_stats_admin_only(client, make_user):
    user = await make_user("user")
    res = await client.get("/api/metrics/dashboard-stats", headers=auth_headers(user))
    assert res.status_code == 403
