import pytest

from app.core.cache import CacheKeys
from app.main import app
from tests.helpers import auth_headers


@pytest.mark.asyncio
async def test_list_faculties_is_cached(client, academic):
    res = await client.get("/api/academic/faculties")
    assert res.status_code == 200
    assert [f["code"] for f in res.json()] == ["ENG", "SCI"]
    assert app.state.cache.has(CacheKeys.FACULTIES)


@pytest.mark.asyncio
async def test_create_faculty_invalidates_cache(client, power_admin):
    headers = auth_headers(power_admin)
    assert (await client.get("/api/academic/faculties")).json() == []

    res = await client.post("/api/academic/faculties", headers=headers,
                            json={"name": "Faculty of Arts", "code": "arts"})
    assert res.status_code == 201
    assert res.json()["code"] == "ARTS"

    listed = (await client.get("/api/academic/faculties")).json()
    assert [f["code"] for f in listed] == ["ARTS"]

    dup = await client.post("/api/academic/faculties", headers=headers,
                            json={"name": "Faculty of Arts", "code": "ART2"})
    assert dup.status_code == 400


@pytest.mark.asyncio
async def test_faculty_lookups(client, academic):
    sci = academic["sci"]
    res = await client.get(f"/api/academic/faculties/{sci.id}")
    assert res.status_code == 200
    assert res.json()["name"] == "Faculty of Science"

    depts = await client.get(f"/api/academic/faculties/{sci.id}/departments")
    assert {d["code"] for d in depts.json()} == {"CS", "MATH"}

    missing = await client.get("/api/academic/faculties/00000000-0000-0000-0000-000000000000")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_create_department_with_levels(client, power_admin, academic):
    headers = auth_headers(power_admin)
    res = await client.post("/api/academic/departments", headers=headers, json={
        "name": "Physics",
        "code": "phy",
        "faculty_id": str(academic["sci"].id),
        "levels": [100, 200],
    })
    assert res.status_code == 201
    body = res.json()
    assert body["code"] == "PHY"
    assert [lv["level_number"] for lv in body["levels"]] == [100, 200]
    assert body["levels"][0]["display_name"] == "100 Level"

    default = await client.post("/api/academic/departments", headers=headers, json={
        "name": "Chemistry", "code": "CHEM", "faculty_id": str(academic["sci"].id),
    })
    assert [lv["level_number"] for lv in default.json()["levels"]] == [100, 200, 300, 400, 500]

    dup = await client.post("/api/academic/departments", headers=headers, json={
        "name": "Physics", "code": "PHY2", "faculty_id": str(academic["sci"].id),
    })
    assert dup.status_code == 400

    bad_level = await client.post("/api/academic/departments", headers=headers, json={
        "name": "Biology", "code": "BIO", "faculty_id": str(academic["sci"].id), "levels": [600],
    })
    assert bad_level.status_code == 422


@pytest.mark.asyncio
async def test_department_writes_need_power(client, make_user, academic):
    admin = await make_user("admin")
    res = await client.post("/api/academic/departments", headers=auth_headers(admin), json={
        "name": "Physics", "code": "PHY", "faculty_id": str(academic["sci"].id),
    })
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_update_and_soft_delete_department(client, power_admin, academic):
    headers = auth_headers(power_admin)
    cs = academic["cs"]

    res = await client.put(f"/api/academic/departments/{cs.id}", headers=headers,
                           json={"description": "Computing"})
    assert res.status_code == 200
    assert res.json()["description"] == "Computing"

    res = await client.delete(f"/api/academic/departments/{cs.id}", headers=headers)
    assert res.status_code == 200

    detail = await client.get(f"/api/academic/departments/{cs.id}")
    assert detail.status_code == 200
    assert detail.json()["is_active"] is False

    listed = await client.get(f"/api/academic/faculties/{academic['sci'].id}/departments")
    assert {d["code"] for d in listed.json()} == {"MATH"}


@pytest.mark.asyncio
async def test_levels(client, academic):
    cs = academic["cs"]
    res = await client.get(f"/api/academic/departments/{cs.id}/levels")
    assert [lv["level_number"] for lv in res.json()] == [100, 200, 300, 400, 500]

    level = academic["levels"][("CS", 300)]
    one = await client.get(f"/api/academic/levels/{level.id}")
    assert one.status_code == 200
    assert one.json()["department_id"] == str(cs.id)
    assert app.state.cache.has(CacheKeys.level(level.id))

    missing = await client.get("/api/academic/levels/00000000-0000-0000-0000-000000000000")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_context(client, make_user, academic):
    level = academic["levels"][("MATH", 200)]
    student = await make_user(
        "user",
        level_id=level.id,
        department_id=academic["math"].id,
        faculty_id=academic["sci"].id,
    )
    res = await client.get("/api/academic/context", headers=auth_headers(student))
    assert res.status_code == 200
    body = res.json()
    assert body["has_academic_profile"] is True
    assert body["faculty"]["code"] == "SCI"
    assert body["department"]["code"] == "MATH"
    assert body["level"]["level_number"] == 200

    newcomer = await make_user("user")
    res = await client.get("/api/academic/context", headers=auth_headers(newcomer))
    assert res.json()["has_academic_profile"] is False


async def event_types(client, headers):
    res = await client.get("/api/admin/system-logs", headers=headers)
    assert res.status_code == 200
    return [e["event_type"] for e in res.json()]


@pytest.mark.asyncio
async def test_structure_writes_are_audited(client, power_admin, academic):
    headers = auth_headers(power_admin)

    faculty = await client.post("/api/academic/faculties", headers=headers,
                                json={"name": "Faculty of Arts", "code": "ARTS"})
    assert faculty.status_code == 201
    assert "FACULTY_CREATED" in await event_types(client, headers)

    dept = await client.post("/api/academic/departments", headers=headers, json={
        "name": "History", "code": "HIS", "faculty_id": faculty.json()["id"],
    })
    assert dept.status_code == 201
    dept_id = dept.json()["id"]
    assert "DEPARTMENT_CREATED" in await event_types(client, headers)

    res = await client.put(f"/api/academic/departments/{dept_id}", headers=headers,
                           json={"name": "World History"})
    assert res.status_code == 200
    assert "DEPARTMENT_UPDATED" in await event_types(client, headers)

    res = await client.delete(f"/api/academic/departments/{dept_id}", headers=headers)
    assert res.status_code == 200

    logs = await client.get("/api/admin/system-logs", params={"event_type": "DEPARTMENT_DEACTIVATED"},
                            headers=headers)
    assert len(logs.json()) == 1
    assert logs.json()[0]["resource_id"] == dept_id
    assert logs.json()[0]["actor_name"] == "Root"


@pytest.mark.asyncio
async def test_update_department_ignores_nulls(client, power_admin, academic):
    headers = auth_headers(power_admin)
    cs = academic["cs"]

    res = await client.put(f"/api/academic/departments/{cs.id}", headers=headers,
                           json={"name": None, "code": None, "is_active": None, "description": "Computing"})
    assert res.status_code == 200
    body = res.json()
    assert body["name"] == "Computer Science"
    assert body["code"] == "CS"
    assert body["is_active"] is True
    assert body["description"] == "Computing"


@pytest.mark.asyncio
async def test_list_all_departments(client, power_admin, academic):
    res = await client.get("/api/academic/departments")
    assert res.status_code == 200
    assert [d["code"] for d in res.json()] == ["CS", "EE", "MATH"]

    await client.delete(f"/api/academic/departments/{academic['ee'].id}", headers=auth_headers(power_admin))

    active = await client.get("/api/academic/departments", params={"is_active": True})
    assert [d["code"] for d in active.json()] == ["CS", "MATH"]

    inactive = await client.get("/api/academic/departments", params={"is_active": False})
    assert [d["code"] for d in inactive.json()] == ["EE"]


@pytest.mark.asyncio
async def test_department_users(client, make_user, academic):
    cs = academic["cs"]
    hod = await make_user("d_admin", managed_department_id=cs.id)
    for number, name in ((200, "Bola"), (100, "Ada"), (200, "Chidi")):
        await make_user(
            "user", name=name,
            level_id=academic["levels"][("CS", number)].id,
            department_id=cs.id, faculty_id=academic["sci"].id,
        )
    await make_user("user", level_id=academic["levels"][("MATH", 100)].id, department_id=academic["math"].id)

    res = await client.get(f"/api/academic/departments/{cs.id}/users", headers=auth_headers(hod))
    assert res.status_code == 200
    body = res.json()
    assert body["department"] == "Computer Science"
    assert body["count"] == 3
    assert [u["name"] for u in body["users"]] == ["Ada", "Bola", "Chidi"]

    filtered = await client.get(f"/api/academic/departments/{cs.id}/users", params={"level": 200},
                                headers=auth_headers(hod))
    assert filtered.json()["level"] == 200
    assert [u["level_number"] for u in filtered.json()["users"]] == [200, 200]

    other = await client.get(f"/api/academic/departments/{academic['math'].id}/users", headers=auth_headers(hod))
    assert other.status_code == 403

    student = await make_user("user")
    denied = await client.get(f"/api/academic/departments/{cs.id}/users", headers=auth_headers(student))
    assert denied.status_code == 403

    admin = await make_user("admin")
    missing = await client.get("/api/academic/departments/00000000-0000-0000-0000-000000000000/users",
                               headers=auth_headers(admin))
    assert missing.status_code == 404
