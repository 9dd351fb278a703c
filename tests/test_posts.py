import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError

from app.models.post import Post, PostLike
from app.services import post_service
from tests.helpers import auth_headers

POSTS = "/api/academic/posts"


def post_body(**extra):
    body = {
        "title": "Exam timetable",
        "content": "The first semester exam timetable is out.",
    }
    body.update(extra)
    return body


@pytest_asyncio.fixture
async def people(make_user, academic):
    cs100 = academic["levels"][("CS", 100)]
    return {
        "admin": await make_user("admin", email="admin@example.com"),
        "hod": await make_user("d_admin", email="hod@example.com", managed_department_id=academic["cs"].id),
        "student": await make_user(
            "user", email="student@example.com",
            level_id=cs100.id, department_id=academic["cs"].id, faculty_id=academic["sci"].id,
        ),
        "outsider": await make_user(
            "user", email="outsider@example.com",
            level_id=academic["levels"][("EE", 100)].id,
            department_id=academic["ee"].id, faculty_id=academic["eng"].id,
        ),
    }


async def create(client, user, **extra):
    return await client.post(POSTS, json=post_body(**extra), headers=auth_headers(user))


# -------------------------------------------------------------------
# CREATE
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_admin_creates_posts_in_every_scope(client, people, academic):
    admin = people["admin"]

    res = await create(client, admin)
    assert res.status_code == 201
    assert res.json()["scope"] == "global"
    assert res.json()["author"]["name"] == admin.name

    res = await create(client, admin, faculty_id=str(academic["eng"].id))
    assert res.json()["scope"] == "faculty"

    res = await create(client, admin, level_id=str(academic["levels"][("EE", 400)].id))
    assert res.json()["scope"] == "level"


@pytest.mark.asyncio
async def test_create_rejects_both_scope_ids(client, people, academic):
    res = await create(
        client, people["admin"],
        faculty_id=str(academic["sci"].id),
        level_id=str(academic["levels"][("CS", 100)].id),
    )
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_create_validation(client, people):
    admin = people["admin"]
    assert (await create(client, admin, title="Hi")).status_code == 422
    assert (await create(client, admin, content="too short")).status_code == 422
    assert (await create(client, admin, priority="critical")).status_code == 422
    assert (await create(client, admin, category="x" * 51)).status_code == 422


@pytest.mark.asyncio
async def test_create_unknown_scope_target(client, people):
    missing = "00000000-0000-0000-0000-000000000000"
    assert (await create(client, people["admin"], level_id=missing)).status_code == 404
    assert (await create(client, people["admin"], faculty_id=missing)).status_code == 404


@pytest.mark.asyncio
async def test_students_cannot_post(client, people):
    res = await create(client, people["student"])
    assert res.status_code == 403
    assert res.json()["detail"] == "users cannot create posts"


@pytest.mark.asyncio
async def test_dept_admin_posts_only_in_own_levels(client, people, academic):
    hod = people["hod"]

    ok = await create(client, hod, level_id=str(academic["levels"][("CS", 200)].id))
    assert ok.status_code == 201

    other = await create(client, hod, level_id=str(academic["levels"][("MATH", 200)].id))
    assert other.status_code == 403

    assert (await create(client, hod)).status_code == 403
    assert (await create(client, hod, faculty_id=str(academic["sci"].id))).status_code == 403


# -------------------------------------------------------------------
# FEEDS
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_global_feed_pinned_first_and_paginated(client, people):
    admin = people["admin"]
    for i in range(3):
        await create(client, admin, title=f"Notice {i}")
    await create(client, admin, title="Pinned notice", is_pinned=True)

    res = await client.get(f"{POSTS}/global", params={"limit": 2}, headers=auth_headers(people["student"]))
    assert res.status_code == 200
    body = res.json()
    assert body["posts"][0]["title"] == "Pinned notice"
    assert body["pagination"] == {
        "current_page": 1, "total_pages": 2, "total_posts": 4, "has_more": True,
    }

    last = await client.get(f"{POSTS}/global", params={"limit": 2, "page": 2},
                            headers=auth_headers(people["student"]))
    assert last.json()["pagination"]["has_more"] is False
    assert len(last.json()["posts"]) == 2


@pytest.mark.asyncio
async def test_feed_filters(client, people):
    admin = people["admin"]
    await create(client, admin, category="Exams", priority="urgent")
    await create(client, admin, category="Sports")

    headers = auth_headers(people["student"])
    exams = await client.get(f"{POSTS}/global", params={"category": "Exams"}, headers=headers)
    assert [p["category"] for p in exams.json()["posts"]] == ["Exams"]

    everything = await client.get(f"{POSTS}/global", params={"category": "All"}, headers=headers)
    assert everything.json()["pagination"]["total_posts"] == 2

    urgent = await client.get(f"{POSTS}/global", params={"priority": "urgent"}, headers=headers)
    assert [p["priority"] for p in urgent.json()["posts"]] == ["urgent"]

    too_big = await client.get(f"{POSTS}/global", params={"limit": 101}, headers=headers)
    assert too_big.status_code == 422


@pytest.mark.asyncio
async def test_faculty_feed_membership(client, people, academic):
    await create(client, people["admin"], faculty_id=str(academic["sci"].id))
    url = f"{POSTS}/faculty/{academic['sci'].id}"

    member = await client.get(url, headers=auth_headers(people["student"]))
    assert member.status_code == 200
    assert member.json()["pagination"]["total_posts"] == 1

    outsider = await client.get(url, headers=auth_headers(people["outsider"]))
    assert outsider.status_code == 403

    missing = await client.get(f"{POSTS}/faculty/00000000-0000-0000-0000-000000000000",
                               headers=auth_headers(people["admin"]))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_level_feed_membership(client, people, academic):
    level = academic["levels"][("CS", 100)]
    await create(client, people["hod"], level_id=str(level.id))
    url = f"{POSTS}/level/{level.id}"

    assert (await client.get(url, headers=auth_headers(people["student"]))).status_code == 200
    assert (await client.get(url, headers=auth_headers(people["hod"]))).status_code == 200
    assert (await client.get(url, headers=auth_headers(people["outsider"]))).status_code == 403

    other_level = academic["levels"][("MATH", 100)]
    res = await client.get(f"{POSTS}/level/{other_level.id}", headers=auth_headers(people["hod"]))
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_feeds_need_login(client):
    assert (await client.get(f"{POSTS}/global")).status_code == 401


# -------------------------------------------------------------------
# SINGLE POST
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_get_post_counts_views_and_checks_scope(client, people, academic):
    level = academic["levels"][("CS", 100)]
    post_id = (await create(client, people["hod"], level_id=str(level.id))).json()["id"]

    first = await client.get(f"{POSTS}/{post_id}", headers=auth_headers(people["student"]))
    assert first.status_code == 200
    second = await client.get(f"{POSTS}/{post_id}", headers=auth_headers(people["student"]))
    assert second.json()["views_count"] == first.json()["views_count"] + 1

    denied = await client.get(f"{POSTS}/{post_id}", headers=auth_headers(people["outsider"]))
    assert denied.status_code == 403

    missing = await client.get(f"{POSTS}/00000000-0000-0000-0000-000000000000",
                               headers=auth_headers(people["admin"]))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_update_and_delete_permissions(client, people, make_user, academic):
    level = academic["levels"][("CS", 100)]
    post_id = (await create(client, people["hod"], level_id=str(level.id))).json()["id"]
    other_hod = await make_user("d_admin", managed_department_id=academic["cs"].id)

    res = await client.put(f"{POSTS}/{post_id}", json={"title": "Updated title"},
                           headers=auth_headers(other_hod))
    assert res.status_code == 403

    res = await client.put(f"{POSTS}/{post_id}", json={"title": "Updated title"},
                           headers=auth_headers(people["student"]))
    assert res.status_code == 403

    res = await client.put(f"{POSTS}/{post_id}", json={"title": "Updated title", "priority": "high"},
                           headers=auth_headers(people["hod"]))
    assert res.status_code == 200
    assert res.json()["title"] == "Updated title"
    assert res.json()["priority"] == "high"
    assert res.json()["scope"] == "level"

    res = await client.delete(f"{POSTS}/{post_id}", headers=auth_headers(people["admin"]))
    assert res.status_code == 200
    gone = await client.get(f"{POSTS}/{post_id}", headers=auth_headers(people["admin"]))
    assert gone.status_code == 404


# -------------------------------------------------------------------
# LIKES & COMMENTS
# -------------------------------------------------------------------
@pytest.mark.asyncio
async def test_like_toggle(client, people):
    post_id = (await create(client, people["admin"])).json()["id"]
    headers = auth_headers(people["student"])

    liked = await client.post(f"{POSTS}/{post_id}/like", headers=headers)
    assert liked.json() == {"is_liked": True, "likes_count": 1}

    feed = await client.get(f"{POSTS}/global", headers=headers)
    assert feed.json()["posts"][0]["is_liked"] is True
    assert feed.json()["posts"][0]["likes_count"] == 1

    unliked = await client.post(f"{POSTS}/{post_id}/like", headers=headers)
    assert unliked.json() == {"is_liked": False, "likes_count": 0}


@pytest.mark.asyncio
async def test_comments_and_replies(client, people):
    post_id = (await create(client, people["admin"])).json()["id"]
    other_post = (await create(client, people["admin"], title="Another one")).json()["id"]
    headers = auth_headers(people["student"])

    top = await client.post(f"{POSTS}/{post_id}/comments", json={"content": "When is it?"}, headers=headers)
    assert top.status_code == 201
    top_id = top.json()["id"]

    reply = await client.post(f"{POSTS}/{post_id}/comments",
                              json={"content": "Next week", "parent_id": top_id},
                              headers=auth_headers(people["admin"]))
    assert reply.status_code == 201

    cross = await client.post(f"{POSTS}/{other_post}/comments",
                              json={"content": "Wrong thread", "parent_id": top_id}, headers=headers)
    assert cross.status_code == 400

    empty = await client.post(f"{POSTS}/{post_id}/comments", json={"content": ""}, headers=headers)
    assert empty.status_code == 422

    detail = (await client.get(f"{POSTS}/{post_id}", headers=headers)).json()
    assert detail["comments_count"] == 2
    assert len(detail["comments"]) == 1
    assert detail["comments"][0]["replies"][0]["content"] == "Next week"


@pytest.mark.asyncio
async def test_cannot_comment_outside_scope(client, people, academic):
    level = academic["levels"][("CS", 100)]
    post_id = (await create(client, people["hod"], level_id=str(level.id))).json()["id"]

    res = await client.post(f"{POSTS}/{post_id}/comments", json={"content": "Hello"},
                            headers=auth_headers(people["outsider"]))
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_admin_deleting_anothers_post_is_audited(client, people, academic):
    level = academic["levels"][("CS", 100)]
    post_id = (await create(client, people["hod"], level_id=str(level.id))).json()["id"]
    own_id = (await create(client, people["admin"])).json()["id"]

    res = await client.delete(f"{POSTS}/{post_id}", headers=auth_headers(people["admin"]))
    assert res.status_code == 200
    res = await client.delete(f"{POSTS}/{own_id}", headers=auth_headers(people["admin"]))
    assert res.status_code == 200

    logs = await client.get("/api/admin/system-logs", params={"event_type": "POST_DELETED"},
                            headers=auth_headers(people["admin"]))
    assert logs.status_code == 200
    assert len(logs.json()) == 1
    entry = logs.json()[0]
    assert entry["resource_id"] == post_id
    assert entry["old_values"]["author_id"] == str(people["hod"].id)
    assert entry["actor_role"] == "admin"


@pytest.mark.asyncio
async def test_like_survives_concurrent_insert(db_session, session_factory, people, monkeypatch):
    """A unique-constraint clash on commit means the other request liked it first."""
    author_id, student_id = people["admin"].id, people["student"].id
    post = Post(title="Exam timetable", content="The first semester exam timetable is out.",
                author_id=author_id)
    db_session.add(post)
    await db_session.commit()
    post_id = post.id

    real_commit = db_session.commit
    calls = {"n": 0}

    async def racing_commit():
        calls["n"] += 1
        if calls["n"] == 1:
            await db_session.rollback()
            async with session_factory() as other:
                other.add(PostLike(post_id=post_id, user_id=student_id))
                await other.commit()
            raise IntegrityError("INSERT INTO post_likes", {}, Exception("UNIQUE constraint failed"))
        await real_commit()

    monkeypatch.setattr(db_session, "commit", racing_commit)

    student = people["student"]
    result = await post_service.toggle_like(db_session, post, student)
    assert result.is_liked is True
    assert result.likes_count == 1


@pytest.mark.asyncio
async def test_repost_toggle(client, people):
    post_id = (await create(client, people["admin"])).json()["id"]
    headers = auth_headers(people["student"])

    reposted = await client.post(f"{POSTS}/{post_id}/repost", headers=headers)
    assert reposted.status_code == 200
    assert reposted.json() == {"is_reposted": True, "reposts_count": 1}

    feed = await client.get(f"{POSTS}/global", headers=headers)
    assert feed.json()["posts"][0]["is_reposted"] is True
    assert feed.json()["posts"][0]["reposts_count"] == 1

    undone = await client.post(f"{POSTS}/{post_id}/repost", headers=headers)
    assert undone.json() == {"is_reposted": False, "reposts_count": 0}


@pytest.mark.asyncio
async def test_repost_checks_scope(client, people, academic):
    level = academic["levels"][("CS", 100)]
    post_id = (await create(client, people["hod"], level_id=str(level.id))).json()["id"]

    res = await client.post(f"{POSTS}/{post_id}/repost", headers=auth_headers(people["outsider"]))
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_list_comments(client, people, academic):
    post_id = (await create(client, people["admin"])).json()["id"]
    headers = auth_headers(people["student"])

    assert (await client.get(f"{POSTS}/{post_id}/comments", headers=headers)).json() == []

    first = (await client.post(f"{POSTS}/{post_id}/comments", json={"content": "First"}, headers=headers)).json()
    await client.post(f"{POSTS}/{post_id}/comments", json={"content": "Second"}, headers=headers)
    await client.post(f"{POSTS}/{post_id}/comments", json={"content": "Reply", "parent_id": first["id"]},
                      headers=auth_headers(people["admin"]))

    res = await client.get(f"{POSTS}/{post_id}/comments", headers=headers)
    assert res.status_code == 200
    assert [c["content"] for c in res.json()] == ["First", "Second"]
    assert [r["content"] for r in res.json()[0]["replies"]] == ["Reply"]

    level = academic["levels"][("CS", 100)]
    scoped = (await create(client, people["hod"], level_id=str(level.id))).json()["id"]
    denied = await client.get(f"{POSTS}/{scoped}/comments", headers=auth_headers(people["outsider"]))
    assert denied.status_code == 403


@pytest.mark.asyncio
async def test_comment_like_toggle(client, people):
    post_id = (await create(client, people["admin"])).json()["id"]
    other_post = (await create(client, people["admin"], title="Another one")).json()["id"]
    headers = auth_headers(people["student"])

    comment_id = (await client.post(f"{POSTS}/{post_id}/comments", json={"content": "Nice"},
                                    headers=headers)).json()["id"]

    liked = await client.post(f"{POSTS}/{post_id}/comments/{comment_id}/like", headers=headers)
    assert liked.status_code == 200
    assert liked.json() == {"is_liked": True, "likes_count": 1}

    listed = (await client.get(f"{POSTS}/{post_id}/comments", headers=headers)).json()
    assert listed[0]["likes_count"] == 1
    assert listed[0]["is_liked"] is True

    unliked = await client.post(f"{POSTS}/{post_id}/comments/{comment_id}/like", headers=headers)
    assert unliked.json() == {"is_liked": False, "likes_count": 0}

    wrong_post = await client.post(f"{POSTS}/{other_post}/comments/{comment_id}/like", headers=headers)
    assert wrong_post.status_code == 404

    missing = await client.post(f"{POSTS}/{post_id}/comments/00000000-0000-0000-0000-000000000000/like",
                                headers=headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_delete_post_with_engagement(client, people):
    post_id = (await create(client, people["admin"])).json()["id"]
    headers = auth_headers(people["student"])

    comment_id = (await client.post(f"{POSTS}/{post_id}/comments", json={"content": "Nice"},
                                    headers=headers)).json()["id"]
    await client.post(f"{POSTS}/{post_id}/comments", json={"content": "Agreed", "parent_id": comment_id},
                      headers=headers)
    await client.post(f"{POSTS}/{post_id}/comments/{comment_id}/like", headers=headers)
    await client.post(f"{POSTS}/{post_id}/like", headers=headers)
    await client.post(f"{POSTS}/{post_id}/repost", headers=headers)

    res = await client.delete(f"{POSTS}/{post_id}", headers=auth_headers(people["admin"]))
    assert res.status_code == 200
    assert (await client.get(f"{POSTS}/{post_id}", headers=headers)).status_code == 404
