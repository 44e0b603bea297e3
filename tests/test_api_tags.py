"""
HTTP tests for the tag endpoints.
"""

import pytest

from branch.core.config import settings


@pytest.mark.unit
@pytest.mark.asyncio
async def test_add_tag_requires_login(client, db, make_user):
    await make_user("bob")
    await db.commit()

    response = await client.post("/api/add-tag", json={"tagged_username": "bob", "tag": "kind"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "authentication_required"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_add_list_and_remove_tag(client, db, make_user, login):
    alice = await make_user("alice")
    await make_user("bob")
    await db.commit()
    login(alice)

    added = await client.post("/api/add-tag", json={"tagged_username": "bob", "tag": " kind "})
    again = await client.post("/api/add-tag", json={"tagged_username": "bob", "tag": "kind"})

    assert added.status_code == 200
    assert added.json() == {"success": True, "tag": "kind", "repo_name": None, "already_present": False}
    assert again.json()["already_present"] is True

    listed = await client.get("/api/tags", params={"username": "bob", "viewer": "alice"})
    assert listed.status_code == 200
    tags = listed.json()["tags"]
    assert [t["tag"] for t in tags] == ["kind"]
    assert tags[0]["tagged_by"] == [{"tagged_by_username": "alice", "is_viewer": True}]

    detail = await client.get("/api/tag", params={"name": "kind"})
    assert [u["username"] for u in detail.json()["users"]] == ["bob"]
    assert detail.json()["users"][0]["sourced_by"] == "alice"

    removed = await client.post("/api/remove-tag", json={"tagged_username": "bob", "tag": "kind"})
    assert removed.status_code == 200
    assert removed.json()["success"] is True

    listed = await client.get("/api/tags", params={"username": "bob"})
    assert listed.json()["tags"] == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_remove_by_someone_else_is_forbidden(client, db, make_user, login):
    alice = await make_user("alice")
    carol = await make_user("carol")
    await make_user("bob")
    await db.commit()

    login(alice)
    await client.post("/api/add-tag", json={"tagged_username": "bob", "tag": "kind"})
    login(carol)
    response = await client.post("/api/remove-tag", json={"tagged_username": "bob", "tag": "kind"})

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "permission_denied"
    still_there = await client.get("/api/tags", params={"username": "bob"})
    assert [t["tag"] for t in still_there.json()["tags"]] == ["kind"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_repo_tag_on_missing_repository(client, db, make_user, login):
    alice = await make_user("alice")
    await make_user("bob")
    await db.commit()
    login(alice)

    response = await client.post(
        "/api/add-tag", json={"tagged_username": "bob", "tag": "neat", "repo_name": "nope"}
    )

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_tag_field_is_a_validation_error(client, db, make_user, login):
    alice = await make_user("alice")
    await db.commit()
    login(alice)

    response = await client.post("/api/add-tag", json={"tagged_username": "bob"})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "validation_error"
    assert "tag" in error["details"]["fields"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_rename_is_admin_only(client, db, make_user, login, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_USERNAMES", "root")
    alice = await make_user("alice")
    root = await make_user("root")
    await make_user("bob")
    await db.commit()

    login(alice)
    await client.post("/api/add-tag", json={"tagged_username": "bob", "tag": "JS"})
    forbidden = await client.post("/api/admin/rename-tag", json={"old_name": "JS", "new_name": "JavaScript"})
    assert forbidden.status_code == 403

    login(root)
    renamed = await client.post("/api/admin/rename-tag", json={"old_name": "JS", "new_name": "JavaScript"})

    assert renamed.status_code == 200
    assert renamed.json() == {
        "success": True,
        "old_name": "JS",
        "new_name": "JavaScript",
        "renamed": 1,
        "merged": 0,
    }
    detail = await client.get("/api/tag", params={"name": "JavaScript"})
    assert [u["username"] for u in detail.json()["users"]] == ["bob"]
