"""
HTTP tests for scanning, profile, statistics, locations and admin endpoints.
"""

import pytest

from branch.core.config import settings
from branch.models.ai_assistance import AIAssistance
from branch.models.tech_stack import TechStack
from branch.models.unified_tag import TagCategory
from branch.repositories.fact_store import DerivedFact
from branch.services.dual_write_service import DualWriteFactStore


@pytest.mark.unit
@pytest.mark.asyncio
async def test_scan_then_profile(client, db, make_user, login, fake_github):
    octo = await make_user("octo", access_token="gho_octo")
    await db.commit()
    fake_github.add_account("octo", github_id=1, public_repos=2)
    fake_github.add_repo("octo", "api", readme="Made with Claude, hosted on Netlify", language="Python", stars=3)
    fake_github.add_repo("octo", "cli", language="Python")
    login(octo)

    scan = await client.get("/api/scan", params={"username": "octo"})

    assert scan.status_code == 200
    assert scan.json() == {
        "success": True,
        "repos_scanned": 2,
        "total_repos": 2,
        "has_more_repos": False,
        "technologies_found": 1,
        "partial_failures": 0,
    }

    profile = await client.get("/api/techstack", params={"username": "octo"})
    body = profile.json()
    assert profile.status_code == 200
    assert body["user_type"] == "authenticated"
    assert body["repos_scanned"] == 2
    assert [r["name"] for r in body["repositories"]] == ["api", "cli"]
    assert body["tech_stack"] == [{"technology": "Python", "category": "language", "repo_count": 2}]
    assert body["ai_assistance"] == [{"tool": "Claude", "repo_count": 1, "mentions": 1}]
    assert body["services"] == [{"service": "Netlify", "repo_count": 1, "mentions": 1}]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_scanned_repositories_appear_on_tech_pages(client, db, make_user, login, fake_github):
    octo = await make_user("octo", access_token="gho_octo")
    await db.commit()
    fake_github.add_account("octo", github_id=1, public_repos=3)
    fake_github.add_repo("octo", "api", language="Python", topics=["fastapi"], stars=3)
    fake_github.add_repo("octo", "cli", language="Python")
    fake_github.add_repo("octo", "server", language="Go")
    login(octo)

    await client.get("/api/scan", params={"username": "octo"})

    python = (await client.get("/api/tech", params={"tag": "Python"})).json()
    assert [(r["username"], r["name"]) for r in python["repositories"]] == [("octo", "api"), ("octo", "cli")]
    assert [u["username"] for u in python["users"]] == ["octo"]
    fastapi = (await client.get("/api/tech", params={"tag": "fastapi"})).json()
    assert [r["name"] for r in fastapi["repositories"]] == ["api"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_scan_without_any_token(client, db, make_user):
    await make_user("lurker")
    await db.commit()

    response = await client.get("/api/scan", params={"username": "lurker"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "authentication_required"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unknown_profile_is_404(client):
    response = await client.get("/api/techstack", params={"username": "ghost"})

    assert response.status_code == 404
    assert response.json()["error"] == {
        "code": "not_found",
        "message": "User not found",
        "details": {"username": "ghost"},
    }


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stats_and_tech_detail(client, db, make_user, make_repo):
    alice = await make_user("alice", access_token="gho_alice")
    bob = await make_user("bob", scanned_by="alice")
    await make_repo(bob, "bot", language="Python", stars=2)
    # Primary language alone does not put a repository under a tag
    await make_repo(alice, "site", language="Python")
    store = DualWriteFactStore.for_session(db)
    for fact in (
        DerivedFact(tag_name="Python", category=TagCategory.LANGUAGE, owner_id=alice.id, repo_count=1),
        DerivedFact(tag_name="Python", category=TagCategory.LANGUAGE, owner_id=bob.id, repo_count=1),
        DerivedFact(tag_name="Python", category=TagCategory.LANGUAGE, owner_id=bob.id, repo_name="bot"),
        DerivedFact(tag_name="Claude", category=TagCategory.AI_TOOL, owner_id=bob.id, repo_name="bot"),
        DerivedFact(tag_name="Claude", category=TagCategory.AI_TOOL, owner_id=bob.id),
        DerivedFact(tag_name="AWS", category=TagCategory.SERVICE, owner_id=alice.id, repo_count=1),
    ):
        await store.write(fact)
    await db.commit()

    stats = (await client.get("/api/stats")).json()

    assert stats["total_users"] == 2
    assert stats["authenticated_users"] == 1
    assert stats["total_repos"] == 2
    assert stats["total_technologies"] == 3
    assert stats["popular_tech"][0] == {"name": "Python", "user_count": 2, "color": "gray"}
    colors = {tech["name"]: tech["color"] for tech in stats["popular_tech"]}
    assert colors == {"Python": "gray", "Claude": "blue", "AWS": "green"}
    assert [u["username"] for u in stats["recent_auth_users"]] == ["alice"]

    python = (await client.get("/api/tech", params={"tag": "Python"})).json()
    assert [(r["username"], r["name"], r["stars"]) for r in python["repositories"]] == [("bob", "bot", 2)]
    assert sorted(u["username"] for u in python["users"]) == ["alice", "bob"]

    claude = (await client.get("/api/tech", params={"tag": "Claude"})).json()
    assert [(r["username"], r["name"]) for r in claude["repositories"]] == [("bob", "bot")]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_location_update_is_limited_to_self(client, db, make_user, login):
    alice = await make_user("alice", location="Berlin")
    await make_user("bob", location="Berlin")
    await db.commit()
    login(alice)

    forbidden = await client.post("/api/update-location", json={"username": "bob", "location": "Paris"})
    updated = await client.post("/api/update-location", json={"username": "alice", "location": " Paris "})

    assert forbidden.status_code == 403
    assert updated.json() == {"success": True, "location": "Paris"}
    locations = (await client.get("/api/locations")).json()["locations"]
    assert locations == [{"name": "Berlin", "user_count": 1}, {"name": "Paris", "user_count": 1}]
    berlin = (await client.get("/api/location", params={"loc": "Berlin"})).json()
    assert [u["username"] for u in berlin["users"]] == ["bob"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_admin_migration_and_consistency(client, db, make_user, login, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_USERNAMES", "Root")
    root = await make_user("root")
    db.add_all([
        TechStack(user_id=root.id, technology="Python", category=TagCategory.LANGUAGE, repo_count=1),
        AIAssistance(user_id=root.id, repo_name="x", ai_tool="Cursor", mention_count=1, found_in="README"),
    ])
    await db.commit()
    login(root)

    before = (await client.get("/api/admin/tag-consistency")).json()
    assert before["consistent"] is False
    assert len(before["missing_in_unified"]) == 3

    migrated = (await client.post("/api/admin/migrate-tags")).json()
    assert migrated["total_inserted"] == 3
    skipped = (await client.post("/api/admin/migrate-tags")).json()
    assert skipped["skipped_already_migrated"] is True
    forced = (await client.post("/api/admin/migrate-tags", params={"force": "true"})).json()
    assert forced["ignored_duplicates"] == 3

    after = (await client.get("/api/admin/tag-consistency")).json()
    assert after["consistent"] is True


@pytest.mark.unit
@pytest.mark.asyncio
async def test_admin_endpoints_require_login(client):
    response = await client.get("/api/admin/tag-consistency")

    assert response.status_code == 401


@pytest.mark.unit
@pytest.mark.asyncio
async def test_session_user_and_relationship(client, db, make_user, login):
    alice = await make_user("alice", access_token="gho_alice")
    await make_user("bob")
    await db.commit()

    assert (await client.get("/api/auth/me")).status_code == 401
    login(alice)
    me = (await client.get("/api/auth/me")).json()
    assert (me["username"], me["user_type"]) == ("alice", "authenticated")

    await client.post("/api/add-tag", json={"tagged_username": "alice", "tag": "rustacean"})
    await client.post("/api/add-tag", json={"tagged_username": "bob", "tag": "rustacean"})
    relationship = (await client.get("/api/relationship", params={"viewer": "alice", "profile": "bob"})).json()

    assert relationship["relationships"] == [{"type": "shared_tags", "label": "1 Shared Tag"}]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_static_page_is_404(client, monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "PUBLIC_DIR", str(tmp_path))
    (tmp_path / "index.html").write_text("<h1>Branch</h1>", encoding="utf-8")

    index = await client.get("/")
    missing = await client.get("/tech.html")

    assert index.status_code == 200
    assert "Branch" in index.text
    assert missing.status_code == 404


@pytest.mark.unit
@pytest.mark.asyncio
async def test_health_reports_database(client):
    body = (await client.get("/health")).json()

    assert body["api_ok"] is True
    assert body["db_ok"] is True
    # Schema built from ORM metadata carries no alembic_version table
    assert body["alembic_current"] is None
    assert body["alembic_head"] == "002_tags_unified"
