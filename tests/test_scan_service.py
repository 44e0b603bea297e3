"""
Tests for ScanService against an in-memory GitHub.
"""

import pytest
from sqlalchemy import select

from branch.core.config import settings
from branch.errors import AuthenticationRequiredError, NotFoundError
from branch.models.contributor import Contributor
from branch.models.fork import Fork
from branch.models.service_usage import ServiceUsage
from branch.models.social_connection import ConnectionType, SocialConnection
from branch.models.tech_stack import TechStack
from branch.models.unified_tag import EntityType, TagCategory
from branch.models.user import UserType
from branch.repositories.repository_repository import RepositoryRepository
from branch.repositories.unified_tag_repository import UnifiedTagRepository
from branch.repositories.user_repository import UserRepository
from branch.schemas.github import GitHubContributor, GitHubFollow
from branch.services.scan_service import ScanService, count_technologies


@pytest.fixture
def octo_github(fake_github):
    fake_github.add_account("octo", github_id=1, public_repos=3)
    fake_github.add_repo(
        "octo", "api",
        readme="Deployed to Heroku. Written with Claude, reviewed by Claude.",
        language="Python", topics=["fastapi"], stars=5,
    )
    fake_github.add_repo("octo", "web", readme="Live on https://octo.vercel.app", language="TypeScript")
    fake_github.add_repo(
        "octo", "linux",
        language="C", is_fork=True, parent={"name": "linux", "owner": {"login": "torvalds"}},
    )
    fake_github.contributors[("octo", "api")] = [
        GitHubContributor(login="octo", contributions=40),
        GitHubContributor(login="friend", contributions=3),
    ]
    fake_github.followers["octo"] = [GitHubFollow(login="fan")]
    fake_github.following["octo"] = [GitHubFollow(login="idol"), GitHubFollow(login="mentor")]
    return fake_github


@pytest.mark.unit
def test_count_technologies_counts_languages_and_topics(octo_github):
    counts = count_technologies(octo_github.repos["octo"])

    assert counts == {
        "Python": (TagCategory.LANGUAGE, 1),
        "fastapi": (TagCategory.FRAMEWORK, 1),
        "TypeScript": (TagCategory.LANGUAGE, 1),
        "C": (TagCategory.LANGUAGE, 1),
    }


@pytest.mark.unit
@pytest.mark.asyncio
async def test_full_scan_writes_repositories_facts_and_graph(db, make_user, octo_github):
    octo = await make_user("octo", access_token="gho_octo")

    result = await ScanService(db, octo_github).scan("octo")

    assert result.success is True
    assert result.repos_scanned == 3
    assert result.total_repos == 3
    assert result.has_more_repos is False
    assert result.technologies_found == 4
    assert result.partial_failures == 0
    assert octo_github.tokens_used == ["gho_octo"]

    repos = await RepositoryRepository(db).list_for_user(octo.id)
    assert [r.name for r in repos] == ["api", "linux", "web"]

    unified = UnifiedTagRepository(db)
    assert await unified.get_fact("Python", EntityType.USER, octo.id) is not None
    assert await unified.get_fact("fastapi", EntityType.USER, octo.id) is not None
    assert (await unified.get_fact("Python", EntityType.REPO, octo.id, "api")).category == TagCategory.LANGUAGE
    assert (await unified.get_fact("fastapi", EntityType.REPO, octo.id, "api")).category == TagCategory.FRAMEWORK
    assert await unified.get_fact("C", EntityType.REPO, octo.id, "linux") is not None
    claude = await unified.get_fact("Claude", EntityType.REPO, octo.id, "api")
    assert claude is not None and claude.category == TagCategory.AI_TOOL
    assert await unified.get_fact("Claude", EntityType.USER, octo.id) is not None
    assert (await unified.get_fact("Heroku", EntityType.USER, octo.id)).category == TagCategory.SERVICE
    assert await unified.get_fact("Vercel", EntityType.USER, octo.id) is not None

    services = {
        row.service_name: (row.repo_count, row.mention_count)
        for row in (await db.execute(select(ServiceUsage))).scalars()
    }
    assert services == {"Heroku": (1, 1), "Vercel": (1, 1)}

    fork = (await db.execute(select(Fork))).scalar_one()
    assert (fork.repo_owner, fork.repo_name, fork.forker_username) == ("torvalds", "linux", "octo")

    contributors = (await db.execute(select(Contributor))).scalars().all()
    assert [(c.repo_name, c.contributor_username) for c in contributors] == [("api", "friend")]

    connections = (await db.execute(select(SocialConnection))).scalars().all()
    assert sorted((c.connection_type, c.github_username) for c in connections) == [
        (ConnectionType.FOLLOWER, "fan"),
        (ConnectionType.FOLLOWING, "idol"),
        (ConnectionType.FOLLOWING, "mentor"),
    ]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_rescan_is_idempotent(db, make_user, octo_github):
    await make_user("octo", access_token="gho_octo")
    service = ScanService(db, octo_github)

    await service.scan("octo")
    facts_after_first = await UnifiedTagRepository(db).count()
    await service.scan("octo")

    assert await UnifiedTagRepository(db).count() == facts_after_first
    assert len((await db.execute(select(TechStack))).scalars().all()) == 4


@pytest.mark.unit
@pytest.mark.asyncio
async def test_scanning_unknown_login_creates_placeholder(db, make_user, fake_github):
    await make_user("scout", access_token="gho_scout")
    fake_github.add_account("newbie", github_id=77, public_repos=0, location="Lisbon")

    result = await ScanService(db, fake_github).scan("newbie", scanner="scout")

    newbie = await UserRepository(db).get_by_username("newbie")
    assert result.repos_scanned == 0
    assert newbie.github_id == 77
    assert newbie.scanned_by == "scout"
    assert newbie.location == "Lisbon"
    assert newbie.user_type == UserType.SCANNED
    assert fake_github.tokens_used == ["gho_scout"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_scanning_login_github_does_not_know(db, make_user, fake_github):
    await make_user("scout", access_token="gho_scout")

    with pytest.raises(NotFoundError):
        await ScanService(db, fake_github).scan("ghost", scanner="scout")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_scan_needs_some_access_token(db, make_user, fake_github):
    await make_user("lurker")

    with pytest.raises(AuthenticationRequiredError):
        await ScanService(db, fake_github).scan("lurker")
    assert fake_github.tokens_used == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_broken_readme_is_skipped(db, make_user, octo_github):
    octo = await make_user("octo", access_token="gho_octo")
    octo_github.broken_readmes.add(("octo", "api"))

    result = await ScanService(db, octo_github).scan("octo")

    unified = UnifiedTagRepository(db)
    assert result.repos_scanned == 3
    assert await unified.get_fact("Claude", EntityType.USER, octo.id) is None
    assert await unified.get_fact("Vercel", EntityType.USER, octo.id) is not None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_scan_more_fetches_the_next_page(db, make_user, octo_github, monkeypatch):
    monkeypatch.setattr(settings, "SCAN_PAGE_SIZE", 2)
    octo = await make_user("octo", access_token="gho_octo")
    octo_id = octo.id
    service = ScanService(db, octo_github)

    first = await service.scan("octo")
    assert first.repos_scanned == 2
    assert first.has_more_repos is True

    # Each request gets a fresh session in production
    db.expire_all()
    more = await service.scan_more("octo")

    assert more.message is None
    assert more.repos_added == 1
    assert more.repos_scanned == 3
    assert more.has_more_repos is False
    assert await UnifiedTagRepository(db).get_fact("C", EntityType.USER, octo_id) is not None
    assert await UnifiedTagRepository(db).get_fact("C", EntityType.REPO, octo_id, "linux") is not None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_scan_more_reports_when_nothing_is_left(db, make_user, fake_github, monkeypatch):
    monkeypatch.setattr(settings, "SCAN_PAGE_SIZE", 2)
    await make_user("octo", access_token="gho_octo")
    fake_github.add_account("octo", github_id=1, public_repos=2)
    fake_github.add_repo("octo", "one", language="Go")
    fake_github.add_repo("octo", "two", language="Go")
    service = ScanService(db, fake_github)
    await service.scan("octo")

    more = await service.scan_more("octo")

    assert more.message == "No more repos to scan"
    assert more.repos_scanned == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_scan_social_only_touches_connections(db, make_user, octo_github):
    await make_user("octo", access_token="gho_octo")

    result = await ScanService(db, octo_github).scan_social("octo")

    assert (result.followers_scanned, result.following_scanned) == (1, 2)
    assert (result.total_followers, result.total_following) == (1, 2)
    assert await UnifiedTagRepository(db).count() == 0
