"""
Pytest configuration and shared fixtures.

Unit tests run against a private in-memory SQLite database created from the
ORM metadata. Tests marked ``db`` target the PostgreSQL database named by
TEST_DATABASE_URL and only run with RUN_DB_TESTS=1.
"""

import itertools
import os
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import branch.models  # noqa: F401  registers every table on Base.metadata
from branch.core.config import settings
from branch.core.dependencies import get_github_client_factory
from branch.core.session import session_manager
from branch.db.base import Base
from branch.db.session import enable_sqlite_savepoints, get_db
from branch.errors import UpstreamError
from branch.models.repository import Repository
from branch.models.user import User
from branch.schemas.github import GitHubAccount, GitHubContributor, GitHubFollow, GitHubRepo


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests, no external deps")
    config.addinivalue_line("markers", "db: requires database")
    config.addinivalue_line("markers", "server: requires running HTTP server")


def pytest_collection_modifyitems(config, items):
    run_db = os.environ.get("RUN_DB_TESTS") == "1"
    run_server = os.environ.get("RUN_SERVER_TESTS") == "1"

    skip_db = pytest.mark.skip(reason="db tests skipped by default; set RUN_DB_TESTS=1 to enable")
    skip_server = pytest.mark.skip(reason="server tests skipped by default; set RUN_SERVER_TESTS=1 to enable")

    for item in items:
        if "db" in item.keywords and not run_db:
            item.add_marker(skip_db)
        if "server" in item.keywords and not run_server:
            item.add_marker(skip_server)


# ----- Database -----

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


_github_ids = itertools.count(1000)


@pytest.fixture
def make_user(db):
    async def _make_user(
        username: str,
        *,
        access_token: Optional[str] = None,
        scanned_by: Optional[str] = None,
        location: Optional[str] = None,
    ) -> User:
        user = User(
            github_id=next(_github_ids),
            username=username,
            avatar_url=f"https://avatars.example.com/{username}",
            access_token=access_token,
            scanned_by=scanned_by,
            location=location,
        )
        db.add(user)
        await db.flush()
        return user
    return _make_user


@pytest.fixture
def make_repo(db):
    async def _make_repo(owner: User, name: str, **fields) -> Repository:
        repo = Repository(
            user_id=owner.id,
            name=name,
            url=f"https://github.com/{owner.username}/{name}",
            **fields,
        )
        db.add(repo)
        await db.flush()
        return repo
    return _make_repo


# ----- GitHub -----

class FakeGitHub:
    """
    In-memory stand-in for the GitHub API.

    Calling the instance with an access token returns a client, so it can be
    passed wherever a GitHubClient factory is expected.
    """

    def __init__(self):
        self.accounts: dict[str, GitHubAccount] = {}
        self.repos: dict[str, list[GitHubRepo]] = {}
        self.readmes: dict[tuple[str, str], str] = {}
        self.contributors: dict[tuple[str, str], list[GitHubContributor]] = {}
        self.followers: dict[str, list[GitHubFollow]] = {}
        self.following: dict[str, list[GitHubFollow]] = {}
        self.broken_readmes: set[tuple[str, str]] = set()
        self.tokens_used: list[str] = []

    def add_account(self, login: str, github_id: int, public_repos: int = 0, location: Optional[str] = None):
        self.accounts[login] = GitHubAccount(
            id=github_id,
            login=login,
            avatar_url=f"https://avatars.example.com/{login}",
            location=location,
            public_repos=public_repos,
        )

    def add_repo(self, login: str, name: str, readme: Optional[str] = None, **fields):
        self.repos.setdefault(login, []).append(
            GitHubRepo(name=name, url=f"https://github.com/{login}/{name}", **fields)
        )
        if readme is not None:
            self.readmes[(login, name)] = readme

    def __call__(self, access_token: str) -> "FakeGitHubClient":
        self.tokens_used.append(access_token)
        return FakeGitHubClient(self)


class FakeGitHubClient:
    def __init__(self, github: FakeGitHub):
        self.github = github

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    async def get_user(self, username):
        return self.github.accounts.get(username)

    async def list_repos(self, username, *, per_page, page=1):
        start = (page - 1) * per_page
        return self.github.repos.get(username, [])[start:start + per_page]

    async def get_readme(self, owner, repo):
        if (owner, repo) in self.github.broken_readmes:
            raise UpstreamError("GitHub API request failed", {"status": 500})
        return self.github.readmes.get((owner, repo))

    async def list_contributors(self, owner, repo, *, per_page):
        return self.github.contributors.get((owner, repo), [])[:per_page]

    async def list_followers(self, username, *, per_page):
        return self.github.followers.get(username, [])[:per_page]

    async def list_following(self, username, *, per_page):
        return self.github.following.get(username, [])[:per_page]


@pytest.fixture
def fake_github():
    return FakeGitHub()


# ----- HTTP -----

@pytest_asyncio.fixture
async def client(session_maker, fake_github):
    """
    API client bound to the test database.

    Commit the ``db`` fixture session before each request: both sessions
    share the single in-memory connection.
    """
    from branch.main import app

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_github_client_factory] = lambda: fake_github

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    def _login(user: User) -> None:
        client.cookies.set(settings.SESSION_COOKIE_NAME, session_manager.create_session_token(user.id, user.username))
    return _login
