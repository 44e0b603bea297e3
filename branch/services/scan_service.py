"""
Scan service - pulls a user's repositories from GitHub and derives facts.

Every derived fact goes through DualWriteFactStore. Progress is committed
after each phase (repositories, contributors, READMEs, social graph) so an
interrupted scan keeps what it already wrote; rescanning re-derives the same
facts idempotently.
"""

import logging
from collections import Counter
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from branch.core.config import settings
from branch.errors import AuthenticationRequiredError, NotFoundError, UpstreamError
from branch.models.social_connection import ConnectionType
from branch.models.unified_tag import TagCategory
from branch.models.user import User
from branch.repositories.fact_store import DerivedFact
from branch.repositories.repository_repository import RepositoryRepository
from branch.repositories.social_repository import SocialRepository
from branch.repositories.user_repository import UserRepository
from branch.schemas.github import GitHubRepo
from branch.schemas.scan import ScanMoreResponse, ScanResponse, ScanSocialResponse
from branch.services.dual_write_service import DualWriteFactStore
from branch.services.github_client import GitHubClient
from branch.services.readme_scanner import detect_ai_tools, detect_services

logger = logging.getLogger(__name__)

GitHubClientFactory = Callable[[str], GitHubClient]


def count_technologies(repos: list[GitHubRepo]) -> dict[str, tuple[str, int]]:
    """
    Repositories per technology: primary languages and topics.
    
    A name seen both as a language and a topic keeps the category it was
    seen with last.
    """
    counts: dict[str, tuple[str, int]] = {}
    for repo in repos:
        if repo.language:
            _, count = counts.get(repo.language, (TagCategory.LANGUAGE, 0))
            counts[repo.language] = (TagCategory.LANGUAGE, count + 1)
        for topic in repo.topics:
            _, count = counts.get(topic, (TagCategory.FRAMEWORK, 0))
            counts[topic] = (TagCategory.FRAMEWORK, count + 1)
    return counts


class ScanService:
    """Full, incremental and social-only scans."""
    
    def __init__(self, db: AsyncSession, client_factory: GitHubClientFactory = GitHubClient):
        self.db = db
        self.client_factory = client_factory
        self.users = UserRepository(db)
        self.repos = RepositoryRepository(db)
        self.social = SocialRepository(db)
        self.facts = DualWriteFactStore.for_session(db)
    
    async def resolve_token(self, username: str, scanner: Optional[str]) -> str:
        """Scanner's token, else the target's own token."""
        for candidate in (scanner, username):
            if not candidate:
                continue
            user = await self.users.get_by_username(candidate)
            if user and user.access_token:
                return user.access_token
        raise AuthenticationRequiredError(
            "Authentication required. Please log in to scan profiles.",
            {"hint": "Login with GitHub to get 5000 API requests per hour instead of 60."},
        )
    
    async def _require_user(self, username: str) -> User:
        user = await self.users.get_by_username(username)
        if not user:
            raise NotFoundError("User not found", {"username": username})
        return user
    
    # ----- Phases -----
    
    async def _store_repositories(self, user: User, repos: list[GitHubRepo], *, only_new: bool) -> int:
        added = 0
        for repo in repos:
            if only_new:
                added += int(await self.repos.insert_if_missing(user.id, repo))
            else:
                await self.repos.upsert(user.id, repo)
                added += 1
            if repo.is_fork and repo.parent_owner and repo.parent_name:
                await self.social.record_fork(repo.parent_owner, repo.parent_name, user.username, user.id)
        return added
    
    async def _record_technologies(self, user: User, counts: dict[str, tuple[str, int]]) -> None:
        for technology, (category, repo_count) in counts.items():
            await self.facts.write(
                DerivedFact(tag_name=technology, category=category, owner_id=user.id, repo_count=repo_count)
            )
    
    async def _record_repo_technologies(self, user: User, repos: list[GitHubRepo]) -> None:
        """Repo-level language and topic facts, which back the technology pages."""
        for repo in repos:
            named = [(repo.language, TagCategory.LANGUAGE)] if repo.language else []
            named += [(topic, TagCategory.FRAMEWORK) for topic in repo.topics]
            for technology, category in named:
                await self.facts.write(
                    DerivedFact(tag_name=technology, category=category, owner_id=user.id, repo_name=repo.name)
                )
    
    async def _record_contributors(self, client: GitHubClient, user: User, repos: list[GitHubRepo]) -> None:
        for repo in repos:
            try:
                contributors = await client.list_contributors(
                    user.username, repo.name, per_page=settings.CONTRIBUTORS_PER_REPO
                )
            except UpstreamError:
                logger.warning("Skipping contributors of %s/%s", user.username, repo.name)
                continue
            for contributor in contributors:
                if contributor.login == user.username:
                    continue
                await self.social.upsert_contributor(
                    user.username, repo.name, contributor.login, contributor.contributions
                )
    
    async def _scan_readmes(self, client: GitHubClient, user: User, repos: list[GitHubRepo], *, accumulate: bool) -> None:
        tools_seen: set[str] = set()
        service_repos: dict[str, set[str]] = {}
        service_mentions: Counter = Counter()
        
        for repo in repos:
            try:
                readme = await client.get_readme(user.username, repo.name)
            except UpstreamError:
                logger.warning("Skipping README of %s/%s", user.username, repo.name)
                continue
            if not readme:
                continue
            
            for tool, mentions in detect_ai_tools(readme).items():
                await self.facts.write(
                    DerivedFact(
                        tag_name=tool,
                        category=TagCategory.AI_TOOL,
                        owner_id=user.id,
                        repo_name=repo.name,
                        mention_count=mentions,
                    )
                )
                tools_seen.add(tool)
            
            for service, mentions in detect_services(readme).items():
                service_repos.setdefault(service, set()).add(repo.name)
                service_mentions[service] += mentions
        
        # User-level aggregate so each tool also shows at user granularity
        for tool in sorted(tools_seen):
            await self.facts.write(DerivedFact(tag_name=tool, category=TagCategory.AI_TOOL, owner_id=user.id))
        
        for service, repo_names in service_repos.items():
            await self.facts.write(
                DerivedFact(
                    tag_name=service,
                    category=TagCategory.SERVICE,
                    owner_id=user.id,
                    repo_count=len(repo_names),
                    mention_count=service_mentions[service],
                    accumulate_counts=accumulate,
                )
            )
    
    async def _record_social(self, client: GitHubClient, user: User) -> tuple[int, int]:
        scanned = []
        for connection_type, fetch in (
            (ConnectionType.FOLLOWER, client.list_followers),
            (ConnectionType.FOLLOWING, client.list_following),
        ):
            try:
                people = await fetch(user.username, per_page=settings.SOCIAL_PAGE_SIZE)
            except UpstreamError:
                logger.warning("Could not fetch %s list of %s", connection_type, user.username)
                people = []
            for person in people:
                await self.social.upsert_connection(user.id, person.login, person.avatar_url, connection_type)
            scanned.append(len(people))
        return scanned[0], scanned[1]
    
    # ----- Entry points -----
    
    async def scan(self, username: str, scanner: Optional[str] = None) -> ScanResponse:
        """Scan the most recently updated page of a user's repositories."""
        token = await self.resolve_token(username, scanner)
        async with self.client_factory(token) as client:
            account = await client.get_user(username)
            user = await self.users.get_by_username(username)
            if user is None:
                if account is None:
                    raise NotFoundError("GitHub user not found", {"username": username})
                user = await self.users.create_placeholder(
                    github_id=account.id,
                    username=account.login,
                    avatar_url=account.avatar_url,
                    github_location=account.location,
                    scanned_by=scanner,
                )
            total_repos = account.public_repos if account else user.total_repos
            
            repos = await client.list_repos(username, per_page=settings.SCAN_PAGE_SIZE)
            technologies = count_technologies(repos)
            
            await self._store_repositories(user, repos, only_new=False)
            await self._record_technologies(user, technologies)
            await self._record_repo_technologies(user, repos)
            await self.users.mark_scanned(user.id, total_repos)
            await self.db.commit()
            
            await self._record_contributors(client, user, repos)
            await self.db.commit()
            
            await self._scan_readmes(client, user, repos, accumulate=False)
            await self.db.commit()
            
            await self._record_social(client, user)
            await self.db.commit()
        
        logger.info(
            "Scanned %s: %s repos, %s technologies, %s partial failures",
            username, len(repos), len(technologies), self.facts.partial_failures,
        )
        return ScanResponse(
            repos_scanned=len(repos),
            total_repos=total_repos,
            has_more_repos=total_repos > len(repos),
            technologies_found=len(technologies),
            partial_failures=self.facts.partial_failures,
        )
    
    async def scan_more(self, username: str, scanner: Optional[str] = None) -> ScanMoreResponse:
        """Scan the next page of repositories without touching stored ones."""
        token = await self.resolve_token(username, scanner)
        user = await self._require_user(username)
        already_scanned = await self.repos.count_for_user(user.id)
        page = already_scanned // settings.SCAN_PAGE_SIZE + 1
        
        async with self.client_factory(token) as client:
            repos = await client.list_repos(username, per_page=settings.SCAN_PAGE_SIZE, page=page)
            if not repos:
                return ScanMoreResponse(
                    message="No more repos to scan",
                    repos_scanned=already_scanned,
                    total_repos=user.total_repos,
                )
            
            await self._store_repositories(user, repos, only_new=True)
            await self._record_repo_technologies(user, repos)
            await self.db.commit()
            
            await self._scan_readmes(client, user, repos, accumulate=True)
            await self.db.commit()
        
        # Languages are recounted over everything stored so far
        language_counts = await self.repos.language_counts(user.id)
        await self._record_technologies(
            user, {language: (TagCategory.LANGUAGE, count) for language, count in language_counts.items()}
        )
        repos_scanned = await self.repos.count_for_user(user.id)
        await self.db.commit()
        
        logger.info("Scanned page %s of %s: %s repos", page, username, len(repos))
        return ScanMoreResponse(
            repos_added=len(repos),
            repos_scanned=repos_scanned,
            total_repos=user.total_repos,
            has_more_repos=user.total_repos > repos_scanned,
            partial_failures=self.facts.partial_failures,
        )
    
    async def scan_social(self, username: str, scanner: Optional[str] = None) -> ScanSocialResponse:
        """Refresh followers and following only."""
        token = await self.resolve_token(username, scanner)
        user = await self._require_user(username)
        async with self.client_factory(token) as client:
            followers, following = await self._record_social(client, user)
        await self.db.commit()
        return ScanSocialResponse(
            followers_scanned=followers,
            following_scanned=following,
            total_followers=await self.social.count_connections(user.id, ConnectionType.FOLLOWER),
            total_following=await self.social.count_connections(user.id, ConnectionType.FOLLOWING),
        )
