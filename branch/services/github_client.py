"""
GitHub REST + OAuth client.

Thin async wrapper over httpx. Responses are validated into the schemas in
branch.schemas.github; transport errors and unexpected statuses become
UpstreamError. 429 responses are retried after Retry-After.
"""

import asyncio
import base64
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from branch.core.config import settings
from branch.errors import UpstreamError
from branch.schemas.github import GitHubAccount, GitHubContributor, GitHubFollow, GitHubRepo

logger = logging.getLogger(__name__)

GITHUB_ACCEPT = "application/vnd.github.v3+json"


class GitHubClient:
    """Client for the endpoints the scanner and the OAuth flow use."""
    
    def __init__(
        self,
        access_token: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleeper: Optional[Callable[[float], Awaitable[None]]] = None,
        max_attempts: int = 3,
    ):
        headers = {"Accept": GITHUB_ACCEPT}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        self._client = httpx.AsyncClient(
            base_url=settings.GITHUB_API_BASE,
            headers=headers,
            timeout=settings.GITHUB_TIMEOUT_SECONDS,
            transport=transport,
        )
        self.sleeper = sleeper or asyncio.sleep
        self.max_attempts = max_attempts
    
    async def __aenter__(self) -> "GitHubClient":
        return self
    
    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
    
    async def aclose(self) -> None:
        await self._client.aclose()
    
    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        response: Optional[httpx.Response] = None
        for attempt in range(self.max_attempts):
            try:
                response = await self._client.request(method, url, **kwargs)
            except httpx.HTTPError as exc:
                logger.warning("GitHub request %s %s failed: %s", method, url, exc)
                raise UpstreamError("GitHub API unreachable", {"url": url}) from exc
            if response.status_code == 429 and attempt < self.max_attempts - 1:
                retry_after = response.headers.get("Retry-After")
                wait_seconds = float(retry_after) if retry_after else 1.0
                logger.info("GitHub rate limited on %s, retrying in %.1fs", url, wait_seconds)
                await self.sleeper(wait_seconds)
                continue
            break
        return response
    
    async def _get_json(self, url: str, *, params: Optional[dict] = None, allow_404: bool = False) -> Any:
        response = await self._request("GET", url, params=params)
        if response.status_code == 404 and allow_404:
            return None
        if response.status_code == 204:
            return None
        if response.status_code >= 400:
            logger.warning("GitHub %s answered %s", url, response.status_code)
            raise UpstreamError(
                "GitHub API request failed",
                {"url": url, "status": response.status_code},
            )
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError("GitHub API returned invalid JSON", {"url": url}) from exc
    
    @staticmethod
    def _parse(model, payload: Any, url: str):
        try:
            if isinstance(payload, list):
                return [model.model_validate(item) for item in payload]
            return model.model_validate(payload)
        except PydanticValidationError as exc:
            raise UpstreamError("Unexpected GitHub API payload", {"url": url}) from exc
    
    async def get_authenticated_user(self) -> GitHubAccount:
        payload = await self._get_json("/user")
        return self._parse(GitHubAccount, payload, "/user")
    
    async def get_user(self, username: str) -> Optional[GitHubAccount]:
        """Public profile of a login, None when GitHub does not know it."""
        url = f"/users/{username}"
        payload = await self._get_json(url, allow_404=True)
        if payload is None:
            return None
        return self._parse(GitHubAccount, payload, url)
    
    async def list_repos(self, username: str, *, per_page: int, page: int = 1) -> list[GitHubRepo]:
        """One page of the user's repositories, most recently updated first."""
        url = f"/users/{username}/repos"
        payload = await self._get_json(
            url,
            params={"per_page": per_page, "page": page, "sort": "updated", "direction": "desc"},
        )
        return self._parse(GitHubRepo, payload, url)
    
    async def get_readme(self, owner: str, repo: str) -> Optional[str]:
        """Decoded README text, None when the repository has none."""
        url = f"/repos/{owner}/{repo}/readme"
        payload = await self._get_json(url, allow_404=True)
        if not payload or not payload.get("content"):
            return None
        try:
            return base64.b64decode(payload["content"]).decode("utf-8", errors="replace")
        except (ValueError, TypeError) as exc:
            raise UpstreamError("README content is not valid base64", {"url": url}) from exc
    
    async def list_contributors(self, owner: str, repo: str, *, per_page: int) -> list[GitHubContributor]:
        url = f"/repos/{owner}/{repo}/contributors"
        payload = await self._get_json(url, params={"per_page": per_page}, allow_404=True)
        # 204 (empty repository) has no body
        if not payload:
            return []
        return self._parse(GitHubContributor, payload, url)
    
    async def list_followers(self, username: str, *, per_page: int) -> list[GitHubFollow]:
        url = f"/users/{username}/followers"
        payload = await self._get_json(url, params={"per_page": per_page})
        return self._parse(GitHubFollow, payload, url)
    
    async def list_following(self, username: str, *, per_page: int) -> list[GitHubFollow]:
        url = f"/users/{username}/following"
        payload = await self._get_json(url, params={"per_page": per_page})
        return self._parse(GitHubFollow, payload, url)


def authorize_url() -> str:
    return (
        f"{settings.GITHUB_OAUTH_BASE}/authorize"
        f"?client_id={settings.GITHUB_CLIENT_ID}&scope={settings.GITHUB_OAUTH_SCOPE}"
    )


async def exchange_code_for_token(code: str, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> str:
    """Trade an OAuth callback code for an access token."""
    async with httpx.AsyncClient(timeout=settings.GITHUB_TIMEOUT_SECONDS, transport=transport) as client:
        try:
            response = await client.post(
                f"{settings.GITHUB_OAUTH_BASE}/access_token",
                json={
                    "client_id": settings.GITHUB_CLIENT_ID,
                    "client_secret": settings.GITHUB_CLIENT_SECRET,
                    "code": code,
                },
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise UpstreamError("GitHub OAuth endpoint unreachable") from exc
    if response.status_code >= 400:
        raise UpstreamError("GitHub OAuth token exchange failed", {"status": response.status_code})
    try:
        access_token = response.json().get("access_token")
    except ValueError as exc:
        raise UpstreamError("GitHub OAuth returned invalid JSON") from exc
    if not access_token:
        raise UpstreamError("GitHub OAuth did not return an access token")
    return access_token
