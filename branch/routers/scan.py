"""
Scan router - full, incremental and social-only scans.

The scanner is the logged-in user when there is one; the scanner query
parameter is accepted for clients that do not send the session cookie.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from branch.core.dependencies import get_db, get_github_client_factory, get_optional_user
from branch.models.user import User
from branch.schemas.scan import ScanMoreResponse, ScanResponse, ScanSocialResponse
from branch.services.scan_service import GitHubClientFactory, ScanService

router = APIRouter(prefix="/api", tags=["Scanning"])


def _scanner(current_user: Optional[User], scanner: Optional[str]) -> Optional[str]:
    return current_user.username if current_user else scanner


@router.get("/scan", response_model=ScanResponse)
async def scan(
    username: str = Query(..., min_length=1),
    scanner: Optional[str] = Query(None),
    current_user: Optional[User] = Depends(get_optional_user),
    client_factory: GitHubClientFactory = Depends(get_github_client_factory),
    db: AsyncSession = Depends(get_db),
):
    """Scan the most recently updated repositories of a GitHub user."""
    return await ScanService(db, client_factory).scan(username, _scanner(current_user, scanner))


@router.get("/scan-more", response_model=ScanMoreResponse, response_model_exclude_none=True)
async def scan_more(
    username: str = Query(..., min_length=1),
    scanner: Optional[str] = Query(None),
    current_user: Optional[User] = Depends(get_optional_user),
    client_factory: GitHubClientFactory = Depends(get_github_client_factory),
    db: AsyncSession = Depends(get_db),
):
    """Scan the next page of repositories."""
    return await ScanService(db, client_factory).scan_more(username, _scanner(current_user, scanner))


@router.get("/scan-social", response_model=ScanSocialResponse)
async def scan_social(
    username: str = Query(..., min_length=1),
    scanner: Optional[str] = Query(None),
    current_user: Optional[User] = Depends(get_optional_user),
    client_factory: GitHubClientFactory = Depends(get_github_client_factory),
    db: AsyncSession = Depends(get_db),
):
    return await ScanService(db, client_factory).scan_social(username, _scanner(current_user, scanner))
