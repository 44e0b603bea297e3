"""
Scan Pydantic schemas.
"""

from typing import Optional

from pydantic import BaseModel


class ScanResponse(BaseModel):
    """Result of a full scan of the first repository page."""
    
    success: bool = True
    repos_scanned: int
    total_repos: int
    has_more_repos: bool
    technologies_found: int
    partial_failures: int = 0


class ScanMoreResponse(BaseModel):
    """Result of an incremental scan of the next repository page."""
    
    success: bool = True
    message: Optional[str] = None
    repos_added: int = 0
    repos_scanned: int
    total_repos: int
    has_more_repos: bool = False
    partial_failures: int = 0


class ScanSocialResponse(BaseModel):
    success: bool = True
    followers_scanned: int
    following_scanned: int
    total_followers: int
    total_following: int
