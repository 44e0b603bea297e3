"""
Authentication router - GitHub OAuth login and the session cookie.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from branch.core.config import settings
from branch.core.dependencies import get_current_user, get_db
from branch.core.session import session_manager
from branch.models.user import User
from branch.schemas.profile import UserRead
from branch.services.auth_service import AuthService
from branch.services.github_client import authorize_url

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.get("/github")
async def login_with_github():
    """Redirect to the GitHub authorize page (read:user only)."""
    return RedirectResponse(authorize_url(), status_code=302)


@router.get("/callback")
async def oauth_callback(
    code: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    """Finish the OAuth flow and land on the user's dashboard."""
    user, token = await AuthService(db).login_with_code(code)
    response = RedirectResponse(f"/dashboard.html?user={user.username}", status_code=302)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=session_manager.max_age,
        httponly=True,
        samesite="lax",
    )
    return response


@router.post("/logout")
async def logout():
    response = RedirectResponse("/", status_code=303)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return response


@router.get("/me", response_model=UserRead)
async def read_current_user(current_user: User = Depends(get_current_user)):
    """Get the logged-in user."""
    return current_user
