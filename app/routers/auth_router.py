from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.logger import setup_logger
from app.models.database import get_db
from app.schema.Auth import AuthenticatedUser, TeamLoginRequest
from app.service import team_directory_service
from app.service.auth_service import (
    ACCESS_TOKEN_COOKIE,
    AUTH_COOKIES,
    TEAM_SESSION_COOKIE,
    USER_EMAIL_COOKIE,
    AuthenticationError,
    GoogleOAuthClient,
    get_oauth_client,
    resolve_request_identity,
)

router = APIRouter(
    prefix="/api/auth",
    tags=["Auth"]
)

logger = setup_logger("app_logger")


def _set_auth_cookie(response, key: str, value: str, max_age):
    response.set_cookie(
        key=key,
        value=value,
        max_age=max_age,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


@router.get("/callback")
def oauth_callback(
        request: Request,
        code: Optional[str] = Query(None),
        oauth_client: GoogleOAuthClient = Depends(get_oauth_client),
):
    """Exchange the Google authorization code and store the token in cookies."""
    if not code:
        return RedirectResponse(url="/login?error=no_code")

    redirect_uri = settings.google_oauth_redirect_uri or f"{str(request.base_url).rstrip('/')}/api/auth/callback"
    try:
        tokens = oauth_client.exchange_code(code, redirect_uri)
        google_user = oauth_client.fetch_userinfo(tokens["access_token"])
        if not google_user or not google_user.get("email"):
            raise AuthenticationError("Userinfo lookup failed after code exchange")
    except Exception as e:
        logger.error(f"OAuth callback error: {e}")
        return RedirectResponse(url="/login?error=auth_failed")

    logger.info(f"OAuth login completed for {google_user['email']}")
    response = RedirectResponse(url="/")
    max_age = tokens.get("expires_in")
    _set_auth_cookie(response, ACCESS_TOKEN_COOKIE, tokens["access_token"], max_age)
    _set_auth_cookie(response, USER_EMAIL_COOKIE, google_user["email"], max_age)
    return response


@router.post("/team-login")
def team_login(payload: TeamLoginRequest, db: Session = Depends(get_db)):
    logger.info(f"Team login attempt for {payload.email}")
    if not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    try:
        member = team_directory_service.authenticate(db, payload.email, payload.password)
    except Exception as e:
        logger.error(f"Team login error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Login failed. Please try again later.")

    if member is None:
        logger.warning(f"Authentication failed for {payload.email}")
        raise HTTPException(
            status_code=401,
            detail="Invalid email or password. Please check your credentials and try again.",
        )

    user = AuthenticatedUser(id=member.id, email=member.email, name=member.name, role=member.role, team=member.team)
    response = JSONResponse(content={"user": user.model_dump(exclude_none=True), "message": "Login successful"})
    _set_auth_cookie(response, TEAM_SESSION_COOKIE, member.id, settings.session_max_age)
    logger.info(f"Session cookie set for team member {member.email}")
    return response


@router.post("/logout")
def logout():
    response = JSONResponse(content={"message": "Logged out successfully"})
    for cookie in AUTH_COOKIES:
        response.delete_cookie(cookie, path="/")
    return response


@router.get("/me")
def get_current_user(
        request: Request,
        db: Session = Depends(get_db),
        oauth_client: GoogleOAuthClient = Depends(get_oauth_client),
):
    try:
        identity = resolve_request_identity(request, db, oauth_client)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except Exception as e:
        logger.error(f"Auth check error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Authentication failed")

    if not identity.is_authenticated:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return {"user": identity.user.model_dump(exclude_none=True), "accessToken": identity.access_token}
