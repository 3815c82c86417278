"""
Caller identity for the dashboard.

Three kinds of caller exist: team members logged in with a password (session
cookie holding their directory id), Google users (OAuth access token in a
cookie or bearer header) and anonymous visitors. There is no server-side
session table; every request is resolved again from its cookies/headers.
"""
from typing import Dict, List, Optional

import requests
from fastapi import Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.config import DEFAULT_MANAGER_EMAILS, load_manager_records, settings
from app.core.logger import setup_logger
from app.schema.Auth import AuthenticatedUser
from app.schema.TeamMember import Manager
from app.service import team_directory_service

logger = setup_logger("app_logger")

TEAM_SESSION_COOKIE = "team_member_session"
ACCESS_TOKEN_COOKIE = "access_token"
USER_EMAIL_COOKIE = "user_email"
AUTH_COOKIES = (ACCESS_TOKEN_COOKIE, USER_EMAIL_COOKIE, TEAM_SESSION_COOKIE)
TEAM_MEMBER_TOKEN = "team-member-token"

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"


class AuthenticationError(Exception):
    pass


class ResolvedIdentity(BaseModel):
    user: Optional[AuthenticatedUser] = None
    access_token: Optional[str] = None
    source: str = "public"

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def role(self) -> Optional[str]:
        return self.user.role if self.user else None


class GoogleOAuthClient:
    def __init__(self, client_id: str, client_secret: str, timeout: float = 15):
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout

    def exchange_code(self, code: str, redirect_uri: str) -> Dict:
        response = requests.post(
            GOOGLE_TOKEN_URL,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": redirect_uri,
            },
            timeout=self.timeout,
        )
        if not response.ok:
            logger.error(f"OAuth code exchange failed with {response.status_code}: {response.text}")
            raise AuthenticationError("Failed to exchange code for tokens")
        tokens = response.json()
        if not tokens.get("access_token"):
            raise AuthenticationError("Token response did not include an access token")
        return tokens

    def fetch_userinfo(self, access_token: str) -> Optional[Dict]:
        """Google profile for the token, or None when Google rejects it."""
        response = requests.get(
            GOOGLE_USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=self.timeout,
        )
        if not response.ok:
            logger.info(f"Userinfo rejected the access token with status {response.status_code}")
            return None
        return response.json()


def get_oauth_client() -> GoogleOAuthClient:
    return GoogleOAuthClient(
        settings.google_client_id,
        settings.google_client_secret,
        timeout=settings.google_http_timeout,
    )


def get_managers() -> List[Manager]:
    managers = [
        Manager(id=f"default-{index + 1}", email=email, name=email.split("@")[0])
        for index, email in enumerate(DEFAULT_MANAGER_EMAILS)
    ]
    try:
        records = load_manager_records(settings.managers_data)
    except ValueError as e:
        logger.error(f"Error parsing MANAGERS_DATA: {e}")
        records = []
    for record in records:
        managers.append(Manager(
            id=str(record.get("id", record["email"])),
            email=record["email"],
            name=record.get("name", ""),
        ))
    return managers


def find_manager(email: Optional[str]) -> Optional[Manager]:
    if not email:
        return None
    for manager in get_managers():
        if manager.email == email:
            return manager
    return None


def classify_role(email: Optional[str]) -> str:
    return "manager" if find_manager(email) else "submitter"


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer "):].strip()
        return token or None
    return None


def has_identity_signal(request: Request) -> bool:
    """Whether the request carries anything that could identify a caller."""
    return bool(
        request.headers.get("authorization")
        or request.cookies.get(TEAM_SESSION_COOKIE)
        or request.cookies.get(ACCESS_TOKEN_COOKIE)
    )


def resolve_identity(
        db: Session,
        oauth_client: GoogleOAuthClient,
        team_session: Optional[str] = None,
        access_token_cookie: Optional[str] = None,
        authorization: Optional[str] = None,
) -> ResolvedIdentity:
    """
    Precedence: active team-member session, then OAuth token (bearer header
    before cookie) checked against Google userinfo, then anonymous.
    Raises AuthenticationError only when an OAuth token is present and rejected.
    """
    if team_session:
        member = team_directory_service.get_active_member(db, team_session)
        if member is not None:
            logger.info(f"Resolved caller from team session: {member.email}")
            return ResolvedIdentity(
                user=AuthenticatedUser(
                    id=member.id,
                    email=member.email,
                    name=member.name,
                    role=member.role,
                    team=member.team,
                ),
                access_token=TEAM_MEMBER_TOKEN,
                source="team_session",
            )
        logger.info("Team session cookie does not match an active team member")

    access_token = extract_bearer_token(authorization) or access_token_cookie
    if access_token:
        logger.info("Resolving caller from OAuth access token")
        google_user = oauth_client.fetch_userinfo(access_token)
        if not google_user or not google_user.get("email"):
            logger.info("Invalid Google token")
            raise AuthenticationError("Invalid token")
        email = google_user["email"]
        role = classify_role(email)
        logger.info(f"Resolved Google user {email} as {role}")
        return ResolvedIdentity(
            user=AuthenticatedUser(
                email=email,
                name=google_user.get("name"),
                picture=google_user.get("picture"),
                role=role,
            ),
            access_token=access_token,
            source="oauth",
        )

    logger.info("No authentication found, treating caller as public")
    return ResolvedIdentity()


def resolve_request_identity(request: Request, db: Session, oauth_client: GoogleOAuthClient) -> ResolvedIdentity:
    return resolve_identity(
        db,
        oauth_client,
        team_session=request.cookies.get(TEAM_SESSION_COOKIE),
        access_token_cookie=request.cookies.get(ACCESS_TOKEN_COOKIE),
        authorization=request.headers.get("authorization"),
    )
