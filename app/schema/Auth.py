from typing import Optional

from pydantic import BaseModel


class TeamLoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AuthenticatedUser(BaseModel):
    id: Optional[str] = None
    email: str
    name: Optional[str] = None
    role: str
    team: Optional[str] = None
    picture: Optional[str] = None
