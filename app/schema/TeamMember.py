from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class TeamMemberCreate(BaseModel):
    # Optional so a missing field is answered with a 400, not a schema error.
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    team: Optional[str] = None


class TeamMemberUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    team: Optional[str] = None
    isActive: Optional[bool] = None


class TeamMemberResponse(BaseModel):
    id: str
    email: str
    name: str
    team: str
    role: str
    createdAt: datetime
    isActive: bool

    @classmethod
    def from_member(cls, member) -> "TeamMemberResponse":
        return cls(
            id=member.id,
            email=member.email,
            name=member.name,
            team=member.team,
            role=member.role,
            createdAt=member.created_at,
            isActive=member.is_active,
        )


class Manager(BaseModel):
    id: str
    email: str
    name: str = ""
    role: str = "manager"
