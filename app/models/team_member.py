from sqlalchemy import Boolean, Column, DateTime, String, func

from app.models.database import Base


class TeamMember(Base):
    __tablename__ = "team_members"

    id = Column(String, primary_key=True, index=True)
    email = Column(String, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    password_salt = Column(String, nullable=False)
    name = Column(String, nullable=False)
    team = Column(String, nullable=False)
    role = Column(String, nullable=False, default="team_member")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=func.now())
