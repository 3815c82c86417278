from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.logger import setup_logger
from app.models.database import get_db
from app.schema.TeamMember import TeamMemberCreate, TeamMemberResponse, TeamMemberUpdate
from app.service import team_directory_service
from app.service.team_directory_service import DirectoryError

router = APIRouter(
    prefix="/api/team-members",
    tags=["Team Members"]
)

logger = setup_logger("app_logger")


@router.get("", response_model=List[TeamMemberResponse])
def get_team_members(
        team: Optional[str] = Query(None, description="Only members of this team"),
        db: Session = Depends(get_db)
):
    """Active team members, optionally restricted to one team."""
    try:
        if team:
            members = team_directory_service.list_members_by_team(db, team)
        else:
            members = team_directory_service.list_active_members(db)
        return [TeamMemberResponse.from_member(member) for member in members]
    except Exception as e:
        logger.error(f"Error fetching team members: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch team members")


@router.post("", response_model=TeamMemberResponse)
def create_team_member(payload: TeamMemberCreate, db: Session = Depends(get_db)):
    if not payload.name or not payload.email or not payload.password or not payload.team:
        raise HTTPException(status_code=400, detail="All fields are required")
    try:
        member = team_directory_service.create_member(
            db, email=payload.email, password=payload.password, name=payload.name, team=payload.team,
        )
        return TeamMemberResponse.from_member(member)
    except DirectoryError as e:
        logger.error(f"Error creating team member: {e}")
        raise HTTPException(status_code=500, detail="Failed to create team member")


@router.put("/{member_id}")
def update_team_member(member_id: str, payload: TeamMemberUpdate, db: Session = Depends(get_db)):
    updates = {
        "name": payload.name,
        "email": payload.email,
        "team": payload.team,
        "password": payload.password,
        "is_active": payload.isActive,
    }
    try:
        member = team_directory_service.update_member(db, member_id, updates)
    except DirectoryError as e:
        logger.error(f"Error updating team member {member_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update team member")

    if member is None:
        logger.warning(f"Update requested for unknown team member {member_id}")
        raise HTTPException(status_code=404, detail="Team member not found")
    return {"message": "Team member updated successfully", "member": TeamMemberResponse.from_member(member)}


@router.delete("/{member_id}")
def delete_team_member(member_id: str, db: Session = Depends(get_db)):
    try:
        deleted = team_directory_service.delete_member(db, member_id)
    except DirectoryError as e:
        logger.error(f"Error deleting team member {member_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete team member")

    if not deleted:
        logger.warning(f"Delete requested for unknown team member {member_id}")
        raise HTTPException(status_code=404, detail="Team member not found")
    return {"message": "Team member deleted successfully"}
