import base64
import hashlib
import hmac
import json
import secrets
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.logger import setup_logger
from app.models.team_member import TeamMember

logger = setup_logger("app_logger")

PBKDF2_ITERATIONS = 310_000
UPDATABLE_FIELDS = ("name", "email", "team", "is_active")


class DirectoryError(Exception):
    pass


def hash_password(password: str, salt_b64: Optional[str] = None) -> Tuple[str, str]:
    salt = base64.b64decode(salt_b64) if salt_b64 else secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return base64.b64encode(digest).decode("utf-8"), base64.b64encode(salt).decode("utf-8")


def verify_password(password: str, expected_hash: str, salt_b64: str) -> bool:
    computed, _ = hash_password(password, salt_b64)
    return hmac.compare_digest(computed, expected_hash)


def _parse_created_at(value: Any) -> datetime:
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
        except ValueError:
            logger.warning(f"Unreadable createdAt '{value}', using current time")
    return datetime.now()


def _next_member_id(db: Session) -> str:
    """Epoch milliseconds as a string, bumped until unused."""
    candidate = int(time.time() * 1000)
    while db.get(TeamMember, str(candidate)) is not None:
        candidate += 1
    return str(candidate)


def _commit(db: Session, action: str):
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to {action}: {e}", exc_info=True)
        raise DirectoryError(f"Failed to {action}: {e}")


def list_active_members(db: Session) -> List[TeamMember]:
    return db.query(TeamMember).filter(TeamMember.is_active.is_(True)).order_by(TeamMember.created_at).all()


def list_members_by_team(db: Session, team: str) -> List[TeamMember]:
    return (
        db.query(TeamMember)
        .filter(TeamMember.team == team, TeamMember.is_active.is_(True))
        .order_by(TeamMember.created_at)
        .all()
    )


def get_member(db: Session, member_id: str) -> Optional[TeamMember]:
    return db.get(TeamMember, member_id)


def get_active_member(db: Session, member_id: str) -> Optional[TeamMember]:
    member = get_member(db, member_id)
    if member is None or not member.is_active:
        return None
    return member


def authenticate(db: Session, email: str, password: str) -> Optional[TeamMember]:
    """Active member whose email and password both match, else None."""
    candidates = (
        db.query(TeamMember)
        .filter(TeamMember.email == email.strip(), TeamMember.is_active.is_(True))
        .all()
    )
    for member in candidates:
        if verify_password(password, member.password_hash, member.password_salt):
            return member
    return None


def create_member(db: Session, email: str, password: str, name: str, team: str,
                  member_id: Optional[str] = None, created_at: Optional[datetime] = None,
                  is_active: bool = True) -> TeamMember:
    password_hash, password_salt = hash_password(password)
    member = TeamMember(
        id=member_id or _next_member_id(db),
        email=email.strip(),
        password_hash=password_hash,
        password_salt=password_salt,
        name=name,
        team=team,
        role="team_member",
        is_active=is_active,
        created_at=created_at or datetime.now(),
    )
    db.add(member)
    _commit(db, "create team member")
    db.refresh(member)
    logger.info(f"Created team member {member.id} ({member.email}, team {member.team})")
    return member


def update_member(db: Session, member_id: str, updates: Dict[str, Any]) -> Optional[TeamMember]:
    """Shallow merge of the given fields; the password changes only when a non-empty one is given."""
    member = get_member(db, member_id)
    if member is None:
        return None

    for field in UPDATABLE_FIELDS:
        value = updates.get(field)
        if value is not None:
            setattr(member, field, value.strip() if field == "email" else value)

    password = updates.get("password")
    if password:
        member.password_hash, member.password_salt = hash_password(password)

    _commit(db, f"update team member {member_id}")
    db.refresh(member)
    logger.info(f"Updated team member {member_id}")
    return member


def delete_member(db: Session, member_id: str) -> bool:
    member = get_member(db, member_id)
    if member is None:
        return False
    db.delete(member)
    _commit(db, f"delete team member {member_id}")
    logger.info(f"Deleted team member {member_id}")
    return True


def seed_from_blob(db: Session, raw: Optional[str]) -> int:
    """
    Import the TEAM_MEMBERS_DATA blob into an empty directory.
    Entries use the original camelCase keys; entries missing email or password are skipped.
    """
    if not raw:
        return 0
    if db.query(TeamMember).count() > 0:
        logger.info("Team directory already populated, skipping TEAM_MEMBERS_DATA seed")
        return 0
    try:
        entries = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error(f"Error parsing TEAM_MEMBERS_DATA: {e}")
        return 0
    if not isinstance(entries, list):
        logger.error("TEAM_MEMBERS_DATA must be a JSON list, ignoring it")
        return 0

    loaded = 0
    seen_ids = set()
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("email") or not entry.get("password"):
            logger.warning("Skipping incomplete team member entry in TEAM_MEMBERS_DATA")
            continue
        is_active = entry.get("isActive", True)
        if not isinstance(is_active, bool):
            logger.warning(f"Skipping team member entry with non-boolean isActive: {is_active!r}")
            continue
        member_id = str(entry.get("id") or _next_member_id(db))
        if member_id in seen_ids:
            logger.warning(f"Skipping duplicate team member id {member_id} in TEAM_MEMBERS_DATA")
            continue
        seen_ids.add(member_id)
        password_hash, password_salt = hash_password(entry["password"])
        db.add(TeamMember(
            id=member_id,
            email=entry["email"].strip(),
            password_hash=password_hash,
            password_salt=password_salt,
            name=entry.get("name", ""),
            team=entry.get("team", ""),
            role="team_member",
            is_active=is_active,
            created_at=_parse_created_at(entry.get("createdAt")),
        ))
        db.flush()
        loaded += 1
    _commit(db, "seed team members")
    logger.info(f"Seeded {loaded} team members from TEAM_MEMBERS_DATA")
    return loaded
