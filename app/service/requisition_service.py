from typing import List, Optional

from app.core.exceptions import ConcurrentUpdateError
from app.core.logger import setup_logger
from app.schema.Requisition import RequisitionRecord
from app.service.auth_service import ResolvedIdentity
from app.service.dashboard_service import STATUSES
from app.service.google_sheets_service import GoogleSheetsService
from app.service.sheet_record_mapper import record_id_to_row_index

logger = setup_logger("app_logger")

WRITER_ROLES = ("team_member", "manager")


class RequisitionAccessError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def list_requisitions(sheets: GoogleSheetsService, identity: ResolvedIdentity) -> List[RequisitionRecord]:
    """
    Rows read via the API key. Team members and managers get every row,
    submitters only the rows they submitted, anonymous callers nothing.
    """
    if not identity.is_authenticated:
        raise RequisitionAccessError(401, "Authentication required to view requisitions")
    records = sheets.get_requisitions()
    if identity.role == "submitter":
        email = identity.user.email.lower()
        records = [r for r in records if r.email.strip().lower() == email]
        logger.info(f"Scoped requisitions to submitter {identity.user.email}: {len(records)} rows")
    return records


def normalize_status(status: Optional[str]) -> str:
    value = (status or "").strip().lower()
    if value not in STATUSES:
        raise RequisitionAccessError(400, f"Invalid status '{status}'. Must be one of: {', '.join(STATUSES)}")
    return value


def update_status(
        sheets: GoogleSheetsService,
        identity: ResolvedIdentity,
        record_id,
        status: str,
        expected_status: Optional[str] = None,
) -> str:
    """
    Write a new status for one requisition as the service account.
    Only team members and managers may write. With `expected_status`, the write
    is refused when the cell no longer holds that value; otherwise the last write wins.
    Returns the normalized status written.
    """
    if not identity.is_authenticated:
        raise RequisitionAccessError(401, "Authentication required for status updates")
    if identity.role not in WRITER_ROLES:
        logger.warning(f"Rejected status update from {identity.user.email} with role {identity.role}")
        raise RequisitionAccessError(403, "Only team members and managers can update requisition status")

    new_status = normalize_status(status)
    try:
        row_index = record_id_to_row_index(record_id)
    except ValueError as e:
        raise RequisitionAccessError(400, str(e))

    if expected_status is not None:
        expected = expected_status.strip().lower()
        current = sheets.read_status(row_index).strip().lower()
        if current != expected:
            raise ConcurrentUpdateError(expected, current)

    logger.info(f"{identity.user.email} ({identity.role}) sets requisition {record_id} to '{new_status}'")
    sheets.update_requisition_status(row_index, new_status)
    return new_status
