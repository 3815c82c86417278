from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from app.core.exceptions import ConcurrentUpdateError, ConfigurationError, SheetsApiError
from app.core.logger import setup_logger
from app.models.database import get_db
from app.schema.Requisition import RequisitionRecord, RequisitionStats, StatusUpdateRequest, StatusUpdateResponse
from app.service import dashboard_service, requisition_service
from app.service.auth_service import (
    AuthenticationError,
    GoogleOAuthClient,
    get_oauth_client,
    has_identity_signal,
    resolve_request_identity,
)
from app.service.google_sheets_service import GoogleSheetsService, get_sheets_service
from app.service.requisition_service import RequisitionAccessError

router = APIRouter(
    prefix="/api/requisitions",
    tags=["Requisitions"]
)

logger = setup_logger("app_logger")


def _load_visible(request: Request, db: Session, sheets: GoogleSheetsService,
                  oauth_client: GoogleOAuthClient) -> List[RequisitionRecord]:
    try:
        identity = resolve_request_identity(request, db, oauth_client)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))
    try:
        return requisition_service.list_requisitions(sheets, identity)
    except RequisitionAccessError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[RequisitionRecord])
def get_requisitions(
        request: Request,
        status: Optional[str] = Query(None, description="pending, approved, completed, rejected or all"),
        team: Optional[str] = Query(None, description="Substring of the assigned team"),
        date_from: Optional[date] = Query(None),
        date_to: Optional[date] = Query(None),
        delivery_timeline: Optional[str] = Query(None),
        db: Session = Depends(get_db),
        sheets: GoogleSheetsService = Depends(get_sheets_service),
        oauth_client: GoogleOAuthClient = Depends(get_oauth_client),
):
    """Requisitions from the sheet, newest first."""
    try:
        records = _load_visible(request, db, sheets, oauth_client)
        return dashboard_service.filter_requisitions(
            records, status=status, team=team, date_from=date_from, date_to=date_to,
            delivery_timeline=delivery_timeline,
        )
    except (HTTPException, ConfigurationError, SheetsApiError):
        raise
    except Exception as e:
        logger.error(f"Error fetching requisitions: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch requisitions")


@router.get("/stats", response_model=RequisitionStats)
def get_requisition_stats(
        request: Request,
        status: Optional[str] = Query(None),
        team: Optional[str] = Query(None),
        date_from: Optional[date] = Query(None),
        date_to: Optional[date] = Query(None),
        delivery_timeline: Optional[str] = Query(None),
        db: Session = Depends(get_db),
        sheets: GoogleSheetsService = Depends(get_sheets_service),
        oauth_client: GoogleOAuthClient = Depends(get_oauth_client),
):
    """Status counts over the filtered requisitions, plus the list of teams."""
    try:
        records = _load_visible(request, db, sheets, oauth_client)
        filtered = dashboard_service.filter_requisitions(
            records, status=status, team=team, date_from=date_from, date_to=date_to,
            delivery_timeline=delivery_timeline,
        )
        return dashboard_service.compute_stats(filtered, all_records=records)
    except (HTTPException, ConfigurationError, SheetsApiError):
        raise
    except Exception as e:
        logger.error(f"Error computing requisition stats: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to compute requisition stats")


def require_identity_signal(request: Request):
    """Runs before the body is read so anonymous writes always get a 401."""
    if not has_identity_signal(request):
        logger.warning("Status update rejected: no credentials on request")
        raise HTTPException(status_code=401, detail="Authentication required for status updates")


@router.put("", response_model=StatusUpdateResponse, dependencies=[Depends(require_identity_signal)])
def update_requisition_status(
        payload: StatusUpdateRequest,
        request: Request,
        db: Session = Depends(get_db),
        sheets: GoogleSheetsService = Depends(get_sheets_service),
        oauth_client: GoogleOAuthClient = Depends(get_oauth_client),
):
    logger.info(f"Status update request for requisition {payload.id}")
    try:
        identity = resolve_request_identity(request, db, oauth_client)
        new_status = requisition_service.update_status(
            sheets, identity, payload.id, payload.status, expected_status=payload.expectedStatus,
        )
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except RequisitionAccessError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except (ConfigurationError, SheetsApiError, ConcurrentUpdateError):
        raise
    except Exception as e:
        logger.error(f"Error updating requisition {payload.id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update requisition")

    return StatusUpdateResponse(
        message="Status updated successfully",
        updated=True,
        id=str(payload.id),
        status=new_status,
    )
