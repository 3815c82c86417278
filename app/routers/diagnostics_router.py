from fastapi import APIRouter, Depends, HTTPException

from app.core.exceptions import ConfigurationError, SheetsApiError
from app.core.logger import setup_logger
from app.service.google_sheets_service import GoogleSheetsService, get_sheets_service

router = APIRouter(
    prefix="/api/diagnostics",
    tags=["Diagnostics"]
)

logger = setup_logger("app_logger")


@router.get("/sheet")
def check_sheet_access(sheets: GoogleSheetsService = Depends(get_sheets_service)):
    """Spreadsheet title and tab names, read with the API key."""
    try:
        return sheets.test_sheet_access()
    except (ConfigurationError, SheetsApiError):
        raise
    except Exception as e:
        logger.error(f"Sheet access test failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Sheet access test failed")


@router.get("/columns")
def describe_columns(sheets: GoogleSheetsService = Depends(get_sheets_service)):
    """Header row with column letters and how the first response maps onto requisition fields."""
    try:
        return sheets.describe_columns()
    except (ConfigurationError, SheetsApiError):
        raise
    except Exception as e:
        logger.error(f"Column inspection failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Column inspection failed")


@router.get("/service-account")
def check_service_account(sheets: GoogleSheetsService = Depends(get_sheets_service)):
    try:
        return sheets.check_service_account()
    except SheetsApiError as e:
        if e.status_code == 403:
            e.message = "403 PERMISSION_DENIED: share the sheet with the service account email"
        raise
    except ConfigurationError:
        raise
    except Exception as e:
        logger.error(f"Service account check failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Service account check failed")
