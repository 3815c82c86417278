from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.logger import setup_logger

logger = setup_logger("app_logger")


class ConfigurationError(Exception):
    """A required setting is missing or malformed. Raised before any network call."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint


class SheetsApiError(Exception):
    """The Google Sheets API answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str, message: str = "Google Sheets API error"):
        super().__init__(f"{message}: {status_code} - {body}")
        self.status_code = status_code
        self.body = body
        self.message = message


class ConcurrentUpdateError(Exception):
    def __init__(self, expected: str, actual: str):
        super().__init__(f"Status changed concurrently: expected '{expected}', found '{actual}'")
        self.expected = expected
        self.actual = actual


async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=500,
        content={"error": "Configuration error", "details": exc.message, "hint": exc.hint},
    )


async def sheets_api_error_handler(request: Request, exc: SheetsApiError):
    logger.error(f"Upstream Google Sheets error on {request.url.path}: {exc.status_code} - {exc.body}")
    return JSONResponse(
        status_code=502,
        content={"error": exc.message, "status": exc.status_code, "details": exc.body},
    )


async def concurrent_update_error_handler(request: Request, exc: ConcurrentUpdateError):
    logger.warning(f"Rejected stale status update on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=409,
        content={
            "error": "Status was changed by someone else",
            "expectedStatus": exc.expected,
            "currentStatus": exc.actual,
            "updated": False,
        },
    )


def register_exception_handlers(app):
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(SheetsApiError, sheets_api_error_handler)
    app.add_exception_handler(ConcurrentUpdateError, concurrent_update_error_handler)
