import json
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from app.core.config import settings
from app.core.exceptions import ConfigurationError, SheetsApiError
from app.core.logger import setup_logger
from app.schema.Requisition import RequisitionRecord
from app.service.sheet_record_mapper import (
    COLUMN_MAP,
    DEFAULT_STATUS,
    STATUS_COLUMN_INDEX,
    STATUS_COLUMN_LETTER,
    column_letter,
    map_rows,
    status_cell_range,
)

logger = setup_logger("app_logger")

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
API_KEY_HEADER = "X-Goog-Api-Key"
WRITE_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
READONLY_SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]


def parse_service_account_info(raw: Optional[str]) -> Dict[str, Any]:
    """Decode GOOGLE_SERVICE_ACCOUNT_CREDENTIALS, restoring escaped newlines in the key."""
    if not raw:
        raise ConfigurationError(
            "Missing GOOGLE_SERVICE_ACCOUNT_CREDENTIALS",
            hint="Paste the full JSON of the service account into GOOGLE_SERVICE_ACCOUNT_CREDENTIALS "
                 "and share the sheet with its client_email as Editor.",
        )
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"GOOGLE_SERVICE_ACCOUNT_CREDENTIALS is not valid JSON: {e}",
            hint="Check that the whole key file was copied, including the braces.",
        )
    if not isinstance(info, dict) or not info.get("client_email") or not info.get("private_key"):
        raise ConfigurationError(
            "Malformed GOOGLE_SERVICE_ACCOUNT_CREDENTIALS",
            hint="Ensure the JSON contains client_email and private_key fields.",
        )
    info = dict(info)
    info["private_key"] = info["private_key"].replace("\\n", "\n")
    return info


class GoogleSheetsService:
    """
    Access to the requisition spreadsheet.

    Reads go through the public Sheets REST endpoint with the read-only API key.
    Status writes go through the Sheets client authenticated as the service
    account, never as the calling user.
    """

    def __init__(
        self,
        api_key: Optional[str],
        spreadsheet_id: Optional[str],
        service_account_credentials: Optional[str] = None,
        sheet_range: str = "A:CE",
        timeout: float = 15,
    ):
        self.api_key = api_key
        self.spreadsheet_id = spreadsheet_id
        self.service_account_credentials = service_account_credentials
        self.sheet_range = sheet_range
        self.timeout = timeout

    def _require_read_config(self):
        if not self.api_key:
            raise ConfigurationError(
                "No Google Sheets API key found",
                hint="Add GOOGLE_SHEETS_API_KEY to your .env file and enable the Google Sheets API for that key.",
            )
        self._require_spreadsheet_id()

    def _require_spreadsheet_id(self):
        if not self.spreadsheet_id:
            raise ConfigurationError(
                "Missing GOOGLE_SPREADSHEET_ID",
                hint="Add GOOGLE_SPREADSHEET_ID to your .env file and restart the server.",
            )

    def _get_json(self, url: str) -> Dict[str, Any]:
        # Key travels in a header so it never shows up in URLs quoted by requests errors.
        try:
            response = requests.get(url, headers={API_KEY_HEADER: self.api_key}, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Could not reach the Google Sheets API: {type(e).__name__}")
            raise SheetsApiError(
                503, type(e).__name__, message="Could not reach the Google Sheets API",
            ) from None
        if not response.ok:
            logger.error(f"Sheets API error {response.status_code}: {response.text}")
            raise SheetsApiError(response.status_code, response.text)
        return response.json()

    def fetch_values(self, value_range: Optional[str] = None) -> List[List[str]]:
        self._require_read_config()
        value_range = value_range or self.sheet_range
        url = f"{SHEETS_API_BASE}/{self.spreadsheet_id}/values/{quote(value_range, safe='')}"
        logger.info(f"Fetching range {value_range} from spreadsheet {self.spreadsheet_id}")
        data = self._get_json(url)
        rows = data.get("values", [])
        logger.debug(f"Received {len(rows)} rows")
        return rows

    def get_requisitions(self) -> List[RequisitionRecord]:
        return map_rows(self.fetch_values())

    def _build_client(self, scopes: List[str]):
        info = parse_service_account_info(self.service_account_credentials)
        credentials = service_account.Credentials.from_service_account_info(info, scopes=scopes)
        return build("sheets", "v4", credentials=credentials, cache_discovery=False)

    def _execute(self, request, action: str):
        try:
            return request.execute()
        except HttpError as e:
            body = e.content.decode("utf-8", errors="replace") if isinstance(e.content, bytes) else str(e.content)
            logger.error(f"Service account {action} failed with {e.resp.status}: {body}")
            raise SheetsApiError(int(e.resp.status), body, message=f"Failed to {action}")

    def read_status(self, row_index: int) -> str:
        """Current status cell of a data row, read with the service account."""
        self._require_spreadsheet_id()
        cell = status_cell_range(row_index)
        client = self._build_client(WRITE_SCOPES)
        result = self._execute(
            client.spreadsheets().values().get(spreadsheetId=self.spreadsheet_id, range=cell),
            "read status cell",
        )
        values = result.get("values") or [[]]
        current = values[0][0] if values[0] else ""
        return current or DEFAULT_STATUS

    def update_requisition_status(self, row_index: int, status: str) -> str:
        """Overwrite the status cell of one data row. Returns the A1 range written."""
        self._require_spreadsheet_id()
        cell = status_cell_range(row_index)
        client = self._build_client(WRITE_SCOPES)
        logger.info(f"Updating status cell {cell} to '{status}'")
        self._execute(
            client.spreadsheets().values().update(
                spreadsheetId=self.spreadsheet_id,
                range=cell,
                valueInputOption="RAW",
                body={"values": [[status]]},
            ),
            "update status in sheet",
        )
        logger.info(f"Status cell {cell} updated")
        return cell

    def test_sheet_access(self) -> Dict[str, Any]:
        self._require_read_config()
        data = self._get_json(f"{SHEETS_API_BASE}/{self.spreadsheet_id}")
        return {
            "success": True,
            "spreadsheetId": self.spreadsheet_id,
            "title": data.get("properties", {}).get("title"),
            "sheets": [s.get("properties", {}).get("title") for s in data.get("sheets", [])],
        }

    def describe_columns(self) -> Dict[str, Any]:
        """Header row with column letters plus how the first data row maps onto fields."""
        rows = self.fetch_values(f"A1:{STATUS_COLUMN_LETTER}3")
        headers = rows[0] if rows else []
        sample = rows[1] if len(rows) > 1 else []

        def sample_value(index):
            return sample[index] if index < len(sample) else None

        mapping = {name: {"index": index, "letter": column_letter(index), "value": sample_value(index)}
                   for name, index in COLUMN_MAP.items()}
        mapping["status"] = {
            "index": STATUS_COLUMN_INDEX,
            "letter": STATUS_COLUMN_LETTER,
            "value": sample_value(STATUS_COLUMN_INDEX),
        }
        return {
            "success": True,
            "totalColumns": len(headers),
            "headers": [{"index": i, "letter": column_letter(i), "header": h} for i, h in enumerate(headers)],
            "sampleData": rows[1:3],
            "mapping": mapping,
        }

    def check_service_account(self) -> Dict[str, Any]:
        self._require_spreadsheet_id()
        info = parse_service_account_info(self.service_account_credentials)
        client = self._build_client(READONLY_SCOPES)
        meta = self._execute(client.spreadsheets().get(spreadsheetId=self.spreadsheet_id), "read spreadsheet metadata")
        values = self._execute(
            client.spreadsheets().values().get(spreadsheetId=self.spreadsheet_id, range="A1:Z5"),
            "read sample range",
        )
        return {
            "ok": True,
            "spreadsheetId": self.spreadsheet_id,
            "serviceAccountEmail": info["client_email"],
            "spreadsheetTitle": meta.get("properties", {}).get("title"),
            "sheets": [s.get("properties", {}).get("title") for s in meta.get("sheets", [])],
            "sample": values.get("values", []),
            "hint": "If writes fail with 403, share the sheet with serviceAccountEmail as Editor.",
        }


def get_sheets_service() -> GoogleSheetsService:
    return GoogleSheetsService(
        api_key=settings.google_sheets_api_key,
        spreadsheet_id=settings.google_spreadsheet_id,
        service_account_credentials=settings.google_service_account_credentials,
        sheet_range=settings.google_sheet_range,
        timeout=settings.google_http_timeout,
    )
