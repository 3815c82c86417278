"""
Maps the raw value grid of the form-responses sheet to requisition records.

Row 0 of the grid holds the form headers and is skipped. Every following row is
read by fixed column offsets; the status lives far to the right in column CE,
outside the range the form itself writes to.
"""
from typing import List, Optional, Sequence

import pandas as pd

from app.core.logger import setup_logger
from app.schema.Requisition import RequisitionRecord

logger = setup_logger("app_logger")

COLUMN_MAP = {
    "timestamp": 0,
    "email": 1,
    "productName": 2,
    "type": 3,
    "deliveryTimeline": 4,
    "assignedTeam": 5,
    "pocEmail": 6,
    "details": 7,
    "requisitionBreakdown": 8,
    "estimatedStartDate": 9,
    "expectedDeliveryDate": 10,
    "pocName": 11,
}
STATUS_COLUMN_INDEX = 82
DEFAULT_STATUS = "pending"
HEADER_ROWS = 1


def column_letter(index: int) -> str:
    """0-based column index to A1 notation letters (0 -> A, 25 -> Z, 26 -> AA, 82 -> CE)."""
    if index < 0:
        raise ValueError(f"Column index must be non-negative, got {index}")
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(65 + remainder) + letters
    return letters


STATUS_COLUMN_LETTER = column_letter(STATUS_COLUMN_INDEX)


def status_cell_range(row_index: int) -> str:
    """
    Cell holding the status of the data row at zero-based `row_index`.
    +1 for the header row, +1 because sheet rows are 1-based.
    """
    if row_index < 0:
        raise ValueError(f"Row index must be non-negative, got {row_index}")
    return f"{STATUS_COLUMN_LETTER}{row_index + HEADER_ROWS + 1}"


def record_id_to_row_index(record_id) -> int:
    """Record ids are 1-based data row numbers; the sheet writer wants a 0-based index."""
    try:
        numeric_id = int(str(record_id).strip())
    except (TypeError, ValueError):
        raise ValueError(f"Requisition id must be a positive integer, got '{record_id}'")
    if numeric_id < 1:
        raise ValueError(f"Requisition id must be a positive integer, got '{record_id}'")
    return numeric_id - 1


def _cell(row: Sequence, index: int) -> str:
    if index >= len(row) or row[index] is None:
        return ""
    return str(row[index])


def parse_timestamp(value: str) -> Optional[pd.Timestamp]:
    """Lenient timestamp parsing; None when the value cannot be read as a date."""
    if not value or not value.strip():
        return None
    parsed = pd.to_datetime(value.strip(), errors="coerce")
    if pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert("UTC").tz_localize(None)
    return parsed


def map_row(row: Sequence, record_id: str) -> RequisitionRecord:
    fields = {name: _cell(row, index) for name, index in COLUMN_MAP.items()}
    fields["status"] = _cell(row, STATUS_COLUMN_INDEX) or DEFAULT_STATUS
    return RequisitionRecord(id=record_id, **fields)


def map_rows(grid: Optional[Sequence[Sequence]]) -> List[RequisitionRecord]:
    """
    Build records from a values grid, newest first.

    Ids are assigned from the sheet position before filtering, so a record's id
    always designates its own sheet row. Rows without a timestamp or requester
    email are dropped. Rows whose timestamp cannot be parsed sort last, and equal
    timestamps keep sheet order.
    """
    if not grid or len(grid) <= HEADER_ROWS:
        logger.info("No data rows found in sheet grid")
        return []

    logger.debug(f"Sheet headers: {grid[0]}")
    records = [
        map_row(row, str(position + 1))
        for position, row in enumerate(grid[HEADER_ROWS:])
    ]
    records = [record for record in records if record.timestamp and record.email]

    def sort_key(record: RequisitionRecord):
        parsed = parse_timestamp(record.timestamp)
        if parsed is None:
            return (0, 0)
        return (1, parsed.value)

    records.sort(key=sort_key, reverse=True)
    logger.info(f"Mapped {len(records)} requisitions from {len(grid) - HEADER_ROWS} data rows")
    return records
