from datetime import date, datetime, time
from typing import Iterable, List, Optional

import pandas as pd

from app.schema.Requisition import RequisitionRecord, RequisitionStats
from app.service.sheet_record_mapper import parse_timestamp

STATUSES = ["pending", "approved", "completed", "rejected"]


def filter_requisitions(
        records: Iterable[RequisitionRecord],
        status: Optional[str] = None,
        team: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        delivery_timeline: Optional[str] = None,
) -> List[RequisitionRecord]:
    """Dashboard filters. "all" or an empty value disables a filter."""
    filtered = list(records)

    if status and status.lower() != "all":
        filtered = [r for r in filtered if r.status.lower() == status.lower()]

    if team and team.lower() != "all":
        filtered = [r for r in filtered if team in r.assignedTeam]

    if date_from or date_to:
        start = datetime.combine(date_from, time.min) if date_from else None
        end = datetime.combine(date_to, time.max) if date_to else None

        def in_range(record: RequisitionRecord) -> bool:
            parsed = parse_timestamp(record.timestamp)
            if parsed is None:
                return False
            moment = parsed.to_pydatetime()
            return (start is None or moment >= start) and (end is None or moment <= end)

        filtered = [r for r in filtered if in_range(r)]

    if delivery_timeline and delivery_timeline.lower() != "all":
        filtered = [r for r in filtered if r.deliveryTimeline.lower() == delivery_timeline.lower()]

    return filtered


def unique_teams(records: Iterable[RequisitionRecord]) -> List[str]:
    teams = []
    for record in records:
        if record.assignedTeam and record.assignedTeam not in teams:
            teams.append(record.assignedTeam)
    return teams


def compute_stats(filtered: List[RequisitionRecord], all_records: Optional[List[RequisitionRecord]] = None) -> RequisitionStats:
    """Status counts and percentages of the filtered set; teams come from the unfiltered set."""
    frame = pd.DataFrame([r.model_dump() for r in filtered], columns=list(RequisitionRecord.model_fields))
    counts = frame["status"].str.lower().value_counts() if not frame.empty else pd.Series(dtype="int64")
    total = len(frame)

    by_status = {status: int(counts.get(status, 0)) for status in STATUSES}
    percentages = {
        status: int(count * 100 / total + 0.5) if total else 0
        for status, count in by_status.items()
    }
    return RequisitionStats(
        total=total,
        percentages=percentages,
        teams=unique_teams(all_records if all_records is not None else filtered),
        **by_status,
    )
