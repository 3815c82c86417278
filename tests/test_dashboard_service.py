from datetime import date

from app.service.dashboard_service import compute_stats, filter_requisitions, unique_teams
from app.service.sheet_record_mapper import map_rows
from tests.conftest import HEADER, make_row


def _records():
    return map_rows([
        HEADER,
        make_row("1/5/2024 10:00:00", "a@example.com", product="A", team="SMD", status="approved"),
        make_row("2/1/2024 08:00:00", "b@example.com", product="B", team="SMD Video", timeline="Urgent"),
        make_row("2/20/2024 08:00:00", "c@example.com", product="C", team="QAC", status="rejected"),
        make_row("garbage", "d@example.com", product="D", team="QAC"),
    ])


def test_all_disables_every_filter():
    records = _records()

    assert filter_requisitions(records, status="all", team="all", delivery_timeline="all") == records


def test_status_filter_is_case_insensitive():
    assert [r.productName for r in filter_requisitions(_records(), status="Approved")] == ["A"]


def test_team_filter_matches_substring():
    assert {r.productName for r in filter_requisitions(_records(), team="SMD")} == {"A", "B"}


def test_date_range_is_inclusive_and_skips_unparseable_timestamps():
    filtered = filter_requisitions(_records(), date_from=date(2024, 1, 5), date_to=date(2024, 2, 1))

    assert [r.productName for r in filtered] == ["B", "A"]


def test_open_ended_date_range():
    assert [r.productName for r in filter_requisitions(_records(), date_from=date(2024, 2, 2))] == ["C"]


def test_delivery_timeline_filter():
    assert [r.productName for r in filter_requisitions(_records(), delivery_timeline="urgent")] == ["B"]


def test_stats_count_and_round_percentages():
    stats = compute_stats(_records())

    assert stats.total == 4
    assert (stats.pending, stats.approved, stats.completed, stats.rejected) == (2, 1, 0, 1)
    assert stats.percentages == {"pending": 50, "approved": 25, "completed": 0, "rejected": 25}


def test_stats_for_empty_set():
    stats = compute_stats([])

    assert stats.total == 0
    assert stats.percentages == {"pending": 0, "approved": 0, "completed": 0, "rejected": 0}
    assert stats.teams == []


def test_stats_teams_come_from_unfiltered_records():
    records = _records()
    stats = compute_stats(filter_requisitions(records, team="QAC"), all_records=records)

    assert stats.total == 2
    assert stats.teams == unique_teams(records)
    assert set(stats.teams) == {"SMD", "SMD Video", "QAC"}
