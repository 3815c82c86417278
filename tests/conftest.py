import os
import tempfile

_tmp_dir = tempfile.mkdtemp(prefix="requisition-tests-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_DIR"] = os.path.join(_tmp_dir, "logs")
os.environ["LOG_CONFIG_FILE"] = os.path.join(_tmp_dir, "log_config.json")
os.environ.pop("TEAM_MEMBERS_DATA", None)
os.environ.pop("MANAGERS_DATA", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.main import app  # noqa: E402
from app.models.database import Base, SessionLocal, engine  # noqa: E402
from app.service.auth_service import get_oauth_client  # noqa: E402
from app.service.google_sheets_service import get_sheets_service  # noqa: E402
from app.service.sheet_record_mapper import STATUS_COLUMN_INDEX, map_rows, status_cell_range  # noqa: E402

HEADER = ["Timestamp", "Email Address", "Product Name", "Type", "Delivery Timeline", "Assigned Team",
          "POC Email", "Details", "Breakdown", "Estimated Start", "Expected Delivery", "POC Name"]


def make_row(timestamp, email, product="Product", team="SMD", status=None, timeline="Regular"):
    row = [timestamp, email, product, "Video", timeline, team, "poc@example.com", "details",
           "https://example.com/breakdown", "2024-01-10", "2024-01-20", "Poc Name"]
    if status is not None:
        row += [""] * (STATUS_COLUMN_INDEX - len(row)) + [status]
    return row


class FakeSheetsService:
    """In-memory stand-in for GoogleSheetsService holding a values grid."""

    def __init__(self, grid):
        self.grid = [list(row) for row in grid]
        self.writes = []
        self.reads = 0

    def get_requisitions(self):
        self.reads += 1
        return map_rows(self.grid)

    def read_status(self, row_index):
        row = self.grid[row_index + 1]
        return row[STATUS_COLUMN_INDEX] if len(row) > STATUS_COLUMN_INDEX and row[STATUS_COLUMN_INDEX] else "pending"

    def update_requisition_status(self, row_index, status):
        cell = status_cell_range(row_index)
        row = self.grid[row_index + 1]
        if len(row) <= STATUS_COLUMN_INDEX:
            row += [""] * (STATUS_COLUMN_INDEX + 1 - len(row))
        row[STATUS_COLUMN_INDEX] = status
        self.writes.append((cell, status))
        return cell


class FakeOAuthClient:
    def __init__(self, users=None):
        self.users = users or {}
        self.userinfo_calls = []
        self.exchanged = []

    def fetch_userinfo(self, access_token):
        self.userinfo_calls.append(access_token)
        return self.users.get(access_token)

    def exchange_code(self, code, redirect_uri):
        self.exchanged.append((code, redirect_uri))
        if code != "good-code":
            raise Exception("Failed to exchange code for tokens")
        return {"access_token": "manager-token", "expires_in": 3600}


@pytest.fixture
def db_session():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sheet_grid():
    return [
        HEADER,
        make_row("1/5/2024 10:00:00", "alice@example.com", product="Old course", status="approved"),
        make_row("", "ghost@example.com", product="No timestamp"),
        make_row("3/1/2024 09:30:00", "bob@example.com", product="Newest course", team="QAC"),
        make_row("2/10/2024 16:45:00", "", product="No email"),
        make_row("2/1/2024 08:00:00", "alice@example.com", product="Middle course", team="Class Ops",
                 status="completed", timeline="Urgent"),
    ]


@pytest.fixture
def fake_sheets(sheet_grid):
    return FakeSheetsService(sheet_grid)


@pytest.fixture
def fake_oauth():
    return FakeOAuthClient({
        "manager-token": {"email": "manager@company.com", "name": "Manager", "picture": "https://example.com/m.png"},
        "submitter-token": {"email": "alice@example.com", "name": "Alice"},
    })


@pytest.fixture
def client(db_session, fake_sheets, fake_oauth):
    app.dependency_overrides[get_sheets_service] = lambda: fake_sheets
    app.dependency_overrides[get_oauth_client] = lambda: fake_oauth
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
