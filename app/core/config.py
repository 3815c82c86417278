import json
import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

# Managers are recognised by email only; MANAGERS_DATA can extend this list.
DEFAULT_MANAGER_EMAILS = [
    "manager@company.com",
    "admin@company.com",
]


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Runtime configuration read from the environment (and .env when present)."""

    def __init__(self):
        self.google_client_id = os.getenv("GOOGLE_CLIENT_ID", "")
        self.google_client_secret = os.getenv("GOOGLE_CLIENT_SECRET", "")
        self.google_oauth_redirect_uri = os.getenv("GOOGLE_OAUTH_REDIRECT_URI") or None
        self.google_sheets_api_key = os.getenv("GOOGLE_SHEETS_API_KEY") or None
        self.google_spreadsheet_id = os.getenv("GOOGLE_SPREADSHEET_ID") or None
        self.google_service_account_credentials = os.getenv("GOOGLE_SERVICE_ACCOUNT_CREDENTIALS") or None
        self.google_sheet_range = os.getenv("GOOGLE_SHEET_RANGE", "A:CE")
        self.google_http_timeout = float(os.getenv("GOOGLE_HTTP_TIMEOUT", "15"))

        self.team_members_data = os.getenv("TEAM_MEMBERS_DATA") or None
        self.managers_data = os.getenv("MANAGERS_DATA") or None

        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./requisitions.db")
        self.cookie_secure = _env_bool("COOKIE_SECURE", False)
        self.session_max_age = int(os.getenv("TEAM_SESSION_MAX_AGE", str(24 * 60 * 60)))
        self.cors_origins = [
            origin.strip()
            for origin in os.getenv(
                "CORS_ORIGINS", "http://localhost:3000,http://localhost:5173,http://localhost:8080"
            ).split(",")
            if origin.strip()
        ]

        self.log_dir = os.getenv("LOG_DIR", "logs")
        self.log_config_file = os.getenv("LOG_CONFIG_FILE", "log_config.json")


def parse_json_blob(raw: Optional[str]):
    """Decode one of the JSON blobs held in an environment variable."""
    if not raw:
        return None
    return json.loads(raw)


def load_manager_records(raw: Optional[str]) -> List[dict]:
    """Manager entries from MANAGERS_DATA, or an empty list when unset."""
    data = parse_json_blob(raw)
    if not data:
        return []
    if not isinstance(data, list):
        raise ValueError("MANAGERS_DATA must be a JSON list")
    return [entry for entry in data if isinstance(entry, dict) and entry.get("email")]


settings = Settings()
