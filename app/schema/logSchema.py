from typing import Optional
from pydantic import BaseModel


class LogLevelRequest(BaseModel):
    log_level: str
    filtering_mode: Optional[str] = None
