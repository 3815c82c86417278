import math
import os
import re
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import FileResponse

from app.core.config import settings
from app.core.logger import VALID_LEVELS, get_current_log_level, setup_logger, update_log_level
from app.schema.logSchema import LogLevelRequest

router = APIRouter(prefix="/logs", tags=["Logs"])

DAILY_LOG_PATTERN = re.compile(r"^log-(\d{4}-\d{2}-\d{2})\.log$")
logger = setup_logger("app_logger")


def format_file_size(size_bytes: int) -> str:
    """Convert bytes to human readable format"""
    if size_bytes == 0:
        return "0 B"
    size_names = ["B", "KB", "MB", "GB", "TB"]
    i = min(int(math.floor(math.log(size_bytes, 1024))), len(size_names) - 1)
    return f"{round(size_bytes / math.pow(1024, i), 2)} {size_names[i]}"


def _safe_log_path(filename: str) -> str:
    filename = filename.strip()
    if not filename or "/" in filename or "\\" in filename or ".." in filename:
        logger.warning(f"Rejected log filename: {filename}")
        raise HTTPException(status_code=400, detail="Invalid filename characters detected.")
    if not filename.endswith(".log"):
        raise HTTPException(status_code=400, detail="Only .log files can be accessed.")
    file_path = os.path.join(settings.log_dir, filename)
    if not os.path.isfile(file_path):
        logger.error(f"Requested non-existent log file: {file_path}")
        raise HTTPException(status_code=404, detail="Log file not found")
    return file_path


@router.get("/")
def get_logs(filename: str = Query(None)):
    """
    List the log files, or return the content of one when `filename` is given.
    """
    if filename:
        file_path = _safe_log_path(filename)
        with open(file_path, "r", encoding="utf-8") as f:
            content = f.read()
        file_stats = os.stat(file_path)
        return {
            "filename": filename.strip(),
            "content": content,
            "size_bytes": file_stats.st_size,
            "modified_at": datetime.fromtimestamp(file_stats.st_mtime).isoformat(),
            "line_count": len(content.splitlines()),
        }

    if not os.path.exists(settings.log_dir):
        return {"message": "Log directory does not exist.", "files": [], "total_files": 0}

    file_details = []
    for name in os.listdir(settings.log_dir):
        if not name.endswith(".log"):
            continue
        file_stats = os.stat(os.path.join(settings.log_dir, name))
        match = DAILY_LOG_PATTERN.match(name)
        file_details.append({
            "filename": name,
            "date": match.group(1) if match else None,
            "size_bytes": file_stats.st_size,
            "size_human": format_file_size(file_stats.st_size),
            "modified_at": datetime.fromtimestamp(file_stats.st_mtime).isoformat(),
        })

    file_details.sort(key=lambda x: x["modified_at"], reverse=True)
    return {
        "message": f"Found {len(file_details)} log files.",
        "files": file_details,
        "total_files": len(file_details),
        "total_size_human": format_file_size(sum(f["size_bytes"] for f in file_details)),
    }


@router.get("/download/{filename}")
def download_log_file(filename: str):
    file_path = _safe_log_path(filename)
    logger.info(f"Serving log file for download: {filename}")
    return FileResponse(path=file_path, filename=filename.strip(), media_type="text/plain")


@router.get("/level", response_model=Dict[str, Any])
def get_log_level():
    return get_current_log_level()


@router.put("/level", response_model=Dict[str, Any])
def set_log_level(request: LogLevelRequest):
    """
    Set the log level. In THRESHOLD mode the level and everything above it is
    written; in EXACT_LEVEL_ONLY mode only records of that exact level are.
    """
    if request.log_level.upper() not in VALID_LEVELS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid log level. Must be one of: {', '.join(VALID_LEVELS)}"
        )
    try:
        return update_log_level(request.log_level, mode=request.filtering_mode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
