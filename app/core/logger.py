import json
import logging
import os
import weakref
from datetime import datetime
from typing import Any, Dict, Optional, Set

from app.core.config import settings

VALID_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
VALID_MODES = ["THRESHOLD", "EXACT_LEVEL_ONLY"]


class LevelFilter(logging.Filter):
    """Lets through records at or above the level, or only that exact level."""

    def __init__(self, level: int, exact: bool = False):
        super().__init__()
        self.level = level
        self.exact = exact

    def filter(self, record):
        if self.exact:
            return record.levelno == self.level
        return record.levelno >= self.level


_logger_registry: Set[weakref.ReferenceType] = set()
_current_log_file = None

logger_config = {
    "current_level": "INFO",
    "filtering_mode": "THRESHOLD",
    "last_updated": datetime.now().isoformat()
}


def _register_logger(logger_instance):
    global _logger_registry
    _logger_registry = {ref for ref in _logger_registry if ref() is not None}
    _logger_registry.add(weakref.ref(logger_instance))


def load_log_config() -> Dict[str, Any]:
    """Load the persisted level/mode, keeping defaults when the file is missing or broken."""
    try:
        if os.path.exists(settings.log_config_file):
            with open(settings.log_config_file, "r") as f:
                saved_config = json.load(f)
            if saved_config.get("current_level") in VALID_LEVELS:
                logger_config["current_level"] = saved_config["current_level"]
            if saved_config.get("filtering_mode") in VALID_MODES:
                logger_config["filtering_mode"] = saved_config["filtering_mode"]
            if saved_config.get("last_updated"):
                logger_config["last_updated"] = saved_config["last_updated"]
    except (OSError, ValueError) as e:
        logging.getLogger(__name__).warning(f"Error loading log config: {e}")
    return logger_config


def save_log_config():
    try:
        with open(settings.log_config_file, "w") as f:
            json.dump(logger_config, f, indent=2)
    except OSError as e:
        logging.getLogger(__name__).warning(f"Error saving log config: {e}")


def get_current_log_level() -> Dict[str, Any]:
    load_log_config()
    return {
        "log_level": logger_config["current_level"],
        "filtering_mode": logger_config["filtering_mode"],
        "last_updated": logger_config["last_updated"],
        "message": f"Current log level is {logger_config['current_level']} ({logger_config['filtering_mode']})",
    }


def get_daily_log_filename() -> str:
    """Daily log file path: <LOG_DIR>/log-YYYY-MM-DD.log"""
    date_str = datetime.now().strftime("%Y-%m-%d")
    return os.path.join(settings.log_dir, f"log-{date_str}.log")


def _build_filter() -> LevelFilter:
    return LevelFilter(
        getattr(logging, logger_config["current_level"]),
        exact=logger_config["filtering_mode"] == "EXACT_LEVEL_ONLY",
    )


def _update_all_loggers_filters():
    global _logger_registry
    _logger_registry = {ref for ref in _logger_registry if ref() is not None}

    for logger_ref in _logger_registry:
        logger_instance = logger_ref()
        if logger_instance is None:
            continue
        for handler in logger_instance.handlers:
            handler.filters.clear()
            handler.addFilter(_build_filter())


def update_log_level(new_level: str, mode: Optional[str] = None) -> Dict[str, Any]:
    """Change the level (and optionally the filtering mode) for every registered logger."""
    new_level = new_level.upper()
    if new_level not in VALID_LEVELS:
        raise ValueError(f"Invalid log level. Must be one of: {', '.join(VALID_LEVELS)}")
    if mode is not None:
        mode = mode.upper()
        if mode not in VALID_MODES:
            raise ValueError(f"Invalid filtering mode. Must be one of: {', '.join(VALID_MODES)}")

    old_level = logger_config["current_level"]
    logger_config["current_level"] = new_level
    if mode is not None:
        logger_config["filtering_mode"] = mode
    logger_config["last_updated"] = datetime.now().isoformat()

    save_log_config()
    _update_all_loggers_filters()

    logging.getLogger(__name__).warning(
        f"Log level changed from {old_level} to {new_level} ({logger_config['filtering_mode']})"
    )

    return {
        "log_level": new_level,
        "previous_level": old_level,
        "filtering_mode": logger_config["filtering_mode"],
        "updated_at": logger_config["last_updated"],
        "message": f"Log level updated to {new_level}.",
    }


def setup_logger(name: str = "app_logger") -> logging.Logger:
    """
    Return the named logger with a console handler and a daily file handler.
    Handlers are rebuilt when the day rolls over.
    """
    global _current_log_file

    load_log_config()
    logger = logging.getLogger(name)
    current_log_file = get_daily_log_filename()

    if not logger.handlers or _current_log_file != current_log_file:
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()
        _current_log_file = current_log_file
        logger.setLevel(logging.DEBUG)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.addFilter(_build_filter())
        logger.addHandler(console_handler)

        log_dir = os.path.dirname(current_log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(current_log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        file_handler.addFilter(_build_filter())
        logger.addHandler(file_handler)

        logger.propagate = False
        _register_logger(logger)

    return logger


load_log_config()
