"""
Logging setup for the service process.
"""
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 2


def _level(name: str) -> int:
    level = logging.getLevelName(str(name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(log_path: Optional[str] = None, level: str = "INFO") -> logging.Logger:
    """Install a console handler and, if log_path is set, a rotating file handler."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(_level(level))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_path:
        path = Path(log_path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            str(path),
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)
    return root


def uvicorn_log_config(level: str = "INFO") -> Dict[str, Any]:
    """dictConfig for uvicorn that defers to the root handlers."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "loggers": {
            "uvicorn": {"level": str(level or "INFO").upper(), "handlers": [], "propagate": True},
            "uvicorn.error": {"level": str(level or "INFO").upper(), "handlers": [], "propagate": True},
            "uvicorn.access": {"level": str(level or "INFO").upper(), "handlers": [], "propagate": True},
        },
    }
