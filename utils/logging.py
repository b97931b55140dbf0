import logging
import sys
from typing import Optional


class _EventFormatter(logging.Formatter):
    """
    Appends structured `extra` fields (event, storage_key, ...) to the line.
    """

    _FIELDS = ("event", "storage_key", "issue_id", "comment_id", "attachment_id")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = [f"{name}={getattr(record, name)}" for name in self._FIELDS if hasattr(record, name)]
        if extras:
            line = f"{line} | {' '.join(extras)}"
        return line


def setup_logging(level: Optional[str] = "INFO") -> None:
    """
    Configure application-wide logging.
    Uses a concise formatter compatible with Uvicorn's style.
    """
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicates in reloads
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    formatter = _EventFormatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
