"""Runtime configuration and logging setup."""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_DB_PATH = str(Path.home() / ".recall_scheduler" / "reviews.db")
DEFAULT_LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


@dataclass(frozen=True)
class Settings:
    """Settings loaded from environment variables."""

    db_path: str = DEFAULT_DB_PATH
    log_level: str = DEFAULT_LOG_LEVEL
    max_session_size: Optional[int] = None

    @classmethod
    def from_env(cls) -> "Settings":
        db_path = os.getenv("RECALL_DB_PATH", DEFAULT_DB_PATH)
        log_level = os.getenv("RECALL_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
        if log_level not in logging.getLevelNamesMapping():
            raise RuntimeError(f"RECALL_LOG_LEVEL is not a valid level: {log_level}")

        max_session_size = None
        raw_max = os.getenv("RECALL_MAX_SESSION_SIZE")
        if raw_max:
            try:
                max_session_size = int(raw_max)
            except ValueError as exc:
                raise RuntimeError("RECALL_MAX_SESSION_SIZE must be an integer.") from exc
            if max_session_size < 1:
                raise RuntimeError("RECALL_MAX_SESSION_SIZE must be a positive integer.")

        return cls(db_path=db_path, log_level=log_level, max_session_size=max_session_size)


def configure_logging(log_level: str = DEFAULT_LOG_LEVEL) -> None:
    logging.basicConfig(format=LOG_FORMAT, level=log_level)
