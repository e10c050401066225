"""Per-run log file for story generation."""

import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional, Union

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_ABSTRACT_SUFFIXES = (".txt", ".json", ".yaml", ".yml")


def story_log_path(abstract_path: Union[str, Path], now: Optional[datetime] = None) -> Path:
    """log-<stem>.log beside an abstract-<stem> file, story-log-<timestamp>.log otherwise."""
    path = Path(abstract_path)
    name = path.name
    lower = name.lower()
    if lower.startswith("abstract-") and lower.endswith(_ABSTRACT_SUFFIXES):
        stem = name[len("abstract-"):].rsplit(".", 1)[0]
        return path.parent / f"log-{stem}.log"
    now = now or datetime.now()
    return Path(f"story-log-{now:%Y-%m-%d-%H-%M-%S}.log")


@contextmanager
def run_log(log_path: Optional[Union[str, Path]], logger_name: str = "aistory") -> Iterator[logging.Logger]:
    """Tee a logger into a file for the duration of the block.

    The handler is always detached and closed on exit. Yields the logger so
    callers can pass it on explicitly. A file that cannot be opened only
    costs a warning.
    """
    target = logging.getLogger(logger_name)
    handler = None
    if log_path is not None:
        try:
            handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        except OSError as e:
            logger.warning(f"Failed to open log file '{log_path}': {e}. Logging continues to stderr only.")
        else:
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            target.addHandler(handler)
            logger.info(f"Logging to file: {log_path}")
    try:
        yield target
    finally:
        if handler is not None:
            target.removeHandler(handler)
            handler.close()
