"""The story output file: preamble, chapter blocks and resume scanning."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO, Union

logger = logging.getLogger(__name__)

SEPARATOR = "-" * 40
FAILED_MARKER = "[Generation Failed - Please review logs]"

CHAPTER_HEADER_RE = re.compile(r"^## Chapter (\d+)[ \t]*$", re.MULTILINE)
SEPARATOR_LINE_RE = re.compile(rf"^{SEPARATOR}[ \t]*$", re.MULTILINE)


class StoryFileError(OSError):
    """The story file could not be opened or written."""


@dataclass
class ChapterScan:
    """Result of scanning a story file for finished chapters."""

    count: int
    ambiguous: bool = False


def chapter_header(chapter_number: int) -> str:
    return f"## Chapter {chapter_number}\n\n"


def chapter_block(chapter_number: int, text: str) -> str:
    """Header plus trimmed chapter text, as written to the file."""
    return chapter_header(chapter_number) + text.strip() + "\n\n"


def placeholder_text(chapter_number: int, error: Exception) -> str:
    return f"Error generating Chapter {chapter_number}: {error}\n\n{FAILED_MARKER}"


def story_header(abstract: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return (
        f"--- Full Story: {now:%Y-%m-%d %H:%M:%S} ---\n\n"
        f"Story Plan Abstract:\n{abstract}\n\n"
        f"{SEPARATOR}\n\n"
    )


def _is_finished(body: str) -> bool:
    return bool(body.strip()) and FAILED_MARKER not in body


def chapters_start(text: str, abstract: Optional[str] = None) -> Optional[int]:
    """Offset just past the story preamble, or None when there is no preamble.

    With the abstract known, the exact 'Story Plan Abstract' block is looked
    up first, so separator lines inside the abstract are skipped over.
    """
    if abstract is not None:
        plan = f"Story Plan Abstract:\n{abstract}\n\n{SEPARATOR}\n"
        index = text.find(plan)
        if index != -1:
            return index + len(plan)
    match = SEPARATOR_LINE_RE.search(text)
    return match.end() if match else None


def scan_written_chapters(text: str, abstract: Optional[str] = None) -> ChapterScan:
    """Count the chapters fully written, reading only the '## Chapter N' headers.

    Only text after the preamble is read, since the abstract itself may carry
    chapter headers. Chapters must appear as 1, 2, 3... A failed or empty
    chapter may be followed by a later block for the same number, which
    replaces it. Any other ordering, or a non-empty file without a preamble,
    is reported as ambiguous.
    """
    if not text.strip():
        return ChapterScan(count=0)
    start = chapters_start(text, abstract)
    if start is None:
        logger.debug("No story preamble separator found")
        return ChapterScan(count=0, ambiguous=True)

    headers = list(CHAPTER_HEADER_RE.finditer(text, start))
    done = 0
    for index, match in enumerate(headers):
        number = int(match.group(1))
        end = headers[index + 1].start() if index + 1 < len(headers) else len(text)
        body = text[match.end():end]
        if number != done + 1:
            logger.debug(f"Chapter header {number} found where {done + 1} was expected")
            return ChapterScan(count=done, ambiguous=True)
        if _is_finished(body):
            done = number
    return ChapterScan(count=done)


class StoryWriter:
    """Append-only writer for the story file, flushed after every chapter."""

    def __init__(self, path: Union[str, Path], append: bool = False):
        self.path = Path(path)
        self.append = append
        self._handle: Optional[TextIO] = None

    def __enter__(self) -> "StoryWriter":
        mode = "a" if self.append else "w"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self.path.open(mode, encoding="utf-8")
        except OSError as e:
            raise StoryFileError(f"error opening/creating output file '{self.path}': {e}") from e
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def _write(self, text: str) -> None:
        if self._handle is None:
            raise StoryFileError(f"output file '{self.path}' is not open")
        try:
            self._handle.write(text)
            self._handle.flush()
        except OSError as e:
            raise StoryFileError(f"failed to write to output file '{self.path}': {e}") from e

    def write_header(self, abstract: str, now: Optional[datetime] = None) -> None:
        self._write(story_header(abstract, now))

    def write_chapter(self, chapter_number: int, text: str) -> str:
        """Write one chapter block and return exactly what was written."""
        block = chapter_block(chapter_number, text)
        self._write(block)
        return block
