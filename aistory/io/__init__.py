"""File I/O for abstracts, story output and run logs."""

from .abstract_file import AbstractFileError, AbstractRecord, read_abstract_file, write_abstract_file
from .story_file import StoryFileError, StoryWriter, scan_written_chapters

__all__ = [
    "AbstractFileError",
    "AbstractRecord",
    "read_abstract_file",
    "write_abstract_file",
    "StoryFileError",
    "StoryWriter",
    "scan_written_chapters",
]
