"""Full story generation, one chapter at a time, from an abstract file."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Union

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from ..ai.gemini_client import GeminiError, ModelCallResult
from ..io.abstract_file import read_abstract_file
from ..io.story_file import (
    StoryFileError,
    StoryWriter,
    placeholder_text,
    scan_written_chapters,
)
from . import prompts
from .abstract import ChapterCount, ChapterCountError, request_chapter_count
from .config import GenerationConfig
from .usage import Usage

logger = logging.getLogger(__name__)

DEFAULT_WORDS_PER_CHAPTER = 5000
MAX_CHAPTER_RETRIES = 3
RETRY_WAIT_SECONDS = 2.0
CHAPTER_PAUSE_SECONDS = 1.0

_ABSTRACT_SUFFIXES = (".json", ".yaml", ".yml")


class ChapterFailurePolicy(str, Enum):
    """What to do once a chapter has exhausted its retries."""

    ABORT = "abort"
    PLACEHOLDER = "placeholder"


class StoryGenerationError(Exception):
    """The story run cannot continue."""


class ChapterGenerationError(StoryGenerationError):
    """A chapter failed on every attempt."""

    def __init__(self, chapter_number: int, attempts: int, error: Exception):
        super().__init__(f"failed to generate Chapter {chapter_number} after {attempts} attempts: {error}")
        self.chapter_number = chapter_number
        self.attempts = attempts
        self.error = error


@dataclass
class StoryProgressState:
    """Mutable state of one story run."""

    chapters_already_written: int = 0
    first_new_chapter: int = 1
    usage: Usage = field(default_factory=Usage)
    previous_chapters: str = ""
    last_thought_signature: Optional[bytes] = None
    append: bool = False


@dataclass
class StoryOutcome:
    output_path: Path
    total_chapters: int
    chapters_written: int
    usage: Usage
    failed_chapters: List[int] = field(default_factory=list)


def output_path_for(
    abstract_path: Union[str, Path],
    output: Optional[Union[str, Path]] = None,
    now: Optional[datetime] = None,
) -> Path:
    """Explicit output wins; abstract-X.yaml maps to fulltext-X.txt beside it."""
    if output:
        return Path(output)
    path = Path(abstract_path)
    if path.name.lower().startswith("abstract-"):
        name = "fulltext-" + path.name[len("abstract-"):]
        for suffix in _ABSTRACT_SUFFIXES:
            if name.lower().endswith(suffix):
                name = name[: -len(suffix)] + ".txt"
                break
        return path.parent / name
    now = now or datetime.now()
    return Path(f"fulltext-{now:%Y-%m-%d-%H-%M-%S}.txt")


class StoryGenerator:
    """Writes a story chapter by chapter, resuming from an existing output file."""

    def __init__(
        self,
        client,
        config: GenerationConfig,
        words_per_chapter: int = DEFAULT_WORDS_PER_CHAPTER,
        failure_policy: ChapterFailurePolicy = ChapterFailurePolicy.ABORT,
        max_retries: int = MAX_CHAPTER_RETRIES,
        retry_wait: float = RETRY_WAIT_SECONDS,
        chapter_pause: float = CHAPTER_PAUSE_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        log: Optional[logging.Logger] = None,
    ):
        if words_per_chapter <= 0:
            raise ValueError("words_per_chapter must be a positive number")
        self.client = client
        self.config = config
        self.words_per_chapter = words_per_chapter
        self.failure_policy = ChapterFailurePolicy(failure_policy)
        self.max_retries = max_retries
        self.retry_wait = retry_wait
        self.chapter_pause = chapter_pause
        self._sleep = sleep
        self.log = log or logger

    def determine_total_chapters(self, abstract: str) -> ChapterCount:
        """Ask the model how many chapters the abstract plans. Zero is fatal."""
        self.log.info("Asking the model for the total number of planned chapters...")
        try:
            counted = request_chapter_count(
                self.client, self.config, prompts.chapter_count_prompt(abstract), "chapter count"
            )
        except (ChapterCountError, GeminiError) as e:
            raise StoryGenerationError(f"failed to get total chapter count for story generation: {e}") from e
        if counted.count == 0:
            raise StoryGenerationError(
                "model returned 0 planned chapters for the abstract; cannot proceed with story generation"
            )
        self.log.info(f"Total chapters planned: {counted.count}. {counted.usage}")
        return counted

    def scan_progress(self, output_path: Union[str, Path], abstract: Optional[str] = None) -> StoryProgressState:
        """Work out where to resume from an existing output file.

        An output file that cannot be read or decoded is started over.
        """
        path = Path(output_path)
        state = StoryProgressState()
        if not path.exists():
            self.log.info(f"Output file '{path}' does not exist. Starting from Chapter 1.")
            return state

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self.log.warning(f"Failed to read existing file '{path}': {e}. Starting from Chapter 1.")
            return state

        scan = scan_written_chapters(text, abstract)
        if scan.ambiguous:
            self.log.info(f"Chapter headers in '{path}' could not be read in order; asking the model which chapter is last.")
            written = self._ask_written_count(text, state)
        else:
            written = scan.count

        if written <= 0:
            self.log.info(f"No complete chapters found in '{path}'. Starting from Chapter 1.")
            return state

        state.chapters_already_written = written
        state.first_new_chapter = written + 1
        state.append = True
        state.previous_chapters = text
        self.log.info(f"Detected {written} chapters already written in '{path}'. Resuming from Chapter {written + 1}.")
        return state

    def _ask_written_count(self, text: str, state: StoryProgressState) -> int:
        try:
            counted = request_chapter_count(
                self.client, self.config, prompts.written_chapters_prompt(text), "written chapter count"
            )
        except ChapterCountError as e:
            state.usage.add(e.usage)
            self.log.warning(f"{e}. Assuming 0 chapters written.")
            return 0
        except GeminiError as e:
            self.log.warning(f"Failed to get written chapter count: {e}. Assuming 0 chapters written.")
            return 0
        state.usage.add(counted.usage)
        return counted.count

    def generate_chapter(self, chapter_number: int, abstract: str, state: StoryProgressState) -> ModelCallResult:
        """One chapter, retried with a fixed pause. Raises the last error once retries run out."""
        prompt = prompts.chapter_prompt(chapter_number, self.words_per_chapter, abstract, state.previous_chapters)

        def log_retry(retry_state):
            self.log.warning(
                f"Retrying Chapter {chapter_number} (attempt {retry_state.attempt_number + 1}/"
                f"{self.max_retries + 1}) after failure: {retry_state.outcome.exception()}"
            )

        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_fixed(self.retry_wait),
            retry=retry_if_exception_type(GeminiError),
            before_sleep=log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        return retrying(
            self.client.call,
            prompt,
            self.config.model_name,
            self.config.thinking_level,
            thought_signature=state.last_thought_signature,
        )

    def write_chapters(self, writer: StoryWriter, abstract: str, total_chapters: int, state: StoryProgressState) -> List[int]:
        """Generate chapters first_new_chapter..total_chapters. Returns the numbers that failed."""
        failed = []
        self.log.info(
            f"Generating Chapter {state.first_new_chapter} to Chapter {total_chapters}, "
            f"aiming for {self.words_per_chapter} words per chapter"
        )
        for chapter_number in range(state.first_new_chapter, total_chapters + 1):
            self.log.info(f"Generating Chapter {chapter_number} (out of {total_chapters})")
            try:
                result = self.generate_chapter(chapter_number, abstract, state)
            except GeminiError as e:
                attempts = self.max_retries + 1
                if self.failure_policy is ChapterFailurePolicy.ABORT:
                    self.log.error(f"Chapter {chapter_number} failed after {attempts} attempts: {e}. Aborting.")
                    raise ChapterGenerationError(chapter_number, attempts, e) from e
                self.log.error(f"Chapter {chapter_number} failed after {attempts} attempts: {e}. Writing placeholder.")
                failed.append(chapter_number)
                block = writer.write_chapter(chapter_number, placeholder_text(chapter_number, e))
                state.previous_chapters += block
                state.last_thought_signature = None
                continue

            block = writer.write_chapter(chapter_number, result.text)
            state.usage.add(result)
            state.previous_chapters += block
            state.last_thought_signature = result.thought_signature
            self.log.info(
                f"Chapter {chapter_number} written. Input {result.input_tokens}, Output {result.output_tokens}, "
                f"Cost ${result.cost:.6f}. Accumulated: {state.usage}"
            )
            if chapter_number < total_chapters:
                self._sleep(self.chapter_pause)
        return failed

    def run(self, abstract_path: Union[str, Path], output: Optional[Union[str, Path]] = None) -> StoryOutcome:
        """Read the abstract, resume or start the output file, and write every remaining chapter."""
        record = read_abstract_file(abstract_path)
        if not record.abstract.strip():
            raise StoryGenerationError(f"abstract file '{abstract_path}' is empty")

        total = self.determine_total_chapters(record.abstract)
        output_path = output_path_for(abstract_path, output)
        state = self.scan_progress(output_path, record.abstract)
        state.usage.add(total.usage)

        if state.first_new_chapter > total.count:
            self.log.info(f"All {total.count} chapters are already written in '{output_path}'.")

        try:
            with StoryWriter(output_path, append=state.append) as writer:
                if state.chapters_already_written == 0:
                    writer.write_header(record.abstract)
                failed = self.write_chapters(writer, record.abstract, total.count, state)
        except StoryFileError as e:
            raise StoryGenerationError(str(e)) from e

        written = max(0, total.count - state.first_new_chapter + 1) - len(failed)
        self.log.info(f"Full story saved to: {output_path}. Total: {state.usage}")
        return StoryOutcome(
            output_path=output_path,
            total_chapters=total.count,
            chapters_written=written,
            usage=state.usage,
            failed_chapters=failed,
        )
