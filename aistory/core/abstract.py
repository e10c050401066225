"""Story abstract (chaptered outline) generation."""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple, Union

from ..ai.gemini_client import GeminiError
from ..io.abstract_file import AbstractRecord, write_abstract_file
from . import prompts
from .config import GenerationConfig
from .usage import Usage

logger = logging.getLogger(__name__)

MIN_RANDOM_CHAPTERS = 20
MAX_RANDOM_CHAPTERS = 40


class ChapterCountError(ValueError):
    """The model did not answer with a usable chapter count."""

    def __init__(self, message: str, usage: Optional[Usage] = None):
        super().__init__(message)
        self.usage = usage or Usage()


@dataclass
class ChapterCount:
    count: int
    usage: Usage = field(default_factory=Usage)


@dataclass
class AbstractOutcome:
    """What one abstract run produced."""

    record: AbstractRecord
    output_path: Path
    num_chapters: int
    usage: Usage
    chapter_count: Optional[int] = None
    chapter_count_error: Optional[str] = None


def pick_chapter_count(requested: int, rng: Optional[random.Random] = None) -> int:
    """Use the requested count, or a random one in [20, 40] when it is 0."""
    if requested < 0:
        raise ValueError("chapter count cannot be negative")
    if requested:
        logger.info(f"Using specified number of chapters: {requested}")
        return requested
    rng = rng or random.Random()
    chosen = rng.randint(MIN_RANDOM_CHAPTERS, MAX_RANDOM_CHAPTERS)
    logger.info(f"Number of chapters not specified. Picked {chosen} at random.")
    return chosen


def default_abstract_path(now: Optional[datetime] = None) -> Path:
    now = now or datetime.now()
    return Path(f"abstract-{now:%Y-%m-%d-%H-%M-%S}.yaml")


def request_chapter_count(client, config: GenerationConfig, prompt: str, what: str) -> ChapterCount:
    """Ask the model a question whose answer is a bare non-negative integer."""
    result = client.call(prompt, config.model_name, config.thinking_level)
    usage = Usage().add(result)
    try:
        count = prompts.parse_integer_reply(result.text)
    except ValueError as e:
        raise ChapterCountError(f"could not parse {what}: {e}", usage) from e
    if count < 0:
        raise ChapterCountError(f"model returned a negative {what}: {count}", usage)
    return ChapterCount(count=count, usage=usage)


class AbstractGenerator:
    """Generates a story plan and asks the model how many chapters it holds."""

    def __init__(self, client, config: GenerationConfig):
        self.client = client
        self.config = config

    def generate(self, instruction: str, language: str, num_chapters: int) -> Tuple[AbstractRecord, Usage]:
        prompt = prompts.abstract_prompt(instruction, language, num_chapters)
        logger.info(
            f"Generating abstract with model {self.config.model_name}, "
            f"language: {language}, chapters: {num_chapters}"
        )
        result = self.client.call(prompt, self.config.model_name, self.config.thinking_level)
        if not result.text.strip():
            raise ValueError("model returned an empty abstract")
        usage = Usage().add(result)
        logger.info(f"Abstract generation complete. {usage}")
        return AbstractRecord(abstract=result.text, thought_signature=result.thought_signature or b""), usage

    def count_chapters(self, abstract: str) -> ChapterCount:
        """Second, independent call: how many chapters does the abstract plan?"""
        logger.info("Asking the model for the pure chapter count of the abstract...")
        return request_chapter_count(
            self.client, self.config, prompts.chapter_count_prompt(abstract), "chapter count"
        )

    def run(
        self,
        instruction: str,
        language: str,
        num_chapters: int,
        output_path: Optional[Union[str, Path]] = None,
        rng: Optional[random.Random] = None,
    ) -> AbstractOutcome:
        """Generate, save, then count. A failed count leaves the saved abstract in place."""
        num_chapters = pick_chapter_count(num_chapters, rng)
        record, usage = self.generate(instruction, language, num_chapters)

        path = write_abstract_file(
            output_path or default_abstract_path(), record.abstract, record.thought_signature
        )
        outcome = AbstractOutcome(record=record, output_path=path, num_chapters=num_chapters, usage=usage)

        try:
            counted = self.count_chapters(record.abstract)
        except (ChapterCountError, GeminiError) as e:
            # tokens spent on a failed count stay out of the total
            outcome.chapter_count_error = str(e)
            logger.warning(f"Failed to get pure chapter count: {e}. Proceeding without it.")
        else:
            usage.add(counted.usage)
            outcome.chapter_count = counted.count
            logger.info(f"Pure chapter count: {counted.count}. {counted.usage}")

        logger.info(f"Total for abstract generation: {usage}")
        return outcome
