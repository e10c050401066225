"""Configuration and the abstract and story generation workflows."""

from .config import ConfigError, GenerationConfig, resolve_config
from .usage import Usage
from .abstract import AbstractGenerator, ChapterCountError
from .story import (
    ChapterFailurePolicy,
    ChapterGenerationError,
    StoryGenerationError,
    StoryGenerator,
)

__all__ = [
    "ConfigError",
    "GenerationConfig",
    "resolve_config",
    "Usage",
    "AbstractGenerator",
    "ChapterCountError",
    "ChapterFailurePolicy",
    "ChapterGenerationError",
    "StoryGenerationError",
    "StoryGenerator",
]
