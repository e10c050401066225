"""
aistory - Generate story abstracts and full chaptered stories with Gemini.
"""

__version__ = "1.0.0"

from .core import AbstractGenerator, GenerationConfig, StoryGenerator, resolve_config
from .ai import GeminiClient

__all__ = [
    "AbstractGenerator",
    "GenerationConfig",
    "StoryGenerator",
    "resolve_config",
    "GeminiClient",
]
