"""Generation settings: API key, model name and thinking level."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

logger = logging.getLogger(__name__)

API_KEY_ENV = "GEMINI_API_KEY"
DEFAULT_MODEL = "gemini-2.5-flash"


class ConfigError(Exception):
    """No usable API key could be resolved."""


@dataclass(frozen=True)
class GenerationConfig:
    """Settings for every model call in one invocation."""

    api_key: str = field(repr=False)
    model_name: str = DEFAULT_MODEL
    thinking_level: str = ""


def load_config_file(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Read the JSON config file."""
    path = Path(config_path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"failed to read config file '{path}': {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"failed to parse config file '{path}': {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file '{path}' must contain a JSON object")
    return data


def resolve_config(
    config_path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> GenerationConfig:
    """Resolve settings from the config file, the environment and defaults."""
    environ = os.environ if environ is None else environ
    env_key = (environ.get(API_KEY_ENV) or "").strip()

    if not config_path:
        logger.info(
            f"No --config file specified. Using {API_KEY_ENV} environment variable and default model '{DEFAULT_MODEL}'."
        )
        if not env_key:
            raise ConfigError(
                f"{API_KEY_ENV} environment variable is not set. "
                f"Please set {API_KEY_ENV} or provide a valid --config file"
            )
        return GenerationConfig(api_key=env_key, model_name=DEFAULT_MODEL)

    try:
        data = load_config_file(config_path)
    except ConfigError as e:
        logger.warning(
            f"Could not load configuration from '{config_path}': {e}. "
            f"Falling back to {API_KEY_ENV} and default model '{DEFAULT_MODEL}'."
        )
        if not env_key:
            raise ConfigError(
                f"{API_KEY_ENV} environment variable is not set, and the config file '{config_path}' "
                f"could not be loaded. Please set {API_KEY_ENV} or provide a valid --config file"
            ) from e
        return GenerationConfig(api_key=env_key, model_name=DEFAULT_MODEL)

    api_key = str(data.get("api_key") or "").strip()
    model_name = str(data.get("model_name") or "").strip()
    thinking_level = str(data.get("thinking_level") or "").strip()

    if not api_key:
        logger.warning(f"API key is missing in config file '{config_path}'. Trying {API_KEY_ENV}.")
        if not env_key:
            raise ConfigError(
                f"API key is missing in the config file and {API_KEY_ENV} is not set. Please provide an API key"
            )
        api_key = env_key

    if not model_name:
        logger.warning(f"Model name not specified in config '{config_path}'. Using default: {DEFAULT_MODEL}")
        model_name = DEFAULT_MODEL

    return GenerationConfig(api_key=api_key, model_name=model_name, thinking_level=thinking_level)
