"""Gemini client for aistory."""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from google import genai
from google.genai import types

from .pricing import UnsupportedModelError, compute_cost, get_model_prices

logger = logging.getLogger(__name__)

# Passing -1 as the thinking budget lets the model size its own reasoning
DYNAMIC_THINKING_BUDGET = -1


class GeminiError(RuntimeError):
    """Base class for failures talking to the Gemini API."""


class ClientCreationError(GeminiError):
    """The SDK client could not be constructed."""


class GenerationError(GeminiError):
    """The generate call itself failed."""


class EmptyResponseError(GeminiError):
    """The response carried no candidates or no content."""


@dataclass
class HistoryTurn:
    """A previous user/model exchange replayed to keep the thought chain."""

    user_prompt: str
    model_response: str
    thought_signature: Optional[bytes] = None


@dataclass
class ModelCallResult:
    """Outcome of a single successful generation call."""

    text: str
    thought_signature: Optional[bytes] = None
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0


def supports_thinking_level(model_name: str) -> bool:
    """Whether the model takes a named thinking level instead of a budget."""
    return model_name.startswith("gemini-3")


class GeminiClient:
    """Client for generating text with Gemini, with cost accounting."""

    def __init__(self, api_key: str, dump_dir: Optional[Union[str, Path]] = None):
        if not api_key:
            raise ValueError("api_key is required")
        self.api_key = api_key
        self.dump_dir = Path(dump_dir) if dump_dir else None
        self._client = None

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            try:
                self._client = genai.Client(api_key=self.api_key)
            except Exception as e:
                raise ClientCreationError(f"error creating Gemini client: {e}") from e
        return self._client

    def build_contents(
        self,
        prompt: str,
        previous_turn: Optional[HistoryTurn] = None,
        thought_signature: Optional[bytes] = None,
    ) -> List[types.Content]:
        """Assemble the request history followed by the current prompt."""
        contents = []
        if previous_turn is not None:
            contents.append(
                types.Content(role="user", parts=[types.Part(text=previous_turn.user_prompt)])
            )
            contents.append(
                types.Content(
                    role="model",
                    parts=[
                        types.Part(
                            text=previous_turn.model_response,
                            thought_signature=previous_turn.thought_signature or None,
                        )
                    ],
                )
            )
        contents.append(
            types.Content(
                role="user",
                parts=[types.Part(text=prompt, thought_signature=thought_signature or None)],
            )
        )
        return contents

    def build_config(self, model_name: str, thinking_level: str = "") -> types.GenerateContentConfig:
        """Named thinking level where the model accepts one, dynamic budget otherwise."""
        if thinking_level and supports_thinking_level(model_name):
            thinking = types.ThinkingConfig(thinking_level=thinking_level.upper())
        else:
            thinking = types.ThinkingConfig(thinking_budget=DYNAMIC_THINKING_BUDGET)
        return types.GenerateContentConfig(thinking_config=thinking)

    def count_tokens(self, model_name: str, contents: List[types.Content]) -> int:
        """Count prompt tokens; 0 when counting fails."""
        try:
            response = self.client.models.count_tokens(model=model_name, contents=contents)
        except ClientCreationError:
            raise
        except Exception as e:
            logger.warning(
                f"Failed to count input tokens for prompt: {e}. "
                "Proceeding with generation and assuming 0 input tokens for cost calculation."
            )
            return 0
        return response.total_tokens or 0

    def call(
        self,
        prompt: str,
        model_name: str,
        thinking_level: str = "",
        previous_turn: Optional[HistoryTurn] = None,
        thought_signature: Optional[bytes] = None,
    ) -> ModelCallResult:
        """Send one prompt to Gemini and return text, signature, tokens and cost."""
        logger.info(
            f"Gemini API call: model '{model_name}', thinking level '{thinking_level}', "
            f"prompt length {len(prompt)} characters"
        )
        client = self.client
        contents = self.build_contents(prompt, previous_turn, thought_signature)
        config = self.build_config(model_name, thinking_level)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S.%f")
        self._dump_request(stamp, contents)

        input_tokens = self.count_tokens(model_name, contents)
        logger.debug(f"Input token count: {input_tokens}")

        try:
            prices = get_model_prices(model_name, input_tokens)
        except UnsupportedModelError as e:
            logger.warning(f"Could not get pricing for model '{model_name}': {e}. Cost will be reported as 0.")
            prices = None

        try:
            response = client.models.generate_content(
                model=model_name, contents=contents, config=config
            )
        except Exception as e:
            logger.error(f"Error generating content with model '{model_name}': {e}")
            raise GenerationError(f"error generating content from Gemini: {e}") from e

        self._dump_response(stamp, response)

        candidates = response.candidates or []
        if not candidates or candidates[0].content is None or not candidates[0].content.parts:
            raise EmptyResponseError("no content generated from Gemini for the given prompt")

        text = response.text or ""
        signature = candidates[0].content.parts[0].thought_signature

        output_tokens = 0
        if response.usage_metadata is not None:
            output_tokens = response.usage_metadata.candidates_token_count or 0
        else:
            logger.warning("Response carried no usage metadata; output tokens will be 0 for cost calculation.")

        cost = compute_cost(input_tokens, output_tokens, prices)
        logger.info(
            f"Gemini API call to '{model_name}' completed. Input tokens: {input_tokens}, "
            f"Output tokens: {output_tokens}, Cost: ${cost:.6f}"
        )
        return ModelCallResult(
            text=text,
            thought_signature=signature,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=cost,
        )

    def _dump_request(self, stamp: str, contents: List[types.Content]) -> None:
        if self.dump_dir is None:
            return
        path = self.dump_dir / f"gemini_req_{stamp}.json"
        try:
            body = [content.model_dump(mode="json", exclude_none=True) for content in contents]
            self.dump_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(body, indent=2, ensure_ascii=False), encoding="utf-8")
            logger.debug(f"Request body saved to: {path}")
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to write Gemini request body to '{path}': {e}")

    def _dump_response(self, stamp: str, response: types.GenerateContentResponse) -> None:
        if self.dump_dir is None:
            return
        path = self.dump_dir / f"gemini_resp_{stamp}.json"
        try:
            self.dump_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(response.model_dump_json(indent=2, exclude_none=True), encoding="utf-8")
            logger.debug(f"Response body saved to: {path}")
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to write Gemini response body to '{path}': {e}")
