"""Tests for the Gemini client wrapper, with the SDK client mocked out."""

from unittest.mock import MagicMock

import pytest
from google.genai import types

from aistory.ai import gemini_client
from aistory.ai.gemini_client import (
    ClientCreationError,
    EmptyResponseError,
    GeminiClient,
    GenerationError,
    HistoryTurn,
    supports_thinking_level,
)


def make_response(text="Once upon a time", signature=b"\x01\x02", output_tokens=42, candidates=True):
    if not candidates:
        return types.GenerateContentResponse(candidates=[])
    part = types.Part(text=text, thought_signature=signature)
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=[part]))],
        usage_metadata=types.GenerateContentResponseUsageMetadata(candidates_token_count=output_tokens),
    )


@pytest.fixture
def sdk(monkeypatch):
    """The mocked google.genai client instance."""
    instance = MagicMock()
    instance.models.count_tokens.return_value = types.CountTokensResponse(total_tokens=1000)
    instance.models.generate_content.return_value = make_response()
    monkeypatch.setattr(gemini_client.genai, "Client", MagicMock(return_value=instance))
    return instance


def test_requires_api_key():
    with pytest.raises(ValueError):
        GeminiClient("")


def test_call_returns_text_signature_and_cost(sdk):
    client = GeminiClient("key")
    result = client.call("Write something", "gemini-2.5-flash")

    assert result.text == "Once upon a time"
    assert result.thought_signature == b"\x01\x02"
    assert result.input_tokens == 1000
    assert result.output_tokens == 42
    assert result.cost == pytest.approx(1000 * 0.30 / 1e6 + 42 * 2.50 / 1e6)
    gemini_client.genai.Client.assert_called_once_with(api_key="key")


def test_thinking_level_used_for_gemini_3(sdk):
    GeminiClient("key").call("prompt", "gemini-3-pro-preview", thinking_level="high")
    config = sdk.models.generate_content.call_args.kwargs["config"]
    assert config.thinking_config.thinking_level == "HIGH"
    assert config.thinking_config.thinking_budget is None


def test_dynamic_budget_for_other_models(sdk):
    GeminiClient("key").call("prompt", "gemini-2.5-pro", thinking_level="high")
    config = sdk.models.generate_content.call_args.kwargs["config"]
    assert config.thinking_config.thinking_budget == -1
    assert config.thinking_config.thinking_level is None


def test_dynamic_budget_without_level(sdk):
    GeminiClient("key").call("prompt", "gemini-3-pro-preview")
    config = sdk.models.generate_content.call_args.kwargs["config"]
    assert config.thinking_config.thinking_budget == -1


def test_supports_thinking_level():
    assert supports_thinking_level("gemini-3-pro-preview")
    assert not supports_thinking_level("gemini-2.5-flash")


def test_signature_attached_to_current_prompt(sdk):
    GeminiClient("key").call("next chapter", "gemini-2.5-flash", thought_signature=b"prev")
    contents = sdk.models.generate_content.call_args.kwargs["contents"]
    assert len(contents) == 1
    assert contents[0].role == "user"
    assert contents[0].parts[0].text == "next chapter"
    assert contents[0].parts[0].thought_signature == b"prev"


def test_previous_turn_is_replayed(sdk):
    turn = HistoryTurn(user_prompt="first", model_response="reply", thought_signature=b"s1")
    GeminiClient("key").call("second", "gemini-2.5-flash", previous_turn=turn)
    contents = sdk.models.generate_content.call_args.kwargs["contents"]
    assert [c.role for c in contents] == ["user", "model", "user"]
    assert contents[1].parts[0].text == "reply"
    assert contents[1].parts[0].thought_signature == b"s1"
    assert contents[2].parts[0].thought_signature is None


def test_count_failure_means_zero_input_tokens(sdk):
    sdk.models.count_tokens.side_effect = RuntimeError("quota")
    result = GeminiClient("key").call("prompt", "gemini-2.5-flash")
    assert result.input_tokens == 0
    assert result.output_tokens == 42


def test_unknown_model_costs_nothing(sdk):
    result = GeminiClient("key").call("prompt", "some-other-model")
    assert result.cost == 0.0
    assert result.text == "Once upon a time"


def test_generate_failure_raises(sdk):
    sdk.models.generate_content.side_effect = RuntimeError("503 unavailable")
    with pytest.raises(GenerationError, match="503 unavailable"):
        GeminiClient("key").call("prompt", "gemini-2.5-flash")


def test_empty_candidates_raise(sdk):
    sdk.models.generate_content.return_value = make_response(candidates=False)
    with pytest.raises(EmptyResponseError):
        GeminiClient("key").call("prompt", "gemini-2.5-flash")


def test_missing_usage_metadata_means_zero_output_tokens(sdk):
    part = types.Part(text="text without usage")
    sdk.models.generate_content.return_value = types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=[part]))]
    )
    result = GeminiClient("key").call("prompt", "gemini-2.5-flash")
    assert result.output_tokens == 0


def test_client_creation_failure(monkeypatch):
    monkeypatch.setattr(gemini_client.genai, "Client", MagicMock(side_effect=RuntimeError("bad key")))
    with pytest.raises(ClientCreationError):
        GeminiClient("key").call("prompt", "gemini-2.5-flash")


def test_dump_dir_receives_request_and_response(sdk, tmp_path):
    dump_dir = tmp_path / "dumps"
    GeminiClient("key", dump_dir=dump_dir).call("prompt", "gemini-2.5-flash")
    assert len(list(dump_dir.glob("gemini_req_*.json"))) == 1
    assert len(list(dump_dir.glob("gemini_resp_*.json"))) == 1
