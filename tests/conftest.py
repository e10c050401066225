"""Shared fixtures: a scripted stand-in for the Gemini client."""

import pytest

from aistory.ai.gemini_client import ModelCallResult
from aistory.core.config import GenerationConfig


def make_result(text, signature=b"sig", input_tokens=100, output_tokens=50, cost=0.001):
    return ModelCallResult(
        text=text,
        thought_signature=signature,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cost=cost,
    )


class FakeClient:
    """Answers each call from a script.

    The script is either a list consumed in order or a function of the
    prompt. Entries may be strings, ModelCallResults or exceptions to raise.
    """

    def __init__(self, script):
        self.script = script
        self.calls = []

    def call(self, prompt, model_name, thinking_level="", previous_turn=None, thought_signature=None):
        self.calls.append(
            {
                "prompt": prompt,
                "model_name": model_name,
                "thinking_level": thinking_level,
                "thought_signature": thought_signature,
            }
        )
        if callable(self.script):
            reply = self.script(prompt)
        else:
            reply = self.script.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, str):
            return make_result(reply, signature=f"sig-{len(self.calls)}".encode())
        return reply


@pytest.fixture
def config():
    return GenerationConfig(api_key="test-key", model_name="gemini-2.5-flash")


@pytest.fixture
def no_sleep():
    pauses = []
    return pauses, pauses.append
