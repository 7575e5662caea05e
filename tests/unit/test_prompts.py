# pylint: disable=missing-module-docstring,missing-function-docstring
import pytest

from adapters.llm.prompts import build_prompt, fence_input
from store.session_store import SessionMode


def test_input_is_wrapped_verbatim_in_fence():
    assert fence_input("a = 1\n  b = 2") == "```\na = 1\n  b = 2\n```"


@pytest.mark.parametrize(
    ("mode", "marker"),
    [
        (SessionMode.DEBUG, "Find bugs"),
        (SessionMode.GENERATE, "Generate working"),
        (SessionMode.EXPLAIN, "line by line"),
    ],
)
def test_each_mode_has_its_own_instructions(mode: SessionMode, marker: str):
    prompt = build_prompt(mode, "x = 1")

    assert marker in prompt
    assert "```\nx = 1\n```" in prompt


def test_image_prompt_names_framework():
    prompt = build_prompt(
        SessionMode.GENERATE, "dark theme", has_image=True, framework="React"
    )

    assert "React" in prompt
    assert "attached image" in prompt
    assert "```\ndark theme\n```" in prompt
