"""
Mode-specific instruction prompts.

User input is always placed verbatim inside a fenced block so the model
can tell instructions and input apart.
"""

from __future__ import annotations

from constants import DEFAULT_GENERATE_FRAMEWORK, FENCE
from store.session_store import SessionMode


PROMPT_VERSION: str = "v1"


DEBUG_PROMPT: str = """
You are an expert software engineer. Analyze the following code:
1. Find bugs or issues.
2. Explain the code.
3. Suggest improvements.
4. Provide a fixed version (in markdown code blocks).

Code:
{input_block}
"""

GENERATE_PROMPT: str = """
You are an expert software engineer. Generate working, clean, and optimized code based on the following description:
{input_block}
Provide the output in markdown code blocks.
"""

GENERATE_FROM_IMAGE_PROMPT: str = """
Generate a responsive {framework} UI that matches the attached image design.
If a text description is given, use it for additional context:
{input_block}
Return ONLY the full working code inside markdown fences.
"""

EXPLAIN_PROMPT: str = """
You are an expert software engineer. Explain the following code **line by line**, including logic and potential improvements:
{input_block}
"""


def fence_input(text: str) -> str:
    """Wrap user input in a delimited block, verbatim."""
    return f"{FENCE}\n{text}\n{FENCE}"


def build_prompt(
    mode: SessionMode,
    input_text: str,
    *,
    has_image: bool = False,
    framework: str = DEFAULT_GENERATE_FRAMEWORK,
) -> str:
    """Return the full instruction prompt for mode."""
    input_block = fence_input(input_text)

    if mode is SessionMode.DEBUG:
        return DEBUG_PROMPT.format(input_block=input_block)

    if mode is SessionMode.GENERATE:
        if has_image:
            return GENERATE_FROM_IMAGE_PROMPT.format(
                framework=framework, input_block=input_block
            )
        return GENERATE_PROMPT.format(input_block=input_block)

    if mode is SessionMode.EXPLAIN:
        return EXPLAIN_PROMPT.format(input_block=input_block)

    raise ValueError(mode)
