"""
Markdown code-block extraction.

Splits a raw model response into an ordered sequence of text and code
blocks.

Rules:
- Single left-to-right regex scan; fences never nest. A fence marker
  inside a code block closes that block.
- Pure and deterministic: no IO, no logging.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Literal, Union

from constants import DEFAULT_CODE_LANGUAGE, FENCE


# Opening fence, optional language tag, newline, lazily matched body,
# closing fence.
_FENCE_RE = re.compile(r"```(\w+)?\n(.*?)```", re.DOTALL)


# =============================================================================
# Blocks
# =============================================================================

@dataclass(frozen=True)
class TextBlock:
    """Prose segment between fences."""
    content: str
    kind: Literal["text"] = "text"


@dataclass(frozen=True)
class CodeBlock:
    """Fenced code segment."""
    language: str
    content: str
    kind: Literal["code"] = "code"


Block = Union[TextBlock, CodeBlock]


def block_to_document(block: Block) -> dict[str, Any]:
    """Serialize a block to a plain dict (persistence / JSON responses)."""
    if isinstance(block, CodeBlock):
        return {"type": "code", "language": block.language, "content": block.content}
    return {"type": "text", "content": block.content}


def block_from_document(doc: dict[str, Any]) -> Block:
    """Inverse of block_to_document."""
    if doc.get("type") == "code":
        return CodeBlock(
            language=doc.get("language") or DEFAULT_CODE_LANGUAGE,
            content=doc.get("content", ""),
        )
    return TextBlock(content=doc.get("content", ""))


# =============================================================================
# Parsing
# =============================================================================

def parse(text: str) -> tuple[Block, ...]:
    """
    Split text into ordered text/code blocks.

    - Trimmed, non-empty text before a fence becomes a TextBlock.
    - Fenced content (trimmed) becomes a CodeBlock tagged with the
      declared language, or "text" when the fence has no tag.
    - Trailing text after the last fence becomes a final TextBlock.

    parse("") == ()
    """
    blocks: list[Block] = []
    last_index = 0

    for match in _FENCE_RE.finditer(text):
        before = text[last_index:match.start()].strip()
        if before:
            blocks.append(TextBlock(content=before))

        blocks.append(
            CodeBlock(
                language=match.group(1) or DEFAULT_CODE_LANGUAGE,
                content=match.group(2).strip(),
            )
        )
        last_index = match.end()

    after = text[last_index:].strip()
    if after:
        blocks.append(TextBlock(content=after))

    return tuple(blocks)


def render(blocks: tuple[Block, ...] | list[Block]) -> str:
    """
    Re-assemble blocks into markdown.

    Code blocks are re-wrapped in fences; segments are joined with a
    newline. parse(render(parse(text))) == parse(text).
    """
    parts: list[str] = []
    for block in blocks:
        if isinstance(block, CodeBlock):
            parts.append(f"{FENCE}{block.language}\n{block.content}\n{FENCE}")
        else:
            parts.append(block.content)
    return "\n".join(parts)


def code_blocks(blocks: tuple[Block, ...] | list[Block]) -> tuple[CodeBlock, ...]:
    """Return only the code blocks, in document order."""
    return tuple(b for b in blocks if isinstance(b, CodeBlock))


def extract_code(text: str) -> str:
    """
    Return the content of the first code block, or the trimmed text if
    the response contains no fences.
    """
    found = code_blocks(parse(text))
    if found:
        return found[0].content
    return text.strip()
