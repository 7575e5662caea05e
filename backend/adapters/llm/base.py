"""
Completion gateway contract.

Purpose:
- Define the interface for a single, non-streaming text completion.
- Keep retries, prompt construction and parsing OUT of the gateway.

Rules:
- This file contains NO logic.
- No retries.
- No knowledge of sessions, voice or UI.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from constants import DEFAULT_IMAGE_MIME_TYPE


@dataclass(frozen=True)
class ImagePayload:
    """Attached image, already base64 encoded by the client."""
    base64_bytes: str
    mime_type: str = DEFAULT_IMAGE_MIME_TYPE

    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64_bytes}"


class CompletionGateway(ABC):
    """
    Abstract remote completion service.

    The gateway is a *dumb pipe*: prompt (+ image) -> vendor -> text.

    Caller responsibilities (NOT here):
    - Input validation
    - Prompt construction
    - Retry policy (there is none: the user resubmits)
    - What to do with the text
    """

    @abstractmethod
    async def generate(self, prompt: str, image: ImagePayload | None = None) -> str:
        """
        Run one completion and return the full response text.

        Contract:
        - Exactly one vendor call per invocation; no streaming.
        - Must NOT retry internally.
        - Any failure (transport, credentials, empty response) raises
          GatewayError; vendor exceptions never escape.
        """
        raise NotImplementedError
