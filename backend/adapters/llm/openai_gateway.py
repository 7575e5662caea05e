"""OpenAI-compatible completion gateway."""
from __future__ import annotations

from typing import Any

import openai
from openai import AsyncOpenAI

from adapters.llm.base import CompletionGateway, ImagePayload
from config import AppConfig
from errors import GatewayError
from observability.metrics import timed


class OpenAICompletionGateway(CompletionGateway):
    """
    Completion gateway over the chat completions API.

    Works for OpenAI and for OpenAI-compatible providers (Groq) selected
    through base_url.

    Design notes:
    - One request per generate() call, non-streaming.
    - Images are sent as a data URL content part.
    - All vendor exceptions are mapped to GatewayError here.
    """

    def __init__(self, *, client: Any, model: str, provider: str = "openai") -> None:
        """
        Args:
            client:
                Vendor client (AsyncOpenAI or a fake with the same shape).
            model:
                Model identifier string.
            provider:
                Provider name, used for logging only.
        """
        self._client = client
        self._model = model
        self._provider = provider

    async def generate(self, prompt: str, image: ImagePayload | None = None) -> str:
        content: Any
        if image is None:
            content = prompt
        else:
            content = [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": image.data_url()}},
            ]

        try:
            with timed(
                "gateway_generate_latency",
                details={
                    "provider": self._provider,
                    "model": self._model,
                    "has_image": image is not None,
                },
            ):
                response = await self._client.chat.completions.create(
                    model=self._model,
                    messages=[{"role": "user", "content": content}],
                )
        except openai.AuthenticationError as exc:
            raise GatewayError(f"authentication failed: {exc}", auth_failure=True) from exc
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise GatewayError(f"{type(exc).__name__}: {exc}") from exc

        text = self._extract_text(response)
        if not text:
            raise GatewayError("empty completion")
        return text

    @staticmethod
    def _extract_text(response: Any) -> str:
        """Extract message text from vendor response (OpenAI format)."""
        try:
            return response.choices[0].message.content or ""
        except (AttributeError, IndexError):
            return ""


def build_llm_client(config: AppConfig) -> AsyncOpenAI:
    """Build an LLM client with the provider selected by environment variables."""
    if config.llm_provider.lower() == "groq":
        return AsyncOpenAI(
            api_key=config.groq_api_key,
            base_url="https://api.groq.com/openai/v1",
        )

    return AsyncOpenAI(api_key=config.openai_api_key)
