"""Anthropic Messages API adapter."""

from __future__ import annotations

from typing import Any, Optional

import anthropic

from .base import AdapterResult, Provider, ProviderError, stopwatch
from ...config import Settings
from ...log import get_logger

logger = get_logger("providers")


class AnthropicAdapter:
    provider = Provider.ANTHROPIC

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-5-20250929",
        max_tokens: int = 800,
        client: Optional[Any] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.client = client or anthropic.Anthropic(api_key=api_key, max_retries=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AnthropicAdapter":
        if not settings.ANTHROPIC_API_KEY:
            raise ProviderError("Missing ANTHROPIC_API_KEY")
        return cls(
            api_key=settings.ANTHROPIC_API_KEY,
            model=settings.ANTHROPIC_MODEL,
            max_tokens=settings.ANTHROPIC_MAX_TOKENS,
        )

    def run(self, system: str, user_prompt: str, model_override: Optional[str] = None) -> AdapterResult:
        model = model_override or self.model
        logger.debug(f"Anthropic request model={model}")
        try:
            with stopwatch() as watch:
                message = self.client.messages.create(
                    model=model,
                    max_tokens=self.max_tokens,
                    temperature=0,
                    system=system,
                    messages=[{"role": "user", "content": user_prompt}],
                )
        except anthropic.APIStatusError as e:
            raise ProviderError(
                f"Anthropic error {e.status_code}: {e.response.text}",
                status=e.status_code,
                body=e.response.text,
            ) from e
        except anthropic.APIError as e:
            raise ProviderError(f"Anthropic error: {e}") from e

        blocks = getattr(message, "content", None)
        if not isinstance(blocks, list):
            raise ProviderError("Anthropic returned a malformed response: no content blocks")
        # Only text blocks carry the answer
        content = "".join(getattr(b, "text", "") or "" for b in blocks if getattr(b, "type", None) == "text")

        return AdapterResult(raw_text=content, model_used=model, latency_ms=watch.elapsed_ms)
