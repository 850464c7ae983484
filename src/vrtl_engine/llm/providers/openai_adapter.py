"""OpenAI Chat Completions adapter."""

from __future__ import annotations

from typing import Any, Optional

import openai
from openai import OpenAI

from .base import AdapterResult, Provider, ProviderError, stopwatch
from ...config import Settings
from ...log import get_logger

logger = get_logger("providers")


class OpenAIAdapter:
    provider = Provider.OPENAI

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", client: Optional[Any] = None):
        self.model = model
        # max_retries=0: retry policy belongs to the orchestrator
        self.client = client or OpenAI(api_key=api_key, max_retries=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIAdapter":
        if not settings.OPENAI_API_KEY:
            raise ProviderError("Missing OPENAI_API_KEY")
        return cls(api_key=settings.OPENAI_API_KEY, model=settings.OPENAI_MODEL)

    def run(self, system: str, user_prompt: str, model_override: Optional[str] = None) -> AdapterResult:
        model = model_override or self.model
        logger.debug(f"OpenAI request model={model}")
        try:
            with stopwatch() as watch:
                response = self.client.chat.completions.create(
                    model=model,
                    messages=[
                        {"role": "system", "content": system},
                        {"role": "user", "content": user_prompt},
                    ],
                    response_format={"type": "json_object"},
                    temperature=0,
                )
        except openai.APIStatusError as e:
            raise ProviderError(
                f"OpenAI error {e.status_code}: {e.response.text}",
                status=e.status_code,
                body=e.response.text,
            ) from e
        except openai.APIError as e:
            raise ProviderError(f"OpenAI error: {e}") from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise ProviderError(f"OpenAI returned a malformed response: {e}") from e

        return AdapterResult(raw_text=content or "", model_used=model, latency_ms=watch.elapsed_ms)
