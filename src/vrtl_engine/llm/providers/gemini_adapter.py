"""Google Gemini adapter (Generative Language API via google-genai)."""

from __future__ import annotations

import json
from typing import Any, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .base import AdapterResult, Provider, ProviderError, stopwatch
from ...config import Settings
from ...log import get_logger

logger = get_logger("providers")


class GeminiAdapter:
    provider = Provider.GEMINI

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash", client: Optional[Any] = None):
        self.model = model
        self.client = client or genai.Client(api_key=api_key)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiAdapter":
        if not settings.GEMINI_API_KEY:
            raise ProviderError("Missing GEMINI_API_KEY")
        return cls(api_key=settings.GEMINI_API_KEY, model=settings.GEMINI_MODEL)

    def run(self, system: str, user_prompt: str, model_override: Optional[str] = None) -> AdapterResult:
        model = model_override or self.model
        logger.debug(f"Gemini request model={model}")
        # Gemini gets the system instruction inline, ahead of the question
        contents = f"{system}\n\n{user_prompt}"
        config = types.GenerateContentConfig(temperature=0, response_mime_type="application/json")
        try:
            with stopwatch() as watch:
                response = self.client.models.generate_content(model=model, contents=contents, config=config)
        except genai_errors.APIError as e:
            details = getattr(e, "details", None)
            body = json.dumps(details) if details is not None else str(e)
            raise ProviderError(f"Gemini error {e.code}: {body}", status=e.code, body=body) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Gemini error: {e}") from e

        try:
            parts = response.candidates[0].content.parts or []
        except (AttributeError, IndexError, TypeError) as e:
            raise ProviderError(f"Gemini returned a malformed response: {e}") from e
        content = "".join(getattr(p, "text", None) or "" for p in parts)

        return AdapterResult(raw_text=content, model_used=model, latency_ms=watch.elapsed_ms)
