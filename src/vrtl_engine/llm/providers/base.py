"""Shared contract for provider adapters.

Each adapter sends one system instruction plus one user prompt to its vendor
with temperature pinned to 0 and returns the raw text untouched. Adapters do
not retry: transport errors, non-2xx responses and malformed envelopes all
surface as a single ProviderError.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, List, Optional, Protocol

from pydantic import BaseModel


class Provider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


# Fixed registry order; enabled_providers() preserves it
PROVIDER_ORDER: List[Provider] = [Provider.OPENAI, Provider.ANTHROPIC, Provider.GEMINI]


class ProviderError(Exception):
    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body


class AdapterResult(BaseModel):
    raw_text: str
    model_used: str
    latency_ms: int


class ProviderAdapter(Protocol):
    provider: Provider
    model: str

    def run(self, system: str, user_prompt: str, model_override: Optional[str] = None) -> AdapterResult:
        ...


class Stopwatch:
    elapsed_ms: int = 0


@contextmanager
def stopwatch() -> Iterator[Stopwatch]:
    """Wall-clock latency of the wrapped block, recorded even if it raises."""
    watch = Stopwatch()
    started = time.monotonic()
    try:
        yield watch
    finally:
        watch.elapsed_ms = int((time.monotonic() - started) * 1000)
