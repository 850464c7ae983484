"""Provider registry.

A provider is enabled purely by the presence of its credential; no liveness
check is made. ADAPTERS maps each provider to its adapter factory, and
RUN_PROVIDERS selects which enabled providers the snapshot run path uses.
"""

from typing import Callable, Dict, List, Optional

from ..config import Settings, get_settings
from .providers.anthropic_adapter import AnthropicAdapter
from .providers.base import PROVIDER_ORDER, Provider, ProviderAdapter
from .providers.gemini_adapter import GeminiAdapter
from .providers.openai_adapter import OpenAIAdapter

ADAPTERS: Dict[Provider, Callable[[Settings], ProviderAdapter]] = {
    Provider.OPENAI: OpenAIAdapter.from_settings,
    Provider.ANTHROPIC: AnthropicAdapter.from_settings,
    Provider.GEMINI: GeminiAdapter.from_settings,
}

# (default, min, max) prompt concurrency per provider
_CONCURRENCY_BOUNDS = {
    Provider.OPENAI: (6, 1, 10),
    Provider.ANTHROPIC: (3, 1, 6),
    Provider.GEMINI: (3, 1, 6),
}


def _credential(provider: Provider, settings: Settings) -> Optional[str]:
    if provider == Provider.OPENAI:
        return settings.OPENAI_API_KEY
    if provider == Provider.ANTHROPIC:
        return settings.ANTHROPIC_API_KEY
    return settings.GEMINI_API_KEY


def enabled_providers(settings: Optional[Settings] = None) -> List[Provider]:
    settings = settings or get_settings()
    return [p for p in PROVIDER_ORDER if _credential(p, settings)]


def execution_providers(settings: Optional[Settings] = None) -> List[Provider]:
    """Enabled providers that are also wired into the run path."""
    settings = settings or get_settings()
    wired = set(settings.run_providers())
    return [p for p in enabled_providers(settings) if p.value in wired and p in ADAPTERS]


def build_adapter(provider: Provider, settings: Optional[Settings] = None) -> ProviderAdapter:
    settings = settings or get_settings()
    if provider not in ADAPTERS:
        raise KeyError(f"No adapter registered for provider {provider!r}")
    return ADAPTERS[provider](settings)


def build_adapters(providers: List[Provider], settings: Optional[Settings] = None) -> Dict[Provider, ProviderAdapter]:
    settings = settings or get_settings()
    return {p: build_adapter(p, settings) for p in providers}


def provider_concurrency(provider: Provider, settings: Optional[Settings] = None) -> int:
    settings = settings or get_settings()
    default, low, high = _CONCURRENCY_BOUNDS[provider]
    raw = {
        Provider.OPENAI: settings.SNAPSHOT_OPENAI_CONCURRENCY,
        Provider.ANTHROPIC: settings.SNAPSHOT_ANTHROPIC_CONCURRENCY,
        Provider.GEMINI: settings.SNAPSHOT_GEMINI_CONCURRENCY,
    }.get(provider, default)
    return max(low, min(high, int(raw)))


def provider_status(settings: Optional[Settings] = None) -> Dict[str, object]:
    """Which providers are detected. Never exposes the keys themselves."""
    enabled = enabled_providers(settings)
    status: Dict[str, object] = {p.value: p in enabled for p in PROVIDER_ORDER}
    status["enabled"] = [p.value for p in enabled]
    return status
