#!/usr/bin/env python3
"""
Show which providers are enabled and wired into snapshot runs.
With --ping, sends one prompt from the active pack to each of them.
"""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vrtl_engine.config import get_settings
from vrtl_engine.llm.parse import parse_response
from vrtl_engine.llm.prompts import build_user_prompt, load_prompt_pack
from vrtl_engine.llm.providers.base import ProviderError
from vrtl_engine.llm.registry import build_adapter, execution_providers, provider_status
from vrtl_engine.log import setup_logging

setup_logging()


def main():
    p = argparse.ArgumentParser(description="Provider configuration check")
    p.add_argument("--ping", action="store_true", help="Make one real call per execution provider")
    args = p.parse_args()

    settings = get_settings()
    status = provider_status(settings)

    print("=" * 60)
    print("Provider Configuration Check")
    print("=" * 60)
    for name in ("openai", "anthropic", "gemini"):
        mark = "✓" if status[name] else "✗"
        print(f"{mark} {name}")
    print(f"RUN_PROVIDERS: {settings.RUN_PROVIDERS}")
    print(f"Execution providers: {[p.value for p in execution_providers(settings)] or 'none'}")

    if not args.ping:
        return

    pack = load_prompt_pack(settings.PROMPT_PACK)
    prompt = build_user_prompt("Example Co", "software", [], pack.prompts[0])
    failed = False
    for provider in execution_providers(settings):
        try:
            result = build_adapter(provider, settings).run(pack.system, prompt)
        except ProviderError as e:
            print(f"✗ {provider.value}: {e}")
            failed = True
            continue
        outcome = parse_response(result.raw_text)
        print(f"✓ {provider.value} ({result.model_used}, {result.latency_ms}ms): {type(outcome).__name__}")

    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
