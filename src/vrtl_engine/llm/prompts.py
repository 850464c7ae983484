import yaml
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from ..errors import PromptPackError
from ..schemas.snapshot import PromptDefinition, PromptPack

PACKS_DIR = Path(__file__).parent / "packs"


@lru_cache()
def load_prompt_pack(name: str, packs_dir: Optional[Path] = None) -> PromptPack:
    path = (packs_dir or PACKS_DIR) / f"{name}.yaml"
    if not path.exists():
        raise PromptPackError(f"Prompt pack {name} not found at {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    data.setdefault("version", name)
    try:
        return PromptPack.model_validate(data)
    except ValidationError as e:
        raise PromptPackError(f"Prompt pack {name} is invalid: {e}") from e


def build_user_prompt(
    client_name: str,
    industry: str,
    competitor_names: List[str],
    prompt: PromptDefinition,
) -> str:
    competitors_text = (
        f"Competitors: {', '.join(competitor_names)}" if competitor_names else "Competitors: none"
    )
    return (
        f"Brand: {client_name}\n"
        f"Industry: {industry}\n"
        f"{competitors_text}\n\n"
        f"Question: {prompt.text}\n\n"
        "Respond with JSON ONLY per the system schema."
    )
