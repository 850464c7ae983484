import json
import os
import threading
from typing import Callable, List, Optional, Union
from unittest.mock import patch

import pytest
from dotenv import load_dotenv

from vrtl_engine.llm.providers.base import AdapterResult, Provider
from vrtl_engine.schemas.snapshot import PromptDefinition, PromptPack

@pytest.fixture(scope="session", autouse=True)
def _load_env():
    # Load .env once per session to avoid side-effects on import time
    load_dotenv()

def _truthy(v: str | None) -> bool:
    return v is not None and v.strip().lower() not in ("", "0", "false", "no")

@pytest.fixture(scope="session")
def allow_integration(_load_env) -> bool:
    # Depends on _load_env to ensure .env is loaded first
    return _truthy(os.getenv("RUN_INTEGRATION_TESTS"))

@pytest.fixture(scope="function")
def test_db(tmp_path):
    """
    Creates a temporary database for testing and initializes the schema.
    `store.db` reads DB_PATH from the settings singleton at connect time,
    so pointing the singleton at a temp file is enough.
    """
    db_file = tmp_path / "test_vrtl.db"

    from vrtl_engine.config import get_settings
    settings = get_settings()

    original_db_path = settings.DB_PATH
    settings.DB_PATH = str(db_file)

    from vrtl_engine.store.db import init_db
    init_db()

    yield settings

    settings.DB_PATH = original_db_path

@pytest.fixture
def no_guardrails():
    """Turn off cooldown and the daily limit, and pin one attempt per call, whatever the local .env says."""
    from vrtl_engine.config import get_settings
    settings = get_settings()
    with patch.object(settings, "SNAPSHOT_CLIENT_COOLDOWN_SECONDS", 0), \
         patch.object(settings, "SNAPSHOT_DAILY_LIMIT", None), \
         patch.object(settings, "SNAPSHOT_PROVIDER_ATTEMPTS", 1):
        yield settings

# ----------------------------------------------------------------------
# Canned model answers
# ----------------------------------------------------------------------

def extraction_json(**overrides) -> str:
    record = {
        "client_mentioned": True,
        "client_position": "top",
        "recommendation_strength": "strong",
        "competitors_mentioned": ["Bright Smiles"],
        "has_sources_or_citations": True,
        "has_specific_features": True,
        "evidence_snippet": "Acme Dental is the top pick for families.",
    }
    record.update(overrides)
    return json.dumps(record)

@pytest.fixture
def perfect_answer() -> str:
    return extraction_json()

@pytest.fixture
def make_answer():
    return extraction_json

class FakeAdapter:
    """
    Stands in for a vendor adapter. `answer` is a fixed string or a callable
    taking the user prompt; `error` is raised instead when set.
    """

    def __init__(
        self,
        provider: Provider,
        answer: Union[str, Callable[[str], str]] = "",
        error: Optional[Exception] = None,
        model: str = "fake-model",
    ):
        self.provider = provider
        self.model = model
        self.answer = answer
        self.error = error
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def run(self, system: str, user_prompt: str, model_override: Optional[str] = None) -> AdapterResult:
        with self._lock:
            self.calls.append(user_prompt)
        if self.error is not None:
            raise self.error
        text = self.answer(user_prompt) if callable(self.answer) else self.answer
        return AdapterResult(raw_text=text, model_used=model_override or self.model, latency_ms=7)

@pytest.fixture
def fake_adapter():
    return FakeAdapter

@pytest.fixture
def two_prompt_pack():
    """Small pack patched in as the active pack of the orchestrator."""
    pack = PromptPack(
        version="test_pack_v1",
        system="Return JSON only.",
        prompts=[
            PromptDefinition(key="best", text="Who is the best dentist nearby?"),
            PromptDefinition(key="compare", text="How does the brand compare to alternatives?"),
        ],
    )
    with patch("vrtl_engine.pipeline.run.load_prompt_pack", return_value=pack):
        yield pack

@pytest.fixture
def seeded_client(test_db):
    from vrtl_engine.store.repo import Repo
    client = Repo.create_client(name="Acme Dental", agency_id="agency-1", industry="dental clinic")
    Repo.add_competitor(client.id, "Bright Smiles")
    Repo.add_competitor(client.id, "City Dental")
    return client
