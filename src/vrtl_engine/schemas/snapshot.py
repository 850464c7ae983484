"""Pydantic schemas for snapshots, provider responses and prompt packs."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from .extraction import ExtractionRecord


class SnapshotStatus(str, Enum):
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


class ParseStatus(str, Enum):
    PARSED = "parsed"
    NO_CANDIDATE = "no_candidate"
    INVALID = "invalid"
    ERROR = "error"


class PromptDefinition(BaseModel):
    key: str
    text: str

    model_config = {"frozen": True}


class PromptPack(BaseModel):
    """Ordered, versioned list of prompts plus the system instruction sent with each."""
    version: str
    system: str
    prompts: List[PromptDefinition] = Field(..., min_length=1)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_unique_keys(self) -> "PromptPack":
        seen = set()
        for p in self.prompts:
            if p.key in seen:
                raise ValueError(f"Duplicate prompt key in pack {self.version!r} -> {p.key!r}")
            seen.add(p.key)
        return self


class Client(BaseModel):
    id: str
    agency_id: str
    name: str
    industry: str = ""
    website: Optional[str] = None


class Competitor(BaseModel):
    id: int
    client_id: str
    name: str
    website: Optional[str] = None


class ProviderResponse(BaseModel):
    """One (snapshot, provider, prompt) attempt. Written once, never updated."""
    snapshot_id: str
    agency_id: Optional[str] = None
    provider: str
    prompt_ordinal: int
    prompt_key: str
    # The pack question as written; the interpolated prompt sent to the model is not stored
    prompt_text: str
    prompt_pack_version: str
    model_used: Optional[str] = None
    raw_text: str = ""
    parse_ok: bool
    parse_status: ParseStatus
    extraction: Optional[ExtractionRecord] = None
    # Extraction dump when parsed, validator field errors when invalid
    parsed_json: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    latency_ms: Optional[int] = None
    created_at: Optional[str] = None


class Snapshot(BaseModel):
    id: str
    client_id: str
    agency_id: str
    prompt_pack_version: str
    status: SnapshotStatus
    started_at: str
    completed_at: Optional[str] = None
    overall_score: Optional[int] = None
    score_by_provider: Dict[str, int] = Field(default_factory=dict)
    score_breakdown: Dict[str, float] = Field(default_factory=dict)
    error: Optional[str] = None


class ResetResult(BaseModel):
    reset_count: int
    ids: List[str] = []
