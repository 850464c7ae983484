"""Pydantic schema for the structured judgment extracted from one provider answer.

Defines ExtractionRecord and the tagged ParseOutcome returned by validation:
Parsed (valid record), NoCandidate (no JSON found) or Invalid (field errors).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

ClientPosition = Literal["top", "middle", "bottom", "not_mentioned"]
RecommendationStrength = Literal["strong", "medium", "weak", "none"]

EVIDENCE_SNIPPET_MAX = 200


class ExtractionRecord(BaseModel):
    """
    One provider's answer to one prompt, as judged by the model itself.
    Strict: "true" is not a bool and 1 is not True.
    """
    model_config = ConfigDict(strict=True, extra="ignore", frozen=True)

    client_mentioned: bool
    client_position: ClientPosition
    recommendation_strength: RecommendationStrength
    competitors_mentioned: List[str] = Field(..., description="Names as surfaced by the model, order kept.")
    has_sources_or_citations: bool
    has_specific_features: bool
    evidence_snippet: str = Field(..., max_length=EVIDENCE_SNIPPET_MAX)


@dataclass(frozen=True)
class Parsed:
    record: ExtractionRecord


@dataclass(frozen=True)
class NoCandidate:
    pass


@dataclass(frozen=True)
class Invalid:
    errors: Dict[str, Any] = field(default_factory=dict)


ParseOutcome = Union[Parsed, NoCandidate, Invalid]


def flatten_errors(exc: ValidationError) -> Dict[str, Any]:
    """
    Collapse pydantic errors into {"form_errors": [...], "field_errors": {field: [msg]}}.
    Only strings survive so the payload can be stored as JSON.
    """
    form_errors: List[str] = []
    field_errors: Dict[str, List[str]] = {}
    for err in exc.errors(include_url=False):
        loc = err.get("loc") or ()
        msg = str(err.get("msg", "invalid"))
        if not loc:
            form_errors.append(msg)
            continue
        key = str(loc[0])
        field_errors.setdefault(key, []).append(msg)
    return {"form_errors": form_errors, "field_errors": field_errors}


def validate_extraction(value: Any) -> ParseOutcome:
    if value is None:
        return NoCandidate()
    try:
        return Parsed(ExtractionRecord.model_validate(value))
    except ValidationError as e:
        return Invalid(flatten_errors(e))
