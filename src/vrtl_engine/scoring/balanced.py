"""Balanced visibility scoring (v1).

Per provider, a 0-100 composite of presence (40), position (30),
recommendation strength (20) and authority (10). The overall score is the
unweighted mean of the providers that produced at least one extraction.

Records are scored exactly as the model returned them: a record with
client_mentioned=False and client_position="top" still earns top position
points.
"""

from __future__ import annotations

import math
from typing import Dict, List, Mapping, Sequence

from pydantic import BaseModel

from ..schemas.extraction import ExtractionRecord

PRESENCE_WEIGHT = 40
POSITION_WEIGHT = 30
STRENGTH_WEIGHT = 20
AUTHORITY_WEIGHT = 10

POSITION_POINTS = {"top": 30, "middle": 18, "bottom": 9, "not_mentioned": 0}
STRENGTH_POINTS = {"strong": 20, "medium": 12, "weak": 6, "none": 0}

MAX_POSITION_POINTS = 30
MAX_STRENGTH_POINTS = 20


class ProviderScore(BaseModel):
    score: int
    n: int
    breakdown: Dict[str, float]


class ScoreResult(BaseModel):
    overall_score: int
    score_by_provider: Dict[str, int]
    score_breakdown: Dict[str, float]


def clamp100(value: float) -> int:
    """Round half up and clamp to [0, 100]."""
    return max(0, min(100, int(math.floor(value + 0.5))))


def score_provider(records: Sequence[ExtractionRecord]) -> ProviderScore:
    n = len(records)
    if n == 0:
        raise ValueError("score_provider needs at least one record")

    presence_rate = sum(1 for r in records if r.client_mentioned) / n
    top_rate = sum(1 for r in records if r.client_position == "top") / n
    authority_rate = sum(1 for r in records if r.has_sources_or_citations) / n
    features_rate = sum(1 for r in records if r.has_specific_features) / n
    avg_position = sum(POSITION_POINTS[r.client_position] for r in records) / n
    avg_strength = sum(STRENGTH_POINTS[r.recommendation_strength] for r in records) / n

    presence_score = presence_rate * PRESENCE_WEIGHT
    position_score = (avg_position / MAX_POSITION_POINTS) * POSITION_WEIGHT
    strength_score = (avg_strength / MAX_STRENGTH_POINTS) * STRENGTH_WEIGHT
    authority_score = ((authority_rate * 5 + features_rate * 5) / 10) * AUTHORITY_WEIGHT

    total = presence_score + position_score + strength_score + authority_score
    return ProviderScore(
        score=clamp100(total),
        n=n,
        breakdown={
            "presence_rate": presence_rate,
            "top_rate": top_rate,
            "authority_rate": authority_rate,
            "features_rate": features_rate,
            "presence_score": presence_score,
            "position_score": position_score,
            "strength_score": strength_score,
            "authority_score": authority_score,
        },
    )


def score_snapshot(by_provider: Mapping[str, Sequence[ExtractionRecord]]) -> ScoreResult:
    """Providers with no extractions are left out; no extractions at all scores 0."""
    score_by_provider: Dict[str, int] = {}
    breakdown: Dict[str, float] = {}
    scores: List[int] = []

    for provider, records in by_provider.items():
        if not records:
            continue
        result = score_provider(records)
        key = getattr(provider, "value", provider)
        score_by_provider[key] = result.score
        scores.append(result.score)
        for metric, value in result.breakdown.items():
            breakdown[f"{key}.{metric}"] = value

    overall = clamp100(sum(scores) / len(scores)) if scores else 0
    return ScoreResult(overall_score=overall, score_by_provider=score_by_provider, score_breakdown=breakdown)
