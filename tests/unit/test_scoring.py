import pytest

from vrtl_engine.llm.providers.base import Provider
from vrtl_engine.schemas.extraction import ExtractionRecord
from vrtl_engine.scoring.balanced import clamp100, score_provider, score_snapshot


def rec(**overrides) -> ExtractionRecord:
    data = {
        "client_mentioned": True,
        "client_position": "top",
        "recommendation_strength": "strong",
        "competitors_mentioned": [],
        "has_sources_or_citations": True,
        "has_specific_features": True,
        "evidence_snippet": "",
    }
    data.update(overrides)
    return ExtractionRecord.model_validate(data)


NOTHING = dict(
    client_mentioned=False,
    client_position="not_mentioned",
    recommendation_strength="none",
    has_sources_or_citations=False,
    has_specific_features=False,
)


def test_all_best_scores_100():
    result = score_provider([rec(), rec()])
    assert result.score == 100
    assert result.n == 2
    assert result.breakdown["presence_score"] == 40
    assert result.breakdown["position_score"] == 30
    assert result.breakdown["strength_score"] == 20
    assert result.breakdown["authority_score"] == 10


def test_all_worst_scores_0():
    assert score_provider([rec(**NOTHING)]).score == 0


def test_mixed_records():
    """
    WHY: Pin the composite formula on a non-trivial input.
    HOW: One perfect record and one middle/medium record without sources or features.
    EXPECTED:
        presence 40, position (30+18)/2/30*30 = 24, strength (20+12)/2/20*20 = 16,
        authority ((0.5*5 + 0.5*5)/10)*10 = 5 -> 85.
    """
    records = [
        rec(),
        rec(client_position="middle", recommendation_strength="medium",
            has_sources_or_citations=False, has_specific_features=False),
    ]
    result = score_provider(records)
    assert result.score == 85
    assert result.breakdown["top_rate"] == 0.5
    assert result.breakdown["authority_rate"] == 0.5
    assert result.breakdown["features_rate"] == 0.5


def test_literal_fields_are_trusted():
    """
    WHY: Records are scored as returned, even when internally inconsistent.
    HOW: client_mentioned=False but client_position="top".
    EXPECTED: Position points are still awarded (30) while presence is 0.
    """
    result = score_provider([rec(client_mentioned=False, recommendation_strength="none",
                                 has_sources_or_citations=False, has_specific_features=False)])
    assert result.breakdown["presence_score"] == 0
    assert result.breakdown["position_score"] == 30
    assert result.score == 30


@pytest.mark.parametrize(
    "field,worse,better",
    [
        ("client_mentioned", False, True),
        ("client_position", "bottom", "middle"),
        ("recommendation_strength", "weak", "medium"),
        ("has_sources_or_citations", False, True),
        ("has_specific_features", False, True),
    ],
)
def test_improving_one_field_never_lowers_score(field, worse, better):
    base = dict(NOTHING)
    low = score_provider([rec(**dict(base, **{field: worse}))]).score
    high = score_provider([rec(**dict(base, **{field: better}))]).score
    assert high >= low


def test_half_rounds_up():
    assert clamp100(84.5) == 85
    assert clamp100(0.5) == 1
    assert clamp100(84.49) == 84
    assert clamp100(-3) == 0
    assert clamp100(250) == 100


def test_empty_provider_rejected_directly():
    with pytest.raises(ValueError):
        score_provider([])


def test_snapshot_skips_empty_providers():
    result = score_snapshot({Provider.OPENAI: [rec()], Provider.GEMINI: []})
    assert result.score_by_provider == {"openai": 100}
    assert result.overall_score == 100
    assert not any(k.startswith("gemini.") for k in result.score_breakdown)


def test_snapshot_overall_is_mean_of_providers():
    result = score_snapshot({
        Provider.OPENAI: [rec()],
        Provider.ANTHROPIC: [rec(**NOTHING)],
        Provider.GEMINI: [rec(**NOTHING), rec()],
    })
    assert result.score_by_provider == {"openai": 100, "anthropic": 0, "gemini": 50}
    assert result.overall_score == 50


def test_snapshot_with_no_records_scores_zero():
    result = score_snapshot({Provider.OPENAI: [], Provider.ANTHROPIC: []})
    assert result.overall_score == 0
    assert result.score_by_provider == {}
    assert result.score_breakdown == {}


def test_breakdown_keys_are_prefixed_by_provider():
    result = score_snapshot({"anthropic": [rec()]})
    assert set(result.score_breakdown) == {
        "anthropic.presence_rate",
        "anthropic.top_rate",
        "anthropic.authority_rate",
        "anthropic.features_rate",
        "anthropic.presence_score",
        "anthropic.position_score",
        "anthropic.strength_score",
        "anthropic.authority_score",
    }


def test_scores_stay_in_bounds():
    positions = ["top", "middle", "bottom", "not_mentioned"]
    strengths = ["strong", "medium", "weak", "none"]
    records = [
        rec(client_position=p, recommendation_strength=s, client_mentioned=(i % 2 == 0))
        for i, (p, s) in enumerate((p, s) for p in positions for s in strengths)
    ]
    for end in range(1, len(records) + 1):
        assert 0 <= score_provider(records[:end]).score <= 100
