import json

import pytest

from vrtl_engine.schemas.extraction import (
    EVIDENCE_SNIPPET_MAX,
    ExtractionRecord,
    Invalid,
    NoCandidate,
    Parsed,
    validate_extraction,
)

BASE = {
    "client_mentioned": False,
    "client_position": "not_mentioned",
    "recommendation_strength": "none",
    "competitors_mentioned": [],
    "has_sources_or_citations": False,
    "has_specific_features": False,
    "evidence_snippet": "",
}


def test_valid_minimal_record():
    outcome = validate_extraction(BASE)
    assert isinstance(outcome, Parsed)
    assert outcome.record.client_position == "not_mentioned"


def test_none_is_no_candidate():
    assert isinstance(validate_extraction(None), NoCandidate)


@pytest.mark.parametrize(
    "field,value",
    [
        ("client_mentioned", "true"),
        ("client_mentioned", 1),
        ("has_specific_features", 0),
        ("client_position", "first"),
        ("recommendation_strength", "STRONG"),
        ("competitors_mentioned", "Bright Smiles"),
        ("evidence_snippet", 42),
    ],
)
def test_strict_fields_reject_coercion(field, value):
    """
    WHY: The score is only meaningful if every field is exactly the declared type.
    HOW: Replace one field with a near-miss value that lax parsing would accept.
    EXPECTED: Invalid, with the field named in field_errors.
    """
    outcome = validate_extraction(dict(BASE, **{field: value}))
    assert isinstance(outcome, Invalid)
    assert field in outcome.errors["field_errors"]


def test_missing_field_is_invalid():
    data = dict(BASE)
    del data["has_sources_or_citations"]
    outcome = validate_extraction(data)
    assert isinstance(outcome, Invalid)
    assert "has_sources_or_citations" in outcome.errors["field_errors"]


def test_evidence_snippet_length_boundary():
    assert isinstance(validate_extraction(dict(BASE, evidence_snippet="x" * EVIDENCE_SNIPPET_MAX)), Parsed)
    outcome = validate_extraction(dict(BASE, evidence_snippet="x" * (EVIDENCE_SNIPPET_MAX + 1)))
    assert isinstance(outcome, Invalid)
    assert "evidence_snippet" in outcome.errors["field_errors"]


def test_extra_keys_are_dropped():
    outcome = validate_extraction(dict(BASE, confidence=0.9))
    assert isinstance(outcome, Parsed)
    assert "confidence" not in outcome.record.model_dump()


def test_non_object_goes_to_form_errors():
    outcome = validate_extraction("just a string")
    assert isinstance(outcome, Invalid)
    assert outcome.errors["form_errors"]
    assert outcome.errors["field_errors"] == {}


def test_error_payload_is_json_serializable():
    outcome = validate_extraction(dict(BASE, client_position=None, evidence_snippet="y" * 500))
    assert isinstance(outcome, Invalid)
    json.dumps(outcome.errors)


def test_competitor_order_and_duplicates_kept():
    names = ["B", "A", "B"]
    record = ExtractionRecord.model_validate(dict(BASE, competitors_mentioned=names))
    assert record.competitors_mentioned == names
