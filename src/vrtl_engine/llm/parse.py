"""Best-effort JSON extraction from raw model output.

Strategies run cheapest first: whole text, fenced code block, outermost
{...} span. Invalid candidates are never repaired.
"""

import json
import re
from typing import Any, Optional

from ..schemas.extraction import ParseOutcome, validate_extraction

_FENCED_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def _loads(candidate: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(candidate)
    except json.JSONDecodeError:
        return False, None


def extract_json(text: Optional[str]) -> Any:
    """
    Return the first JSON value found in text, or None when no strategy yields one.
    """
    if not text:
        return None
    trimmed = text.strip()
    if not trimmed:
        return None

    # Strategy 1: the whole answer is JSON
    ok, value = _loads(trimmed)
    if ok:
        return value

    # Strategy 2: ```json ... ``` or ``` ... ```
    fenced = _FENCED_RE.search(trimmed)
    if fenced and fenced.group(1).strip():
        ok, value = _loads(fenced.group(1).strip())
        if ok:
            return value

    # Strategy 3: first "{" to last "}"
    obj = _OBJECT_RE.search(trimmed)
    if obj:
        ok, value = _loads(obj.group(0))
        if ok:
            return value

    return None


def parse_response(text: Optional[str]) -> ParseOutcome:
    return validate_extraction(extract_json(text))
