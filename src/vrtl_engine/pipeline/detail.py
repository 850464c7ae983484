"""Read model for one snapshot: the row, its client and competitors, ordered responses and a summary."""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from ..config import get_settings
from ..mlops.tracing import traced_operation
from ..schemas.snapshot import ProviderResponse
from ..store.repo import Repo

logger = logging.getLogger("pipeline")
settings = get_settings()

TOP_COMPETITORS_LIMIT = 8


def summarize_responses(responses: List[ProviderResponse]) -> Dict[str, Any]:
    counts: Counter = Counter()
    mentioned = sources = features = 0
    for r in responses:
        ex = r.extraction
        if ex is None:
            continue
        mentioned += int(ex.client_mentioned)
        sources += int(ex.has_sources_or_citations)
        features += int(ex.has_specific_features)
        counts.update(ex.competitors_mentioned)

    return {
        "responses_count": len(responses),
        "client_mentioned_count": mentioned,
        "sources_count": sources,
        "specific_features_count": features,
        "top_competitors": [
            {"name": name, "count": count} for name, count in counts.most_common(TOP_COMPETITORS_LIMIT)
        ],
    }


@traced_operation("snapshot.detail", span_type="TOOL")
def get_snapshot_detail(snapshot_id: str, include_debug: bool = False) -> Optional[Dict[str, Any]]:
    """
    Returns None if the snapshot does not exist.
    Raw model text and the sent prompt only appear when include_debug is
    requested and VRTL_ENABLE_DEBUG_RESPONSES is on.
    """
    snapshot = Repo.get_snapshot(snapshot_id)
    if not snapshot:
        return None

    debug = include_debug and settings.VRTL_ENABLE_DEBUG_RESPONSES
    if include_debug and not debug:
        logger.info("Debug responses requested but VRTL_ENABLE_DEBUG_RESPONSES is off")

    responses = Repo.list_responses(snapshot_id)
    exclude = None if debug else {"raw_text", "prompt_text"}
    client = Repo.get_client(snapshot.client_id)

    return {
        "snapshot": snapshot.model_dump(mode="json"),
        "client": client.model_dump() if client else None,
        "competitors": [c.model_dump() for c in Repo.get_competitors(snapshot.client_id)],
        "responses": [r.model_dump(mode="json", exclude=exclude) for r in responses],
        "summary": summarize_responses(responses),
        "debug": {"enabled": settings.VRTL_ENABLE_DEBUG_RESPONSES, "included": debug},
    }
