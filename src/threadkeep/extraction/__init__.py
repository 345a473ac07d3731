"""Context acquisition: per-tool session extractors and the heuristic text miner."""

from threadkeep.extraction.miner import (
    mine_approaches,
    mine_current_state,
    mine_decisions,
    mine_next_steps,
)
from threadkeep.extraction.models import (
    ArtifactKind,
    ExtractedContext,
    SessionSource,
    make_context,
)
from threadkeep.extraction.pipeline import (
    SESSION_SOURCES,
    available_sources,
    extract_from_sessions,
    get_source,
)

__all__ = [
    "SESSION_SOURCES",
    "ArtifactKind",
    "ExtractedContext",
    "SessionSource",
    "available_sources",
    "extract_from_sessions",
    "get_source",
    "make_context",
    "mine_approaches",
    "mine_current_state",
    "mine_decisions",
    "mine_next_steps",
]
