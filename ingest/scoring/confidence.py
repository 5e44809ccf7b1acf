# ingest/scoring/confidence.py
"""
Confidence Scoring
Turns cue counts from the classifier and the enhancers into 0–100 scores
and combines them per item.
"""

from __future__ import annotations

FACET_BASE = 30
FACET_CUE_BOOST = 25


def facet_confidence(cues: int) -> int:
    """0 when no enhancer cue fired, else 30 + 25 per cue, capped at 100."""
    if cues <= 0:
        return 0
    return min(100, FACET_BASE + FACET_CUE_BOOST * cues)


def item_confidence(type_confidence: int, facet_confidence_: int) -> int:
    """An item is only as certain as its weakest stage."""
    return max(0, min(100, min(int(type_confidence), int(facet_confidence_))))
