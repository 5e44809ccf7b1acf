# ingest/enhancers/dispatch.py
"""Runs exactly one facet enhancer, chosen by item type."""

from __future__ import annotations

from typing import Optional

from ingest.contracts import ItemCandidate, ItemType
from ingest.enhancers import beverage, food, wine
from ingest.enhancers.base import FacetResult


def enhance(item_type: ItemType, candidate: ItemCandidate, raw_text: Optional[str] = None) -> FacetResult:
    if item_type is ItemType.FOOD:
        return food.enhance(candidate, raw_text)
    if item_type is ItemType.BEVERAGE:
        return beverage.enhance(candidate, raw_text)
    if item_type is ItemType.WINE:
        return wine.enhance(candidate, raw_text)
    raise ValueError(f"no enhancer for item type {item_type!r}")
