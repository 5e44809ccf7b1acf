# ingest/enhancers/food.py
"""
Food facet enhancer: ingredients, allergens, cooking methods and dietary
flags. Stated values win, then explicit markers ("(v)", "gluten free"),
then what the ingredients imply.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from ingest.contracts import FoodFacets, ItemCandidate
from ingest.enhancers.base import FacetResult, explicit_bool, explicit_list, item_text, split_list, stated
from ingest.parsers import food_vocab as vocab

log = logging.getLogger(__name__)

_FLAGS = ("is_vegetarian", "is_vegan", "is_gluten_free", "is_dairy_free", "is_spicy")


def _ingredients(description: Optional[str]) -> List[str]:
    out: List[str] = []
    for part in split_list(vocab.DIETARY_MARKER_RE.sub("", description or "")):
        key = part.lower()
        if key not in out:
            out.append(key)
    return out


def _stated_terms(values: List[str], finder) -> List[str]:
    """Map stated words onto the lexicon where they match, keep the rest lowercased."""
    out: List[str] = []
    for value in values:
        hits = finder(value) or [value.lower()]
        for hit in hits:
            if hit not in out:
                out.append(hit)
    return out


def enhance(candidate: ItemCandidate, raw_text: Optional[str] = None) -> FacetResult:
    text = item_text(candidate, raw_text)
    given = stated(candidate)
    cues: List[str] = []

    ingredients = [i.lower() for i in explicit_list(given.get("ingredients"))] or _ingredients(candidate.description)
    if ingredients:
        cues.append("ingredients")

    allergens = _stated_terms(explicit_list(given.get("allergens")), vocab.allergens_in) or vocab.allergens_in(text)
    if allergens:
        cues.append("allergens")

    methods = _stated_terms(explicit_list(given.get("cooking_methods")), vocab.cooking_methods_in) \
        or vocab.cooking_methods_in(text)
    if methods:
        cues.append("cooking-methods")

    flags: Dict[str, Optional[bool]] = {f: explicit_bool(given.get(f)) for f in _FLAGS}
    for f, value in flags.items():
        if value is not None:
            cues.append(f)

    marked_veg = bool(vocab.VEGETARIAN_RE.search(text))
    marked_vegan = flags["is_vegan"] is True or (flags["is_vegan"] is None and bool(vocab.VEGAN_RE.search(text)))
    marked_gf = bool(vocab.GLUTEN_FREE_RE.search(text))
    marked_df = bool(vocab.DAIRY_FREE_RE.search(text))
    if marked_veg or marked_vegan or marked_gf or marked_df:
        cues.append("dietary-marker")

    meat = vocab.has_meat(text) or vocab.has_meat(" ".join(ingredients)) or "seafood" in allergens

    is_vegan: Optional[bool] = None
    if marked_vegan:
        is_vegan = True
    elif meat or "dairy" in allergens or "eggs" in allergens:
        is_vegan = False

    is_vegetarian: Optional[bool] = None
    if marked_veg or marked_vegan:
        is_vegetarian = True
    elif meat:
        is_vegetarian = False

    is_gluten_free: Optional[bool] = None
    if marked_gf:
        is_gluten_free = True
    elif "gluten" in allergens:
        is_gluten_free = False

    is_dairy_free: Optional[bool] = None
    if marked_df or marked_vegan:
        is_dairy_free = True
    elif "dairy" in allergens:
        is_dairy_free = False

    spicy: Optional[bool] = None
    if vocab.is_spicy(text):
        spicy = True
        cues.append("spicy")

    derived = {
        "is_vegetarian": is_vegetarian,
        "is_vegan": is_vegan,
        "is_gluten_free": is_gluten_free,
        "is_dairy_free": is_dairy_free,
        "is_spicy": spicy,
    }
    for f, value in flags.items():
        if value is not None:
            derived[f] = value

    facets = FoodFacets(
        ingredients=tuple(ingredients),
        allergens=tuple(allergens),
        cooking_methods=tuple(methods),
        **derived,
    )
    log.debug("food facets for %r: %s", candidate.name, cues)
    return FacetResult.from_cues(facets, cues)
