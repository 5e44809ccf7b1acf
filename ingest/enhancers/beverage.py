# ingest/enhancers/beverage.py
"""
Beverage facet enhancer.

Reads spirit / beer style, ABV, serving size and style, the cocktail
ingredient list (normalized, preparation steps dropped, de-duplicated
case-insensitively), the non-alcoholic flag and "size price" serving
options from the candidate's source text. Values a keyed row states
(a "Spirit" column, a JSON "servingOptions" key) are used as given.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ingest.contracts import BeverageFacets, ItemCandidate, ServingOption
from ingest.enhancers.base import (
    FacetResult,
    explicit_bool,
    explicit_list,
    explicit_serving_options,
    explicit_text,
    item_text,
    split_list,
    stated,
)
from ingest.parsers import beverage_vocab as vocab
from ingest.parsers.price_parser import find_prices, find_sized_prices
from ingest.parsers.text_norm import find_terms, term_key

log = logging.getLogger(__name__)


def _alcohol_content(text: str) -> Optional[str]:
    for m in vocab.ABV_RE.finditer(text):
        value = m.group(1)
        if float(value) > 0:
            return f"{value}%"
    return None


def _serving_size(text: str) -> Optional[str]:
    m = vocab.VOLUME_RE.search(text)
    if m:
        return f"{m.group(1)}{m.group(2).lower()}"
    for hit in find_terms(vocab.SIZE_WORD_RE, text):
        return vocab.SIZE_WORD_MAP.get(hit, hit)
    return None


def _strip_specs(fragment: str) -> str:
    fragment = vocab.ABV_RE.sub("", fragment)
    fragment = vocab.VOLUME_RE.sub("", fragment)
    for pm in reversed(find_prices(fragment)):
        fragment = fragment[: pm.start] + fragment[pm.end:]
    return fragment.strip(" .,-")


def cocktail_ingredients(description: Optional[str]) -> List[str]:
    """
    "White rum, fresh lime juice, muddled mint, soda water, shaken"
      -> ["white rum", "lime juice", "mint", "soda water"]
    """
    out: List[str] = []
    seen = set()
    for part in split_list(description):
        part = _strip_specs(part)
        if not part or vocab.is_preparation_method(part):
            continue
        normalized = vocab.normalize_ingredient(part)
        key = term_key(normalized)
        if key and key not in seen:
            seen.add(key)
            out.append(normalized)
    return out


def _serving_options(raw_text: str) -> List[ServingOption]:
    options: List[ServingOption] = []
    seen = set()
    for size, price in find_sized_prices(raw_text):
        key = term_key(size)
        if key in seen:
            continue
        seen.add(key)
        options.append(ServingOption(size=key, price=price))
    return options


def _stated_abv(value) -> Optional[str]:
    text = explicit_text(value)
    if text is None:
        return None
    return _alcohol_content(text if "%" in text else f"{text}%")


def enhance(candidate: ItemCandidate, raw_text: Optional[str] = None) -> FacetResult:
    source = raw_text or candidate.raw_text or ""
    text = item_text(candidate, raw_text)
    given = stated(candidate)
    cues: List[str] = []

    spirit_type = (explicit_text(given.get("spirit_type")) or "").lower() or None
    if spirit_type is None:
        spirits = vocab.spirits_in(" ".join(p for p in (candidate.name, candidate.description) if p))
        spirit_type = spirits[0] if spirits else None
    if spirit_type:
        cues.append("spirit")

    beer_style = explicit_text(given.get("beer_style"))
    if beer_style is None:
        styles = vocab.beer_styles_in(text)
        beer_style = styles[0] if styles else None
    if beer_style:
        cues.append("beer-style")

    ingredients = [
        vocab.normalize_ingredient(i)
        for i in explicit_list(given.get("cocktail_ingredients") or given.get("ingredients"))
    ]
    if not ingredients and (spirit_type or not beer_style):
        ingredients = cocktail_ingredients(candidate.description)
    if ingredients:
        cues.append("ingredients")

    alcohol = _stated_abv(given.get("alcohol_content")) or _alcohol_content(text)
    if alcohol:
        cues.append("abv")

    size = explicit_text(given.get("serving_size")) or _serving_size(text)
    if size:
        cues.append("serving-size")

    style = (explicit_text(given.get("serving_style")) or "").lower() or vocab.serving_style_in(text)
    if style:
        cues.append("serving-style")

    is_non_alcoholic = explicit_bool(given.get("is_non_alcoholic"))
    if is_non_alcoholic is not None:
        cues.append("non-alcoholic")
    elif vocab.NON_ALCOHOLIC_RE.search(text):
        is_non_alcoholic = True
        cues.append("non-alcoholic")
    elif spirit_type or beer_style or alcohol:
        is_non_alcoholic = False

    options = explicit_serving_options(given.get("serving_options")) or _serving_options(source)
    if options:
        cues.append("serving-options")

    facets = BeverageFacets(
        spirit_type=spirit_type,
        beer_style=beer_style,
        cocktail_ingredients=tuple(ingredients),
        alcohol_content=alcohol,
        serving_style=style,
        serving_size=size,
        is_non_alcoholic=is_non_alcoholic,
        serving_options=tuple(options),
    )
    log.debug("beverage facets for %r: %s", candidate.name, cues)
    return FacetResult.from_cues(facets, cues)
