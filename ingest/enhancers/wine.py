# ingest/enhancers/wine.py
"""
Wine facet enhancer.

Stated values (a "Vintage" column, a JSON "grapeVariety" key...) are taken
as given; the text passes below only fill what was not stated.

  - vintage: first four-digit year 1900–2099
  - grapes / region: lexicon matches
  - producer: capitalised run of 2+ words in the name once grapes,
    regions and colour / style words are cut out (estate words such as
    "Château" stay, they open the producer's name)
  - colour / style: explicit words in name, description or category,
    colour falling back to the grape's colour
  - serving options: "Glass £7, Bottle £28", "175ml: 9", {"175ml": 9}

Once the vintage and a trailing region are captured, they are taken out of
the item name: "Château Margaux 2015 Bordeaux" -> "Château Margaux".
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from ingest.contracts import ItemCandidate, ServingOption, WineFacets
from ingest.enhancers.base import (
    FacetResult,
    explicit_int,
    explicit_list,
    explicit_serving_options,
    explicit_text,
    item_text,
    size_key,
    stated,
)
from ingest.parsers import wine_vocab as vocab
from ingest.parsers.price_parser import find_sized_prices, parse_price
from ingest.parsers.text_norm import fold_accents_keep_length, term_key

log = logging.getLogger(__name__)

_FRAGMENT_RE = re.compile(
    r"[\"']?(\d+\s?(?:ml|cl)|glass|bottle|carafe|half bottle|magnum)[\"']?\s*[:=]\s*[£$€]?\s*(\d+(?:[.,]\d{1,2})?)",
    re.IGNORECASE,
)
_CAP_RUN_RE = re.compile(
    r"(?:[A-ZÀ-Ý][\w'’.-]+)(?:\s+(?:(?:de|du|des|la|le|di|del|della|von|van|&)\s+)?[A-ZÀ-Ý][\w'’.-]+)+"
)
_WS_RE = re.compile(r"\s+")


def _serving_options(raw_text: str) -> List[ServingOption]:
    options: List[ServingOption] = []
    seen = set()
    pairs = list(find_sized_prices(raw_text))
    for m in _FRAGMENT_RE.finditer(raw_text):
        price, err = parse_price(m.group(2))
        if price is not None and err is None:
            pairs.append((m.group(1), price))
    for size, price in pairs:
        key = size_key(size)
        if key in seen:
            continue
        seen.add(key)
        options.append(ServingOption(size=key, price=price))
    return options


def _producer(name: str) -> Optional[str]:
    folded = fold_accents_keep_length(name)
    cut = [False] * len(name)
    for rx in (vocab.GRAPE_RE, vocab.REGION_RE, vocab.WINE_COLOR_RE, vocab.WINE_STYLE_RE, vocab.WINE_NOUN_RE):
        for m in rx.finditer(folded):
            for i in range(m.start(), m.end()):
                cut[i] = True
    kept = "".join("|" if c else ch for ch, c in zip(name, cut))
    for segment in kept.split("|"):
        m = _CAP_RUN_RE.search(segment)
        if m:
            return m.group(0).strip()
    return None


def _display_name(name: str, vintage: Optional[int], region: Optional[str]) -> str:
    """Name without the vintage year and without a region that follows other words."""
    spans = []
    if vintage is not None:
        for m in vocab.VINTAGE_RE.finditer(name):
            if int(m.group(1)) == vintage:
                spans.append((m.start(), m.end()))
    if region:
        for m in vocab.REGION_RE.finditer(fold_accents_keep_length(name)):
            if m.start() > 0 and term_key(m.group(1)) == term_key(region):
                spans.append((m.start(), m.end()))
    out = name
    for start, end in sorted(spans, reverse=True):
        out = out[:start] + " " + out[end:]
    out = _WS_RE.sub(" ", out).strip(" -–—,|")
    return out or name


def enhance(candidate: ItemCandidate, raw_text: Optional[str] = None) -> FacetResult:
    source = raw_text or candidate.raw_text or ""
    text = item_text(candidate, raw_text)
    given = stated(candidate)
    cues: List[str] = []

    vintage = explicit_int(given.get("vintage"))
    if vintage is None:
        vintage = vocab.vintage_in(" ".join(p for p in (candidate.name, candidate.description, source) if p))
    if vintage is not None:
        cues.append("vintage")

    grapes = explicit_list(given.get("grape_varieties")) or vocab.grapes_in(text)
    if grapes:
        cues.append("grapes")

    region = explicit_text(given.get("region"))
    if region is None:
        regions = vocab.regions_in(text)
        region = regions[0] if regions else None
    if region:
        cues.append("region")

    producer = explicit_text(given.get("producer")) or _producer(candidate.name or "")
    if producer:
        cues.append("producer")

    color = vocab.stated_wine_color(explicit_text(given.get("wine_color"))) \
        or vocab.stated_wine_color(explicit_text(given.get("wine_style"))) \
        or vocab.normalize_wine_color(
            candidate.name, candidate.description, candidate.category_hint, region, " ".join(grapes)
        )
    if color:
        cues.append("color")

    style = vocab.stated_wine_style(explicit_text(given.get("wine_style"))) \
        or vocab.normalize_wine_style(candidate.name, candidate.description, candidate.category_hint)
    if style and (style != "still" or "wine_style" in given):
        cues.append("style")

    options = explicit_serving_options(given.get("serving_options")) or _serving_options(source)
    if options:
        cues.append("serving-options")

    facets = WineFacets(
        vintage=vintage,
        grape_varieties=tuple(grapes),
        region=region,
        producer=producer,
        wine_color=color,
        wine_style=style,
        serving_options=tuple(options),
    )
    name = _display_name(candidate.name or "", vintage, region)
    log.debug("wine facets for %r: %s", candidate.name, cues)
    return FacetResult.from_cues(facets, cues, name=name if name != candidate.name else None)
