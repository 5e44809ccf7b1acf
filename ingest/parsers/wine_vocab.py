# ingest/parsers/wine_vocab.py
"""
Wine Vocabulary

Grape varieties, regions, and the colour / style normalization used by
classifier.py and enhancers/wine.py.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from ingest.parsers.text_norm import build_terms_re, find_terms, fold_accents, norm, term_key

# ── Grapes ───────────────────────────────────────────

RED_GRAPES = [
    "Cabernet Sauvignon", "Merlot", "Pinot Noir", "Syrah", "Shiraz",
    "Tempranillo", "Sangiovese", "Grenache", "Garnacha", "Malbec", "Zinfandel",
    "Barbera", "Nebbiolo", "Primitivo", "Montepulciano", "Nero d'Avola",
    "Corvina", "Rondinella", "Dolcetto", "Aglianico", "Cannonau", "Carmenère",
    "Petite Sirah", "Mourvèdre", "Cinsault", "Carignan", "Gamay", "Pinotage",
    "Cabernet Franc", "Touriga Nacional", "Lambrusco",
]

WHITE_GRAPES = [
    "Chardonnay", "Sauvignon Blanc", "Riesling", "Pinot Grigio", "Pinot Gris",
    "Gewürztraminer", "Albariño", "Verdejo", "Moscato", "Muscat", "Glera",
    "Trebbiano", "Vermentino", "Fiano", "Falanghina", "Greco", "Arneis",
    "Cortese", "Viognier", "Roussanne", "Marsanne", "Chenin Blanc", "Sémillon",
    "Melon de Bourgogne", "Grüner Veltliner", "Torrontés", "Picpoul",
]

GRAPE_VARIETIES = RED_GRAPES + WHITE_GRAPES

# ── Regions ──────────────────────────────────────────

WINE_REGIONS = [
    "Bordeaux", "Burgundy", "Bourgogne", "Champagne", "Chablis", "Sancerre",
    "Beaujolais", "Côtes du Rhône", "Rhône", "Loire", "Alsace", "Provence",
    "Languedoc", "Rioja", "Ribera del Duero", "Rueda", "Priorat", "Cava",
    "Chianti", "Chianti Classico", "Tuscany", "Toscana", "Piedmont", "Barolo",
    "Barbaresco", "Valpolicella", "Amarone", "Veneto", "Prosecco", "Sicily",
    "Franciacorta", "Mosel", "Douro", "Napa Valley", "Sonoma", "Willamette Valley",
    "Marlborough", "Central Otago", "Hawke's Bay", "Barossa Valley",
    "McLaren Vale", "Margaret River", "Yarra Valley", "Mendoza", "Maipo Valley",
    "Casablanca Valley", "Stellenbosch", "Swartland",
]

# ── Headers and style words ──────────────────────────

WINE_HEADER_WORDS = [
    "wine", "wines", "wine list", "red wine", "red wines", "white wine",
    "white wines", "rosé", "rose wine", "sparkling", "sparkling wine",
    "champagne", "fizz", "bubbles", "by the glass", "dessert wine",
    "dessert wines", "fortified", "port", "sherry", "vino", "vins",
]

# Words that mark a wine inside an item line (headers use WINE_HEADER_WORDS).
WINE_KEYWORDS = [
    "wine", "champagne", "prosecco", "cava", "crémant", "rosé", "sherry",
    "port wine", "vino", "brut", "franciacorta", "sauternes", "chateau",
    "château", "domaine", "bodega",
]

# Keywords that open a producer name ("Château Margaux") rather than describe the wine.
ESTATE_WORDS = ["chateau", "château", "domaine", "bodega"]

WINE_COLOR_WORDS: Dict[str, str] = {
    "red": "red",
    "rouge": "red",
    "rosso": "red",
    "tinto": "red",
    "white": "white",
    "blanc": "white",
    "bianco": "white",
    "blanco": "white",
    "rosé": "rosé",
    "rose": "rosé",
    "rosado": "rosé",
    "rosato": "rosé",
    "blush": "rosé",
    "sparkling": "sparkling",
    "champagne": "sparkling",
    "prosecco": "sparkling",
    "cava": "sparkling",
    "crémant": "sparkling",
    "franciacorta": "sparkling",
    "fizz": "sparkling",
    "orange": "orange",
    "skin contact": "orange",
    "amber": "orange",
}

WINE_STYLE_WORDS: Dict[str, str] = {
    "champagne": "champagne",
    "prosecco": "sparkling",
    "cava": "sparkling",
    "crémant": "sparkling",
    "franciacorta": "sparkling",
    "sparkling": "sparkling",
    "fizz": "sparkling",
    "brut": "sparkling",
    "dessert": "dessert",
    "sauternes": "dessert",
    "tokaji": "dessert",
    "ice wine": "dessert",
    "late harvest": "dessert",
    "moscato d'asti": "dessert",
    "port": "fortified",
    "sherry": "fortified",
    "madeira": "fortified",
    "marsala": "fortified",
    "fortified": "fortified",
}

VINTAGE_RE = re.compile(r"(?<!\d)((?:19|20)\d{2})(?!\d)")

GRAPE_RE = build_terms_re(GRAPE_VARIETIES)
REGION_RE = build_terms_re(WINE_REGIONS)
WINE_HEADER_RE = build_terms_re(WINE_HEADER_WORDS)
WINE_KEYWORD_RE = build_terms_re(WINE_KEYWORDS)
WINE_NOUN_RE = build_terms_re([k for k in WINE_KEYWORDS if k not in ESTATE_WORDS])
WINE_COLOR_RE = build_terms_re(WINE_COLOR_WORDS.keys())
WINE_STYLE_RE = build_terms_re(WINE_STYLE_WORDS.keys())

_GRAPE_DISPLAY = {term_key(g): g for g in GRAPE_VARIETIES}
_REGION_DISPLAY = {term_key(r): r for r in WINE_REGIONS}
_RED_KEYS = {term_key(g) for g in RED_GRAPES}
_WHITE_KEYS = {term_key(g) for g in WHITE_GRAPES}
_COLOR_KEYS = {term_key(k): v for k, v in WINE_COLOR_WORDS.items()}
_STYLE_KEYS = {term_key(k): v for k, v in WINE_STYLE_WORDS.items()}


def grapes_in(text: Optional[str]) -> List[str]:
    """Grape varieties in display form, in order of appearance."""
    return [_GRAPE_DISPLAY[h] for h in find_terms(GRAPE_RE, text) if h in _GRAPE_DISPLAY]


def regions_in(text: Optional[str]) -> List[str]:
    return [_REGION_DISPLAY[h] for h in find_terms(REGION_RE, text) if h in _REGION_DISPLAY]


def vintage_in(text: Optional[str]) -> Optional[int]:
    """First four-digit year in 1900–2099, or None."""
    m = VINTAGE_RE.search(text or "")
    return int(m.group(1)) if m else None


def is_grape_or_region(phrase: str) -> bool:
    key = term_key(phrase)
    return key in _GRAPE_DISPLAY or key in _REGION_DISPLAY


def normalize_wine_color(*texts: Optional[str]) -> Optional[str]:
    """
    Map free text (name, category, region...) to one of
    red / white / rosé / sparkling / orange. Falls back to grape colour.
    Texts are checked in order; the first explicit colour word wins.
    """
    for text in texts:
        for hit in find_terms(WINE_COLOR_RE, text):
            return _COLOR_KEYS[hit]
    for text in texts:
        for hit in find_terms(GRAPE_RE, text):
            if hit in _RED_KEYS:
                return "red"
            if hit in _WHITE_KEYS:
                return "white"
    return None


def normalize_wine_style(*texts: Optional[str]) -> Optional[str]:
    """still / sparkling / champagne / dessert / fortified."""
    for text in texts:
        for hit in find_terms(WINE_STYLE_RE, text):
            return _STYLE_KEYS[hit]
    if any(norm(fold_accents(t or "")) for t in texts):
        return "still"
    return None


def stated_wine_color(text: Optional[str]) -> Optional[str]:
    """A colour column / key value ("Red", "still_white") -> red / white / rosé / ..."""
    for hit in find_terms(WINE_COLOR_RE, (text or "").replace("_", " ")):
        return _COLOR_KEYS[hit]
    return None


def stated_wine_style(text: Optional[str]) -> Optional[str]:
    """A style column / key value ("sparkling", "still_white") -> style, None if unrecognised."""
    text = (text or "").replace("_", " ")
    for hit in find_terms(WINE_STYLE_RE, text):
        return _STYLE_KEYS[hit]
    if "still" in norm(text).split():
        return "still"
    return None
