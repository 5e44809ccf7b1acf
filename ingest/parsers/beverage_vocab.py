# ingest/parsers/beverage_vocab.py
"""
Beverage Vocabulary

Single source of truth for drink detection and normalization.
Used by classifier.py (type cues) and enhancers/beverage.py (facets).
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from ingest.parsers.text_norm import build_terms_re, find_terms, term_key

# ── Section headers ──────────────────────────────────

BEVERAGE_HEADER_WORDS = [
    "cocktails", "cocktail", "drinks", "drink", "beverages", "beverage",
    "spirits", "beers", "beer", "ales", "lagers", "ciders", "cider",
    "mocktails", "non-alcoholic", "soft drinks", "juices", "coffee", "tea",
    "hot drinks", "cold drinks", "bar menu", "drink menu", "on tap",
    "draught", "draft", "whisky", "whiskey", "gin", "vodka", "rum", "tequila",
    "liqueurs", "aperitifs", "digestifs", "shots",
]

# ── Named drinks ─────────────────────────────────────

COCKTAIL_NAMES = [
    "martini", "manhattan", "old fashioned", "negroni", "mojito", "margarita",
    "daiquiri", "cosmopolitan", "bloody mary", "mai tai", "piña colada",
    "long island iced tea", "espresso martini", "whiskey sour", "whisky sour",
    "aperol spritz", "spritz", "gimlet", "paloma", "caipirinha", "sidecar",
    "moscow mule", "dark and stormy", "tom collins", "french 75", "sazerac",
    "pornstar martini", "cuba libre", "bellini", "mimosa",
]

SOFT_DRINKS = [
    "cola", "coke", "diet coke", "lemonade", "soda", "tonic", "ginger ale",
    "iced tea", "orange juice", "apple juice", "smoothie", "milkshake",
    "espresso", "americano", "latte", "cappuccino", "flat white", "mocha",
    "hot chocolate", "sparkling water", "still water", "kombucha",
]

# ── Spirits and beer styles ──────────────────────────

SPIRIT_MAP: Dict[str, str] = {
    "vodka": "vodka",
    "gin": "gin",
    "rum": "rum",
    "white rum": "rum",
    "dark rum": "rum",
    "spiced rum": "rum",
    "tequila": "tequila",
    "mezcal": "mezcal",
    "whisky": "whiskey",
    "whiskey": "whiskey",
    "bourbon": "whiskey",
    "scotch": "whiskey",
    "rye": "whiskey",
    "brandy": "brandy",
    "cognac": "brandy",
    "armagnac": "brandy",
    "pisco": "pisco",
    "cachaça": "cachaca",
    "absinthe": "absinthe",
    "vermouth": "vermouth",
    "amaretto": "liqueur",
    "liqueur": "liqueur",
    "triple sec": "liqueur",
    "cointreau": "liqueur",
    "campari": "liqueur",
    "aperol": "liqueur",
    "kahlua": "liqueur",
    "sake": "sake",
}

BEER_STYLE_MAP: Dict[str, str] = {
    "ipa": "IPA",
    "india pale ale": "IPA",
    "pale ale": "Pale Ale",
    "lager": "Lager",
    "pilsner": "Pilsner",
    "pils": "Pilsner",
    "stout": "Stout",
    "porter": "Porter",
    "wheat beer": "Wheat Beer",
    "hefeweizen": "Wheat Beer",
    "witbier": "Wheat Beer",
    "amber ale": "Amber Ale",
    "bitter": "Bitter",
    "best bitter": "Bitter",
    "saison": "Saison",
    "cider": "Cider",
}

SERVING_STYLE_MAP: Dict[str, str] = {
    "on the rocks": "on the rocks",
    "over ice": "on the rocks",
    "straight up": "straight up",
    "neat": "neat",
    "shaken": "shaken",
    "stirred": "stirred",
    "built": "built",
    "blended": "blended",
    "frozen": "frozen",
    "on tap": "draft",
    "draught": "draft",
    "draft": "draft",
    "bottled": "bottled",
    "canned": "canned",
}

# ── Ingredient normalization ─────────────────────────

INGREDIENT_NORMALIZATIONS: Dict[str, str] = {
    "fresh lime juice": "lime juice",
    "fresh lemon juice": "lemon juice",
    "fresh squeezed lime juice": "lime juice",
    "fresh squeezed lemon juice": "lemon juice",
    "freshly squeezed lime juice": "lime juice",
    "freshly squeezed lemon juice": "lemon juice",
    "fresh lime": "lime juice",
    "fresh lemon": "lemon juice",
    "house made simple syrup": "simple syrup",
    "homemade simple syrup": "simple syrup",
    "house simple syrup": "simple syrup",
    "sugar syrup": "simple syrup",
    "homemade grenadine": "grenadine",
    "house made grenadine": "grenadine",
    "muddled mint": "mint",
    "muddled mint leaves": "mint",
    "fresh mint": "mint",
    "fresh mint leaves": "mint",
    "mint leaves": "mint",
    "muddled cucumber": "cucumber",
    "fresh cucumber": "cucumber",
    "lemon twist": "lemon peel",
    "orange twist": "orange peel",
    "lime twist": "lime peel",
    "maraschino cherry": "cherry",
    "cocktail cherry": "cherry",
    "club soda": "soda water",
    "sparkling water": "soda water",
    "soda": "soda water",
    "tonic water": "tonic",
    "dry vermouth": "vermouth",
    "sweet vermouth": "vermouth",
}

PREPARATION_METHODS = [
    "shaken", "stirred", "muddled", "built", "strained", "blended", "chilled",
    "frozen", "neat", "on the rocks", "straight up", "garnished", "served",
    "topped", "finished", "mixed", "combined",
]

# ── Patterns ─────────────────────────────────────────

ABV_RE = re.compile(
    r"(?<![\d.])(\d{1,2}(?:\.\d{1,2})?)\s?%\s?(?:abv|vol\.?|alc\.?)?",
    re.IGNORECASE,
)
VOLUME_RE = re.compile(
    r"(?<![\d.])(\d+(?:\.\d+)?)\s?(ml|cl|l|oz|litre|liter)\b",
    re.IGNORECASE,
)
SIZE_WORD_MAP: Dict[str, str] = {
    "half pint": "half pint",
    "pint": "pint",
    "schooner": "schooner",
    "bottle": "bottle",
    "can": "can",
    "glass": "glass",
    "shot": "shot",
    "single": "single",
    "double": "double",
    "jug": "jug",
    "pitcher": "pitcher",
}
NON_ALCOHOLIC_RE = re.compile(
    r"\b(?:virgin|mocktails?|alcohol[\s-]free|non[\s-]alcoholic|zero[\s-]proof|"
    r"low[\s-]and[\s-]no)\b|(?<![\d.])0(?:\.0)?\s?%",
    re.IGNORECASE,
)

BEVERAGE_HEADER_RE = build_terms_re(BEVERAGE_HEADER_WORDS)
DRINK_NAME_RE = build_terms_re(COCKTAIL_NAMES + SOFT_DRINKS)
SPIRIT_RE = build_terms_re(SPIRIT_MAP.keys())
BEER_STYLE_RE = build_terms_re(BEER_STYLE_MAP.keys())
SERVING_STYLE_RE = build_terms_re(SERVING_STYLE_MAP.keys())
SIZE_WORD_RE = build_terms_re(SIZE_WORD_MAP.keys())

_SPIRIT_KEYS = {term_key(k): v for k, v in SPIRIT_MAP.items()}
_BEER_KEYS = {term_key(k): v for k, v in BEER_STYLE_MAP.items()}
_STYLE_KEYS = {term_key(k): v for k, v in SERVING_STYLE_MAP.items()}
_INGREDIENT_KEYS = {term_key(k): v for k, v in INGREDIENT_NORMALIZATIONS.items()}
_PREP_KEYS = [term_key(m) for m in PREPARATION_METHODS]


def spirits_in(text: Optional[str]) -> List[str]:
    """Canonical spirit names, in order of appearance."""
    out: List[str] = []
    for hit in find_terms(SPIRIT_RE, text):
        canon = _SPIRIT_KEYS.get(hit)
        if canon and canon not in out:
            out.append(canon)
    return out


def beer_styles_in(text: Optional[str]) -> List[str]:
    out: List[str] = []
    for hit in find_terms(BEER_STYLE_RE, text):
        canon = _BEER_KEYS.get(hit)
        if canon and canon not in out:
            out.append(canon)
    return out


def serving_style_in(text: Optional[str]) -> Optional[str]:
    for hit in find_terms(SERVING_STYLE_RE, text):
        return _STYLE_KEYS.get(hit)
    return None


def is_preparation_method(ingredient: str) -> bool:
    """
    True for fragments like "shaken", "served over ice" or "garnished with
    lime" that describe preparation rather than an ingredient.
    """
    key = term_key(ingredient)
    if key in _INGREDIENT_KEYS:
        return False
    words = key.split(" ")
    if words[0] in {"garnished", "served", "topped", "finished"}:
        return True
    if len(words) > 3:
        return False
    return any(re.search(rf"\b{re.escape(m)}\b", key) for m in _PREP_KEYS)


def normalize_ingredient(ingredient: str) -> str:
    cleaned = ingredient.strip().strip(".;")
    return _INGREDIENT_KEYS.get(term_key(cleaned), cleaned.lower())
