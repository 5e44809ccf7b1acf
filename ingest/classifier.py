# ingest/classifier.py
"""
Type Classifier

Decides food / beverage / wine for a candidate from independent lexical
cues, and fills in a category when the candidate only has the fallback.

Scoring:
  - every type starts at BASE_CONFIDENCE and gains CUE_BOOST per cue,
    capped at 100
  - the type with the most cues wins; ties go wine > beverage > food
  - no cue at all -> food at NO_CUE_CONFIDENCE (never refuses)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ingest import config
from ingest.contracts import ItemCandidate, ItemType
from ingest.parsers import beverage_vocab as bev
from ingest.parsers import food_vocab as food
from ingest.parsers import wine_vocab as wine
from ingest.parsers.text_norm import build_terms_re, find_terms, norm

log = logging.getLogger(__name__)

BASE_CONFIDENCE = 50
CUE_BOOST = 15
NO_CUE_CONFIDENCE = 20
EXPLICIT_TYPE_CUES = 2

# Tie-break order.
_TYPE_PREFERENCE = (ItemType.WINE, ItemType.BEVERAGE, ItemType.FOOD)

_TYPE_HINTS: Dict[str, ItemType] = {
    "food": ItemType.FOOD,
    "dish": ItemType.FOOD,
    "beverage": ItemType.BEVERAGE,
    "drink": ItemType.BEVERAGE,
    "cocktail": ItemType.BEVERAGE,
    "beer": ItemType.BEVERAGE,
    "wine": ItemType.WINE,
}


# ------------------------
# Data structures
# ------------------------

@dataclass(frozen=True)
class TypeGuess:
    item_type: ItemType
    category: str
    confidence: int  # 0–100
    cues: Tuple[str, ...] = ()


# ------------------------
# Category keywords
# ------------------------

CATEGORY_KEYWORDS: Dict[str, Sequence[str]] = {
    "Cocktails": bev.COCKTAIL_NAMES + ["cocktail", "cocktails", "sour", "mule", "collins"],
    "Mocktails": ["mocktail", "mocktails", "virgin", "alcohol free", "zero proof"],
    "Beers": ["beer", "beers", "lager", "ipa", "ale", "stout", "pilsner", "porter", "cider", "on tap", "draught"],
    "Spirits": ["whisky", "whiskey", "bourbon", "scotch", "vodka", "gin", "rum", "tequila", "mezcal", "brandy", "cognac"],
    "Soft Drinks": ["cola", "coke", "lemonade", "juice", "soda", "tonic", "water", "smoothie", "milkshake", "kombucha"],
    "Hot Drinks": ["coffee", "espresso", "latte", "cappuccino", "americano", "flat white", "mocha", "tea", "hot chocolate"],
    "Wines": ["wine", "wines", "champagne", "prosecco", "cava", "rosé", "port", "sherry"],
    "Starters": ["starter", "starters", "soup", "bruschetta", "calamari", "nachos", "pâté", "terrine", "wings", "dip", "croquettes"],
    "Salads": ["salad", "salads", "caesar"],
    "Mains": [
        "burger", "steak", "risotto", "curry", "pie", "fish and chips", "pasta", "pizza",
        "lasagne", "lasagna", "chicken", "lamb", "salmon", "sirloin", "ribeye", "schnitzel", "roast",
    ],
    "Sides": ["fries", "chips", "onion rings", "side", "coleslaw", "mash", "garlic bread", "greens"],
    "Desserts": [
        "dessert", "cake", "brownie", "cheesecake", "tiramisu", "ice cream", "sorbet",
        "crumble", "tart", "sundae", "pudding", "panna cotta", "affogato",
    ],
}

CATEGORY_TYPES: Dict[str, ItemType] = {
    "Cocktails": ItemType.BEVERAGE,
    "Mocktails": ItemType.BEVERAGE,
    "Beers": ItemType.BEVERAGE,
    "Spirits": ItemType.BEVERAGE,
    "Soft Drinks": ItemType.BEVERAGE,
    "Hot Drinks": ItemType.BEVERAGE,
    "Wines": ItemType.WINE,
    "Starters": ItemType.FOOD,
    "Salads": ItemType.FOOD,
    "Mains": ItemType.FOOD,
    "Sides": ItemType.FOOD,
    "Desserts": ItemType.FOOD,
}

_CATEGORY_RES = {cat: build_terms_re(words) for cat, words in CATEGORY_KEYWORDS.items()}


def infer_category(name: Optional[str], description: Optional[str], item_type: ItemType) -> Optional[str]:
    """
    Keyword category inference limited to categories of ``item_type``.
    Name hits weigh 4, description hits 2. None when nothing matches.
    """
    best: Optional[str] = None
    best_score = 0
    for category, rx in _CATEGORY_RES.items():
        if CATEGORY_TYPES[category] != item_type:
            continue
        score = len(find_terms(rx, name)) * 4 + len(find_terms(rx, description)) * 2
        if score > best_score:
            best, best_score = category, score
    if best is None and item_type == ItemType.WINE:
        return "Wines"
    return best


# ------------------------
# Type cues
# ------------------------

def _wine_cues(header: str, body: str) -> List[str]:
    cues: List[str] = []
    if find_terms(wine.WINE_HEADER_RE, header):
        cues.append("header:wine")
    if find_terms(wine.WINE_KEYWORD_RE, body):
        cues.append("keyword:wine")
    if wine.vintage_in(body) is not None:
        cues.append("vintage")
    if wine.grapes_in(body):
        cues.append("grape")
    return cues


def _beverage_cues(header: str, body: str) -> List[str]:
    cues: List[str] = []
    if find_terms(bev.BEVERAGE_HEADER_RE, header):
        cues.append("header:beverage")
    if find_terms(bev.DRINK_NAME_RE, body) or bev.NON_ALCOHOLIC_RE.search(body):
        cues.append("keyword:drink")
    if bev.ABV_RE.search(body) or bev.VOLUME_RE.search(body):
        cues.append("abv/volume")
    if bev.spirits_in(body) or bev.beer_styles_in(body):
        cues.append("spirit/beer-style")
    return cues


def _food_cues(header: str, body: str) -> List[str]:
    cues: List[str] = []
    if find_terms(food.FOOD_HEADER_RE, header):
        cues.append("header:food")
    if find_terms(food.DISH_NOUN_RE, body):
        cues.append("dish-noun")
    if food.cooking_methods_in(body):
        cues.append("cooking-method")
    return cues


def _score(cues: int) -> int:
    return min(100, BASE_CONFIDENCE + CUE_BOOST * cues)


# ------------------------
# Core
# ------------------------

def classify(candidate: ItemCandidate) -> TypeGuess:
    header = candidate.category_hint or ""
    if norm(header) == norm(config.UNCATEGORIZED):
        header = ""
    body = " ".join(
        p for p in (candidate.name, candidate.description, candidate.raw_text) if p
    )

    cue_map: Dict[ItemType, List[str]] = {
        ItemType.WINE: _wine_cues(header, body),
        ItemType.BEVERAGE: _beverage_cues(header, body),
        ItemType.FOOD: _food_cues(header, body),
    }

    hinted = _TYPE_HINTS.get(norm(candidate.type_hint))
    if hinted is not None:
        cue_map[hinted] = cue_map[hinted] + ["explicit-type"] * EXPLICIT_TYPE_CUES

    best_type = max(_TYPE_PREFERENCE, key=lambda t: (len(cue_map[t]), -_TYPE_PREFERENCE.index(t)))
    cues = cue_map[best_type]
    if not cues:
        best_type = ItemType.FOOD
        confidence = NO_CUE_CONFIDENCE
    else:
        confidence = _score(len(cues))

    category = (candidate.category_hint or "").strip()
    if not category or norm(category) == norm(config.UNCATEGORIZED):
        category = infer_category(candidate.name, candidate.description, best_type) or config.UNCATEGORIZED

    log.debug("classified %r as %s (%d) via %s", candidate.name, best_type.value, confidence, cues)
    return TypeGuess(item_type=best_type, category=category, confidence=confidence, cues=tuple(cues))
