# ingest/parsers/food_vocab.py
"""
Food Vocabulary

Dish nouns, allergen keywords, cooking methods and dietary markers.
Used by classifier.py (type cues) and enhancers/food.py (facets).
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from ingest.parsers.text_norm import build_terms_re, find_terms, term_key

FOOD_HEADER_WORDS = [
    "starters", "starter", "appetizers", "appetisers", "small plates",
    "sharing", "to share", "mains", "main courses", "entrees", "entrées",
    "desserts", "puddings", "sweets", "sides", "side dishes", "salads",
    "soups", "pizza", "pizzas", "pasta", "burgers", "sandwiches", "wraps",
    "breakfast", "brunch", "lunch", "dinner", "grill", "from the grill",
    "seafood", "kids", "children's menu", "specials", "snacks", "nibbles",
    "tapas", "bar snacks", "sunday roast",
]

DISH_NOUNS = [
    "burger", "pizza", "pasta", "salad", "soup", "steak", "chicken", "fish",
    "risotto", "curry", "sandwich", "wrap", "taco", "tacos", "burrito",
    "fries", "chips", "cake", "tart", "pie", "ice cream", "brownie",
    "cheesecake", "lasagna", "lasagne", "ravioli", "spaghetti", "linguine",
    "gnocchi", "wings", "ribs", "lamb", "pork", "beef", "salmon", "prawns",
    "calamari", "mussels", "bruschetta", "nachos", "omelette", "pancakes",
    "waffles", "sundae", "crumble", "sorbet", "tiramisu", "pâté", "terrine",
    "skewers", "kebab", "dumplings", "noodles", "fillet", "sirloin", "ribeye",
    "schnitzel", "platter", "toastie", "bao", "quesadilla", "hummus",
]

# Allergen family -> trigger words.
ALLERGEN_KEYWORDS: Dict[str, List[str]] = {
    "dairy": [
        "cheese", "cream", "butter", "milk", "yogurt", "yoghurt", "mozzarella",
        "parmesan", "cheddar", "brie", "feta", "mascarpone", "ricotta",
        "crème fraîche", "burrata", "halloumi", "gorgonzola", "goat's cheese",
        "custard", "ice cream", "béchamel",
    ],
    "gluten": [
        "bread", "flour", "pasta", "wheat", "breadcrumbs", "breaded", "batter",
        "battered", "pastry", "bun", "brioche", "croutons", "noodles",
        "sourdough", "focaccia", "ciabatta", "tortilla", "spaghetti",
        "linguine", "lasagne", "lasagna", "ravioli", "couscous", "barley",
        "crumble", "biscuit", "pizza", "panko",
    ],
    "nuts": [
        "almond", "almonds", "walnut", "walnuts", "pecan", "pecans", "cashew",
        "cashews", "pistachio", "pistachios", "hazelnut", "hazelnuts",
        "peanut", "peanuts", "pine nuts", "macadamia", "praline", "nuts",
    ],
    "seafood": [
        "fish", "salmon", "tuna", "cod", "haddock", "sea bass", "prawn",
        "prawns", "shrimp", "crab", "lobster", "mussels", "oysters", "clams",
        "scallops", "squid", "calamari", "anchovies", "anchovy", "octopus",
    ],
    "eggs": ["egg", "eggs", "mayonnaise", "mayo", "aioli", "meringue", "hollandaise"],
    "soy": ["soy", "soya", "tofu", "edamame", "miso", "tamari"],
    "sesame": ["sesame", "tahini"],
}

MEAT_WORDS = [
    "beef", "steak", "chicken", "pork", "bacon", "ham", "lamb", "duck",
    "sausage", "chorizo", "prosciutto", "pancetta", "pepperoni", "salami",
    "turkey", "veal", "venison", "mince", "brisket", "ribs", "sirloin",
    "ribeye", "fillet steak", "wagyu", "gelatine", "nduja",
]

COOKING_METHODS = [
    "grilled", "chargrilled", "fried", "deep-fried", "pan-fried", "stir-fried",
    "roasted", "roast", "baked", "braised", "steamed", "smoked", "poached",
    "seared", "pan-seared", "sautéed", "slow-cooked", "slow-roasted",
    "charred", "confit", "cured", "stewed", "barbecued", "bbq", "flame-grilled",
    "toasted", "crispy", "battered", "breaded", "raw",
]

SPICY_WORDS = [
    "spicy", "chilli", "chili", "chillies", "jalapeño", "jalapeno", "sriracha",
    "harissa", "peri peri", "piri piri", "cayenne", "habanero", "buffalo",
    "szechuan", "sichuan", "vindaloo", "nduja", "hot sauce", "fiery",
]

VEGETARIAN_RE = re.compile(r"\((?:v|veg|vegetarian)\)|\bvegetarian\b|\bveggie\b", re.IGNORECASE)
VEGAN_RE = re.compile(r"\((?:vg|ve|vegan)\)|\bvegan\b|\bplant[\s-]based\b", re.IGNORECASE)
GLUTEN_FREE_RE = re.compile(r"\((?:gf|g/f)\)|\bgluten[\s-]free\b|\bcoeliac\b", re.IGNORECASE)
DAIRY_FREE_RE = re.compile(r"\((?:df|d/f)\)|\bdairy[\s-]free\b|\blactose[\s-]free\b", re.IGNORECASE)
# Marker tokens stripped out of item names once read.
DIETARY_MARKER_RE = re.compile(r"\s*\((?:v|vg|ve|veg|gf|g/f|df|d/f|n)\)", re.IGNORECASE)

FOOD_HEADER_RE = build_terms_re(FOOD_HEADER_WORDS)
DISH_NOUN_RE = build_terms_re(DISH_NOUNS)
MEAT_RE = build_terms_re(MEAT_WORDS)
COOKING_RE = build_terms_re(COOKING_METHODS)
SPICY_RE = build_terms_re(SPICY_WORDS)
ALLERGEN_RES = {family: build_terms_re(words) for family, words in ALLERGEN_KEYWORDS.items()}

_COOKING_DISPLAY = {term_key(c): c for c in COOKING_METHODS}


def allergens_in(text: Optional[str]) -> List[str]:
    """Allergen families whose keywords appear, in ALLERGEN_KEYWORDS order."""
    return [family for family, rx in ALLERGEN_RES.items() if find_terms(rx, text)]


def cooking_methods_in(text: Optional[str]) -> List[str]:
    return [_COOKING_DISPLAY.get(h, h) for h in find_terms(COOKING_RE, text)]


def has_meat(text: Optional[str]) -> bool:
    return bool(find_terms(MEAT_RE, text))


def is_spicy(text: Optional[str]) -> bool:
    return bool(find_terms(SPICY_RE, text))
