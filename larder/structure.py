"""Structural repair of stored meal and ingredient documents.

Hand-entered documents drift from the shape the models expect: scalars
where lists belong, ingredient maps keyed by placeholders, amounts without
units, partial feature and storage objects. The functions below work on raw
store documents and return the fields that bring one document back into
shape. They never touch the store.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .constants import (
    DEFAULT_FEATURES,
    DEFAULT_STORAGE_OPTIONS,
    DEFAULT_TECHNIQUES,
    PLACEHOLDER_INGREDIENT_NAMES,
    VALID_COOKING_METHODS,
    VALID_RAINBOW_COLORS,
    VALID_SEASONS,
)

_UNIT = re.compile(
    r"(?<![a-z])(cups?|tbsp|tsp|g|grams?|kg|ml|l|oz|lbs?|pieces?|slices?|cloves?"
    r"|bunch(?:es)?|heads?|cans?|jars?|packs?|bags?|dash(?:es)?|pinch(?:es)?)\b",
    re.IGNORECASE,
)

# First match wins; order puts specific words before generic ones.
_UNIT_BY_KEYWORD: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("rice", "pasta", "bread", "quinoa", "oat", "flour"), "cup"),
    (("oil", "vinegar", "sauce", "broth", "milk", "water"), "tbsp"),
    (("salt", "pepper", "oregano", "basil", "thyme", "cumin"), "tsp"),
)
_DEFAULT_UNIT = "piece"

_METHOD_BY_KEYWORD: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("grill",), "grilling"),
    (("fried", "fry"), "frying"),
    (("baked", "bake"), "baking"),
    (("boil",), "boiling"),
    (("roast",), "roasting"),
    (("sauté", "saute"), "sautéing"),
    (("soup", "stew"), "soup"),
    (("smoothie", "juice"), "smoothie"),
    (("mash",), "mashing"),
    (("poach",), "poaching"),
    (("braise", "braising"), "braising"),
    (("salad", "fresh", "raw"), "raw"),
    (("rice bowl",), "boiling"),
)
_DEFAULT_METHOD = "frying"

_KNOWN_INGREDIENTS = (
    "sweet potato",
    "bell pepper",
    "chicken",
    "beef",
    "pork",
    "salmon",
    "tuna",
    "shrimp",
    "egg",
    "tofu",
    "rice",
    "quinoa",
    "pasta",
    "bread",
    "potato",
    "spinach",
    "kale",
    "broccoli",
    "asparagus",
    "tomato",
    "onion",
    "garlic",
    "avocado",
    "lemon",
    "lime",
)

_NAME_BY_DISH = (
    ("salad", "vegetables"),
    ("soup", "vegetables"),
    ("stir-fry", "vegetables"),
    ("hash", "potato"),
    ("scrambled", "egg"),
)


def as_list(value: Any) -> Optional[List[str]]:
    """Coerce a scalar or sequence field into a list of non-blank strings.

    A multi-line string becomes one item per line. ``None`` stays ``None``.
    """
    if value is None:
        return None
    if isinstance(value, str):
        items: Sequence[Any] = value.splitlines()
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        items = [value]
    return [str(item).strip() for item in items if str(item).strip()]


def is_placeholder_name(name: Any) -> bool:
    """An ingredient key that names nothing: numeric, punctuation or a stock filler."""
    if not isinstance(name, str):
        return True
    name = name.strip()
    if len(name) < 2 or name.isdigit():
        return True
    if re.fullmatch(r"[^\w\s]+", name):
        return True
    return name.lower() in PLACEHOLDER_INGREDIENT_NAMES


def has_unit(amount: str) -> bool:
    return bool(_UNIT.search(amount))


def default_unit(name: str) -> str:
    lowered = name.lower()
    for keywords, unit in _UNIT_BY_KEYWORD:
        if any(k in lowered for k in keywords):
            return unit
    return _DEFAULT_UNIT


def with_unit(name: str, amount: Any) -> str:
    """Return ``amount`` as text carrying a unit, adding the default one if needed."""
    text = "" if amount is None else str(amount).strip()
    if not text:
        return f"1 {default_unit(name)}"
    if has_unit(text):
        return text
    return f"{text} {default_unit(name)}"


def cooking_method_from_title(title: Optional[str]) -> str:
    """Guess a cooking method from keywords in a meal title."""
    if not title:
        return "raw"
    lowered = title.lower()
    for keywords, method in _METHOD_BY_KEYWORD:
        if any(k in lowered for k in keywords):
            return method
    return _DEFAULT_METHOD


def ingredient_name_from_title(title: Optional[str]) -> Optional[str]:
    """Name a placeholder ingredient after what the meal title mentions."""
    if not title:
        return None
    lowered = title.lower()
    for name in _KNOWN_INGREDIENTS:
        if name in lowered:
            return name
    for dish, name in _NAME_BY_DISH:
        if dish in lowered:
            return name
    return None


def as_ingredient_map(value: Any) -> Dict[str, Any]:
    """Coerce a meal's ingredients into a ``{name: amount}`` mapping."""
    if isinstance(value, Mapping):
        return dict(value)
    return {str(name): "" for name in as_list(value) or []}


def repair_ingredients(
    ingredients: Mapping[str, Any], meal_title: Optional[str] = None
) -> Dict[str, str]:
    """Give every amount a unit and rename or drop placeholder keys.

    A placeholder is renamed after an ingredient the meal title mentions.
    It is dropped when the title names nothing or the name is already taken.
    """
    repaired: Dict[str, str] = {}
    placeholders = []
    for name, amount in ingredients.items():
        if is_placeholder_name(name):
            placeholders.append(amount)
        else:
            repaired[name.strip()] = with_unit(name, amount)

    for amount in placeholders:
        name = ingredient_name_from_title(meal_title)
        if name and name not in repaired:
            repaired[name] = with_unit(name, amount)
    return repaired


def repair_suggestions(value: Any) -> Dict[str, List[str]]:
    current = value if isinstance(value, Mapping) else {}
    return {
        key: as_list(current.get(key)) or []
        for key in ("improvements", "alternatives", "additions")
    }


def repair_features(value: Any) -> Dict[str, str]:
    """Keep the valid parts of an ingredient's features and default the rest."""
    features = dict(DEFAULT_FEATURES)
    if not isinstance(value, Mapping):
        return features
    for key in ("fiber", "g_i", "water"):
        current = value.get(key)
        if isinstance(current, (str, int, float)) and not isinstance(current, bool):
            if str(current).strip():
                features[key] = str(current).strip()
    season = str(value.get("season") or "").lower()
    if season in VALID_SEASONS:
        features["season"] = season
    rainbow = str(value.get("rainbow") or "").lower()
    if rainbow in VALID_RAINBOW_COLORS:
        features["rainbow"] = rainbow
    return features


def repair_storage_options(value: Any) -> Dict[str, str]:
    current = value if isinstance(value, Mapping) else {}
    return {
        key: str(current[key]) if current.get(key) else default
        for key, default in DEFAULT_STORAGE_OPTIONS.items()
    }


def _list_fixes(document: Mapping[str, Any], keys: Sequence[str]) -> Dict[str, Any]:
    fixes: Dict[str, Any] = {}
    for key in keys:
        value = document.get(key)
        repaired = as_list(value)
        if repaired is not None and repaired != value:
            fixes[key] = repaired
    return fixes


def meal_structure_fixes(document: Mapping[str, Any]) -> Dict[str, Any]:
    """Fields that repair the shape of one meal document, without any AI input."""
    fixes = _list_fixes(document, ("instructions", "categories"))

    ingredients = document.get("ingredients")
    if ingredients is not None:
        repaired = repair_ingredients(as_ingredient_map(ingredients), document.get("title"))
        if repaired != ingredients:
            fixes["ingredients"] = repaired

    method = document.get("cookingMethod")
    if method and method not in VALID_COOKING_METHODS:
        fixes["cookingMethod"] = cooking_method_from_title(document.get("title"))

    suggestions = repair_suggestions(document.get("suggestions"))
    if suggestions != document.get("suggestions"):
        fixes["suggestions"] = suggestions
    return fixes


def ingredient_structure_fixes(document: Mapping[str, Any]) -> Dict[str, Any]:
    """Fields that repair the shape of one ingredient document."""
    fixes = _list_fixes(document, ("categories", "techniques", "alt"))

    techniques = fixes.get("techniques", document.get("techniques"))
    if not techniques:
        fixes["techniques"] = list(DEFAULT_TECHNIQUES)

    features = repair_features(document.get("features"))
    if features != document.get("features"):
        fixes["features"] = features

    storage = repair_storage_options(document.get("storageOptions"))
    if storage != document.get("storageOptions"):
        fixes["storageOptions"] = storage
    return fixes
