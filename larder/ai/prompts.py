"""Prompt builders for the AI text-generation service."""

from __future__ import annotations

import json
from typing import Any, Iterable, Mapping, Optional

from ..constants import VALID_COOKING_METHODS, VALID_INGREDIENT_TYPES, VALID_MEAL_TYPES
from ..models import Ingredient, Meal

SYSTEM_PROMPT = (
    "You are a culinary data assistant. You fill in missing details of meal "
    "and ingredient records. Follow the requested output format exactly."
)

_JSON_ONLY = "Return ONLY a JSON object. Do not include explanations or markdown."


def _join(values: Optional[Iterable[object]]) -> str:
    return ", ".join(str(v) for v in values) if values else ""


def meal_title_prompt(meal: Meal) -> str:
    ingredients = _join((meal.ingredients or {}).keys())
    return f"""Generate a concise, appetizing title for this meal based on the available information.

Meal Information:
- Description: {meal.description or ''}
- Ingredients: {ingredients}
- Cooking Method: {meal.cooking_method or ''}
- Type: {meal.type or ''}

Requirements:
1. Title should be 2-8 words maximum
2. Should be appetizing and descriptive
3. Should reflect the main ingredients or cooking method
4. Should not include measurements or quantities
5. Should be in title case (e.g., "Grilled Salmon with Vegetables")

Return ONLY the title. Do not include quotes, explanations, or additional text."""


def ingredient_title_prompt(ingredient: Ingredient) -> str:
    macros = ""
    if ingredient.macros is not None:
        m = ingredient.macros
        macros = f"{m.protein}g protein, {m.carbs}g carbs, {m.fat}g fat"
    return f"""Generate a concise, descriptive title for this ingredient based on the available information.

Ingredient Information:
- Type: {ingredient.type or ''}
- Calories: {ingredient.calories or 0}
- Macros: {macros}
- Categories: {_join(ingredient.categories)}

Requirements:
1. Title should be 1-4 words maximum
2. Should be descriptive and recognizable
3. Should reflect the ingredient type and main characteristics
4. Should not include measurements or quantities
5. Should be in lowercase (e.g., "chicken breast", "brown rice", "broccoli")

Return ONLY the title. Do not include quotes, explanations, or additional text."""


def meal_enhancement_prompt(meal: Meal, missing: Iterable[str]) -> str:
    current = json.dumps(meal.to_fields(), default=str, ensure_ascii=False)
    return f"""Complete the missing details of this meal.

Current meal record:
{current}

Missing fields: {_join(missing)}

Respond with a JSON object using these keys where you can provide a value:
- "description": short description
- "type": one of {_join(VALID_MEAL_TYPES)}
- "cookingTime": e.g. "25 minutes"
- "cookingMethod": one of {_join(VALID_COOKING_METHODS)}
- "ingredients": object mapping ingredient name to amount with unit
- "instructions": list of steps
- "categories": list of cuisines or diet categories
- "serveQty": number of servings
- "nutritionalInfo": object with calories, protein, carbs, fat
- "suggestions": object with improvements, alternatives, additions lists

{_JSON_ONLY}"""


def ingredient_enhancement_prompt(ingredient: Ingredient, missing: Iterable[str]) -> str:
    current = json.dumps(ingredient.to_fields(), default=str, ensure_ascii=False)
    return f"""Complete the missing details of this ingredient.

Current ingredient record:
{current}

Missing fields: {_join(missing)}

Respond with a JSON object using these keys where you can provide a value:
- "type": one of {_join(VALID_INGREDIENT_TYPES)}
- "calories": calories per 100g
- "macros": object with protein, carbs, fat
- "categories": list of diet categories (keto, vegan, ...)
- "features": object with fiber, g_i, season, water, rainbow
- "techniques": list of cooking techniques
- "storageOptions": object with countertop, fridge, freezer
- "isAntiInflammatory": true or false
- "alt": list of healthier alternatives
- "image": image URL

{_JSON_ONLY}"""


def ingredient_type_prompt(ingredient: Ingredient) -> str:
    macros = ingredient.macros.to_fields() if ingredient.macros else {}
    return f"""Classify this ingredient into exactly one type.

Ingredient: {ingredient.title or ''}
Calories: {ingredient.calories or 0}
Macros: {json.dumps(macros, default=str)}

Allowed types: {_join(VALID_INGREDIENT_TYPES)}

Return ONLY the type, in lowercase."""


def meal_variation_prompt(meal: Meal, existing_titles: Iterable[str]) -> str:
    current = json.dumps(meal.to_fields(), default=str, ensure_ascii=False)
    return f"""This meal duplicates another meal in the collection. Turn it into a distinct variation.

Current meal record:
{current}

The new title must not be any of: {_join(existing_titles)}

Respond with a JSON object containing "title" plus any of "description", "type",
"cookingTime", "cookingMethod", "ingredients", "instructions", "categories",
"serveQty", "nutritionalInfo" that change in the variation.

{_JSON_ONLY}"""


def ingredient_variation_prompt(ingredient: Ingredient, existing_titles: Iterable[str]) -> str:
    current = json.dumps(ingredient.to_fields(), default=str, ensure_ascii=False)
    return f"""This ingredient duplicates another ingredient in the collection. Turn it into a distinct variation (a different cut, form or cultivar).

Current ingredient record:
{current}

The new title must not be any of: {_join(existing_titles)}

Respond with a JSON object containing "title" and "type" (one of {_join(VALID_INGREDIENT_TYPES)})
plus any of "calories", "macros", "categories", "features", "techniques",
"storageOptions", "isAntiInflammatory", "alt" that differ for the variation.

{_JSON_ONLY}"""


def meal_structure_prompt(document: Mapping[str, Any]) -> str:
    current = json.dumps(
        {k: v for k, v in document.items() if k != "id"}, default=str, ensure_ascii=False
    )
    return f"""Complete the missing details of this meal and correct its structure.

Current meal record:
{current}

Respond with a JSON object using these keys:
- "cookingMethod": one of {_join(VALID_COOKING_METHODS)}
- "ingredients": object mapping ingredient name to amount with unit (e.g. "200 g")
- "description": short description
- "instructions": list of steps
- "categories": list of cuisines or diet categories
- "serveQty": number of servings

{_JSON_ONLY}"""


def ingredient_generation_prompt(ingredient_type: str, existing_titles: Iterable[str]) -> str:
    return f"""Invent one new, real {ingredient_type} ingredient for a healthy cooking collection.

The title must not be any of: {_join(existing_titles)}

Respond with a JSON object with these keys:
- "title": 1-4 words, lowercase
- "type": "{ingredient_type}"
- "calories": calories per 100g
- "macros": object with protein, carbs, fat
- "categories": list of diet categories (keto, vegan, ...)
- "features": object with fiber, g_i, season, water, rainbow
- "techniques": list of cooking techniques
- "storageOptions": object with countertop, fridge, freezer
- "isAntiInflammatory": true or false
- "alt": list of healthier alternatives

{_JSON_ONLY}"""
