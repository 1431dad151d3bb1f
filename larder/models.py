"""Typed views over meal and ingredient documents.

Documents in the record store use camelCase field names. The models below
expose snake_case attributes and round-trip the store's names through
aliases; fields the models do not know about are preserved.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Number = Union[float, str]


class _Document(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    def to_fields(self) -> Dict[str, Any]:
        """Return the store representation, skipping unset values."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"id"})


class Macros(_Document):
    protein: Optional[Number] = None
    carbs: Optional[Number] = None
    fat: Optional[Number] = None


class Nutrition(_Document):
    calories: Optional[Number] = None
    protein: Optional[Number] = None
    carbs: Optional[Number] = None
    fat: Optional[Number] = None


class Suggestions(_Document):
    improvements: List[str] = Field(default_factory=list)
    alternatives: List[str] = Field(default_factory=list)
    additions: List[str] = Field(default_factory=list)


class Features(_Document):
    fiber: Optional[Number] = None
    g_i: Optional[Number] = Field(default=None, alias="g_i")
    season: Optional[str] = None
    water: Optional[Number] = None
    rainbow: Optional[str] = None


class StorageOptions(_Document):
    countertop: Optional[str] = None
    fridge: Optional[str] = None
    freezer: Optional[str] = None


class Record(_Document):
    """Fields shared by every stored record."""

    id: str = ""
    title: Optional[str] = None
    type: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_title(self) -> bool:
        return bool(self.title and self.title.strip())


class Meal(Record):
    description: Optional[str] = None
    cooking_time: Optional[Number] = None
    cooking_method: Optional[str] = None
    ingredients: Optional[Dict[str, Any]] = None
    instructions: Optional[List[str]] = None
    categories: Optional[List[str]] = None
    serve_qty: Optional[float] = None
    nutritional_info: Optional[Nutrition] = None
    nutrition: Optional[Nutrition] = None
    macros: Optional[Macros] = None
    calories: Optional[float] = None
    suggestions: Optional[Suggestions] = None


class Ingredient(Record):
    calories: Optional[float] = None
    macros: Optional[Macros] = None
    categories: Optional[List[str]] = None
    features: Optional[Features] = None
    techniques: Optional[List[str]] = None
    storage_options: Optional[StorageOptions] = None
    is_anti_inflammatory: Optional[bool] = None
    is_selected: Optional[bool] = None
    alt: Optional[List[str]] = None
    image: Optional[str] = None
    media_paths: List[str] = Field(default_factory=list)


class MealEnhancement(_Document):
    """Fields the AI service may propose for a meal."""

    description: Optional[str] = None
    type: Optional[str] = None
    cooking_time: Optional[Number] = None
    cooking_method: Optional[str] = None
    ingredients: Optional[Dict[str, Any]] = None
    instructions: Optional[List[str]] = None
    categories: Optional[List[str]] = None
    serve_qty: Optional[float] = None
    nutritional_info: Optional[Nutrition] = None
    suggestions: Optional[Suggestions] = None


class IngredientEnhancement(_Document):
    """Fields the AI service may propose for an ingredient."""

    title: Optional[str] = None
    type: Optional[str] = None
    calories: Optional[float] = None
    macros: Optional[Macros] = None
    categories: Optional[List[str]] = None
    features: Optional[Features] = None
    techniques: Optional[List[str]] = None
    storage_options: Optional[StorageOptions] = None
    is_anti_inflammatory: Optional[bool] = None
    alt: Optional[List[str]] = None
    image: Optional[str] = None


class MealVariation(MealEnhancement):
    title: str


class IngredientVariation(IngredientEnhancement):
    title: str
