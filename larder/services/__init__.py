"""Remediation services for meals and ingredients."""

from .analysis import DataAnalysisService
from .base import RecordService
from .ingredients import IngredientService
from .meals import MealService

__all__ = ["DataAnalysisService", "IngredientService", "MealService", "RecordService"]
