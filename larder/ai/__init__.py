"""AI text-generation service integration."""

from .client import AIClient, extract_json_object
from . import prompts

__all__ = ["AIClient", "extract_json_object", "prompts"]
