"""Client for the AI text-generation service."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError
from pydantic_ai import Agent
from pydantic_ai.exceptions import AgentRunError, ModelHTTPError

from ..constants import (
    DEFAULT_AI_MODEL,
    DEFAULT_PACING_DELAY_S,
    MAX_TITLE_LENGTH,
    VALID_INGREDIENT_TYPES,
)
from ..errors import AIServiceError
from .prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


def extract_json_object(text: str) -> str:
    """Return the JSON object embedded in a completion."""
    fenced = _FENCED_JSON.search(text)
    if fenced:
        return fenced.group(1)
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        raise AIServiceError("No JSON object in AI response")
    return text[start : end + 1]


class AIClient:
    """Send prompts to a pydantic-ai agent and validate what comes back.

    The agent is created lazily from ``model`` unless one is supplied, so
    tests can pass any object with an async ``run(prompt)`` method.
    """

    def __init__(
        self,
        agent: Optional[Any] = None,
        model: str = DEFAULT_AI_MODEL,
        pacing_delay_s: float = DEFAULT_PACING_DELAY_S,
        max_title_length: int = MAX_TITLE_LENGTH,
    ) -> None:
        self._agent = agent
        self.model = model
        self.pacing_delay_s = pacing_delay_s
        self.max_title_length = max_title_length

    @property
    def agent(self) -> Any:
        if self._agent is None:
            self._agent = Agent(self.model, system_prompt=SYSTEM_PROMPT)
        return self._agent

    async def pace(self, delay_s: Optional[float] = None) -> None:
        """Wait between consecutive AI calls to stay under the rate limit."""
        delay = self.pacing_delay_s if delay_s is None else delay_s
        if delay > 0:
            await asyncio.sleep(delay)

    async def complete(self, prompt: str) -> str:
        """Return the raw completion text for ``prompt``."""
        try:
            result = await self.agent.run(prompt)
        except ModelHTTPError as e:
            raise AIServiceError(
                f"AI service error: {e.status_code}", status_code=e.status_code
            ) from e
        except (AgentRunError, httpx.HTTPError) as e:
            raise AIServiceError(f"AI service request failed: {e}") from e

        output = getattr(result, "output", result)
        text = output.strip() if isinstance(output, str) else ""
        if not text:
            raise AIServiceError("No response generated by AI service")
        return text

    async def generate_title(self, prompt: str) -> str:
        text = await self.complete(prompt)
        title = text.replace('"', "").replace("'", "").strip()
        if not title or len(title) > self.max_title_length:
            raise AIServiceError("Generated title is invalid")
        return title

    async def generate_json(self, prompt: str, model_cls: Type[M]) -> M:
        text = await self.complete(prompt)
        try:
            return model_cls.model_validate_json(extract_json_object(text))
        except ValidationError as e:
            raise AIServiceError(f"AI response did not match {model_cls.__name__}: {e}") from e

    async def classify_ingredient_type(self, prompt: str) -> str:
        text = await self.complete(prompt)
        candidate = re.sub(r"[^a-z]", "", text.lower())
        if candidate not in VALID_INGREDIENT_TYPES:
            raise AIServiceError(f"AI returned invalid ingredient type: {text!r}")
        return candidate
