from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_AI_MODEL,
    DEFAULT_PACING_DELAY_S,
    DEFAULT_SCHEDULE_INTERVAL_DAYS,
    DEFAULT_STATE_DIR,
    DEFAULT_VARIATION_DELAY_S,
    MAX_TITLE_LENGTH,
)
from .contracts import Scope


class AIConfig(BaseModel):
    """Configuration for the AI text-generation service."""

    model: str = DEFAULT_AI_MODEL
    pacing_delay_s: float = DEFAULT_PACING_DELAY_S
    variation_delay_s: float = DEFAULT_VARIATION_DELAY_S
    max_title_length: int = MAX_TITLE_LENGTH


class ScheduleConfig(BaseModel):
    """Periodic full-workflow trigger settings."""

    scope: Scope = Scope.ALL
    interval_days: float = DEFAULT_SCHEDULE_INTERVAL_DAYS


class LarderConfig(BaseModel):
    """Top-level configuration model."""

    state_dir: str = DEFAULT_STATE_DIR
    database_url: Optional[str] = None
    ai: AIConfig = Field(default_factory=AIConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)


def load_config(path: Optional[str] = None) -> LarderConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to LARDER_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("LARDER_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = LarderConfig(**data)
    else:
        config = LarderConfig()

    env_db_url = os.getenv("LARDER_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    env_state_dir = os.getenv("LARDER_STATE_DIR")
    if env_state_dir:
        config.state_dir = env_state_dir
    env_model = os.getenv("LARDER_AI_MODEL")
    if env_model:
        config.ai.model = env_model
    return config
