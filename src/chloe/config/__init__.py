"""Configuration — Pydantic models for chloe settings."""

from __future__ import annotations

import json
import os
import re
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from chloe.errors import ConfigError


_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _as_int(value: Any, minimum: int) -> int:
    """Parse ``value`` as an int no smaller than ``minimum``.

    Strings are read up to the first non-digit, so "2.5" is 2 and "3abc"
    is 3. Unparsable input falls back to ``minimum``.
    """
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match is None:
            return minimum
        return max(minimum, int(match.group(1)))
    try:
        parsed = int(value)
    except (TypeError, ValueError, OverflowError):
        return minimum
    return max(minimum, parsed)


class LLMConfig(BaseModel):
    """LLM provider configuration.

    Model names use litellm's provider-prefix format:
        "gemini/gemini-2.5-flash"
        "anthropic/claude-sonnet-4-5-20250929"
        "openai/gpt-4o"

    API keys are read from env vars automatically by litellm
    (GEMINI_API_KEY, ANTHROPIC_API_KEY, OPENAI_API_KEY).
    """

    model: str = Field(default="gemini/gemini-2.5-flash")
    temperature: float | None = Field(default=None)
    max_tokens: int | None = Field(default=None)


class RetryConfig(BaseModel):
    """Transport retry settings."""

    api_call_delay: int = Field(
        default=2, description="Seconds to wait before retrying a failed API call"
    )
    max_retries: int = Field(
        default=3, description="Max retries on failure (0 for unlimited)"
    )

    @field_validator("api_call_delay", mode="before")
    @classmethod
    def _clamp_delay(cls, v: Any) -> int:
        return _as_int(v, 1)

    @field_validator("max_retries", mode="before")
    @classmethod
    def _clamp_retries(cls, v: Any) -> int:
        return _as_int(v, 0)


class ChloeConfig(BaseModel):
    """Top-level chloe configuration."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    persona_path: str | None = Field(
        default=None, description="Markdown persona file (YAML frontmatter)"
    )

    @classmethod
    def load(cls, config_path: str | None = None) -> ChloeConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            CHLOE_MODEL            - Override model (litellm format with provider prefix)
            CHLOE_TEMPERATURE      - Override sampling temperature
            CHLOE_API_CALL_DELAY   - Seconds between retries of a failed API call
            CHLOE_MAX_RETRIES      - Retries on transient errors (0 = unlimited)
            CHLOE_PERSONA          - Persona markdown file
        """
        from dotenv import load_dotenv

        load_dotenv(override=True)

        config_data: dict[str, Any] = {}
        if config_path:
            if not os.path.exists(config_path):
                raise ConfigError(f"Config file not found: {config_path}")
            try:
                with open(config_path, encoding="utf-8") as f:
                    config_data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigError(f"Invalid JSON in {config_path}: {e}") from e

        llm = dict(config_data.get("llm", {}))
        env_model = os.environ.get("CHLOE_MODEL")
        if env_model:
            llm["model"] = env_model
        env_temperature = os.environ.get("CHLOE_TEMPERATURE")
        if env_temperature:
            llm["temperature"] = env_temperature
        if llm:
            config_data["llm"] = llm

        retry = dict(config_data.get("retry", {}))
        env_delay = os.environ.get("CHLOE_API_CALL_DELAY")
        if env_delay:
            retry["api_call_delay"] = env_delay
        env_retries = os.environ.get("CHLOE_MAX_RETRIES")
        if env_retries:
            retry["max_retries"] = env_retries
        if retry:
            config_data["retry"] = retry

        env_persona = os.environ.get("CHLOE_PERSONA")
        if env_persona:
            config_data["persona_path"] = env_persona

        try:
            return cls.model_validate(config_data)
        except ValidationError as e:
            raise ConfigError(str(e)) from e
