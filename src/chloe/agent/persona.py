"""Assistant persona — loaded from YAML frontmatter in markdown files."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from chloe.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = """\
You are Chloe, a data assistant that helps users consolidate columns from
several source tables into one schema.

The application shows match cards. Each card groups source columns under a
final name and is either pending or confirmed; some columns are unmatched.
Use the tools to review cards, group unmatched columns, confirm matches,
apply suggestions and generate SQL. Call tools one step at a time and read
each result before deciding the next step. When the work is done, answer in
plain language and summarize what changed.
"""


@dataclass
class Persona:
    """Who the assistant is: display name, prompt and model overrides.

    Personas are markdown files with YAML frontmatter:

        ---
        name: Chloe
        description: Your AI Data Assistant
        model: gemini/gemini-2.5-flash
        ---

        You are Chloe, ...
    """

    name: str = "Chloe"
    description: str = "Your AI Data Assistant"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    model: str | None = None
    temperature: float | None = None

    @classmethod
    def from_markdown(cls, path: str) -> Persona:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()

        data, prompt = _parse_frontmatter(content)
        data["system_prompt"] = prompt.strip() or DEFAULT_SYSTEM_PROMPT
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Persona:
        known = {"name", "description", "system_prompt", "model", "temperature"}
        unknown = set(data) - known
        if unknown:
            logger.warning("Ignoring unknown persona fields: %s", sorted(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})


DEFAULT_PERSONA = Persona()


def _parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Split markdown into (frontmatter dict, body)."""
    import yaml  # lazy import, only needed when loading personas

    match = re.match(r"^---\s*\n(.*?)\n---\s*\n(.*)", content, re.DOTALL)
    if not match:
        return {}, content

    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid persona frontmatter: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("Persona frontmatter must be a mapping")
    return data, match.group(2)
