"""Selection context — describe highlighted matches for the model."""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence
from typing import Any

from pydantic import BaseModel, Field


class Column(BaseModel):
    column_name: str


class Match(BaseModel):
    """A match card: source columns grouped under one final name."""

    id: str
    final_name: str
    # Kept as-is when it is not a list of columns.
    columns: list[Column] | Any = Field(default_factory=list)


def select(matches: Iterable[Match], ids: Collection[str]) -> list[Match]:
    """Matches whose id is selected, in board order."""
    return [m for m in matches if m.id in ids]


def _column_names(match: Match) -> str:
    if not isinstance(match.columns, list):
        return ""
    names = []
    for c in match.columns:
        if isinstance(c, Column):
            names.append(c.column_name)
        elif isinstance(c, dict):
            names.append(str(c.get("column_name", "")))
        else:
            names.append(str(c))
    return ", ".join(names)


def describe_selection(matches: Sequence[Match]) -> str:
    lines = [f"- {m.final_name}: [{_column_names(m)}]" for m in matches]
    return "The user has highlighted the following matches:\n" + "\n".join(lines)


def augment(prompt: str, selection: Sequence[Match] | None) -> str:
    """Prefix ``prompt`` with a summary of the selected matches.

    With nothing selected the prompt is returned unchanged.
    """
    if not selection:
        return prompt
    return f"{describe_selection(selection)}\n\nUser's question: {prompt}"
