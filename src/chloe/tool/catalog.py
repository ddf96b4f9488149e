"""Tool schema catalog for column matching.

These declarations describe operations the application performs on its
match board; chloe only forwards calls to them through a ``ToolInvoker``.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from chloe.tool.base import function_spec


class ReviewMatchesParams(BaseModel):
    status: Literal["pending", "confirmed", "all"] = Field(
        default="all",
        description="Which matches to review.",
    )


class MatchColumnsParams(BaseModel):
    column_names: list[str] = Field(
        default_factory=list,
        description=(
            "Unmatched columns to group. Leave empty to match every "
            "unmatched column."
        ),
    )
    final_name: str | None = Field(
        default=None,
        description="Name for the resulting match, when grouping explicitly.",
    )


class ConfirmMatchParams(BaseModel):
    match_id: str = Field(description="Id of the match to confirm.")
    final_name: str | None = Field(
        default=None, description="Optional new name for the match."
    )


class ApplySuggestionsParams(BaseModel):
    match_ids: list[str] = Field(
        default_factory=list,
        description="Matches whose AI suggestions to apply. Empty means all.",
    )


class GenerateSqlParams(BaseModel):
    table_name: str = Field(
        default="merged", description="Name of the target table."
    )
    confirmed_only: bool = Field(
        default=True, description="Only include confirmed matches."
    )


TOOL_DECLARATIONS: tuple[dict[str, Any], ...] = (
    function_spec(
        "review_matches",
        "List the current column match cards with their columns and status.",
        ReviewMatchesParams,
    ),
    function_spec(
        "match_columns",
        "Group unmatched columns into new match cards.",
        MatchColumnsParams,
    ),
    function_spec(
        "confirm_match",
        "Confirm a pending match, optionally renaming it.",
        ConfirmMatchParams,
    ),
    function_spec(
        "apply_suggestions",
        "Apply the AI-suggested names and groupings to pending matches.",
        ApplySuggestionsParams,
    ),
    function_spec(
        "generate_sql",
        "Generate the SQL that merges matched columns into one table.",
        GenerateSqlParams,
    ),
)


def tool_names() -> list[str]:
    return [d["function"]["name"] for d in TOOL_DECLARATIONS]
