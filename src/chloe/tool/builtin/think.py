"""Think tool — scratchpad for reasoning without acting."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, Field

from chloe.tool.base import BaseTool, ToolResult


class ThinkParams(BaseModel):
    thought: str = Field(
        description=(
            "Your internal reasoning. Use this to plan which columns belong "
            "together before changing any matches."
        )
    )


class ThinkTool(BaseTool[ThinkParams]):
    """Records reasoning in the conversation; no side effects."""

    name: ClassVar[str] = "think"
    description: ClassVar[str] = (
        "Think through the request and plan your approach. "
        "No side effects, the thought is only recorded in the conversation."
    )
    param_model: ClassVar[type[BaseModel]] = ThinkParams

    async def execute(self, params: ThinkParams) -> ToolResult:
        return ToolResult(output={"recorded": True, "length": len(params.thought)})
