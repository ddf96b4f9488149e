"""Base tool classes with Pydantic parameter validation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from chloe.errors import InvalidToolArguments

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=BaseModel)


@dataclass
class ToolResult:
    """Structured result of one tool call."""

    output: Any = None


def function_spec(
    name: str, description: str, param_model: type[BaseModel]
) -> dict[str, Any]:
    """Build an OpenAI function tool specification from a parameter model."""
    schema = param_model.model_json_schema()
    # Pydantic adds a title the model doesn't need.
    schema.pop("title", None)
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": schema,
        },
    }


class BaseTool(ABC, Generic[P]):
    """Base class for tools executed in-process.

    Each tool declares its parameters as a Pydantic model:

        class NoteParams(BaseModel):
            text: str

        class NoteTool(BaseTool[NoteParams]):
            name = "note"
            description = "Record a note"
            param_model = NoteParams

            async def execute(self, params: NoteParams) -> ToolResult:
                return ToolResult(output={"saved": True})

    Validation failures raise ``InvalidToolArguments``; errors raised by
    ``execute`` propagate to the caller unchanged.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    param_model: ClassVar[type[BaseModel]]

    async def __call__(self, arguments: dict[str, Any]) -> ToolResult:
        try:
            params = self.param_model.model_validate(arguments)
        except ValidationError as e:
            raise InvalidToolArguments(self.name, str(e)) from e
        return await self.execute(params)  # type: ignore[arg-type]

    @abstractmethod
    async def execute(self, params: P) -> ToolResult:
        """Execute the tool with validated parameters."""
        ...

    def to_openai_spec(self) -> dict[str, Any]:
        return function_spec(self.name, self.description, self.param_model)
