from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from pydantic_ai.tools import ToolDefinition

from genie_console.agent.events import ToolOutput
from genie_console.exceptions import ParseError
from genie_console.genie.poller import GeniePoller
from genie_console.log import logger

ASK_GENIE_TOOL_NAME = "AskGenie"

ToolHandler = Callable[[Any], Awaitable[str]]


def load_instructions(path: PathLike | str) -> str:
    logger.info(f"Loading instructions from {path}")
    return Path(path).read_text()


class AskGenieArguments(BaseModel):
    genie_prompt: str = Field(description="Question to be asked to Genie.")


ASK_GENIE_PARAMETERS: dict[str, Any] = {
    "type": "object",
    "properties": {
        "genie_prompt": {
            "type": "string",
            "description": "Question to be asked to Genie.",
        },
    },
    "required": ["genie_prompt"],
}


@dataclass
class RegisteredTool:
    definition: ToolDefinition
    arguments_model: type[BaseModel]
    handler: ToolHandler

    @property
    def name(self) -> str:
        return self.definition.name

    def parse_arguments(self, arguments_json: str) -> BaseModel:
        try:
            return self.arguments_model.model_validate_json(arguments_json)
        except ValidationError as e:
            raise ParseError(f"Invalid arguments for tool {self.name}: {e}") from e


class ToolRegistry:
    """Function tools the agent may call, keyed by name."""

    def __init__(self) -> None:
        self.tools: dict[str, RegisteredTool] = {}

    def register(self, tool: RegisteredTool) -> None:
        if tool.name in self.tools:
            raise ValueError(f"Tool {tool.name} is already registered")
        self.tools[tool.name] = tool

    def definitions(self) -> list[ToolDefinition]:
        return [tool.definition for tool in self.tools.values()]

    async def resolve(self, function_name: str, tool_call_id: str, arguments_json: str) -> ToolOutput | None:
        """Run the tool named by a required action.

        Returns ``None`` when no tool with that name is registered. Malformed
        arguments raise ``ParseError``.
        """
        tool = self.tools.get(function_name)
        if tool is None:
            return None

        arguments = tool.parse_arguments(arguments_json)
        logger.info(f"Calling tool {function_name} for tool call {tool_call_id}")
        output = await tool.handler(arguments)
        return ToolOutput(tool_call_id=tool_call_id, output=output)


def build_ask_genie_tool(poller: GeniePoller, description: str) -> RegisteredTool:
    async def ask_genie(arguments: AskGenieArguments) -> str:
        return await poller.run_to_completion(arguments.genie_prompt)

    return RegisteredTool(
        definition=ToolDefinition(
            name=ASK_GENIE_TOOL_NAME,
            description=description,
            parameters_json_schema=ASK_GENIE_PARAMETERS,
        ),
        arguments_model=AskGenieArguments,
        handler=ask_genie,
    )
